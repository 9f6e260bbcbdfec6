"""Push/pull synchronization with the backend."""

from app_finance.sync.manager import LAST_SYNC_KEY, SyncError, SyncManager, SyncReport

__all__ = [
    "LAST_SYNC_KEY",
    "SyncError",
    "SyncManager",
    "SyncReport",
]
