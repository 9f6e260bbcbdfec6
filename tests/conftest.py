"""Shared fixtures: in-memory stores, audit logger and a mocked backend."""

from typing import Callable

import httpx
import pytest
from tenacity import wait_none

from app_finance.audit import AuditLogger
from app_finance.config import ApiSettings
from app_finance.services.api import ApiClient
from app_finance.storage import InMemoryAuditStorage, InMemoryStore


USER_ID = "USER-1"


@pytest.fixture
def user_id() -> str:
    return USER_ID


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def audit_storage() -> InMemoryAuditStorage:
    return InMemoryAuditStorage()


@pytest.fixture
def audit_logger(audit_storage) -> AuditLogger:
    return AuditLogger(audit_storage)


@pytest.fixture
def api_settings() -> ApiSettings:
    return ApiSettings(base_url="https://api.test", timeout_seconds=5, max_retries=2)


@pytest.fixture
def make_client(api_settings) -> Callable[[Callable[[httpx.Request], httpx.Response]], ApiClient]:
    """Build an ApiClient whose requests go to ``handler``."""

    def _make(handler: Callable[[httpx.Request], httpx.Response]) -> ApiClient:
        return ApiClient(
            api_settings,
            transport=httpx.MockTransport(handler),
            retry_wait=wait_none(),
        )

    return _make
