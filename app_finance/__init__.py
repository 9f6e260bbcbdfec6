"""
App Finance - Core Package

Business logic for a personal finance tracker: fixed bills, credit cards,
transactions, installment purchases and AI-assisted category suggestions.

DESIGN PRINCIPLES:
1. Local first: every write lands in the local store before the server
2. Sync status is explicit on every entity (pending / synced / pending_delete)
3. AI suggests → User confirms
4. Every significant action is auditable
5. Storage and API layers are swappable
"""

__version__ = "1.0.0"
__author__ = "App Finance Team"
