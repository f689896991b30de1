"""
Expense Sync

Offline-first expense cache with opportunistic synchronization to a
remote expense service.

Provides:
- Local single-slot persistence that survives restarts
- An aiohttp client for the remote /expenses API
- Connectivity edge tracking with an optional background probe
- A sync engine that pushes pending records and pulls the server's list

Usage:

    >>> from expense_sync import ExpenseDraft, SyncConfig, SyncEngine
    >>> engine = SyncEngine.from_config(SyncConfig.from_env())
    >>> await engine.start()
    >>> await engine.create(ExpenseDraft(amount="10", description="coffee", category="food"))
    >>> for expense in engine.snapshot():
    ...     print(expense.amount, expense.description, expense.synced)
    >>> await engine.close()
"""

from .config import SyncConfig
from .connectivity import ConnectivityMonitor

# Exceptions
from .exceptions import (
    ConfigError,
    ExpenseSyncError,
    PersistenceError,
    RejectedError,
    RemoteError,
    ServerError,
    UnreachableError,
    ValidationError,
)
from .local import LocalStore
from .logging_utils import configure_structured_logging
from .records import Expense, ExpenseDraft, SyncState
from .remote import RemoteClient
from .sync import ReconcileResult, SyncEngine, SyncStatus

__version__ = "0.1.0"

__all__ = [
    # Records
    "Expense",
    "ExpenseDraft",
    "SyncState",
    # Components
    "ConnectivityMonitor",
    "LocalStore",
    "RemoteClient",
    "SyncEngine",
    "ReconcileResult",
    "SyncStatus",
    # Configuration
    "SyncConfig",
    "configure_structured_logging",
    # Exceptions
    "ExpenseSyncError",
    "ValidationError",
    "ConfigError",
    "PersistenceError",
    "RemoteError",
    "UnreachableError",
    "ServerError",
    "RejectedError",
]
