"""
Offline-first synchronization.

Pushes locally created expenses to the remote service and replaces the
local view with the server's canonical list.
"""

from .engine import ReconcileResult, SyncEngine, SyncStatus

__all__ = [
    "SyncEngine",
    "ReconcileResult",
    "SyncStatus",
]
