"""
Remote expense service access.
"""

from .client import REJECTED_STATUSES, RemoteClient

__all__ = [
    "RemoteClient",
    "REJECTED_STATUSES",
]
