"""
Local file-based persistence for the expense collection.

Key classes:
- LocalStore: single-slot, whole-collection store with atomic overwrite
"""

from .file_ops import create_backup, read_json, remove_file, write_json_atomic
from .store import LocalStore

__all__ = [
    "LocalStore",
    # Low-level file operations
    "read_json",
    "write_json_atomic",
    "create_backup",
    "remove_file",
]
