"""
Durable single-slot store for the expense collection.

The whole collection is serialized as one JSON array and every save
replaces the slot atomically. No partial writes and no field patches.
"""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path

from ..exceptions import PersistenceError
from ..logging_utils import get_sync_logger
from ..records import Expense
from .file_ops import CorruptSlotError, create_backup, read_json, remove_file, write_json_atomic

logger = get_sync_logger("local")


class LocalStore:
    """Whole-collection persistence in a named JSON slot.

    Example:
        >>> store = LocalStore(Path("~/.expense_sync/expenses.json").expanduser())
        >>> await store.save(records)
        >>> records = await store.load()
    """

    def __init__(self, path: Path):
        """Initialize the store.

        Args:
            path: File backing the slot
        """
        self.path = path

    async def load(self) -> list[Expense]:
        """Load the collection in stored order.

        A missing or empty slot yields an empty list. A slot that cannot be
        decoded is backed up and treated as empty.

        Raises:
            PersistenceError: If the slot exists but cannot be read
        """
        try:
            raw = await read_json(self.path)
        except CorruptSlotError as e:
            await self._quarantine(e)
            return []

        if raw is None:
            return []
        if not isinstance(raw, list):
            await self._quarantine(f"expected a JSON array, got {type(raw).__name__}")
            return []

        try:
            records = [Expense.from_dict(item) for item in raw]
        except (KeyError, TypeError, ValueError) as e:
            await self._quarantine(e)
            return []

        logger.debug(f"Loaded {len(records)} expenses from {self.path}")
        return records

    async def save(self, records: Iterable[Expense]) -> None:
        """Replace the slot with the given collection.

        Raises:
            PersistenceError: If the write fails
        """
        data = [record.to_dict() for record in records]
        await write_json_atomic(self.path, data)
        logger.debug(f"Saved {len(data)} expenses to {self.path}")

    async def clear(self) -> bool:
        """Remove the slot. Returns True if it existed."""
        return await remove_file(self.path)

    async def _quarantine(self, reason: object) -> None:
        try:
            backup = await create_backup(self.path)
        except PersistenceError as e:
            logger.error(f"Unreadable expense slot {self.path} ({reason}); backup failed: {e}")
            return
        logger.warning(f"Unreadable expense slot {self.path} ({reason}); moved aside to {backup}")
