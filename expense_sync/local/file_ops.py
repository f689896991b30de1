"""
JSON file operations for the local slot.

Provides:
- Atomic writes using temp file + fsync + rename
- Backups of unreadable files before they are replaced
"""

import json
import os
import shutil
import tempfile
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import aiofiles
import aiofiles.os

from ..exceptions import PersistenceError


class CorruptSlotError(PersistenceError):
    """Raised when a slot file exists but does not hold valid JSON."""


async def ensure_directory(path: Path) -> None:
    """Ensure directory exists, creating if necessary.

    Args:
        path: Directory path to ensure exists
    """
    try:
        await aiofiles.os.makedirs(path, exist_ok=True)
    except OSError as e:
        raise PersistenceError("create_directory", str(path), e) from e


async def read_json(path: Path) -> Any | None:
    """Read a JSON file.

    Args:
        path: Path to JSON file

    Returns:
        Parsed JSON data or None if the file doesn't exist or is empty
    """
    try:
        if not await aiofiles.os.path.exists(path):
            return None
        async with aiofiles.open(path, encoding="utf-8") as f:
            content = await f.read()
    except UnicodeDecodeError as e:
        raise CorruptSlotError("decode_text", str(path), e) from e
    except OSError as e:
        raise PersistenceError("read_json", str(path), e) from e

    if not content.strip():
        return None
    try:
        return json.loads(content)
    except json.JSONDecodeError as e:
        raise CorruptSlotError("parse_json", str(path), e) from e


async def write_json_atomic(path: Path, data: Any) -> None:
    """Write JSON file atomically using temp file + rename.

    Args:
        path: Target path for JSON file
        data: Data to serialize as JSON
    """
    await ensure_directory(path.parent)

    fd, temp_path = tempfile.mkstemp(
        dir=path.parent,
        prefix=".tmp_",
        suffix=".json",
    )
    try:
        os.close(fd)
        async with aiofiles.open(temp_path, "w", encoding="utf-8") as f:
            await f.write(json.dumps(data, indent=2, default=_json_serializer))
            await f.flush()
            os.fsync(f.fileno())

        await aiofiles.os.rename(temp_path, path)
    except Exception as e:
        try:
            await aiofiles.os.remove(temp_path)
        except OSError:
            pass
        raise PersistenceError("write_json", str(path), e) from e


async def create_backup(path: Path) -> Path:
    """Copy a file aside with a timestamped name.

    Args:
        path: Path to file to backup

    Returns:
        Path to backup file
    """
    if not await aiofiles.os.path.exists(path):
        raise PersistenceError("backup", str(path), FileNotFoundError(f"File not found: {path}"))

    timestamp = datetime.now(UTC).strftime("%Y%m%d_%H%M%S")
    backup_path = path.with_suffix(f".{timestamp}.backup{path.suffix}")

    try:
        # aiofiles doesn't have copy
        await aiofiles.os.wrap(shutil.copy2)(path, backup_path)
        return backup_path
    except OSError as e:
        raise PersistenceError("backup", str(path), e) from e


async def remove_file(path: Path) -> bool:
    """Remove a file if it exists.

    Args:
        path: Path to remove

    Returns:
        True if file was removed, False if it didn't exist
    """
    try:
        if await aiofiles.os.path.exists(path):
            await aiofiles.os.remove(path)
            return True
        return False
    except OSError as e:
        raise PersistenceError("remove", str(path), e) from e


def _json_serializer(obj: Any) -> Any:
    """Custom JSON serializer for types not handled by default."""
    if isinstance(obj, datetime):
        return obj.isoformat()
    if hasattr(obj, "to_dict"):
        return obj.to_dict()
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")
