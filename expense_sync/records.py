"""
Expense records and their serialized forms.

An expense is matched between the local cache and the remote service by
its identity: the server-assigned ``remote_id`` once it has one, the
client-generated ``local_id`` before that.

The local slot and the wire format share the key names the mobile client
has always written (``id``, ``_id``, ``date``, ``synced``, ``userId``), so
an existing cache blob loads without migration.
"""

from __future__ import annotations

import math
import uuid
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from .exceptions import ValidationError


class SyncState(Enum):
    """Where a record is in its lifecycle."""

    PENDING = "pending"  # Created locally, not confirmed remotely
    SYNCED = "synced"  # Confirmed by the remote service


def new_local_id() -> str:
    """Generate a fresh client-side identifier."""
    return uuid.uuid4().hex


@dataclass(frozen=True)
class Expense:
    """A single expense tracked by the engine.

    Attributes:
        local_id: Client-generated id, stable for the record's local lifetime
        remote_id: Server-assigned id, absent until the record is synced
        amount: Expense amount
        description: Free-text description
        category: Free-text category
        occurred_at: When the expense happened (logical event time)
        sync_state: PENDING or SYNCED
        owner_id: Owner the record belongs to on the remote service
    """

    local_id: str | None
    remote_id: str | None
    amount: float
    description: str
    category: str
    occurred_at: datetime | None = None
    sync_state: SyncState = SyncState.PENDING
    owner_id: str | None = None

    def __post_init__(self) -> None:
        if not self.local_id and not self.remote_id:
            raise ValueError("Expense needs a local_id or a remote_id")
        if self.sync_state is SyncState.SYNCED and not self.remote_id:
            raise ValueError("A synced expense must carry a remote_id")

    @property
    def identity(self) -> str:
        """Identity used to match local and remote copies."""
        return self.remote_id or self.local_id  # type: ignore[return-value]

    @property
    def synced(self) -> bool:
        return self.sync_state is SyncState.SYNCED

    def to_dict(self) -> dict[str, Any]:
        """Serialize for the local slot."""
        return {
            "id": self.local_id,
            "_id": self.remote_id,
            "amount": self.amount,
            "description": self.description,
            "category": self.category,
            "date": self.occurred_at.isoformat() if self.occurred_at else None,
            "synced": self.synced,
            "userId": self.owner_id,
        }

    def to_payload(self, owner_id: str) -> dict[str, Any]:
        """Build the body for ``POST /expenses``.

        The owner is injected and a missing event time defaults to now.
        """
        occurred_at = self.occurred_at or datetime.now(UTC)
        return {
            "id": self.local_id,
            "amount": self.amount,
            "description": self.description,
            "category": self.category,
            "date": occurred_at.isoformat(),
            "userId": owner_id,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Expense:
        """Deserialize a record from the local slot."""
        _require_mapping(data)
        remote_id = _optional_str(data.get("_id"))
        synced = bool(data.get("synced")) and remote_id is not None
        return cls(
            local_id=_optional_str(data.get("id")),
            remote_id=remote_id,
            amount=float(data["amount"]),
            description=str(data.get("description", "")),
            category=str(data.get("category", "")),
            occurred_at=_parse_occurred_at(data),
            sync_state=SyncState.SYNCED if synced else SyncState.PENDING,
            owner_id=_optional_str(data.get("userId")),
        )

    @classmethod
    def from_remote(cls, data: dict[str, Any]) -> Expense:
        """Deserialize a record returned by the remote service.

        Anything the server returns is confirmed, whatever flags it echoes.
        """
        _require_mapping(data)
        remote_id = _optional_str(data.get("_id"))
        if remote_id is None:
            raise ValueError("Remote expense is missing '_id'")
        return cls(
            local_id=_optional_str(data.get("id")),
            remote_id=remote_id,
            amount=float(data["amount"]),
            description=str(data.get("description", "")),
            category=str(data.get("category", "")),
            occurred_at=_parse_occurred_at(data),
            sync_state=SyncState.SYNCED,
            owner_id=_optional_str(data.get("userId")),
        )


@dataclass(frozen=True)
class ExpenseDraft:
    """User input for a new expense, as typed into a form.

    ``amount`` may be a number or a numeric string.
    """

    amount: float | int | str | None
    description: str | None
    category: str | None

    def validate(self) -> tuple[float, str, str]:
        """Check every field and return the normalized values.

        Raises:
            ValidationError: If a field is missing, blank, or the amount
                is not a finite number
        """
        if self.amount is None or (isinstance(self.amount, str) and not self.amount.strip()):
            raise ValidationError("amount", "required")
        if isinstance(self.amount, bool):
            raise ValidationError("amount", "must be a number", str(self.amount))
        try:
            amount = float(self.amount)
        except (TypeError, ValueError):
            raise ValidationError("amount", "must be a number", str(self.amount)) from None
        if not math.isfinite(amount):
            raise ValidationError("amount", "must be finite", str(self.amount))

        for name in ("description", "category"):
            value = getattr(self, name)
            if value is None or not str(value).strip():
                raise ValidationError(name, "required")

        return amount, str(self.description), str(self.category)

    def to_expense(self, owner_id: str | None = None, now: datetime | None = None) -> Expense:
        """Validate and stamp a new pending expense."""
        amount, description, category = self.validate()
        return Expense(
            local_id=new_local_id(),
            remote_id=None,
            amount=amount,
            description=description,
            category=category,
            occurred_at=now or datetime.now(UTC),
            sync_state=SyncState.PENDING,
            owner_id=owner_id,
        )


def dedupe_by_identity(records: list[Expense]) -> tuple[list[Expense], list[Expense]]:
    """Keep the first record per identity.

    Returns:
        Tuple of (kept records in original order, dropped duplicates)
    """
    seen: set[str] = set()
    kept: list[Expense] = []
    dropped: list[Expense] = []
    for record in records:
        if record.identity in seen:
            dropped.append(record)
            continue
        seen.add(record.identity)
        kept.append(record)
    return kept, dropped


def _require_mapping(data: Any) -> None:
    if not isinstance(data, dict):
        raise TypeError(f"Expense must be a JSON object, got {type(data).__name__}")


def _optional_str(value: Any) -> str | None:
    if value is None or value == "":
        return None
    return str(value)


def _parse_occurred_at(data: dict[str, Any]) -> datetime | None:
    """Read ``date`` (ISO-8601), falling back to ``timestamp`` (epoch ms)."""
    raw = data.get("date")
    if raw:
        parsed = datetime.fromisoformat(str(raw).replace("Z", "+00:00"))
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)
    timestamp = data.get("timestamp")
    if timestamp is not None:
        return datetime.fromtimestamp(float(timestamp) / 1000, tz=UTC)
    return None
