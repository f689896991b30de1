"""Tests for expense records, drafts and identity rules."""

from __future__ import annotations

from datetime import UTC, datetime

import pytest

from expense_sync import Expense, ExpenseDraft, SyncState, ValidationError
from expense_sync.records import dedupe_by_identity


def make_expense(local_id: str | None = "loc-1", remote_id: str | None = None, **kwargs) -> Expense:
    defaults = {"amount": 5.0, "description": "tea", "category": "food"}
    defaults.update(kwargs)
    return Expense(local_id=local_id, remote_id=remote_id, **defaults)


class TestIdentity:
    """Identity is the remote id when present, else the local id."""

    def test_pending_record_uses_local_id(self) -> None:
        assert make_expense().identity == "loc-1"

    def test_remote_id_wins(self) -> None:
        record = make_expense(remote_id="r1", sync_state=SyncState.SYNCED)

        assert record.identity == "r1"
        assert record.synced is True

    def test_record_needs_some_identity(self) -> None:
        with pytest.raises(ValueError):
            make_expense(local_id=None)

    def test_synced_requires_remote_id(self) -> None:
        with pytest.raises(ValueError):
            make_expense(sync_state=SyncState.SYNCED)

    def test_dedupe_keeps_first_occurrence(self) -> None:
        first = make_expense(remote_id="r1", description="first", sync_state=SyncState.SYNCED)
        second = make_expense(remote_id="r1", description="second", sync_state=SyncState.SYNCED)
        other = make_expense(local_id="loc-2")

        kept, dropped = dedupe_by_identity([first, other, second])

        assert kept == [first, other]
        assert dropped == [second]


class TestExpenseDraft:
    """Tests for draft validation."""

    def test_numeric_string_amount_is_parsed(self) -> None:
        assert ExpenseDraft("12.5", "lunch", "food").validate() == (12.5, "lunch", "food")

    def test_zero_amount_is_accepted(self) -> None:
        assert ExpenseDraft("0", "free sample", "food").validate()[0] == 0.0

    @pytest.mark.parametrize(
        ("draft", "field"),
        [
            (ExpenseDraft(None, "coffee", "food"), "amount"),
            (ExpenseDraft("  ", "coffee", "food"), "amount"),
            (ExpenseDraft("ten", "coffee", "food"), "amount"),
            (ExpenseDraft("nan", "coffee", "food"), "amount"),
            (ExpenseDraft(True, "coffee", "food"), "amount"),
            (ExpenseDraft(10, "", "food"), "description"),
            (ExpenseDraft(10, "coffee", None), "category"),
            (ExpenseDraft(10, "coffee", "   "), "category"),
        ],
    )
    def test_incomplete_drafts_are_rejected(self, draft: ExpenseDraft, field: str) -> None:
        with pytest.raises(ValidationError) as exc_info:
            draft.validate()

        assert exc_info.value.field == field

    def test_to_expense_stamps_a_pending_record(self) -> None:
        now = datetime(2024, 5, 1, 9, 30, tzinfo=UTC)

        record = ExpenseDraft(10, "coffee", "food").to_expense("user123", now=now)

        assert record.sync_state is SyncState.PENDING
        assert record.remote_id is None
        assert record.local_id
        assert record.occurred_at == now
        assert record.owner_id == "user123"

    def test_local_ids_are_never_reused(self) -> None:
        draft = ExpenseDraft(10, "coffee", "food")

        ids = {draft.to_expense().local_id for _ in range(100)}

        assert len(ids) == 100


class TestWireFormat:
    """Tests for the POST payload and server decoding."""

    def test_payload_injects_owner_and_defaults_date(self) -> None:
        record = make_expense(occurred_at=None)

        payload = record.to_payload("user123")

        assert payload["userId"] == "user123"
        assert payload["id"] == "loc-1"
        assert datetime.fromisoformat(payload["date"]).tzinfo is not None
        assert "synced" not in payload

    def test_server_records_are_synced(self) -> None:
        record = Expense.from_remote(
            {"_id": "abc", "amount": "3.5", "description": "bus", "category": "travel",
             "synced": False, "date": "2024-05-01T10:00:00"}
        )

        assert record.sync_state is SyncState.SYNCED
        assert record.amount == 3.5
        assert record.local_id is None
        assert record.occurred_at == datetime(2024, 5, 1, 10, 0, tzinfo=UTC)

    def test_server_record_without_id_is_rejected(self) -> None:
        with pytest.raises(ValueError):
            Expense.from_remote({"amount": 1, "description": "x", "category": "y"})
