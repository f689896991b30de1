"""
Shared test configuration and fixtures.

Provides an in-memory stand-in for the remote expense service with
per-call failure injection, plus wiring for a SyncEngine backed by a
temporary local slot.
"""

from __future__ import annotations

import asyncio
import tempfile
from collections.abc import AsyncIterator, Iterator
from pathlib import Path
from typing import Any

import pytest

from expense_sync import ConnectivityMonitor, Expense, LocalStore, SyncEngine

OWNER_ID = "user123"


class FakeRemote:
    """
    In-memory remote expense service.

    Stores wire-format documents newest first, like the real service
    returns them. Failures can be injected for all calls of a kind or
    per expense description.
    """

    def __init__(self, owner_id: str = OWNER_ID):
        self.owner_id = owner_id
        self.docs: list[dict[str, Any]] = []
        self.calls: list[tuple[str, ...]] = []
        self.fail_create: Exception | None = None
        self.fail_list: Exception | None = None
        self.fail_delete: Exception | None = None
        self.create_failures: dict[str, Exception] = {}
        self._next_id = 1

    def seed(self, amount: float, description: str, category: str) -> dict[str, Any]:
        """Put a document on the server as if another device created it."""
        doc = {
            "_id": f"r{self._next_id}",
            "amount": amount,
            "description": description,
            "category": category,
            "date": "2024-05-01T12:00:00+00:00",
            "userId": self.owner_id,
        }
        self._next_id += 1
        self.docs.insert(0, doc)
        return doc

    async def list_all(self) -> list[Expense]:
        self.calls.append(("list_all",))
        if self.fail_list:
            raise self.fail_list
        return [Expense.from_remote(doc) for doc in self.docs]

    async def create(self, expense: Expense) -> Expense:
        self.calls.append(("create", expense.identity))
        error = self.create_failures.get(expense.description) or self.fail_create
        if error:
            raise error
        doc = {**expense.to_payload(self.owner_id), "_id": f"r{self._next_id}"}
        self._next_id += 1
        self.docs.insert(0, doc)
        return Expense.from_remote(doc)

    async def delete(self, identity: str) -> None:
        self.calls.append(("delete", identity))
        if self.fail_delete:
            raise self.fail_delete
        self.docs = [doc for doc in self.docs if doc["_id"] != identity]

    async def close(self) -> None:
        pass

    def call_names(self) -> list[str]:
        return [call[0] for call in self.calls]


class GatedRemote(FakeRemote):
    """FakeRemote whose calls of one kind wait until the test opens the gate."""

    def __init__(self, gated: str, owner_id: str = OWNER_ID):
        super().__init__(owner_id)
        self.gated = gated
        self.entered = asyncio.Event()
        self.gate = asyncio.Event()

    async def _wait(self, name: str) -> None:
        if name == self.gated:
            self.entered.set()
            await self.gate.wait()

    async def create(self, expense: Expense) -> Expense:
        await self._wait("create")
        return await super().create(expense)

    async def delete(self, identity: str) -> None:
        await self._wait("delete")
        await super().delete(identity)


@pytest.fixture
def temp_dir() -> Iterator[Path]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def store(temp_dir: Path) -> LocalStore:
    return LocalStore(temp_dir / "expenses.json")


@pytest.fixture
def remote() -> FakeRemote:
    return FakeRemote()


@pytest.fixture
def monitor() -> ConnectivityMonitor:
    """Monitor with no probe; tests drive verdicts with set_online."""
    return ConnectivityMonitor()


@pytest.fixture
async def engine(
    store: LocalStore, remote: FakeRemote, monitor: ConnectivityMonitor
) -> AsyncIterator[SyncEngine]:
    """Initialized engine, offline until a test says otherwise."""
    engine = SyncEngine(store, remote, monitor, owner_id=OWNER_ID)
    await engine.initialize()
    yield engine
    await engine.close()


async def go_online(monitor: ConnectivityMonitor, remote: FakeRemote) -> None:
    """Flip the monitor online and forget the calls made by the triggered reconcile."""
    await monitor.set_online(True)
    remote.calls.clear()
