"""
Synchronization engine for the offline-first expense cache.

Owns the in-memory expense collection and is the only component that
mutates it:
- Create: local first, then a best-effort push when online
- Delete: local removal is immediate and final, remote delete is best-effort
- Reconcile: push every pending record, then replace the collection with
  the server's list (replace-wins)
- Connectivity: every offline-to-online edge runs one reconcile pass

All entry points are serialized on one asyncio lock, so an intent that
arrives while a reconcile pass is waiting on the network runs after it.
"""

from __future__ import annotations

import asyncio
import inspect
import time
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime

from ..config import SyncConfig
from ..connectivity import ConnectivityMonitor
from ..exceptions import PersistenceError, RemoteError
from ..local.store import LocalStore
from ..logging_utils import SyncLoggerAdapter, get_sync_logger
from ..records import Expense, ExpenseDraft, SyncState, dedupe_by_identity
from ..remote.client import RemoteClient

logger = get_sync_logger("engine")

SnapshotListener = Callable[[tuple[Expense, ...]], Awaitable[None] | None]


@dataclass
class ReconcileResult:
    """Outcome of one reconcile pass."""

    pushed: int = 0
    failed: int = 0
    pulled: int = 0
    pull_succeeded: bool = False
    skipped: bool = False
    errors: list[str] = field(default_factory=list)
    duration_ms: int = 0

    @property
    def success(self) -> bool:
        return not self.skipped and self.pull_succeeded and self.failed == 0


@dataclass
class SyncStatus:
    """Point-in-time view of the engine for status displays."""

    online: bool
    pending: int
    total: int
    last_sync: datetime | None = None
    last_result: ReconcileResult | None = None


class SyncEngine:
    """Offline-first sync engine for one owner's expenses.

    Example:
        >>> engine = SyncEngine.from_config(SyncConfig.from_env())
        >>> await engine.start()
        >>> await engine.create(ExpenseDraft(10, "coffee", "food"))
        >>> engine.snapshot()
    """

    def __init__(
        self,
        store: LocalStore,
        remote: RemoteClient,
        monitor: ConnectivityMonitor,
        owner_id: str,
    ):
        """Initialize the sync engine.

        Args:
            store: Local slot holding the persisted collection
            remote: Client for the remote expense service
            monitor: Connectivity monitor; its edges trigger reconcile
            owner_id: Owner stamped on locally created expenses
        """
        self.store = store
        self.remote = remote
        self.monitor = monitor
        self.owner_id = owner_id

        self._records: tuple[Expense, ...] = ()
        self._lock = asyncio.Lock()
        self._listeners: list[SnapshotListener] = []
        self._last_sync: datetime | None = None
        self._last_result: ReconcileResult | None = None
        self._owns_resources = False
        self.log = SyncLoggerAdapter(logger, owner_id)

        self._unsubscribe_connectivity = monitor.subscribe(self._on_connectivity_change)

    @classmethod
    def from_config(cls, config: SyncConfig) -> SyncEngine:
        """Wire store, remote client and connectivity probe from config."""
        remote = RemoteClient.from_config(config)
        monitor = ConnectivityMonitor(
            probe=remote.ping,
            probe_interval=config.probe_interval,
            probe_timeout=config.probe_timeout,
        )
        engine = cls(LocalStore(config.slot_path), remote, monitor, config.owner_id)
        engine._owns_resources = True
        return engine

    async def start(self) -> None:
        """Load local state, then begin background connectivity probing."""
        await self.initialize()
        await self.monitor.start()

    async def close(self) -> None:
        """Detach from the monitor and release resources created by from_config."""
        self._unsubscribe_connectivity()
        if self._owns_resources:
            await self.monitor.stop()
            await self.remote.close()

    # =========================================================================
    # Presentation-facing surface
    # =========================================================================

    def snapshot(self) -> tuple[Expense, ...]:
        """Current collection, most recent first."""
        return self._records

    def pending(self) -> tuple[Expense, ...]:
        return tuple(r for r in self._records if r.sync_state is SyncState.PENDING)

    def current_connectivity(self) -> bool:
        return self.monitor.is_online

    def status(self) -> SyncStatus:
        return SyncStatus(
            online=self.monitor.is_online,
            pending=len(self.pending()),
            total=len(self._records),
            last_sync=self._last_sync,
            last_result=self._last_result,
        )

    def subscribe(self, listener: SnapshotListener) -> Callable[[], None]:
        """Register a listener called with the snapshot after every change.

        Coroutine listeners are awaited before the operation returns.

        Returns:
            Callable that removes the listener
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # =========================================================================
    # Operations
    # =========================================================================

    async def initialize(self) -> None:
        """Load the persisted collection.

        An empty cache is seeded from the server when online, since it
        cannot be told apart from one that never synced.
        """
        async with self._lock:
            try:
                records = await self.store.load()
            except PersistenceError as e:
                self.log.error(f"Could not load local expenses, starting empty: {e}")
                self._records = ()
                await self._notify()
                return

            self._records = tuple(records)
            self.log.info(f"Loaded {len(records)} local expenses")
            if not records and self.monitor.is_online:
                await self._refresh_quietly()
            await self._notify()

    async def create(self, draft: ExpenseDraft) -> Expense:
        """Record a new expense locally and push it if online.

        Remote failures leave the record pending; they never reach the caller.

        Returns:
            The record as it stands in the collection afterwards

        Raises:
            ValidationError: If the draft is incomplete (no state change)
        """
        expense = draft.to_expense(owner_id=self.owner_id)

        async with self._lock:
            self._records = (expense, *self._records)
            await self._persist()
            await self._notify()

            if not self.monitor.is_online:
                self.log.debug(f"Offline, expense {expense.identity} stays pending")
                return expense

            try:
                confirmed = await self.remote.create(expense)
            except RemoteError as e:
                self.log.bind(expense.identity).warning(
                    f"Push of expense {expense.identity} failed, left pending: {e}"
                )
                return expense

            self._swap_confirmed({expense.identity: confirmed})
            await self._persist()
            await self._notify()
            await self._refresh_quietly(pushed_local_ids={expense.local_id})
            return self._find(confirmed.identity) or confirmed

    async def delete(self, identity: str) -> bool:
        """Remove an expense locally, then best-effort remotely.

        Local removal is final: a failed remote delete is logged and not
        retried. Never-synced records and offline deletes make no remote call.

        Returns:
            True if a record with that identity was removed
        """
        async with self._lock:
            target = self._find(identity)
            if target is None:
                self.log.debug(f"Delete ignored, no expense with identity {identity}")
                return False

            self._records = tuple(r for r in self._records if r.identity != identity)
            await self._persist()
            await self._notify()

            if target.remote_id and self.monitor.is_online:
                try:
                    await self.remote.delete(target.remote_id)
                except RemoteError as e:
                    self.log.bind(target.remote_id).warning(
                        f"Remote delete of {target.remote_id} failed, not retried: {e}"
                    )
            return True

    async def reconcile(self) -> ReconcileResult:
        """Push every pending record, then replace local state with the server's."""
        async with self._lock:
            return await self._reconcile()

    async def refresh(self) -> bool:
        """Replace local state with the server's list without pushing.

        Returns:
            True if the server list was applied
        """
        async with self._lock:
            if not self.monitor.is_online:
                return False
            return await self._refresh_quietly()

    # =========================================================================
    # Internals
    # =========================================================================

    async def _on_connectivity_change(self, online: bool) -> None:
        if online:
            self.log.info("Back online, reconciling")
            await self.reconcile()

    async def _reconcile(self) -> ReconcileResult:
        if not self.monitor.is_online:
            self.log.debug("Reconcile skipped while offline")
            self._last_result = ReconcileResult(skipped=True, errors=["offline"])
            return self._last_result

        start = time.monotonic()
        result = ReconcileResult()
        pending = self.pending()
        confirmed: dict[str, Expense] = {}

        # Push phase: each record on its own, failures do not stop the batch
        for record in pending:
            try:
                confirmed[record.identity] = await self.remote.create(record)
                result.pushed += 1
            except RemoteError as e:
                result.failed += 1
                result.errors.append(f"push {record.identity}: {e}")
                self.log.bind(record.identity).warning(
                    f"Push of expense {record.identity} failed: {e}"
                )

        # Pull phase: server list is the new ground truth
        pushed_local_ids = {r.local_id for r in pending if r.identity in confirmed}
        try:
            await self._pull(pushed_local_ids)
            result.pull_succeeded = True
            result.pulled = len(self._records)
        except RemoteError as e:
            result.errors.append(f"pull: {e}")
            self.log.warning(f"Pull failed, keeping local collection: {e}")
            if confirmed:
                self._swap_confirmed(confirmed)
                await self._persist()
                await self._notify()

        result.duration_ms = int((time.monotonic() - start) * 1000)
        self._last_result = result
        self.log.info(
            f"Reconcile finished: pushed={result.pushed} failed={result.failed} "
            f"pulled={result.pulled} pull_ok={result.pull_succeeded}"
        )
        return result

    async def _pull(self, pushed_local_ids: Iterable[str | None] = ()) -> None:
        """Fetch the server list and replace the collection with it.

        Raises:
            RemoteError: If the list cannot be fetched
        """
        remote_records = await self.remote.list_all()
        kept, duplicates = dedupe_by_identity(remote_records)
        if duplicates:
            self.log.warning(
                f"Server list had {len(duplicates)} duplicate identities, kept first of each"
            )

        # Replace-wins drops pending records the server never saw
        seen = {r.identity for r in kept} | {r.local_id for r in kept if r.local_id}
        seen |= {i for i in pushed_local_ids if i}
        dropped = [
            r.identity
            for r in self._records
            if r.sync_state is SyncState.PENDING and r.identity not in seen
        ]
        if dropped:
            self.log.warning(
                f"Pull dropped {len(dropped)} pending expenses unknown to the server: "
                f"{', '.join(dropped)}"
            )

        self._records = tuple(kept)
        self._last_sync = datetime.now(UTC)
        await self._persist()
        await self._notify()

    async def _refresh_quietly(self, pushed_local_ids: Iterable[str | None] = ()) -> bool:
        try:
            await self._pull(pushed_local_ids)
            return True
        except RemoteError as e:
            self.log.warning(f"Refresh from server failed: {e}")
            return False

    def _swap_confirmed(self, confirmed: dict[str, Expense]) -> None:
        """Replace optimistic records with their server-confirmed versions in place."""
        swapped = [confirmed.get(r.identity, r) for r in self._records]
        kept, _ = dedupe_by_identity(swapped)
        self._records = tuple(kept)

    def _find(self, identity: str) -> Expense | None:
        for record in self._records:
            if record.identity == identity:
                return record
        return None

    async def _persist(self) -> bool:
        try:
            await self.store.save(self._records)
            return True
        except PersistenceError as e:
            # In-memory state stays authoritative for this session
            self.log.error(f"Failed to persist expenses: {e}")
            return False

    async def _notify(self) -> None:
        snapshot = self._records
        for listener in list(self._listeners):
            try:
                result = listener(snapshot)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                self.log.error(f"Snapshot listener failed: {e}", exc_info=True)

