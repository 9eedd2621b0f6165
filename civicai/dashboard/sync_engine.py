"""
Dashboard synchronization engine
Keeps a local mirror of the issue store consistent with its change feed
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, List, Optional, Set, Tuple

from civicai.core.errors import ChangeFeedError, StoreError
from civicai.dashboard.filters import (
    FilterState,
    IssueStatistics,
    apply_filter,
    compute_statistics,
)
from civicai.issues.models import Issue
from civicai.store.base import ChangeEvent, IssueStore, Subscription

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DashboardSnapshot:
    """Everything an operator view renders, derived in one recompute."""
    issues: Tuple[Issue, ...]
    visible: Tuple[Issue, ...]
    statistics: IssueStatistics
    filter_state: FilterState
    live: bool
    error: Optional[str] = None


SnapshotListener = Callable[[DashboardSnapshot], None]


class SyncEngine:
    """
    Operator-side mirror of the issue collection.

    Every change-feed event triggers a full load(); nothing is patched
    incrementally. Loads are numbered as they are issued and a result is
    applied only if no later-issued load has been applied already, so an
    older load never overwrites a newer one.

    Usage:
        async with SyncEngine(store) as engine:
            engine.add_listener(render)
            engine.set_filter(status="new")
    """

    def __init__(self, store: IssueStore, filter_state: Optional[FilterState] = None):
        self.store = store
        self._filter_state = filter_state or FilterState()

        self._mirror: Tuple[Issue, ...] = ()
        self._view: Tuple[Issue, ...] = ()
        self._statistics = compute_statistics(())

        self._issued = 0
        self._applied = 0
        self._pending: Set[asyncio.Task] = set()
        self._subscription: Optional[Subscription] = None
        self._listeners: List[SnapshotListener] = []

        self.feed_error: Optional[ChangeFeedError] = None
        self.last_error: Optional[StoreError] = None

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.stop()

    # ------------------------------------------------------------------
    # Derived state
    # ------------------------------------------------------------------

    @property
    def mirror(self) -> Tuple[Issue, ...]:
        return self._mirror

    @property
    def view(self) -> Tuple[Issue, ...]:
        return self._view

    @property
    def statistics(self) -> IssueStatistics:
        return self._statistics

    @property
    def filter_state(self) -> FilterState:
        return self._filter_state

    @property
    def live(self) -> bool:
        """Subscribed and the feed has not reported a failure."""
        return (
            self._subscription is not None
            and self._subscription.active
            and self.feed_error is None
        )

    def snapshot(self) -> DashboardSnapshot:
        error = self.feed_error or self.last_error
        return DashboardSnapshot(
            issues=self._mirror,
            visible=self._view,
            statistics=self._statistics,
            filter_state=self._filter_state,
            live=self.live,
            error=error.user_message if error else None,
        )

    def add_listener(self, listener: SnapshotListener) -> Callable[[], None]:
        """Register a listener; returns a function that removes it."""
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def _recompute(self) -> None:
        self._view = tuple(apply_filter(self._mirror, self._filter_state))
        self._statistics = compute_statistics(self._mirror)
        self._publish()

    def _publish(self) -> None:
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            listener(snapshot)

    # ------------------------------------------------------------------
    # Mirror maintenance
    # ------------------------------------------------------------------

    async def load(self) -> bool:
        """
        Replace the mirror with the store's full ordered set.

        Returns:
            False when a newer load was applied while this one was in flight
            and its result was discarded
        """
        self._issued += 1
        sequence = self._issued

        issues = await self.store.list_all()

        if sequence < self._applied:
            logger.debug(f"Discarding stale load #{sequence} (applied #{self._applied})")
            return False

        self._applied = sequence
        self._mirror = tuple(issues)
        self.last_error = None
        logger.info(f"Mirror loaded #{sequence}: {len(issues)} issues")
        self._recompute()
        return True

    def on_external_change(self, event: ChangeEvent) -> None:
        """Change-feed callback: schedule a full reload."""
        logger.debug(f"Change feed: {event.type.value} {event.record_id}")
        task = asyncio.get_running_loop().create_task(self._reload())
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _reload(self) -> None:
        try:
            await self.load()
        except StoreError as e:
            logger.error(f"Feed-triggered reload failed: {e}")
            self.last_error = e
            self._publish()

    def _on_feed_error(self, error: ChangeFeedError) -> None:
        logger.error(f"Live updates stopped: {error}")
        self.feed_error = error
        self._publish()

    async def settle(self) -> None:
        """Wait until every feed-triggered load has finished."""
        while self._pending:
            await asyncio.wait(set(self._pending))

    # ------------------------------------------------------------------
    # Filters
    # ------------------------------------------------------------------

    def apply(self, filter_state: FilterState) -> Tuple[Issue, ...]:
        """Replace the filter and recompute the view synchronously."""
        self._filter_state = filter_state
        self._recompute()
        return self._view

    def set_filter(self, **changes) -> Tuple[Issue, ...]:
        """Change individual filter fields (status, category, priority)."""
        return self.apply(self._filter_state.with_changes(**changes))

    def clear_filters(self) -> Tuple[Issue, ...]:
        return self.apply(FilterState())

    # ------------------------------------------------------------------
    # Subscription lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Subscribe to the change feed and load the initial set."""
        if self._subscription is not None and self._subscription.active:
            return
        self.feed_error = None
        self._subscription = self.store.subscribe(self.on_external_change, self._on_feed_error)
        logger.info("Dashboard sync started")
        try:
            await self.load()
        except BaseException:
            await self.stop()
            raise

    async def stop(self) -> None:
        """Unsubscribe and cancel in-flight reloads. Idempotent."""
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None

        pending = set(self._pending)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.wait(pending)
        self._pending.clear()
        logger.info("Dashboard sync stopped")
