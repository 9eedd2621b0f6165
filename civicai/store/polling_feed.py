"""
Polling change feed
Detects inserts, updates and deletes by comparing {id: updated_at} snapshots
"""

import asyncio
import logging
from typing import Awaitable, Callable, Dict, List, Optional, Tuple

from civicai.core.config import settings
from civicai.core.errors import ChangeFeedError, StoreError
from civicai.store.base import (
    ChangeCallback,
    ChangeEvent,
    ChangeType,
    ErrorCallback,
    Subscription,
)

logger = logging.getLogger(__name__)

VersionFetcher = Callable[[], Awaitable[Dict[str, str]]]


def diff_versions(previous: Dict[str, str], current: Dict[str, str]) -> List[ChangeEvent]:
    """Events that turn the previous snapshot into the current one."""
    events = []
    for record_id, updated_at in current.items():
        if record_id not in previous:
            events.append(ChangeEvent(ChangeType.INSERT, record_id, updated_at))
        elif previous[record_id] != updated_at:
            events.append(ChangeEvent(ChangeType.UPDATE, record_id, updated_at))
    for record_id in previous:
        if record_id not in current:
            events.append(ChangeEvent(ChangeType.DELETE, record_id))
    return events


class PollingChangeFeed:
    """
    Change feed for stores without a push channel.

    One polling task is shared by all subscribers and runs only while at
    least one subscription is active. The first successful poll only sets
    the baseline and delivers one SYNC event, so a change that landed
    between a subscriber's initial load and that poll is not missed.
    After max_failures consecutive failed polls the feed stops and reports
    a ChangeFeedError; it does not reconnect on its own.
    """

    def __init__(
        self,
        fetch_versions: VersionFetcher,
        interval: Optional[float] = None,
        max_failures: Optional[int] = None,
        name: str = "issues-changes"
    ):
        self._fetch_versions = fetch_versions
        self.interval = interval if interval is not None else settings.feed_poll_interval_seconds
        self.max_failures = max_failures if max_failures is not None else settings.feed_max_failures
        self.name = name

        self._subscribers: List[Tuple[Subscription, ChangeCallback, Optional[ErrorCallback]]] = []
        self._task: Optional[asyncio.Task] = None
        self.stopped_error: Optional[ChangeFeedError] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def subscribe(
        self,
        on_change: ChangeCallback,
        on_error: Optional[ErrorCallback] = None
    ) -> Subscription:
        subscription = Subscription(self.name, self._remove)
        self._subscribers.append((subscription, on_change, on_error))
        if self._task is None:
            self.stopped_error = None
            self._task = asyncio.get_running_loop().create_task(self._run())
            logger.info(f"Polling feed {self.name} started (every {self.interval}s)")
        return subscription

    def _remove(self, subscription: Subscription) -> None:
        self._subscribers = [s for s in self._subscribers if s[0] is not subscription]
        if not self._subscribers and self._task is not None:
            self._task.cancel()
            self._task = None
            logger.info(f"Polling feed {self.name} stopped")

    async def _run(self) -> None:
        previous: Optional[Dict[str, str]] = None
        failures = 0

        while True:
            try:
                current = await self._fetch_versions()
            except StoreError as e:
                failures += 1
                logger.warning(f"Feed poll failed ({failures}/{self.max_failures}): {e}")
                if failures >= self.max_failures:
                    self._stop_with_error(ChangeFeedError(
                        f"Change feed stopped after {failures} failed polls: {e}"
                    ))
                    return
                await asyncio.sleep(self.interval)
                continue

            failures = 0
            if previous is None:
                self._deliver(ChangeEvent(ChangeType.SYNC, "*"))
            else:
                for event in diff_versions(previous, current):
                    self._deliver(event)
            previous = current
            await asyncio.sleep(self.interval)

    def _deliver(self, event: ChangeEvent) -> None:
        for subscription, on_change, _ in list(self._subscribers):
            if subscription.active:
                on_change(event)

    def _stop_with_error(self, error: ChangeFeedError) -> None:
        logger.error(str(error))
        self.stopped_error = error
        self._task = None
        for subscription, _, on_error in list(self._subscribers):
            if subscription.active and on_error is not None:
                on_error(error)
