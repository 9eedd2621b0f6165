"""
In-memory issue and blob stores
Used as test fixtures and for running the client without a backend
"""

import asyncio
import logging
import uuid
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Tuple, Iterable

from civicai.core.errors import RecordNotFound
from civicai.issues.models import Issue, IssueStatus, NewIssue, utcnow
from civicai.store.base import (
    BlobStore,
    ChangeCallback,
    ChangeEvent,
    ChangeType,
    ErrorCallback,
    IssueStore,
    Subscription,
)

logger = logging.getLogger(__name__)


class InMemoryIssueStore(IssueStore):
    """
    Issue store kept in a dict.

    Timestamps strictly increase with every mutation and subscribers are
    notified through the running event loop, never inline with the mutation.
    """

    def __init__(self, issues: Optional[Iterable[Issue]] = None):
        self._issues: Dict[str, Issue] = {}
        self._subscribers: List[Tuple[Subscription, ChangeCallback]] = []
        self._last_timestamp: Optional[datetime] = None

        for issue in issues or []:
            self._issues[issue.id] = issue
            self._advance_clock(issue.updated_at)

    def _advance_clock(self, value: datetime) -> None:
        if self._last_timestamp is None or value > self._last_timestamp:
            self._last_timestamp = value

    def _tick(self) -> datetime:
        now = utcnow()
        if self._last_timestamp is not None and now <= self._last_timestamp:
            now = self._last_timestamp + timedelta(microseconds=1)
        self._last_timestamp = now
        return now

    def _notify(self, event: ChangeEvent) -> None:
        if not self._subscribers:
            return
        loop = asyncio.get_running_loop()
        for subscription, callback in list(self._subscribers):
            loop.call_soon(self._deliver, subscription, callback, event)

    @staticmethod
    def _deliver(subscription: Subscription, callback: ChangeCallback, event: ChangeEvent) -> None:
        if subscription.active:
            callback(event)

    async def create(self, record: NewIssue) -> Issue:
        timestamp = self._tick()
        issue = Issue(
            id=str(uuid.uuid4()),
            title=record.title,
            description=record.description,
            category=record.category,
            priority=record.priority,
            status=record.status,
            latitude=record.latitude,
            longitude=record.longitude,
            address=record.address,
            media_url=record.media_url,
            media_kind=record.media_kind,
            reported_by=record.reported_by,
            department=record.department,
            created_at=timestamp,
            updated_at=timestamp,
        )
        self._issues[issue.id] = issue
        logger.debug(f"Inserted issue {issue.id}")
        self._notify(ChangeEvent(ChangeType.INSERT, issue.id, timestamp.isoformat()))
        return issue

    async def list_all(self) -> List[Issue]:
        return sorted(self._issues.values(), key=lambda i: i.created_at, reverse=True)

    async def get(self, issue_id: str) -> Issue:
        try:
            return self._issues[issue_id]
        except KeyError:
            raise RecordNotFound(f"Issue {issue_id} not found") from None

    async def update(
        self,
        issue_id: str,
        status: IssueStatus,
        assigned_to: Optional[str] = None
    ) -> Issue:
        current = await self.get(issue_id)
        changes = {"status": IssueStatus(status), "updated_at": self._tick()}
        if assigned_to:
            changes["assigned_to"] = assigned_to
        issue = replace(current, **changes)
        self._issues[issue_id] = issue
        self._notify(ChangeEvent(ChangeType.UPDATE, issue_id, issue.updated_at.isoformat()))
        return issue

    async def delete(self, issue_id: str) -> None:
        await self.get(issue_id)
        del self._issues[issue_id]
        self._notify(ChangeEvent(ChangeType.DELETE, issue_id))

    def subscribe(
        self,
        on_change: ChangeCallback,
        on_error: Optional[ErrorCallback] = None
    ) -> Subscription:
        subscription = Subscription("issues-changes", self._remove_subscriber)
        self._subscribers.append((subscription, on_change))
        return subscription

    def _remove_subscriber(self, subscription: Subscription) -> None:
        self._subscribers = [
            (sub, cb) for sub, cb in self._subscribers if sub is not subscription
        ]

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)


class InMemoryBlobStore(BlobStore):
    """Blob store kept in a dict keyed by (bucket, key)."""

    def __init__(self, base_url: str = "memory://storage"):
        self.base_url = base_url.rstrip("/")
        self.objects: Dict[Tuple[str, str], Tuple[bytes, str]] = {}

    async def put(self, data: bytes, mime_type: str, bucket: str, key: str) -> str:
        self.objects[(bucket, key)] = (data, mime_type)
        return f"{self.base_url}/{bucket}/{key}"

    async def delete(self, bucket: str, key: str) -> None:
        self.objects.pop((bucket, key), None)
