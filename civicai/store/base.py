"""
Store collaborator contracts
Issue store, blob store, change events and subscriptions
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Optional

from civicai.core.errors import ChangeFeedError
from civicai.issues.models import Issue, IssueStatus, NewIssue

logger = logging.getLogger(__name__)


class ChangeType(str, Enum):
    """Kind of mutation reported by the change feed."""
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    SYNC = "SYNC"


@dataclass(frozen=True)
class ChangeEvent:
    """One insert/update/delete on the issue collection, or SYNC when the whole set should be reloaded."""
    type: ChangeType
    record_id: str
    updated_at: Optional[str] = None


ChangeCallback = Callable[[ChangeEvent], None]
ErrorCallback = Callable[[ChangeFeedError], None]


class Subscription:
    """
    Handle for a change-feed registration.

    unsubscribe() is idempotent; after it returns no further events are
    delivered to the callback.
    """

    def __init__(self, name: str, on_unsubscribe: Callable[["Subscription"], None]):
        self.name = name
        self._on_unsubscribe = on_unsubscribe
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def unsubscribe(self) -> None:
        if not self._active:
            return
        self._active = False
        self._on_unsubscribe(self)
        logger.info(f"Subscription {self.name} closed")

    def __repr__(self) -> str:
        return f"<Subscription({self.name}, active={self._active})>"


class IssueStore(ABC):
    """Persistent issue collection."""

    @abstractmethod
    async def create(self, record: NewIssue) -> Issue:
        """Insert one issue and return it with store-assigned id and timestamps."""

    @abstractmethod
    async def list_all(self) -> List[Issue]:
        """All issues, newest created first."""

    @abstractmethod
    async def update(
        self,
        issue_id: str,
        status: IssueStatus,
        assigned_to: Optional[str] = None
    ) -> Issue:
        """Set status (and optionally assignee); refreshes updated_at."""

    @abstractmethod
    def subscribe(
        self,
        on_change: ChangeCallback,
        on_error: Optional[ErrorCallback] = None
    ) -> Subscription:
        """Register for every insert/update/delete across the collection."""

    async def versions(self) -> Dict[str, str]:
        """Map of issue id to updated_at, used by polling change feeds."""
        return {
            issue.id: issue.updated_at.isoformat()
            for issue in await self.list_all()
        }

    async def close(self) -> None:
        """Release connections held by the store."""


class BlobStore(ABC):
    """Object storage for media evidence."""

    @abstractmethod
    async def put(self, data: bytes, mime_type: str, bucket: str, key: str) -> str:
        """Store bytes under bucket/key and return the public URL."""

    @abstractmethod
    async def delete(self, bucket: str, key: str) -> None:
        """Remove a stored object."""

    async def close(self) -> None:
        """Release connections held by the store."""
