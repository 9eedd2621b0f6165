"""
SQL issue store
Implements the issue store contract on top of SQLAlchemy sessions
"""

import asyncio
import logging
from datetime import timedelta
from typing import Callable, Dict, List, Optional, TypeVar

from sqlalchemy import select
from sqlalchemy.exc import OperationalError, SQLAlchemyError

from civicai.core.errors import RecordNotFound, StoreError, StoreUnreachable
from civicai.database.connection import DatabaseConnection
from civicai.database.models import IssueRow
from civicai.issues.models import Issue, IssueStatus, NewIssue, parse_timestamp, utcnow
from civicai.store.base import ChangeCallback, ErrorCallback, IssueStore, Subscription
from civicai.store.polling_feed import PollingChangeFeed

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _to_issue(row: IssueRow) -> Issue:
    try:
        return row.to_issue()
    except (KeyError, TypeError, ValueError) as e:
        raise StoreError(f"Malformed issue row {row.id!r}: {e}") from e


class SqlIssueStore(IssueStore):
    """
    Issue store backed by a SQL database.

    Blocking session work runs in a worker thread, one call at a time.
    Other writers to the same table are picked up by the polling feed.
    """

    def __init__(self, db: DatabaseConnection, feed_interval: Optional[float] = None):
        self.db = db
        self.feed = PollingChangeFeed(self.versions, interval=feed_interval)
        self._lock = asyncio.Lock()

    async def _run(self, func: Callable[..., T], *args) -> T:
        async with self._lock:
            try:
                return await asyncio.to_thread(func, *args)
            except OperationalError as e:
                raise StoreUnreachable(f"Database unreachable: {e}") from e
            except SQLAlchemyError as e:
                raise StoreError(str(e)) from e

    def _create(self, record: NewIssue) -> Issue:
        with self.db.get_session() as session:
            row = IssueRow.from_new_issue(record, utcnow())
            session.add(row)
            session.flush()
            return _to_issue(row)

    def _list_all(self) -> List[Issue]:
        with self.db.get_session() as session:
            rows = session.scalars(
                select(IssueRow).order_by(IssueRow.created_at.desc())
            ).all()
            return [_to_issue(row) for row in rows]

    def _update(self, issue_id: str, status: IssueStatus, assigned_to: Optional[str]) -> Issue:
        with self.db.get_session() as session:
            row = session.get(IssueRow, issue_id)
            if row is None:
                raise RecordNotFound(f"Issue {issue_id} not found")

            previous = parse_timestamp(row.updated_at)
            now = utcnow()
            if now <= previous:
                now = previous + timedelta(microseconds=1)

            row.status = IssueStatus(status).value
            row.updated_at = now
            if assigned_to:
                row.assigned_to = assigned_to
            session.flush()
            return _to_issue(row)

    def _versions(self) -> Dict[str, str]:
        with self.db.get_session() as session:
            rows = session.execute(select(IssueRow.id, IssueRow.updated_at)).all()
            return {
                row_id: parse_timestamp(updated_at).isoformat()
                for row_id, updated_at in rows
            }

    async def create(self, record: NewIssue) -> Issue:
        issue = await self._run(self._create, record)
        logger.info(f"Created issue {issue.id} ({issue.category})")
        return issue

    async def list_all(self) -> List[Issue]:
        return await self._run(self._list_all)

    async def update(
        self,
        issue_id: str,
        status: IssueStatus,
        assigned_to: Optional[str] = None
    ) -> Issue:
        return await self._run(self._update, issue_id, status, assigned_to)

    async def versions(self) -> Dict[str, str]:
        return await self._run(self._versions)

    def subscribe(
        self,
        on_change: ChangeCallback,
        on_error: Optional[ErrorCallback] = None
    ) -> Subscription:
        return self.feed.subscribe(on_change, on_error)

    async def close(self) -> None:
        self.db.close()
