"""
Issue lifecycle controller
Operator status transitions: new -> assigned -> in-progress -> resolved
"""

import logging
from typing import List, Optional, Union

from civicai.core.errors import InvalidStatus, StoreError, UpdateFailed
from civicai.issues.models import Issue, IssueStatus
from civicai.store.base import IssueStore

logger = logging.getLogger(__name__)


def parse_status(value: Union[str, IssueStatus]) -> IssueStatus:
    """Coerce a status value, rejecting anything outside the lifecycle."""
    try:
        return IssueStatus(value)
    except ValueError:
        raise InvalidStatus(str(value)) from None


def available_statuses(issue: Issue) -> List[IssueStatus]:
    """Statuses an operator can set; every status except the current one."""
    return [status for status in IssueStatus if status != issue.status]


class LifecycleController:
    """
    Applies operator status changes to single issues.

    Any status may be set from any other (a resolved issue can be reopened).
    The dashboard mirror is never updated optimistically; the store's change
    feed delivers the result.
    """

    def __init__(self, store: IssueStore):
        self.store = store

    async def set_status(
        self,
        issue_id: str,
        new_status: Union[str, IssueStatus],
        assignee: Optional[str] = None
    ) -> Issue:
        """
        Set an issue's status with one update call.

        Args:
            issue_id: Issue ID
            new_status: Target status
            assignee: Worker tag stored as assigned_to

        Returns:
            The updated Issue

        Raises:
            InvalidStatus: status outside the lifecycle
            UpdateFailed: store unreachable or issue no longer exists
        """
        status = parse_status(new_status)

        try:
            issue = await self.store.update(issue_id, status, assigned_to=assignee)
        except StoreError as e:
            logger.error(f"Status change of {issue_id} to {status.value} failed: {e}")
            raise UpdateFailed(str(e)) from e

        logger.info(f"Issue {issue_id} status -> {status.value}")
        return issue

    async def assign(self, issue_id: str, worker: str) -> Issue:
        return await self.set_status(issue_id, IssueStatus.ASSIGNED, assignee=worker)

    async def mark_in_progress(self, issue_id: str) -> Issue:
        return await self.set_status(issue_id, IssueStatus.IN_PROGRESS)

    async def mark_resolved(self, issue_id: str) -> Issue:
        return await self.set_status(issue_id, IssueStatus.RESOLVED)
