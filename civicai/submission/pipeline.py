"""
Submission pipeline
Upload the evidence, then create exactly one issue record
"""

import logging
from typing import Optional

from civicai.core.config import settings
from civicai.core.errors import (
    CivicAIError,
    CreateFailed,
    IncompleteDraft,
    StoreError,
    SubmissionInProgress,
)
from civicai.issues.models import Issue, IssueDraft, MediaReference, NewIssue
from civicai.store.base import IssueStore
from civicai.submission.upload import UploadOrchestrator

logger = logging.getLogger(__name__)


class SubmissionPipeline:
    """
    Composes a draft into one issue record.

    Upload strictly precedes create. A failed upload aborts before any record
    exists; the create call is the single commit point. Only one submission
    may be in flight per pipeline.
    """

    def __init__(
        self,
        store: IssueStore,
        uploader: UploadOrchestrator,
        reporter_tag: Optional[str] = None,
        cleanup_orphaned_media: Optional[bool] = None
    ):
        """
        Initialize submission pipeline.

        Args:
            store: Issue store receiving the create call
            uploader: Media validation and upload
            reporter_tag: Opaque submitter tag stored as reported_by
            cleanup_orphaned_media: Delete the uploaded blob when create fails
        """
        self.store = store
        self.uploader = uploader
        self.reporter_tag = reporter_tag or settings.reporter_tag
        self.cleanup_orphaned_media = (
            settings.cleanup_orphaned_media
            if cleanup_orphaned_media is None
            else cleanup_orphaned_media
        )
        self._in_flight = False

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    async def submit(self, draft: IssueDraft) -> Issue:
        """
        Submit a draft.

        Returns:
            The created Issue

        Raises:
            SubmissionInProgress: another submission has not settled yet
            IncompleteDraft: media, location, category or description missing
            UploadError: media rejected or upload failed; no record created
            CreateFailed: upload succeeded but the store rejected the record
        """
        if self._in_flight:
            raise SubmissionInProgress()

        missing = draft.missing_fields()
        if missing:
            raise IncompleteDraft(missing)

        self._in_flight = True
        try:
            reference = await self.uploader.upload(draft.media)
            record = NewIssue.from_draft(draft, reference, self.reporter_tag)

            try:
                issue = await self.store.create(record)
            except StoreError as e:
                logger.error(f"Create failed after upload of {reference.key}: {e}")
                await self._handle_orphan(reference)
                raise CreateFailed(str(e)) from e
        finally:
            self._in_flight = False

        logger.info(
            f"Issue {issue.id} submitted: {issue.category} -> {issue.department}"
        )
        return issue

    async def _handle_orphan(self, reference: MediaReference) -> None:
        if not self.cleanup_orphaned_media:
            logger.warning(f"Orphaned media left at {reference.bucket}/{reference.key}")
            return
        try:
            await self.uploader.remove(reference)
            logger.info(f"Removed orphaned media {reference.bucket}/{reference.key}")
        except CivicAIError as e:
            logger.error(
                f"Could not remove orphaned media {reference.bucket}/{reference.key}: {e}"
            )
