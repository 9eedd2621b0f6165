"""
Citizen report session
Owns capture state and draft fields between submissions
"""

import logging
from typing import List

from civicai.capture.location_capture import LocationCapture
from civicai.capture.media_capture import MediaCapture
from civicai.issues.models import Issue, IssueDraft
from civicai.submission.pipeline import SubmissionPipeline

logger = logging.getLogger(__name__)


class ReportSession:
    """
    One citizen's report form.

    Media comes from the MediaCapture, location from the LocationCapture;
    category and description are set directly. A successful submit clears
    everything.
    """

    def __init__(
        self,
        pipeline: SubmissionPipeline,
        media: MediaCapture,
        location: LocationCapture
    ):
        self.pipeline = pipeline
        self.media = media
        self.location = location
        self.category = ""
        self.description = ""

    @property
    def draft(self) -> IssueDraft:
        return IssueDraft(
            media=self.media.asset,
            location=self.location.current,
            category=self.category,
            description=self.description,
        )

    def missing_fields(self) -> List[str]:
        return self.draft.missing_fields()

    @property
    def ready(self) -> bool:
        return self.draft.is_ready

    @property
    def can_submit(self) -> bool:
        """Ready and no submission currently in flight."""
        return self.ready and not self.pipeline.in_flight

    async def submit(self) -> Issue:
        issue = await self.pipeline.submit(self.draft)
        self.clear()
        return issue

    def clear(self) -> None:
        self.media.discard()
        self.location.reset()
        self.category = ""
        self.description = ""
        logger.debug("Report form cleared")
