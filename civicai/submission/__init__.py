"""
CivicAI - Submission Module
Media upload and exactly-once issue creation.
"""

from civicai.submission.upload import (
    UploadOrchestrator,
    classify_media,
    make_storage_key,
)
from civicai.submission.pipeline import SubmissionPipeline
from civicai.submission.session import ReportSession

__all__ = [
    "UploadOrchestrator",
    "classify_media",
    "make_storage_key",
    "SubmissionPipeline",
    "ReportSession",
]
