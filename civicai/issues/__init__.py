"""
CivicAI - Issues Module
Issue records, citizen drafts and media evidence.
"""

from civicai.issues.models import (
    Issue,
    IssueStatus,
    IssuePriority,
    IssueCategory,
    IssueDraft,
    NewIssue,
    MediaAsset,
    MediaReference,
    MediaKind,
    CaptureOrigin,
    Coordinates,
    LocationSource,
    department_for,
    title_for,
)

__all__ = [
    "Issue",
    "IssueStatus",
    "IssuePriority",
    "IssueCategory",
    "IssueDraft",
    "NewIssue",
    "MediaAsset",
    "MediaReference",
    "MediaKind",
    "CaptureOrigin",
    "Coordinates",
    "LocationSource",
    "department_for",
    "title_for",
]
