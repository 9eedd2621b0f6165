"""
Pytest configuration and fixtures
"""
import pytest
import sys
from datetime import datetime, timezone
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from civicai.issues.models import (
    CaptureOrigin,
    Coordinates,
    Issue,
    IssueDraft,
    IssuePriority,
    IssueStatus,
    MediaAsset,
    MediaKind,
)

MIB = 1024 * 1024


def _ts(value: str) -> datetime:
    return datetime.fromisoformat(value).replace(tzinfo=timezone.utc)


@pytest.fixture
def sample_issues():
    """Dashboard sample records, newest first."""
    return [
        Issue(
            id="1",
            title="Large Pothole on Main Street",
            description="Deep pothole causing vehicle damage near City Mall",
            category="pothole",
            priority=IssuePriority.HIGH,
            status=IssueStatus.NEW,
            latitude=19.0760,
            longitude=72.8777,
            address="Main Street, Mumbai",
            media_url="https://via.placeholder.com/300x200?text=Pothole",
            media_kind=MediaKind.IMAGE,
            reported_by="citizen_123",
            department="Public Works",
            created_at=_ts("2024-01-15T10:30:00"),
            updated_at=_ts("2024-01-15T10:30:00"),
        ),
        Issue(
            id="2",
            title="Broken Streetlight",
            description="Streetlight not working near bus stop, safety concern",
            category="streetlight",
            priority=IssuePriority.MEDIUM,
            status=IssueStatus.ASSIGNED,
            latitude=19.0820,
            longitude=72.8850,
            address="Oak Avenue, Mumbai",
            media_url="https://via.placeholder.com/300x200?text=Streetlight",
            media_kind=MediaKind.IMAGE,
            reported_by="citizen_456",
            assigned_to="worker_789",
            department="Electrical",
            created_at=_ts("2024-01-14T15:45:00"),
            updated_at=_ts("2024-01-15T09:15:00"),
        ),
        Issue(
            id="3",
            title="Garbage Overflow",
            description="Public dustbin overflowing, attracting stray animals",
            category="garbage",
            priority=IssuePriority.LOW,
            status=IssueStatus.IN_PROGRESS,
            latitude=19.0900,
            longitude=72.8700,
            address="Central Park, Mumbai",
            media_url="https://via.placeholder.com/300x200?text=Garbage",
            media_kind=MediaKind.IMAGE,
            reported_by="citizen_789",
            assigned_to="worker_456",
            department="Sanitation",
            created_at=_ts("2024-01-13T08:20:00"),
            updated_at=_ts("2024-01-15T11:00:00"),
        ),
        Issue(
            id="4",
            title="Traffic Signal Malfunction",
            description="Traffic light stuck on red, causing traffic jam",
            category="traffic",
            priority=IssuePriority.HIGH,
            status=IssueStatus.RESOLVED,
            latitude=19.0600,
            longitude=72.8900,
            address="Junction Road, Mumbai",
            media_url="https://via.placeholder.com/300x200?text=Traffic",
            media_kind=MediaKind.VIDEO,
            reported_by="citizen_321",
            assigned_to="worker_123",
            department="Traffic Management",
            created_at=_ts("2024-01-12T16:10:00"),
            updated_at=_ts("2024-01-14T14:30:00"),
        ),
    ]


@pytest.fixture
def photo_asset():
    """2 MB JPEG snapshot."""
    return MediaAsset(
        data=b"\xff\xd8\xff\xe0" + b"\x00" * (2 * MIB - 4),
        mime_type="image/jpeg",
        origin=CaptureOrigin.CAMERA_SNAPSHOT,
    )


@pytest.fixture
def mumbai():
    """Coordinates of Mumbai city centre."""
    return Coordinates(latitude=19.076, longitude=72.8777)


@pytest.fixture
def pothole_draft(photo_asset, mumbai):
    """Complete draft for a pothole report."""
    return IssueDraft(
        media=photo_asset,
        location=mumbai,
        category="pothole",
        description="deep hole",
    )
