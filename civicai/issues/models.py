"""
Issue domain model
Issue records, citizen drafts, and transient media assets
"""

import mimetypes
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Optional, List, Dict, Any, Union

from civicai.core.constants import (
    CATEGORY_DEPARTMENTS,
    DEFAULT_DEPARTMENT,
    TITLE_SUFFIX,
)


class IssueStatus(str, Enum):
    """Lifecycle state of an issue."""
    NEW = "new"
    ASSIGNED = "assigned"
    IN_PROGRESS = "in-progress"
    RESOLVED = "resolved"


class IssuePriority(str, Enum):
    """Priority assigned to an issue."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class IssueCategory(str, Enum):
    """Known issue categories. Stored values are plain strings and may extend this set."""
    POTHOLE = "pothole"
    STREETLIGHT = "streetlight"
    GARBAGE = "garbage"
    TRAFFIC = "traffic"
    OTHER = "other"


class MediaKind(str, Enum):
    """Kind of evidence attached to an issue."""
    IMAGE = "image"
    VIDEO = "video"


class CaptureOrigin(str, Enum):
    """Where a media asset came from."""
    CAMERA_SNAPSHOT = "camera-snapshot"
    CAMERA_RECORDING = "camera-recording"
    FILE_PICK = "file-pick"


class LocationSource(str, Enum):
    """How a coordinate pair was obtained."""
    DEVICE = "device"
    MANUAL = "manual"


def department_for(category: str) -> str:
    """Department responsible for a category. Unknown categories go to General Services."""
    return CATEGORY_DEPARTMENTS.get(category.strip().lower(), DEFAULT_DEPARTMENT)


def title_for(category: str) -> str:
    """Report title derived from the category, e.g. "Pothole Issue Report"."""
    return category.strip().capitalize() + TITLE_SUFFIX


def _category_value(category: Union[str, IssueCategory]) -> str:
    if isinstance(category, IssueCategory):
        return category.value
    return category.strip().lower()


def parse_timestamp(value: Union[str, datetime, None]) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp from the store into an aware UTC datetime."""
    if value is None:
        return None
    if isinstance(value, datetime):
        dt = value
    else:
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Coordinates:
    """A latitude/longitude pair with an optional human-readable address."""
    latitude: float
    longitude: float
    address: Optional[str] = None
    source: LocationSource = LocationSource.DEVICE

    def __str__(self) -> str:
        return f"Lat: {self.latitude:.4f}, Lng: {self.longitude:.4f}"


@dataclass
class MediaAsset:
    """
    Raw evidence captured or picked by the citizen.

    Lives only for the duration of one submission and is never persisted
    client-side.
    """
    data: bytes
    mime_type: str
    origin: CaptureOrigin
    filename: Optional[str] = None

    @property
    def size(self) -> int:
        return len(self.data)

    @classmethod
    def from_file(cls, path: Union[str, Path], mime_type: Optional[str] = None) -> "MediaAsset":
        """Build a file-pick asset, guessing the mime type from the extension."""
        path = Path(path)
        if mime_type is None:
            mime_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
        return cls(
            data=path.read_bytes(),
            mime_type=mime_type,
            origin=CaptureOrigin.FILE_PICK,
            filename=path.name,
        )

    def __repr__(self) -> str:
        return f"<MediaAsset({self.origin.value}, {self.mime_type}, {self.size} bytes)>"


@dataclass(frozen=True)
class MediaReference:
    """Remote location of uploaded evidence."""
    url: str
    kind: MediaKind
    bucket: str
    key: str


@dataclass
class IssueDraft:
    """Unsaved input assembled by a citizen before submission."""
    media: Optional[MediaAsset] = None
    location: Optional[Coordinates] = None
    category: str = ""
    description: str = ""

    def missing_fields(self) -> List[str]:
        """Names of required fields that are absent or empty."""
        missing = []
        if self.media is None or self.media.size == 0:
            missing.append("media")
        if self.location is None:
            missing.append("location")
        if not self.category or not self.category.strip():
            missing.append("category")
        if not self.description or not self.description.strip():
            missing.append("description")
        return missing

    @property
    def is_ready(self) -> bool:
        return not self.missing_fields()

    def clear(self) -> None:
        self.media = None
        self.location = None
        self.category = ""
        self.description = ""


@dataclass(frozen=True)
class NewIssue:
    """Fully assembled record handed to the store's create call."""
    title: str
    description: str
    category: str
    department: str
    latitude: float
    longitude: float
    media_url: str
    media_kind: MediaKind
    reported_by: str
    address: Optional[str] = None
    priority: IssuePriority = IssuePriority.MEDIUM
    status: IssueStatus = IssueStatus.NEW

    @classmethod
    def from_draft(
        cls,
        draft: IssueDraft,
        media: MediaReference,
        reported_by: str
    ) -> "NewIssue":
        category = _category_value(draft.category)
        return cls(
            title=title_for(category),
            description=draft.description.strip(),
            category=category,
            department=department_for(category),
            latitude=draft.location.latitude,
            longitude=draft.location.longitude,
            address=draft.location.address,
            media_url=media.url,
            media_kind=media.kind,
            reported_by=reported_by,
        )

    def to_row(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "description": self.description,
            "category": self.category,
            "priority": self.priority.value,
            "status": self.status.value,
            "location_lat": self.latitude,
            "location_lng": self.longitude,
            "location_address": self.address,
            "media_url": self.media_url,
            "media_kind": self.media_kind.value,
            "reported_by": self.reported_by,
            "department": self.department,
        }


@dataclass(frozen=True)
class Issue:
    """
    Persisted civic issue.

    Owned by the store; the client only ever holds read-derived copies.
    """
    id: str
    title: str
    description: str
    category: str
    priority: IssuePriority
    status: IssueStatus
    latitude: float
    longitude: float
    department: str
    created_at: datetime
    updated_at: datetime
    address: Optional[str] = None
    media_url: Optional[str] = None
    media_kind: Optional[MediaKind] = None
    reported_by: Optional[str] = None
    assigned_to: Optional[str] = None

    @property
    def location(self) -> Coordinates:
        return Coordinates(self.latitude, self.longitude, self.address)

    @property
    def has_media(self) -> bool:
        return bool(self.media_url)

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Issue":
        """Create an Issue from a store row using the logical column names."""
        media_kind = row.get("media_kind")
        return cls(
            id=str(row["id"]),
            title=row.get("title") or "",
            description=row.get("description") or "",
            category=row.get("category") or IssueCategory.OTHER.value,
            priority=IssuePriority(row.get("priority") or IssuePriority.MEDIUM.value),
            status=IssueStatus(row.get("status") or IssueStatus.NEW.value),
            latitude=float(row.get("location_lat") or 0.0),
            longitude=float(row.get("location_lng") or 0.0),
            address=row.get("location_address"),
            media_url=row.get("media_url"),
            media_kind=MediaKind(media_kind) if media_kind else None,
            reported_by=row.get("reported_by"),
            assigned_to=row.get("assigned_to"),
            department=row.get("department") or DEFAULT_DEPARTMENT,
            created_at=parse_timestamp(row["created_at"]),
            updated_at=parse_timestamp(row.get("updated_at") or row["created_at"]),
        )

    def to_row(self) -> Dict[str, Any]:
        """Convert to a store row."""
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "category": self.category,
            "priority": self.priority.value,
            "status": self.status.value,
            "location_lat": self.latitude,
            "location_lng": self.longitude,
            "location_address": self.address,
            "media_url": self.media_url,
            "media_kind": self.media_kind.value if self.media_kind else None,
            "reported_by": self.reported_by,
            "assigned_to": self.assigned_to,
            "department": self.department,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }
