"""
SQLAlchemy models for CivicAI
"""

import uuid
from datetime import datetime

from sqlalchemy import Column, Float, String, Text, DateTime, Index
from sqlalchemy.orm import declarative_base

from civicai.issues.models import Issue, NewIssue

Base = declarative_base()


class IssueRow(Base):
    """
    Civic issue reported by a citizen.

    Column names follow the logical issue schema shared with the Supabase table.
    """
    __tablename__ = "issues"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=False)
    category = Column(String(50), nullable=False)
    priority = Column(String(10), nullable=False, default="medium")
    status = Column(String(20), nullable=False, default="new")

    # Location
    location_lat = Column(Float, nullable=False)
    location_lng = Column(Float, nullable=False)
    location_address = Column(String(500))

    # Evidence
    media_url = Column(String(1000))
    media_kind = Column(String(10))

    # People and routing
    reported_by = Column(String(100))
    assigned_to = Column(String(100))
    department = Column(String(100), nullable=False)

    # Timestamps
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("idx_issue_created_at", created_at),
        Index("idx_issue_status", status),
    )

    def __repr__(self):
        return f"<IssueRow({self.id}, status={self.status}, category={self.category})>"

    @classmethod
    def from_new_issue(cls, record: NewIssue, timestamp: datetime) -> "IssueRow":
        """Create a row from an assembled record; both timestamps start equal."""
        row = record.to_row()
        return cls(
            id=str(uuid.uuid4()),
            created_at=timestamp,
            updated_at=timestamp,
            **row
        )

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "category": self.category,
            "priority": self.priority,
            "status": self.status,
            "location_lat": self.location_lat,
            "location_lng": self.location_lng,
            "location_address": self.location_address,
            "media_url": self.media_url,
            "media_kind": self.media_kind,
            "reported_by": self.reported_by,
            "assigned_to": self.assigned_to,
            "department": self.department,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    def to_issue(self) -> Issue:
        return Issue.from_row(self.to_dict())
