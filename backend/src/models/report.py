"""Waste issue report data models."""

from enum import Enum

from pydantic import Field, field_validator

from models.base import ApiModel


class ReportPriority(str, Enum):
    """How urgently a report needs attention."""

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


# Priorities that raise an urgent alert on submission
URGENT_PRIORITIES = frozenset({ReportPriority.CRITICAL, ReportPriority.HIGH})

# Sort rank, most urgent first
PRIORITY_RANK = {
    ReportPriority.CRITICAL: 0,
    ReportPriority.HIGH: 1,
    ReportPriority.MEDIUM: 2,
    ReportPriority.LOW: 3,
}


class ReportStatus(str, Enum):
    """Lifecycle of a report. Only staff move a report past under-review."""

    UNDER_REVIEW = "under-review"
    IN_PROGRESS = "in-progress"
    RESOLVED = "resolved"
    CLOSED = "closed"


OPEN_STATUSES = frozenset({ReportStatus.UNDER_REVIEW, ReportStatus.IN_PROGRESS})


class ReportSubmission(ApiModel):
    """Request body for submitting a report."""

    issue_type: str = Field(..., min_length=1, max_length=100)
    location: str = Field(..., min_length=1, max_length=500)
    description: str = Field(..., min_length=1, max_length=5000)
    priority: ReportPriority
    contact_name: str = Field(..., min_length=1, max_length=200)
    contact_phone: str = Field(..., min_length=1, max_length=30)
    photos: list[str] = Field(default_factory=list, max_length=10)

    @field_validator("photos", mode="before")
    @classmethod
    def _null_photos_as_empty(cls, value):
        return [] if value is None else value


class Report(ApiModel):
    """Stored report record."""

    id: str
    issue_type: str
    location: str
    description: str
    priority: ReportPriority
    contact_name: str
    contact_phone: str
    photos: list[str] = Field(default_factory=list)
    status: ReportStatus = ReportStatus.UNDER_REVIEW
    timestamp: str
    reporter_id: str | None = None
    admin_notes: str | None = None
    response_team: str | None = None
    updated_at: str | None = None
    updated_by: str | None = None
    resolved_at: str | None = None

    @property
    def is_urgent(self) -> bool:
        return self.priority in URGENT_PRIORITIES

    @property
    def is_open(self) -> bool:
        return self.status in OPEN_STATUSES


class ReportStatusUpdate(ApiModel):
    """Request body for a staff status change."""

    status: ReportStatus
    admin_notes: str | None = Field(None, max_length=2000)
    response_team: str | None = Field(None, max_length=200)
