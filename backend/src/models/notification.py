"""Resident notification data models."""

from pydantic import Field

from models.base import ApiModel


class NotificationSubmission(ApiModel):
    """Request body for publishing a notification."""

    message: str = Field(..., min_length=1, max_length=1000)
    date: str = Field(..., min_length=1, description="ISO timestamp the notice applies to")
    type: str = Field(..., min_length=1, max_length=50, description="e.g. schedule, alert")


class Notification(ApiModel):
    """Append-only notification log entry."""

    id: str
    message: str
    date: str
    type: str
