"""Data models for the GreenGrid backend."""

from .events import RealtimeEvent
from .feedback import ContactMessage, ContactSubmission, Feedback, FeedbackSubmission
from .image import UploadedImage
from .notification import Notification, NotificationSubmission
from .report import (
    Report,
    ReportPriority,
    ReportStatus,
    ReportStatusUpdate,
    ReportSubmission,
)
from .route import Route, RouteSubmission, ScheduleEntry
from .user import User, UserRole

__all__ = [
    "RealtimeEvent",
    "ContactMessage",
    "ContactSubmission",
    "Feedback",
    "FeedbackSubmission",
    "UploadedImage",
    "Notification",
    "NotificationSubmission",
    "Report",
    "ReportPriority",
    "ReportStatus",
    "ReportStatusUpdate",
    "ReportSubmission",
    "Route",
    "RouteSubmission",
    "ScheduleEntry",
    "User",
    "UserRole",
]
