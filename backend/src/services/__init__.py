"""Services for the GreenGrid backend."""

from .auth_service import AuthService
from .dashboard_service import DashboardService
from .feedback_service import FeedbackService
from .image_storage import ImageStorage, create_image_storage
from .notification_service import NotificationService
from .realtime_service import EventFanout
from .record_store import RecordStore, create_record_store
from .report_service import ReportService
from .route_service import RouteService
from .sms_service import SmsService
from .user_service import UserService

__all__ = [
    "AuthService",
    "DashboardService",
    "EventFanout",
    "FeedbackService",
    "ImageStorage",
    "NotificationService",
    "RecordStore",
    "ReportService",
    "RouteService",
    "SmsService",
    "UserService",
    "create_image_storage",
    "create_record_store",
]
