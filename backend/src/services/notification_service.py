"""Service for the resident notification log."""

import logging

from models.notification import Notification, NotificationSubmission
from services.record_store import RecordStore
from utils.constants import NOTIFICATION_ID_PREFIX
from utils.id_utils import new_id

logger = logging.getLogger(__name__)


class NotificationService:
    """Append-only notification log, newest first on read."""

    def __init__(self, store: RecordStore):
        self.store = store

    def list_notifications(self, type: str | None = None) -> list[Notification]:
        records = self.store.find(type=type) if type else self.store.list()
        notifications = [Notification.model_validate(r) for r in records]
        notifications.sort(key=lambda n: n.date, reverse=True)
        return notifications

    def create_notification(self, submission: NotificationSubmission) -> Notification:
        notification = Notification(
            id=new_id(NOTIFICATION_ID_PREFIX), **submission.model_dump()
        )
        self.store.append(notification.to_api())
        logger.info("Created %s notification %s", notification.type, notification.id)
        return notification
