"""Service for resident feedback and contact form messages."""

import logging

from models.feedback import (
    ContactMessage,
    ContactSubmission,
    Feedback,
    FeedbackSubmission,
)
from services.record_store import RecordStore
from utils.constants import CONTACT_ID_PREFIX, FEEDBACK_ID_PREFIX
from utils.id_utils import new_id, utc_now_iso

logger = logging.getLogger(__name__)


class FeedbackService:
    """Stores feedback ratings and contact messages.

    Both collections are append-only.
    """

    def __init__(self, feedback_store: RecordStore, contact_store: RecordStore):
        """Initialize the feedback service.

        Args:
            feedback_store: Record store for feedback
            contact_store: Record store for contact messages
        """
        self.feedback_store = feedback_store
        self.contact_store = contact_store

    def list_feedback(self) -> list[Feedback]:
        return [Feedback.model_validate(r) for r in self.feedback_store.list()]

    def submit_feedback(self, submission: FeedbackSubmission) -> Feedback:
        feedback = Feedback(id=new_id(FEEDBACK_ID_PREFIX), **submission.model_dump())
        self.feedback_store.append(feedback.to_api())
        logger.info("Feedback %s received (rating=%d)", feedback.id, feedback.rating)
        return feedback

    def average_rating(self) -> float | None:
        """Mean feedback rating rounded to one decimal, None without feedback."""
        ratings = [f.rating for f in self.list_feedback()]
        if not ratings:
            return None
        return round(sum(ratings) / len(ratings), 1)

    def list_contact_messages(self) -> list[ContactMessage]:
        """Contact messages, newest first."""
        messages = [ContactMessage.model_validate(r) for r in self.contact_store.list()]
        messages.sort(key=lambda m: m.submitted_at, reverse=True)
        return messages

    def submit_contact(self, submission: ContactSubmission) -> ContactMessage:
        message = ContactMessage(
            id=new_id(CONTACT_ID_PREFIX),
            **submission.model_dump(),
            submitted_at=utc_now_iso(),
        )
        self.contact_store.append(message.to_api())
        logger.info("Contact message %s received", message.id)
        return message
