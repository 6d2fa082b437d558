"""Tests for FeedbackService."""

import pytest

from models.feedback import ContactSubmission, FeedbackSubmission
from services.feedback_service import FeedbackService
from services.record_store import InMemoryRecordStore


@pytest.fixture
def feedback_service():
    return FeedbackService(InMemoryRecordStore(), InMemoryRecordStore())


class TestFeedback:
    def test_submit_and_list(self, feedback_service):
        feedback = feedback_service.submit_feedback(
            FeedbackSubmission(name="Sarah", rating=5, comment="Great", date="2026-03-09")
        )

        assert feedback.id.startswith("F_")
        assert feedback_service.list_feedback() == [feedback]

    def test_average_rating(self, feedback_service):
        assert feedback_service.average_rating() is None

        for rating in (5, 4, 4):
            feedback_service.submit_feedback(
                FeedbackSubmission(name="R", rating=rating, comment="ok", date="2026-03-09")
            )

        assert feedback_service.average_rating() == 4.3


class TestContact:
    def test_submit_stamps_time(self, feedback_service):
        message = feedback_service.submit_contact(
            ContactSubmission(name="Kamal", email="kamal@example.com", message="Hi")
        )

        assert message.id.startswith("C_")
        assert message.submitted_at
        assert feedback_service.contact_store.count() == 1
        assert feedback_service.feedback_store.count() == 0

    def test_list_newest_first(self, feedback_service):
        feedback_service.contact_store.append(
            {"id": "C_1", "name": "A", "email": "a@example.com", "message": "x",
             "submittedAt": "2026-03-01T00:00:00+00:00"}
        )
        feedback_service.contact_store.append(
            {"id": "C_2", "name": "B", "email": "b@example.com", "message": "y",
             "submittedAt": "2026-03-05T00:00:00+00:00"}
        )

        assert [m.id for m in feedback_service.list_contact_messages()] == ["C_2", "C_1"]
