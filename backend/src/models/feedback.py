"""Feedback and contact message data models."""

from pydantic import EmailStr, Field

from models.base import ApiModel


class FeedbackSubmission(ApiModel):
    """Request body for resident feedback."""

    name: str = Field(..., min_length=1, max_length=100)
    rating: int = Field(..., ge=1, le=5)
    comment: str = Field(..., min_length=1, max_length=2000)
    date: str = Field(..., min_length=1)


class Feedback(ApiModel):
    """Stored feedback record."""

    id: str
    name: str
    rating: int
    comment: str
    date: str


class ContactSubmission(ApiModel):
    """Request body for the contact form."""

    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    message: str = Field(..., min_length=1, max_length=5000)


class ContactMessage(ApiModel):
    """Stored contact message."""

    id: str
    name: str
    email: str
    message: str
    submitted_at: str
