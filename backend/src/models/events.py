"""Realtime event envelope."""

from typing import Any

from pydantic import Field

from models.base import ApiModel
from utils.id_utils import utc_now_iso


class RealtimeEvent(ApiModel):
    """Message pushed to connected clients on a channel."""

    event: str = Field(..., description="Event name, e.g. new-report")
    channel: str = Field(..., description="Channel the event was published on")
    data: dict[str, Any] = Field(default_factory=dict)
    timestamp: str = Field(default_factory=utc_now_iso)
