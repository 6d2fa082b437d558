"""Collection route data models."""

from typing import Any

from pydantic import Field

from models.base import ApiModel


class ScheduleEntry(ApiModel):
    """One scheduled stop of a truck."""

    date: str = Field(..., min_length=1, description="Collection date (YYYY-MM-DD)")
    time: str = Field(..., min_length=1, description="Arrival time (HH:MM)")
    area: str = Field(..., min_length=1, description="Street or area served")


class RouteSubmission(ApiModel):
    """Request body for adding a truck route."""

    truck_name: str = Field(..., min_length=1, max_length=100)
    region: str = Field(..., min_length=1, max_length=100)
    days: list[str] = Field(..., min_length=1)
    schedule: list[ScheduleEntry] = Field(..., min_length=1)
    geo_json: dict[str, Any] = Field(..., description="GeoJSON geometry of the route")


class Route(ApiModel):
    """Stored route record. Never mutated after creation."""

    id: str
    truck_name: str
    region: str
    days: list[str]
    schedule: list[ScheduleEntry]
    geo_json: dict[str, Any]
    created_at: str | None = None
