"""Service for truck collection routes."""

import logging

from models.route import Route, RouteSubmission
from services.record_store import RecordStore
from utils.cache import cached_routes, invalidate_routes_cache
from utils.constants import ROUTE_ID_PREFIX
from utils.id_utils import new_id, utc_now_iso

logger = logging.getLogger(__name__)


class RouteService:
    """Service for listing and adding truck routes."""

    def __init__(self, store: RecordStore):
        """Initialize the route service.

        Args:
            store: Record store for routes
        """
        self.store = store

    @cached_routes
    def list_routes(self, region: str | None = None) -> list[dict]:
        """List routes in API shape, optionally for a single region."""
        records = self.store.find(region=region) if region else self.store.list()
        return [Route.model_validate(r).to_api() for r in records]

    def add_route(self, submission: RouteSubmission) -> Route:
        """Store a new route. The GeoJSON payload is kept verbatim."""
        route = Route(
            id=new_id(ROUTE_ID_PREFIX),
            **submission.model_dump(),
            created_at=utc_now_iso(),
        )
        self.store.append(route.to_api())
        invalidate_routes_cache()

        logger.info("Added route %s for %s in %s", route.id, route.truck_name, route.region)
        return route
