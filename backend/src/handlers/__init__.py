"""HTTP and WebSocket handlers for the GreenGrid API."""

from .api_handler import app

__all__ = ["app"]
