"""Python clients for the GreenGrid API."""

from .api_client import ApiClientError, GreenGridClient
from .realtime_subscription import RealtimeSubscription, SubscriptionError

__all__ = [
    "ApiClientError",
    "GreenGridClient",
    "RealtimeSubscription",
    "SubscriptionError",
]
