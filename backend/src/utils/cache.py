"""Caching utilities for the GreenGrid API."""

import hashlib
import json
import weakref
from functools import wraps
from typing import Callable

from cachetools import TTLCache

# Dashboard summaries are recomputed from a full store read, keep them briefly
DASHBOARD_CACHE_TTL_SECONDS = 30
# Routes change only on admin submission
ROUTES_CACHE_TTL_SECONDS = 300

# Cache-Control header values
CACHE_CONTROL_PUBLIC = "public, max-age=300"
CACHE_CONTROL_PRIVATE = "private, no-store"


def get_cache_key(*args, **kwargs) -> str:
    """Generate a cache key from function arguments."""
    key_data = json.dumps({"args": args, "kwargs": kwargs}, sort_keys=True, default=str)
    # MD5 is used here only for cache key generation, not for security purposes
    return hashlib.md5(key_data.encode(), usedforsecurity=False).hexdigest()


class InstanceCaches:
    """Method decorator holding one TTLCache per service instance.

    Keys cover the arguments after ``self``. Caches disappear with their
    instance.
    """

    def __init__(self, maxsize: int, ttl: int):
        self.maxsize = maxsize
        self.ttl = ttl
        self._caches: weakref.WeakKeyDictionary = weakref.WeakKeyDictionary()

    def for_instance(self, instance) -> TTLCache:
        cache = self._caches.get(instance)
        if cache is None:
            cache = TTLCache(maxsize=self.maxsize, ttl=self.ttl)
            self._caches[instance] = cache
        return cache

    def clear(self) -> None:
        for cache in list(self._caches.values()):
            cache.clear()

    def __call__(self, func: Callable) -> Callable:
        @wraps(func)
        def wrapper(instance, *args, **kwargs):
            cache = self.for_instance(instance)
            cache_key = get_cache_key(*args, **kwargs)
            if cache_key in cache:
                return cache[cache_key]
            result = func(instance, *args, **kwargs)
            cache[cache_key] = result
            return result

        return wrapper


cached_dashboard = InstanceCaches(maxsize=16, ttl=DASHBOARD_CACHE_TTL_SECONDS)
cached_routes = InstanceCaches(maxsize=16, ttl=ROUTES_CACHE_TTL_SECONDS)


def invalidate_dashboard_cache() -> None:
    """Drop cached dashboard summaries after a report mutation."""
    cached_dashboard.clear()


def invalidate_routes_cache() -> None:
    """Drop cached route listings after a route is added."""
    cached_routes.clear()


def clear_all_caches() -> None:
    """Clear every cache (used by tests)."""
    cached_dashboard.clear()
    cached_routes.clear()
