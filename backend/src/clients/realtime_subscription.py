"""Client-side subscription to GreenGrid realtime events.

Usage::

    async with RealtimeSubscription(
        "https://api.example.org",
        token,
        role="admin",
        on_new_report=handle_report,
    ) as subscription:
        await subscription.listen()
"""

import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable

import aiohttp

from utils.constants import (
    EVENT_DASHBOARD_UPDATE,
    EVENT_NEW_REPORT,
    EVENT_URGENT_ALERT,
)

logger = logging.getLogger(__name__)

EventCallback = Callable[[dict[str, Any]], Awaitable[None] | None]

JOIN_TIMEOUT_SECONDS = 10
HEARTBEAT_SECONDS = 30

# Closed or non-JSON frames surface as TypeError or ValueError from receive_json
JOIN_ERRORS = (aiohttp.ClientError, ConnectionError, TypeError, ValueError, asyncio.TimeoutError)


class SubscriptionError(Exception):
    """Raised when the socket cannot be opened or the join is refused."""

    pass


def websocket_url(base_url: str) -> str:
    """Map an HTTP(S) API base URL to its realtime socket URL."""
    base = base_url.rstrip("/")
    if base.startswith("https://"):
        base = "wss://" + base[len("https://") :]
    elif base.startswith("http://"):
        base = "ws://" + base[len("http://") :]
    return f"{base}/ws"


class RealtimeSubscription:
    """One socket joined to one channel, dispatching events to callbacks.

    ``connect()`` opens the socket, joins the channel for ``role`` and
    registers the callbacks. ``close()`` unregisters them and closes the
    socket; it is safe to call more than once.
    """

    def __init__(
        self,
        base_url: str,
        token: str,
        role: str,
        user_id: str | None = None,
        on_new_report: EventCallback | None = None,
        on_urgent_alert: EventCallback | None = None,
        on_dashboard_update: EventCallback | None = None,
        session: aiohttp.ClientSession | None = None,
    ):
        self.url = websocket_url(base_url)
        self.token = token
        self.role = role
        self.user_id = user_id
        self.channel: str | None = None

        self._pending_callbacks = {
            EVENT_NEW_REPORT: on_new_report,
            EVENT_URGENT_ALERT: on_urgent_alert,
            EVENT_DASHBOARD_UPDATE: on_dashboard_update,
        }
        self._callbacks: dict[str, EventCallback] = {}
        self._session = session
        self._owns_session = session is None
        self._ws = None

    @property
    def connected(self) -> bool:
        return self._ws is not None and not self._ws.closed

    async def connect(self) -> str:
        """Open the socket and join the role's channel.

        Returns:
            The channel name confirmed by the server

        Raises:
            SubscriptionError: If the connection or join fails
        """
        if self.connected:
            return self.channel

        if self._session is None:
            self._session = aiohttp.ClientSession()

        try:
            self._ws = await self._session.ws_connect(
                self.url, params={"token": self.token}, heartbeat=HEARTBEAT_SECONDS
            )
        except aiohttp.ClientError as e:
            await self.close()
            raise SubscriptionError(f"Could not connect to {self.url}: {e}") from e

        join: dict[str, Any] = {"action": "join", "role": self.role}
        if self.user_id:
            join["userId"] = self.user_id
        try:
            await self._ws.send_json(join)
            reply = await self._ws.receive_json(timeout=JOIN_TIMEOUT_SECONDS)
        except JOIN_ERRORS as e:
            await self.close()
            raise SubscriptionError(f"Join on {self.url} failed: {e!r}") from e

        if not isinstance(reply, dict):
            await self.close()
            raise SubscriptionError("Unexpected join reply")
        if reply.get("event") != "joined":
            await self.close()
            raise SubscriptionError(reply.get("message", "Join was refused"))

        self.channel = reply["channel"]
        self._callbacks = {
            event: callback
            for event, callback in self._pending_callbacks.items()
            if callback is not None
        }
        logger.info(
            "Subscribed to %s with %d callback(s)", self.channel, len(self._callbacks)
        )
        return self.channel

    async def listen(self) -> None:
        """Dispatch incoming events until the socket closes."""
        if self._ws is None:
            raise SubscriptionError("Not connected")

        async for message in self._ws:
            if message.type == aiohttp.WSMsgType.TEXT:
                await self.dispatch(message.json())
            elif message.type == aiohttp.WSMsgType.ERROR:
                logger.warning("Realtime socket error: %s", self._ws.exception())
                break

    async def dispatch(self, message: dict[str, Any]) -> bool:
        """Invoke the callback registered for ``message["event"]``.

        Returns:
            True if a callback handled the event
        """
        callback = self._callbacks.get(message.get("event"))
        if callback is None:
            return False

        try:
            result = callback(message.get("data", {}))
            if inspect.isawaitable(result):
                await result
        except Exception:
            logger.exception("Callback for %s failed", message.get("event"))
        return True

    async def close(self) -> None:
        """Unregister callbacks and close the socket and owned session."""
        self._callbacks = {}
        if self._ws is not None and not self._ws.closed:
            await self._ws.close()
        self._ws = None
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None

    async def __aenter__(self) -> "RealtimeSubscription":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()
