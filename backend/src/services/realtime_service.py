"""Realtime event fan-out over channel-scoped WebSocket connections.

Delivery is fire-and-forget: an event reaches the connections subscribed at
the moment it is published. Nothing is persisted or replayed, and a
connection whose send fails is dropped.
"""

import logging
from typing import Any, Protocol

from models.events import RealtimeEvent
from models.user import STAFF_ROLES
from utils.constants import ADMIN_CHANNEL, USER_CHANNEL_PREFIX

logger = logging.getLogger(__name__)

STAFF_ROLE_VALUES = frozenset(role.value for role in STAFF_ROLES)


def is_staff_role(role: str | None) -> bool:
    return role in STAFF_ROLE_VALUES


class Connection(Protocol):
    """Anything that can receive a JSON message (e.g. a Starlette WebSocket)."""

    async def send_json(self, data: Any) -> None: ...


class ChannelAccessError(Exception):
    """Raised when a connection may not join the requested channel."""

    pass


def user_channel(user_id: str) -> str:
    """Channel name for a single user's events."""
    return f"{USER_CHANNEL_PREFIX}{user_id}"


def channel_for(role: str, user_id: str | None = None) -> str:
    """Resolve the channel a client with ``role`` should join.

    Staff roles share the admin channel; everyone else listens on their own
    user channel.
    """
    if is_staff_role(role):
        return ADMIN_CHANNEL
    if not user_id:
        raise ChannelAccessError("A user id is required to join a user channel")
    return user_channel(user_id)


def authorize_channel(channel: str, user_id: str, role: str) -> None:
    """Check that the authenticated user may subscribe to ``channel``.

    Raises:
        ChannelAccessError: If the channel is unknown or not the user's own
    """
    if channel == ADMIN_CHANNEL:
        if not is_staff_role(role):
            raise ChannelAccessError("Admin access required")
        return
    if channel.startswith(USER_CHANNEL_PREFIX):
        if channel != user_channel(user_id):
            raise ChannelAccessError("Cannot join another user's channel")
        return
    raise ChannelAccessError(f"Unknown channel: {channel}")


class EventFanout:
    """Publish/subscribe relay keyed by channel name.

    Each connection belongs to at most one channel; joining again moves it.
    """

    def __init__(self):
        self._channels: dict[str, set] = {}
        self._membership: dict[Any, str] = {}

    def join(self, connection: Connection, channel: str) -> None:
        """Subscribe ``connection`` to ``channel``, leaving any previous one."""
        self.leave(connection)
        self._channels.setdefault(channel, set()).add(connection)
        self._membership[connection] = channel
        logger.info("Connection joined channel %s", channel)

    def leave(self, connection: Connection) -> str | None:
        """Remove ``connection`` from its channel. Returns the channel left."""
        channel = self._membership.pop(connection, None)
        if channel is None:
            return None
        members = self._channels.get(channel)
        if members is not None:
            members.discard(connection)
            if not members:
                del self._channels[channel]
        return channel

    def channel_of(self, connection: Connection) -> str | None:
        return self._membership.get(connection)

    def subscriber_count(self, channel: str) -> int:
        return len(self._channels.get(channel, ()))

    def channels(self) -> dict[str, int]:
        """Subscriber counts per active channel."""
        return {name: len(members) for name, members in self._channels.items()}

    async def publish(self, channel: str, event: str, data: dict[str, Any]) -> int:
        """Send an event to every connection on ``channel``.

        Returns:
            Number of connections the event was delivered to
        """
        members = list(self._channels.get(channel, ()))
        if not members:
            logger.debug("No subscribers on %s for %s", channel, event)
            return 0

        message = RealtimeEvent(event=event, channel=channel, data=data).to_api()
        delivered = 0
        for connection in members:
            try:
                await connection.send_json(message)
                delivered += 1
            except Exception as e:
                logger.warning(
                    "Dropping connection on %s after failed %s send: %s",
                    channel,
                    event,
                    e,
                )
                self.leave(connection)

        logger.info("Published %s to %s (%d/%d)", event, channel, delivered, len(members))
        return delivered
