"""
Event broadcaster.

Two delivery paths share one transport:

- Global change channel: ``{entityType}:update`` goes to every connected
  client. There is no per-user scoping; clients filter and refetch.
- Scoped lock channel: ``lock:update:{resourceType}:{resourceId}`` goes
  only to connections subscribed to that resource. The topic name doubles
  as the room name, so membership vanishes with the connection.

Example:
    >>> broadcaster = EventBroadcaster(SocketIOTransport(sio))
    >>> await broadcaster.publish("member", "CREATE", member.model_dump())
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from pydantic_core import to_jsonable_python

from collabsync.broadcast.interface import Transport
from collabsync.broadcast.models import ChangeEvent
from collabsync.exceptions import BroadcastError
from collabsync.locks.models import LockUpdate
from collabsync.observability import (
    ATTR_CHANGE_KIND,
    ATTR_CONNECTION_ID,
    ATTR_EVENT_NAME,
    ATTR_MESSAGING_DESTINATION,
    ATTR_MESSAGING_SYSTEM,
    ATTR_RESOURCE_ID,
    ATTR_RESOURCE_TYPE,
    SpanKindEnum,
    Tracer,
    create_tracer,
)
from collabsync.types import ChangeKind, ConnectionId, ResourceType, lock_topic

logger = logging.getLogger(__name__)


@dataclass
class BroadcasterStats:
    """Statistics for broadcaster operations.

    Attributes:
        changes_published: Change events sent on the global channel
        lock_updates_published: Lock updates sent on scoped topics
        raw_emits: Messages sent through emit()
        emit_errors: Sends the transport rejected
    """

    changes_published: int = 0
    lock_updates_published: int = 0
    raw_emits: int = 0
    emit_errors: int = 0


class EventBroadcaster:
    """
    Publishes change events and lock updates to live connections.

    Cross-process fan-out happens below the transport (the socket server's
    client manager). When that relay could not be reached at startup the
    broadcaster still delivers to local connections and reports
    ``relay_degraded``.

    Args:
        transport: Where messages go
        relay_degraded: True when only process-local delivery is available
        tracer: Optional custom Tracer instance
        enable_tracing: Whether to enable OpenTelemetry tracing.
            Ignored if tracer is explicitly provided.
    """

    def __init__(
        self,
        transport: Transport,
        *,
        relay_degraded: bool = False,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> None:
        self._transport = transport
        self._relay_degraded = relay_degraded
        self._stats = BroadcasterStats()
        self._tracer = tracer or create_tracer(__name__, enable_tracing)
        self._enable_tracing = self._tracer.enabled

        if relay_degraded:
            logger.warning(
                "Event broadcaster running in relay degraded mode: "
                "changes reach only clients connected to this process"
            )

    @property
    def transport(self) -> Transport:
        return self._transport

    @property
    def relay_degraded(self) -> bool:
        return self._relay_degraded

    @property
    def stats(self) -> BroadcasterStats:
        return self._stats

    async def _send(
        self,
        event: str,
        data: Any,
        *,
        to: str | None = None,
        attributes: dict[str, Any] | None = None,
    ) -> None:
        span_attributes = {
            ATTR_EVENT_NAME: event,
            ATTR_MESSAGING_SYSTEM: "socket.io",
            ATTR_MESSAGING_DESTINATION: to or "*",
            **(attributes or {}),
        }
        with self._tracer.span_with_kind(
            "collabsync.broadcast.publish",
            SpanKindEnum.PRODUCER,
            span_attributes,
        ) as span:
            try:
                await self._transport.emit(event, data, to=to)
            except Exception as e:
                self._stats.emit_errors += 1
                if span:
                    span.record_exception(e)
                logger.error(
                    f"Failed to emit {event}: {e}",
                    exc_info=True,
                    extra={"event_name": event, "room": to},
                )
                raise BroadcastError(event, str(e)) from e

    async def publish(
        self,
        entity_type: ResourceType | str,
        change_kind: ChangeKind | str,
        payload: Any = None,
    ) -> None:
        """
        Tell every connected client that an entity changed.

        Args:
            entity_type: member, donation, user or settings
            change_kind: CREATE, UPDATE or DELETE
            payload: Entity representation (or id for DELETE); pydantic
                models are dumped to JSON-compatible data

        Raises:
            BroadcastError: If the transport rejects the message
            ValueError: If entity_type or change_kind is unknown
        """
        await self.publish_event(
            ChangeEvent(
                entity_type=ResourceType(entity_type),
                change_kind=ChangeKind(change_kind),
                payload=payload,
            )
        )

    async def publish_event(self, event: ChangeEvent) -> None:
        """Publish a ChangeEvent on the global channel."""
        await self._send(
            event.event_name,
            event.to_wire(),
            attributes={
                ATTR_RESOURCE_TYPE: event.entity_type.value,
                ATTR_CHANGE_KIND: event.change_kind.value,
            },
        )
        self._stats.changes_published += 1
        logger.debug(
            f"Published {event.change_kind.value} on {event.event_name}",
            extra={"event_name": event.event_name},
        )

    async def publish_lock_update(
        self,
        resource_type: ResourceType | str,
        resource_id: str,
        update: LockUpdate,
    ) -> None:
        """
        Push a lock status change to the subscribers of one resource.

        Raises:
            BroadcastError: If the transport rejects the message
        """
        topic = lock_topic(resource_type, resource_id)
        await self._send(
            topic,
            update.to_wire(),
            to=topic,
            attributes={
                ATTR_RESOURCE_TYPE: ResourceType(resource_type).value,
                ATTR_RESOURCE_ID: resource_id,
            },
        )
        self._stats.lock_updates_published += 1

    async def emit(self, event_name: str, data: Any) -> None:
        """Send an arbitrary message to every connected client."""
        await self._send(event_name, to_wire_data(data))
        self._stats.raw_emits += 1

    async def subscribe_lock_updates(
        self,
        connection_id: ConnectionId,
        resource_type: ResourceType | str,
        resource_id: str,
    ) -> str:
        """
        Start delivering a resource's lock updates to a connection.

        Returns:
            The scoped topic name

        Raises:
            BroadcastError: If the transport cannot add the connection
        """
        topic = lock_topic(resource_type, resource_id)
        with self._tracer.span(
            "collabsync.broadcast.subscribe",
            {ATTR_CONNECTION_ID: connection_id, ATTR_MESSAGING_DESTINATION: topic},
        ):
            try:
                await self._transport.enter_room(connection_id, topic)
            except Exception as e:
                raise BroadcastError(topic, f"subscribe failed: {e}") from e
        logger.debug(
            f"Connection {connection_id} subscribed to {topic}",
            extra={"connection_id": connection_id, "topic": topic},
        )
        return topic

    async def unsubscribe_lock_updates(
        self,
        connection_id: ConnectionId,
        resource_type: ResourceType | str,
        resource_id: str,
    ) -> str:
        """
        Stop delivering a resource's lock updates to a connection.

        Raises:
            BroadcastError: If the transport cannot remove the connection
        """
        topic = lock_topic(resource_type, resource_id)
        try:
            await self._transport.leave_room(connection_id, topic)
        except Exception as e:
            raise BroadcastError(topic, f"unsubscribe failed: {e}") from e
        logger.debug(
            f"Connection {connection_id} unsubscribed from {topic}",
            extra={"connection_id": connection_id, "topic": topic},
        )
        return topic

    def get_stats_dict(self) -> dict[str, int | bool]:
        return {
            "changes_published": self._stats.changes_published,
            "lock_updates_published": self._stats.lock_updates_published,
            "raw_emits": self._stats.raw_emits,
            "emit_errors": self._stats.emit_errors,
            "relay_degraded": self._relay_degraded,
        }


def to_wire_data(data: Any) -> Any:
    """Convert pydantic models (and other rich values) to JSON-compatible data."""
    return to_jsonable_python(data, by_alias=True)


__all__ = ["EventBroadcaster", "BroadcasterStats"]
