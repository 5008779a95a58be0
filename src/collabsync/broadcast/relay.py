"""
Cross-process relay selection.

With more than one server process, every emit must travel through a
shared pub/sub relay so that clients connected to another process see
it. python-socketio does this through its client manager:
``AsyncRedisManager`` publishes each emit on a Redis channel that all
processes listen to.

The relay is probed once at startup. If it cannot be reached the server
falls back to the process-local ``AsyncManager``: delivery inside this
process stays correct, delivery across processes is lost, and the
degraded state is logged and reported. Nothing is raised to clients.
"""

from __future__ import annotations

import logging

import redis
import socketio
from redis.exceptions import RedisError

from collabsync.config import CollabSyncSettings
from collabsync.exceptions import RelayDegradedError

logger = logging.getLogger(__name__)


def probe_relay(url: str, timeout: float = 5.0) -> None:
    """
    Check that the relay answers a PING.

    Raises:
        RelayDegradedError: If the relay cannot be reached
    """
    client = redis.Redis.from_url(
        url,
        socket_timeout=timeout,
        socket_connect_timeout=timeout,
    )
    try:
        client.ping()
    except (RedisError, OSError) as e:
        raise RelayDegradedError(url, str(e)) from e
    finally:
        client.close()


def create_client_manager(
    settings: CollabSyncSettings,
) -> tuple[socketio.AsyncManager, bool]:
    """
    Build the Socket.IO client manager for this process.

    Returns:
        (manager, relay_degraded)
    """
    url = settings.effective_relay_url
    try:
        probe_relay(url, settings.redis_socket_timeout)
    except RelayDegradedError as e:
        logger.warning(
            f"Relay degraded, falling back to process-local delivery: {e}",
            extra={"relay_url": url},
        )
        return socketio.AsyncManager(), True

    logger.info(
        f"Using Redis relay on channel {settings.relay_channel}",
        extra={"relay_url": url},
    )
    return socketio.AsyncRedisManager(url, channel=settings.relay_channel), False


__all__ = ["create_client_manager", "probe_relay"]
