"""
Collaboration server: Socket.IO message handlers and application factory.

Wires the connection gate, session registry, lock manager and event
broadcaster onto a python-socketio AsyncServer. Each incoming message is
handled as its own task; the handlers hold no in-process locks and only
suspend on store and transport round trips.

Example:
    >>> app = create_app(CollabSyncSettings())
    >>> # or: uvicorn --factory collabsync.server:create_app
"""

from __future__ import annotations

import logging
from typing import Any

import socketio
from pydantic import ValidationError
from socketio.exceptions import ConnectionRefusedError

from collabsync.auth import ConnectionGate, JWTTokenVerifier
from collabsync.broadcast import (
    EventBroadcaster,
    SocketIOTransport,
    Transport,
    create_client_manager,
)
from collabsync.config import CollabSyncSettings
from collabsync.exceptions import (
    AuthenticationError,
    BroadcastError,
    InvalidLockRequestError,
    StoreUnavailableError,
)
from collabsync.locks import (
    AcquireResult,
    LockManager,
    LockRequest,
    LockStore,
    RedisLockStore,
    RedisLockStoreConfig,
    ReleaseResult,
)
from collabsync.observability import Tracer
from collabsync.sessions import Session, SessionRegistry
from collabsync.types import ConnectionId

logger = logging.getLogger(__name__)

NOT_AUTHENTICATED = "Not authenticated"
INVALID_LOCK_REQUEST = "Invalid lock request"
STORE_UNAVAILABLE = "Lock store unavailable"


class CollabServer:
    """
    Handlers for the real-time message surface.

    ======================  ==========================  ===================
    Message                 Handler                     Ack
    ======================  ==========================  ===================
    connect                 handle_connect              (refusal on failure)
    disconnect              handle_disconnect           none
    lock:acquire            handle_lock_acquire         {success, lockedBy}
    lock:release            handle_lock_release         {success}
    lock:check              handle_lock_check           LockStatus or null
    lock:subscribe          handle_lock_subscribe       {success}
    lock:unsubscribe        handle_lock_unsubscribe     {success}
    join_room               handle_join_room            none
    ======================  ==========================  ===================

    Args:
        gate: Authenticates handshakes
        registry: Live connection to identity map
        lock_manager: Lock decisions
        broadcaster: Change and lock update delivery
        transport: Used for plain room joins
    """

    def __init__(
        self,
        gate: ConnectionGate,
        registry: SessionRegistry,
        lock_manager: LockManager,
        broadcaster: EventBroadcaster,
        transport: Transport,
    ) -> None:
        self._gate = gate
        self._registry = registry
        self._lock_manager = lock_manager
        self._broadcaster = broadcaster
        self._transport = transport
        self._sio: socketio.AsyncServer | None = None

    @property
    def registry(self) -> SessionRegistry:
        return self._registry

    @property
    def lock_manager(self) -> LockManager:
        return self._lock_manager

    @property
    def broadcaster(self) -> EventBroadcaster:
        return self._broadcaster

    @property
    def sio(self) -> socketio.AsyncServer:
        if self._sio is None:
            raise RuntimeError("CollabServer is not attached to a Socket.IO server")
        return self._sio

    def attach(self, sio: socketio.AsyncServer) -> None:
        """Register every handler on a Socket.IO server."""
        sio.on("connect", self.handle_connect)
        sio.on("disconnect", self.handle_disconnect)
        sio.on("lock:acquire", self.handle_lock_acquire)
        sio.on("lock:release", self.handle_lock_release)
        sio.on("lock:check", self.handle_lock_check)
        sio.on("lock:subscribe", self.handle_lock_subscribe)
        sio.on("lock:unsubscribe", self.handle_lock_unsubscribe)
        sio.on("join_room", self.handle_join_room)
        self._sio = sio

    # =========================================================================
    # Connection lifecycle
    # =========================================================================

    async def handle_connect(
        self,
        sid: ConnectionId,
        environ: dict[str, Any] | None = None,
        auth: Any = None,
    ) -> None:
        """
        Authenticate a handshake and register the session.

        Raises:
            ConnectionRefusedError: With "Authentication error: <reason>",
                which the client receives as its connect_error message
        """
        try:
            identity = self._gate.authenticate(auth)
        except AuthenticationError as e:
            logger.info(
                f"Refused connection {sid}: {e.reason}",
                extra={"connection_id": sid},
            )
            raise ConnectionRefusedError(e.client_message) from e

        self._registry.register(sid, identity)
        logger.info(
            f"User connected: {identity.username}",
            extra={"connection_id": sid, "user_id": identity.user_id},
        )

    async def handle_disconnect(self, sid: ConnectionId, reason: Any = None) -> None:
        """Forget the session. The user's locks stay until their TTL runs out."""
        try:
            session = self._registry.get(sid)
            if session is not None:
                logger.info(
                    f"User disconnected: {session.username} ({reason or 'unknown reason'})",
                    extra={"connection_id": sid, "user_id": session.user_id},
                )
        finally:
            self._registry.unregister(sid)

    # =========================================================================
    # Lock messages
    # =========================================================================

    def _parse_request(self, data: Any) -> LockRequest:
        if not isinstance(data, dict):
            raise InvalidLockRequestError(f"Expected an object, got {type(data).__name__}")
        try:
            return LockRequest.model_validate(data)
        except ValidationError as e:
            raise InvalidLockRequestError(str(e)) from e

    def _resolve(self, sid: ConnectionId, data: Any) -> tuple[Session, LockRequest] | str:
        """Session and parsed request, or the error string to answer with."""
        session = self._registry.get(sid)
        if session is None:
            return NOT_AUTHENTICATED
        try:
            return session, self._parse_request(data)
        except InvalidLockRequestError as e:
            logger.debug(f"Bad lock payload from {sid}: {e}", extra={"connection_id": sid})
            return INVALID_LOCK_REQUEST

    async def _subscribe(self, sid: ConnectionId, request: LockRequest) -> bool:
        try:
            await self._broadcaster.subscribe_lock_updates(
                sid, request.resource_type, request.resource_id
            )
        except BroadcastError as e:
            logger.warning(
                f"Could not subscribe {sid} to lock updates: {e}",
                extra={"connection_id": sid},
            )
            return False
        return True

    async def handle_lock_acquire(self, sid: ConnectionId, data: Any) -> dict[str, Any]:
        resolved = self._resolve(sid, data)
        if isinstance(resolved, str):
            return AcquireResult(success=False, error=resolved).to_wire()
        session, request = resolved

        await self._subscribe(sid, request)
        try:
            result = await self._lock_manager.acquire(
                request.resource_type, request.resource_id, session.identity
            )
        except StoreUnavailableError:
            return AcquireResult(success=False, error=STORE_UNAVAILABLE).to_wire()
        return result.to_wire()

    async def handle_lock_release(self, sid: ConnectionId, data: Any) -> dict[str, Any]:
        resolved = self._resolve(sid, data)
        if isinstance(resolved, str):
            return ReleaseResult(success=False, error=resolved).to_wire()
        session, request = resolved

        try:
            result = await self._lock_manager.release(
                request.resource_type, request.resource_id, session.identity
            )
        except StoreUnavailableError:
            return ReleaseResult(success=False, error=STORE_UNAVAILABLE).to_wire()
        return result.to_wire()

    async def handle_lock_check(self, sid: ConnectionId, data: Any) -> dict[str, Any] | None:
        resolved = self._resolve(sid, data)
        if isinstance(resolved, str):
            return None
        _, request = resolved

        await self._subscribe(sid, request)
        try:
            status = await self._lock_manager.check(request.resource_type, request.resource_id)
        except StoreUnavailableError:
            return None
        return status.to_wire()

    async def handle_lock_subscribe(self, sid: ConnectionId, data: Any) -> dict[str, Any]:
        resolved = self._resolve(sid, data)
        if isinstance(resolved, str):
            return {"success": False, "error": resolved}
        _, request = resolved
        return {"success": await self._subscribe(sid, request)}

    async def handle_lock_unsubscribe(self, sid: ConnectionId, data: Any) -> dict[str, Any]:
        resolved = self._resolve(sid, data)
        if isinstance(resolved, str):
            return {"success": False, "error": resolved}
        _, request = resolved
        try:
            await self._broadcaster.unsubscribe_lock_updates(
                sid, request.resource_type, request.resource_id
            )
        except BroadcastError as e:
            logger.warning(
                f"Could not unsubscribe {sid} from lock updates: {e}",
                extra={"connection_id": sid},
            )
            return {"success": False}
        return {"success": True}

    async def handle_join_room(self, sid: ConnectionId, room: Any) -> None:
        """Enter a named room. Broadcasts are global, so this changes nothing delivered."""
        if sid not in self._registry or not isinstance(room, str) or not room:
            return
        await self._transport.enter_room(sid, room)
        logger.debug(f"Connection {sid} joined room {room}", extra={"connection_id": sid})

    # =========================================================================
    # Health
    # =========================================================================

    async def health(self) -> dict[str, Any]:
        return {
            "sessions": len(self._registry),
            "relayDegraded": self._broadcaster.relay_degraded,
            "lockStore": "ok" if await self._lock_manager.store.ping() else "unavailable",
        }


def create_server(
    settings: CollabSyncSettings | None = None,
    *,
    lock_store: LockStore | None = None,
    client_manager: socketio.AsyncManager | None = None,
    relay_degraded: bool = False,
    tracer: Tracer | None = None,
) -> CollabServer:
    """
    Build the Socket.IO server and the component graph behind it.

    Args:
        settings: Configuration (read from the environment when omitted)
        lock_store: Lock store to use instead of Redis
        client_manager: Socket.IO client manager to use instead of probing
            the relay
        relay_degraded: Reported state when a client_manager is supplied
        tracer: Shared tracer for every component

    Returns:
        A CollabServer attached to a new AsyncServer (``server.sio``)
    """
    settings = settings or CollabSyncSettings()

    if settings.uses_insecure_secret:
        logger.warning("JWT_SECRET is not set; using the insecure development secret")

    if client_manager is None:
        client_manager, relay_degraded = create_client_manager(settings)

    sio = socketio.AsyncServer(
        async_mode="asgi",
        client_manager=client_manager,
        cors_allowed_origins=settings.cors_origins,
    )
    transport = SocketIOTransport(sio)
    broadcaster = EventBroadcaster(
        transport,
        relay_degraded=relay_degraded,
        tracer=tracer,
        enable_tracing=settings.enable_tracing,
    )

    if lock_store is None:
        lock_store = RedisLockStore(
            RedisLockStoreConfig(
                redis_url=settings.redis_url,
                key_prefix=settings.lock_key_prefix,
                socket_timeout=settings.redis_socket_timeout,
                socket_connect_timeout=settings.redis_socket_timeout,
            )
        )
    lock_manager = LockManager(
        lock_store,
        broadcaster,
        require_holder_for_release=settings.require_holder_for_release,
        tracer=tracer,
        enable_tracing=settings.enable_tracing,
    )

    gate = ConnectionGate(JWTTokenVerifier(settings.jwt_secret, settings.jwt_algorithm))
    server = CollabServer(gate, SessionRegistry(), lock_manager, broadcaster, transport)
    server.attach(sio)
    return server


def create_app(
    settings: CollabSyncSettings | None = None,
    *,
    server: CollabServer | None = None,
) -> socketio.ASGIApp:
    """
    ASGI application serving the Socket.IO endpoint.

    The lock store is closed when the ASGI server shuts down.
    """
    settings = settings or CollabSyncSettings()
    server = server or create_server(settings)

    async def on_shutdown() -> None:
        await server.lock_manager.store.close()
        logger.info("Collaboration server stopped")

    return socketio.ASGIApp(
        server.sio,
        socketio_path=settings.socketio_path,
        on_shutdown=on_shutdown,
    )


__all__ = [
    "CollabServer",
    "create_server",
    "create_app",
    "NOT_AUTHENTICATED",
    "INVALID_LOCK_REQUEST",
    "STORE_UNAVAILABLE",
]
