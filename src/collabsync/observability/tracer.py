"""
Tracers handed to the lock manager and the broadcaster.

Each component takes an optional tracer and otherwise builds one with
create_tracer(). Tests pass MockTracer to inspect the spans.

Example:
    >>> tracer = create_tracer("collabsync.locks", enable_tracing=settings.enable_tracing)
    >>> manager = LockManager(store, broadcaster, tracer=tracer)
    >>> broadcaster = EventBroadcaster(transport, tracer=tracer)
"""

from __future__ import annotations

import contextlib
from collections.abc import Generator
from contextlib import AbstractContextManager
from enum import Enum
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from opentelemetry import trace
from opentelemetry.trace import SpanKind as OtelSpanKind

if TYPE_CHECKING:
    from opentelemetry.trace import Span


class SpanKindEnum(Enum):
    """
    Kinds a collabsync span can carry.

    Maps onto OpenTelemetry's SpanKind.

    Values:
        INTERNAL: Default span kind for internal operations
        PRODUCER: Publishing to clients or to the relay
        CONSUMER: Receiving a client message
        CLIENT: Round trips to the shared lock store
        SERVER: Handling a client request
    """

    INTERNAL = "internal"
    PRODUCER = "producer"
    CONSUMER = "consumer"
    CLIENT = "client"
    SERVER = "server"


_KIND_MAPPING = {
    SpanKindEnum.INTERNAL: OtelSpanKind.INTERNAL,
    SpanKindEnum.PRODUCER: OtelSpanKind.PRODUCER,
    SpanKindEnum.CONSUMER: OtelSpanKind.CONSUMER,
    SpanKindEnum.CLIENT: OtelSpanKind.CLIENT,
    SpanKindEnum.SERVER: OtelSpanKind.SERVER,
}


@runtime_checkable
class Tracer(Protocol):
    """
    Span factory a component is built with.

    NullTracer, OpenTelemetryTracer and MockTracer all satisfy it.
    """

    def span(
        self,
        name: str,
        attributes: dict[str, Any] | None = None,
    ) -> AbstractContextManager[Span | None]:
        """
        Create a tracing span context manager.

        Args:
            name: Span name (e.g., "collabsync.lock.acquire")
            attributes: Span attributes (optional)

        Returns:
            Context manager that yields Span or None
        """
        ...

    @property
    def enabled(self) -> bool:
        """True if tracing is active and will create real spans."""
        ...

    def span_with_kind(
        self,
        name: str,
        kind: SpanKindEnum = SpanKindEnum.INTERNAL,
        attributes: dict[str, Any] | None = None,
    ) -> AbstractContextManager[Span | None]:
        """
        Create a tracing span context manager with a SpanKind.

        Like `span()` but lets the caller mark the span as a producer or
        client span, e.g. for broadcasts and lock store round trips.
        """
        ...


class NullTracer:
    """
    Tracer used when tracing is switched off.

    LockManager and EventBroadcaster get one from create_tracer() when
    built with enable_tracing=False; their span blocks still run.

    Example:
        >>> tracer = NullTracer()
        >>> with tracer.span("collabsync.lock.check") as span:
        ...     assert span is None
    """

    @contextlib.contextmanager
    def span(
        self,
        name: str,
        attributes: dict[str, Any] | None = None,
    ) -> Generator[None, None, None]:
        """Yield None without starting a span."""
        yield None

    @property
    def enabled(self) -> bool:
        """Never enabled."""
        return False

    @contextlib.contextmanager
    def span_with_kind(
        self,
        name: str,
        kind: SpanKindEnum = SpanKindEnum.INTERNAL,
        attributes: dict[str, Any] | None = None,
    ) -> Generator[None, None, None]:
        """Yield None; kind is ignored."""
        yield None


class OpenTelemetryTracer:
    """
    Starts real spans through the global OpenTelemetry tracer provider.

    Spans are only exported when an OpenTelemetry SDK is configured by the
    hosting application.

    Args:
        tracer_name: Name for the tracer (typically __name__)
    """

    def __init__(self, tracer_name: str) -> None:
        self._tracer = trace.get_tracer(tracer_name)

    def span(
        self,
        name: str,
        attributes: dict[str, Any] | None = None,
    ) -> AbstractContextManager[Span | None]:
        return self._tracer.start_as_current_span(
            name,
            attributes=attributes or {},
        )

    @property
    def enabled(self) -> bool:
        """Always enabled; export depends on the configured SDK."""
        return True

    def span_with_kind(
        self,
        name: str,
        kind: SpanKindEnum = SpanKindEnum.INTERNAL,
        attributes: dict[str, Any] | None = None,
    ) -> AbstractContextManager[Span | None]:
        return self._tracer.start_as_current_span(
            name,
            kind=_KIND_MAPPING.get(kind, OtelSpanKind.INTERNAL),
            attributes=attributes or {},
        )


class MockTracer:
    """
    Keeps every span name and its attributes in memory.

    Span kinds are not recorded; spans from span() and span_with_kind()
    land in the same list.

    Example:
        >>> tracer = MockTracer()
        >>> broadcaster = EventBroadcaster(transport, tracer=tracer)
        >>> await broadcaster.publish("donation", "CREATE", {})
        >>> tracer.span_names
        ['collabsync.broadcast.publish']
    """

    def __init__(self) -> None:
        self.spans: list[tuple[str, dict[str, Any] | None]] = []

    @contextlib.contextmanager
    def span(
        self,
        name: str,
        attributes: dict[str, Any] | None = None,
    ) -> Generator[None, None, None]:
        """Append (name, attributes) to spans."""
        self.spans.append((name, attributes))
        yield None

    @property
    def enabled(self) -> bool:
        """Enabled, so callers build their span attributes."""
        return True

    @property
    def span_names(self) -> list[str]:
        """Recorded span names, oldest first."""
        return [name for name, _ in self.spans]

    def clear(self) -> None:
        """Forget recorded spans."""
        self.spans.clear()

    @contextlib.contextmanager
    def span_with_kind(
        self,
        name: str,
        kind: SpanKindEnum = SpanKindEnum.INTERNAL,
        attributes: dict[str, Any] | None = None,
    ) -> Generator[None, None, None]:
        """Append (name, attributes) to spans; kind is dropped."""
        self.spans.append((name, attributes))
        yield None


def create_tracer(
    name: str,
    enable_tracing: bool = True,
) -> Tracer:
    """
    Tracer for a component, real or no-op.

    Args:
        name: Tracer name (typically __name__)
        enable_tracing: Whether tracing should be enabled (default True)

    Returns:
        OpenTelemetryTracer if enabled, NullTracer otherwise

    Example:
        >>> create_tracer("collabsync.broadcast", enable_tracing=False).enabled
        False
    """
    if enable_tracing:
        return OpenTelemetryTracer(name)
    return NullTracer()


__all__ = [
    "Tracer",
    "NullTracer",
    "OpenTelemetryTracer",
    "MockTracer",
    "SpanKindEnum",
    "create_tracer",
]
