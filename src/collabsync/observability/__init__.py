"""
Observability utilities for collabsync.

This module provides composition-based tracing and the standard attribute
definitions used by every collabsync component.

Example:
    >>> from collabsync.observability import create_tracer
    >>>
    >>> class MyComponent:
    ...     def __init__(self, enable_tracing: bool = True):
    ...         self._tracer = create_tracer(__name__, enable_tracing)
    ...         self._enable_tracing = self._tracer.enabled
"""

from collabsync.observability.attributes import (
    ATTR_CHANGE_KIND,
    ATTR_CONNECTION_ID,
    ATTR_EVENT_NAME,
    ATTR_LOCK_KEY,
    ATTR_LOCK_OUTCOME,
    ATTR_MESSAGING_DESTINATION,
    ATTR_MESSAGING_SYSTEM,
    ATTR_RESOURCE_ID,
    ATTR_RESOURCE_TYPE,
    ATTR_USER_ID,
)
from collabsync.observability.tracer import (
    MockTracer,
    NullTracer,
    OpenTelemetryTracer,
    SpanKindEnum,
    Tracer,
    create_tracer,
)

__all__ = [
    # Tracer (composition-based API)
    "Tracer",
    "NullTracer",
    "OpenTelemetryTracer",
    "MockTracer",
    "SpanKindEnum",
    "create_tracer",
    # Attributes
    "ATTR_RESOURCE_TYPE",
    "ATTR_RESOURCE_ID",
    "ATTR_LOCK_KEY",
    "ATTR_LOCK_OUTCOME",
    "ATTR_USER_ID",
    "ATTR_CONNECTION_ID",
    "ATTR_EVENT_NAME",
    "ATTR_CHANGE_KIND",
    "ATTR_MESSAGING_SYSTEM",
    "ATTR_MESSAGING_DESTINATION",
]
