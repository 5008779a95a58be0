"""
Standard span attributes for collabsync.

Attribute constants used across all collabsync components for consistent
span naming. These follow OpenTelemetry semantic conventions where
applicable.

Example:
    >>> from collabsync.observability.attributes import (
    ...     ATTR_RESOURCE_ID,
    ...     ATTR_RESOURCE_TYPE,
    ... )
    >>>
    >>> with tracer.span(
    ...     "collabsync.lock.acquire",
    ...     {ATTR_RESOURCE_TYPE: "member", ATTR_RESOURCE_ID: "M1"},
    ... ):
    ...     pass
"""

# =============================================================================
# Resource Attributes
# =============================================================================

ATTR_RESOURCE_TYPE = "collabsync.resource.type"
"""Type of the editable resource (e.g., 'member', 'donation')."""

ATTR_RESOURCE_ID = "collabsync.resource.id"
"""Identifier of the resource within its type (string)."""

# =============================================================================
# Lock Attributes
# =============================================================================

ATTR_LOCK_KEY = "collabsync.lock.key"
"""Key of the lock record in the shared lock store."""

ATTR_LOCK_OUTCOME = "collabsync.lock.outcome"
"""Outcome of a lock operation (acquired, refreshed, contended, released...)."""

# =============================================================================
# Identity Attributes
# =============================================================================

ATTR_USER_ID = "collabsync.user.id"
"""Identifier of the authenticated user behind a connection."""

ATTR_CONNECTION_ID = "collabsync.connection.id"
"""Opaque per-socket connection identifier."""

# =============================================================================
# Broadcast Attributes
# =============================================================================

ATTR_EVENT_NAME = "collabsync.event.name"
"""Name of the emitted message (e.g., 'member:update')."""

ATTR_CHANGE_KIND = "collabsync.change.kind"
"""Kind of change announced (CREATE, UPDATE, DELETE)."""

# =============================================================================
# Messaging Attributes (OpenTelemetry Semantic Conventions)
# =============================================================================

ATTR_MESSAGING_SYSTEM = "messaging.system"
"""Messaging system identifier (e.g., 'socket.io')."""

ATTR_MESSAGING_DESTINATION = "messaging.destination"
"""Room or topic the message was sent to."""


__all__ = [
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
