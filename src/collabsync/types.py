"""Common type definitions for the collabsync library."""

from datetime import UTC, datetime, timedelta
from enum import Enum


class ResourceType(str, Enum):
    """Editable entity types that can be locked or announced as changed."""

    MEMBER = "member"
    DONATION = "donation"
    USER = "user"
    SETTINGS = "settings"


class ChangeKind(str, Enum):
    """How an entity changed."""

    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


# Type aliases for clarity and documentation
ConnectionId = str
UserId = str
ResourceId = str

# Fixed lifetime of an unrenewed edit lock
LOCK_TTL = timedelta(minutes=15)


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(UTC)


def lock_key(resource_type: ResourceType | str, resource_id: str) -> str:
    """
    Build the shared lock store key for a resource.

    Example:
        >>> lock_key(ResourceType.MEMBER, "M1")
        'lock:member:M1'
    """
    return f"lock:{ResourceType(resource_type).value}:{resource_id}"


def parse_lock_key(key: str) -> tuple[ResourceType, str]:
    """
    Split a lock key back into its resource type and id.

    Example:
        >>> parse_lock_key("lock:member:M1")
        (<ResourceType.MEMBER: 'member'>, 'M1')

    Raises:
        ValueError: If the key was not built by lock_key()
    """
    prefix, _, rest = key.partition(":")
    resource_type, _, resource_id = rest.partition(":")
    if prefix != "lock" or not resource_id:
        raise ValueError(f"Not a lock key: {key!r}")
    return ResourceType(resource_type), resource_id


def lock_topic(resource_type: ResourceType | str, resource_id: str) -> str:
    """
    Build the scoped topic name that carries lock updates for a resource.

    Example:
        >>> lock_topic("member", "M1")
        'lock:update:member:M1'
    """
    return f"lock:update:{ResourceType(resource_type).value}:{resource_id}"


def change_event_name(entity_type: ResourceType | str) -> str:
    """
    Build the global message name for changes to an entity type.

    Example:
        >>> change_event_name(ResourceType.DONATION)
        'donation:update'
    """
    return f"{ResourceType(entity_type).value}:update"


__all__ = [
    "ResourceType",
    "ChangeKind",
    "ConnectionId",
    "UserId",
    "ResourceId",
    "LOCK_TTL",
    "utc_now",
    "lock_key",
    "parse_lock_key",
    "lock_topic",
    "change_event_name",
]
