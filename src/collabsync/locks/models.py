"""
Lock records and the request/response shapes of the lock messages.

LockRecord is what the shared lock store holds. The pydantic models are
what travels over the connection; they serialize with camelCase keys
(``resourceType``, ``lockedBy``, ``isLocked``...).
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_serializer
from pydantic.alias_generators import to_camel

from collabsync.types import LOCK_TTL, ResourceType, lock_key, parse_lock_key


def to_epoch_ms(value: datetime) -> int:
    """Convert an aware datetime to epoch milliseconds."""
    return int(value.timestamp() * 1000)


def from_epoch_ms(value: int | float) -> datetime:
    """Convert epoch milliseconds to an aware UTC datetime."""
    return datetime.fromtimestamp(value / 1000, tz=UTC)


@dataclass(frozen=True)
class LockRecord:
    """
    Ownership of one editable resource.

    Attributes:
        resource_type: Type of the locked resource
        resource_id: Identifier of the resource within its type
        holder_user_id: User id of the holder
        holder_username: Display name of the holder
        acquired_at: Acquisition or last refresh time (aware UTC)
        ttl: Lifetime after acquired_at; afterwards the resource is free
    """

    resource_type: ResourceType
    resource_id: str
    holder_user_id: str
    holder_username: str
    acquired_at: datetime
    ttl: timedelta = LOCK_TTL

    @property
    def key(self) -> str:
        return lock_key(self.resource_type, self.resource_id)

    @property
    def expires_at(self) -> datetime:
        return self.acquired_at + self.ttl

    def is_expired(self, now: datetime) -> bool:
        """True once acquired_at + ttl has passed, evicted or not."""
        return now >= self.expires_at

    def to_json(self) -> str:
        """
        Serialize for the store.

        ``userId`` and ``acquiredAt`` (epoch ms) are read by the Redis
        scripts, so their names and types are fixed.
        """
        return json.dumps(
            {
                "resourceType": self.resource_type.value,
                "resourceId": self.resource_id,
                "userId": self.holder_user_id,
                "username": self.holder_username,
                "acquiredAt": to_epoch_ms(self.acquired_at),
            }
        )

    @classmethod
    def from_json(
        cls,
        raw: str | bytes,
        ttl: timedelta = LOCK_TTL,
        *,
        key: str | None = None,
    ) -> LockRecord:
        """
        Parse a stored record.

        Only ``userId``, ``username`` and ``acquiredAt`` are required, the
        same fields the Redis scripts treat as a live lock. When ``key`` is
        given the resource comes from it and any stored
        ``resourceType``/``resourceId`` is ignored.

        Raises:
            ValueError: If the payload is not a valid record
        """
        try:
            data = json.loads(raw)
            if not isinstance(data, dict):
                raise TypeError(f"expected an object, got {type(data).__name__}")
            if key is not None:
                resource_type, resource_id = parse_lock_key(key)
            else:
                resource_type = ResourceType(data["resourceType"])
                resource_id = str(data["resourceId"])
            if data["userId"] is None or data["username"] is None:
                raise TypeError("holder fields must not be null")
            return cls(
                resource_type=resource_type,
                resource_id=resource_id,
                holder_user_id=str(data["userId"]),
                holder_username=str(data["username"]),
                acquired_at=from_epoch_ms(float(data["acquiredAt"])),
                ttl=ttl,
            )
        except (TypeError, KeyError, json.JSONDecodeError) as e:
            raise ValueError(f"Malformed lock record: {e}") from e

    def refreshed(self, now: datetime) -> LockRecord:
        """Copy with acquired_at reset to now (sliding TTL)."""
        return LockRecord(
            resource_type=self.resource_type,
            resource_id=self.resource_id,
            holder_user_id=self.holder_user_id,
            holder_username=self.holder_username,
            acquired_at=now,
            ttl=self.ttl,
        )


class AcquireStatus(Enum):
    """Outcome of a store-level acquire."""

    ACQUIRED = "acquired"
    REFRESHED = "refreshed"
    CONTENDED = "contended"


class ReleaseStatus(Enum):
    """Outcome of a store-level release."""

    RELEASED = "released"
    NOT_LOCKED = "not_locked"
    NOT_HOLDER = "not_holder"


@dataclass(frozen=True)
class AcquireOutcome:
    """
    Result of LockStore.acquire.

    Attributes:
        status: What happened
        record: The record now in the store (the competitor's on contention)
    """

    status: AcquireStatus
    record: LockRecord


@dataclass(frozen=True)
class ReleaseOutcome:
    """
    Result of LockStore.release.

    Attributes:
        status: What happened
        record: The record that was deleted or kept, None if nothing was held
    """

    status: ReleaseStatus
    record: LockRecord | None = None


# =============================================================================
# Wire models
# =============================================================================


class _WireModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    def to_wire(self) -> dict[str, Any]:
        """Dump with camelCase keys, ready to hand to the transport."""
        return self.model_dump(by_alias=True, mode="json", exclude_none=False)


class LockRequest(_WireModel):
    """Payload of lock:acquire / lock:release / lock:check / lock:subscribe."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        coerce_numbers_to_str=True,
    )

    resource_type: ResourceType
    resource_id: str = Field(..., min_length=1)


class AcquireResult(_WireModel):
    """
    Response to lock:acquire.

    Contention is a normal result: ``success`` is False and ``locked_by``
    names the current holder.
    """

    success: bool
    locked_by: str | None = None
    error: str | None = None

    def to_wire(self) -> dict[str, Any]:
        data = super().to_wire()
        if data["error"] is None:
            del data["error"]
        return data


class ReleaseResult(_WireModel):
    """Response to lock:release."""

    success: bool
    locked_by: str | None = None
    error: str | None = None

    def to_wire(self) -> dict[str, Any]:
        data = super().to_wire()
        return {k: v for k, v in data.items() if k == "success" or v is not None}


class LockUpdate(_WireModel):
    """Payload pushed on lock:update:{resourceType}:{resourceId}."""

    is_locked: bool
    locked_by: str | None = None


class LockStatus(LockUpdate):
    """Response to lock:check."""

    acquired_at: datetime | None = None

    @field_serializer("acquired_at")
    def _serialize_acquired_at(self, value: datetime | None) -> int | None:
        return to_epoch_ms(value) if value is not None else None

    @classmethod
    def from_record(cls, record: LockRecord | None) -> LockStatus:
        if record is None:
            return cls(is_locked=False, locked_by=None, acquired_at=None)
        return cls(
            is_locked=True,
            locked_by=record.holder_username,
            acquired_at=record.acquired_at,
        )


__all__ = [
    "LockRecord",
    "AcquireStatus",
    "ReleaseStatus",
    "AcquireOutcome",
    "ReleaseOutcome",
    "LockRequest",
    "AcquireResult",
    "ReleaseResult",
    "LockUpdate",
    "LockStatus",
    "to_epoch_ms",
    "from_epoch_ms",
]
