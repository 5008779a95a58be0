"""Change notification model."""

from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic_core import to_jsonable_python

from collabsync.types import ChangeKind, ResourceType, change_event_name


class ChangeEvent(BaseModel):
    """
    "Entity E of type T changed in way K."

    Published by REST handlers after their own write succeeded. Clients
    treat it as a hint to refetch, never as an authoritative diff.

    Attributes:
        entity_type: Type of the changed entity
        change_kind: CREATE, UPDATE or DELETE
        payload: Entity representation, or just its id for DELETE
    """

    model_config = ConfigDict(frozen=True)

    entity_type: ResourceType
    change_kind: ChangeKind
    payload: Any = None

    @property
    def event_name(self) -> str:
        return change_event_name(self.entity_type)

    def to_wire(self) -> dict[str, Any]:
        return {
            "type": self.change_kind.value,
            "data": to_jsonable_python(self.payload, by_alias=True),
        }


__all__ = ["ChangeEvent"]
