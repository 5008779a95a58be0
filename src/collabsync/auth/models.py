"""Identity decoded from a connection credential."""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class Identity(BaseModel):
    """
    Authenticated identity attached to a connection.

    Built from the claims of the bearer token presented at connect time.
    The REST login issues ``id``; ``userId`` and ``user_id`` are accepted
    too. Numeric identifiers are normalized to strings so lock ownership
    compares the same way everywhere.

    Attributes:
        user_id: Stable user identifier
        username: Display name, reported to other clients as the lock holder
        role: Role name from the token (opaque to this package)
        member_id: Linked member record, if the user is a member
    """

    model_config = ConfigDict(frozen=True, coerce_numbers_to_str=True, extra="ignore")

    user_id: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("userId", "id", "user_id"),
    )
    username: str = Field(..., min_length=1)
    role: str | None = None
    member_id: str | None = Field(
        default=None,
        validation_alias=AliasChoices("memberId", "member_id"),
    )

    def to_claims(self) -> dict[str, Any]:
        """Claims in the shape the REST login puts into tokens."""
        return {
            "id": self.user_id,
            "username": self.username,
            "role": self.role,
            "memberId": self.member_id,
        }
