from datetime import datetime
from typing import Any, Literal, Optional
from uuid import UUID

from pydantic import AliasChoices, BaseModel, Field, field_validator


MovementKind = Literal["IN", "OUT"]


class MovementCreate(BaseModel):
    """
    Movement request in human-facing terms.

    Every field is optional at this layer so that intake can report a
    missing field as `MissingField` instead of a generic validation error.
    Older dashboard field names are accepted as aliases.
    """
    actor_id: Optional[Any] = Field(
        default=None,
        validation_alias=AliasChoices("actor_id", "actorId", "user_id"),
    )
    product_ref: Optional[Any] = Field(
        default=None,
        validation_alias=AliasChoices("product_ref", "productRef", "product_id"),
    )
    location_ref: Optional[Any] = Field(
        default=None,
        validation_alias=AliasChoices("location_ref", "locationRef", "location_id", "compartment_id", "address"),
    )
    kind: Optional[Any] = Field(default=None, validation_alias=AliasChoices("kind", "tipo", "type"))
    quantity: Optional[Any] = Field(default=None, validation_alias=AliasChoices("quantity", "qty"))

    @field_validator("actor_id", "product_ref", "location_ref", "kind")
    @classmethod
    def _blank_is_missing(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v


class MovementOut(BaseModel):
    id: int
    actor_id: UUID
    product_id: int
    location_id: int
    kind: MovementKind
    quantity: int
    timestamp: datetime
