"""
Movement intake: turn a human-facing movement request into one ledger append.

All resolution and validation happens before the single write, so a
rejected request leaves the ledger untouched.
"""
import logging
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from db.location import Location
from db.movement import Movement
from db.users import User
from schemas.movements import MovementCreate
from services.actors import DefaultActorProvider, require_actor
from services.catalog import resolve_product
from services.errors import InsufficientStock, InvalidKind, InvalidQuantity, MissingField, storage_guard
from services.ledger import append_movement
from services.locations import LocationDirectory
from services.stock import derive_stock

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("product_ref", "location_ref", "kind", "quantity")

_KIND_ALIASES = {
    "IN": "IN",
    "ENTRY": "IN",
    "ENTRADA": "IN",
    "OUT": "OUT",
    "EXIT": "OUT",
    "SAIDA": "OUT",
}


def normalize_kind(value: Any) -> str:
    kind = _KIND_ALIASES.get(str(value).strip().upper()) if isinstance(value, str) else None
    if kind is None:
        raise InvalidKind(
            f"Movement kind must be IN or OUT, got {value!r}",
            {"field": "kind", "value": value, "allowed": ["IN", "OUT"]},
        )
    return kind


def validate_quantity(value: Any) -> int:
    """Positive integer, or a string spelling one. Floats and bools are rejected."""
    qty = None
    if isinstance(value, int) and not isinstance(value, bool):
        qty = value
    elif isinstance(value, str) and value.strip().isascii() and value.strip().isdigit():
        qty = int(value.strip())
    if qty is None or qty <= 0:
        raise InvalidQuantity(
            f"Quantity must be a positive integer, got {value!r}",
            {"field": "quantity", "value": value},
        )
    return qty


def check_required(request: MovementCreate) -> None:
    missing = [name for name in REQUIRED_FIELDS if getattr(request, name) is None]
    if missing:
        raise MissingField(
            f"Missing required field(s): {', '.join(missing)}",
            {"fields": missing},
        )


async def record_movement(
    db: AsyncSession,
    request: MovementCreate,
    *,
    actor_provider: DefaultActorProvider,
    current_user: Optional[User] = None,
    reject_overdraw: bool = True,
) -> Movement:
    """
    Validate, resolve and append one movement.

    Actor precedence: explicit `actor_id` in the request, then the
    authenticated user, then the default actor from `actor_provider`.

    With `reject_overdraw`, an OUT larger than the current derived stock is
    refused. The check and the append run under a row lock on the location so
    concurrent withdrawals from the same location are serialized (on backends
    that support SELECT ... FOR UPDATE).
    """
    check_required(request)

    kind = normalize_kind(request.kind)
    product_id = await resolve_product(db, request.product_ref)
    location_id = await LocationDirectory(db).resolve(request.location_ref)

    if request.actor_id is not None:
        actor_id = await require_actor(db, request.actor_id)
    elif current_user is not None:
        actor_id = current_user.id
    else:
        actor_id = (await actor_provider.get(db)).id

    quantity = validate_quantity(request.quantity)

    if kind == "OUT" and reject_overdraw:
        async with storage_guard("location lock"):
            await db.execute(select(Location.id).where(Location.id == location_id).with_for_update())
        available = await derive_stock(db, product_id=product_id, location_id=location_id)
        if quantity > available:
            # The lock is released when the caller ends the transaction.
            logger.warning(
                "Rejected OUT %d of product %s at location %s: only %d available",
                quantity, product_id, location_id, available,
            )
            raise InsufficientStock(
                f"Insufficient stock: requested {quantity}, available {available}",
                {
                    "product_id": product_id,
                    "location_id": location_id,
                    "requested": quantity,
                    "available": available,
                },
            )

    return await append_movement(
        db,
        actor_id=actor_id,
        product_id=product_id,
        location_id=location_id,
        kind=kind,
        quantity=quantity,
    )
