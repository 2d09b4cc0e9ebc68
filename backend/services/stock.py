"""
Current stock, derived from the ledger.

Nothing here is stored: every read folds the matching movements,
`max(0, sum(IN) - sum(OUT))`. Order of movements does not matter.
"""
from typing import Dict, Iterable, List, Optional

from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from db.movement import Movement
from services.errors import storage_guard

_signed_quantity = case((Movement.kind == "IN", Movement.quantity), else_=-Movement.quantity)


def fold_quantity(movements: Iterable[Movement]) -> int:
    """Stock for an in-memory sequence of movements."""
    return max(0, sum(m.signed_quantity for m in movements))


async def net_quantity(db: AsyncSession, *, product_id: int, location_id: Optional[int] = None) -> int:
    """Raw IN - OUT balance, which may be negative."""
    stmt = select(func.coalesce(func.sum(_signed_quantity), 0)).where(Movement.product_id == product_id)
    if location_id is not None:
        stmt = stmt.where(Movement.location_id == location_id)
    async with storage_guard("stock derivation"):
        res = await db.execute(stmt)
        return int(res.scalar_one() or 0)


async def derive_stock(db: AsyncSession, *, product_id: int, location_id: Optional[int] = None) -> int:
    """
    Stock of a product at one location, or across all locations when
    `location_id` is None. Returns 0 when there is no history.
    """
    return max(0, await net_quantity(db, product_id=product_id, location_id=location_id))


async def stock_by_location(db: AsyncSession, *, product_id: int) -> Dict[int, int]:
    """{location_id: stock} for every location where the product currently has stock."""
    stmt = (
        select(Movement.location_id, func.sum(_signed_quantity))
        .where(Movement.product_id == product_id)
        .group_by(Movement.location_id)
        .order_by(Movement.location_id.asc())
    )
    async with storage_guard("stock derivation"):
        res = await db.execute(stmt)
        rows = res.all()
    return {int(loc_id): int(qty) for loc_id, qty in rows if int(qty or 0) > 0}


async def stock_by_product_at_location(db: AsyncSession, *, location_id: int) -> Dict[int, int]:
    """{product_id: stock} for every product currently held at the location."""
    stmt = (
        select(Movement.product_id, func.sum(_signed_quantity))
        .where(Movement.location_id == location_id)
        .group_by(Movement.product_id)
        .order_by(Movement.product_id.asc())
    )
    async with storage_guard("stock derivation"):
        res = await db.execute(stmt)
        rows = res.all()
    return {int(product_id): int(qty) for product_id, qty in rows if int(qty or 0) > 0}


async def locations_with_stock(db: AsyncSession) -> List[int]:
    """Location ids holding a positive balance of at least one product."""
    per_pair = (
        select(Movement.location_id.label("location_id"), func.sum(_signed_quantity).label("qty"))
        .group_by(Movement.product_id, Movement.location_id)
        .subquery()
    )
    stmt = select(per_pair.c.location_id).where(per_pair.c.qty > 0).distinct().order_by(per_pair.c.location_id)
    async with storage_guard("stock derivation"):
        res = await db.execute(stmt)
        return [int(x) for x in res.scalars().all()]
