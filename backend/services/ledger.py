"""
Movement ledger store.

Append-only: `append_movement` is the only write. There is deliberately no
update or delete; corrections are new movements.
"""
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from db.movement import MOVEMENT_KINDS, Movement
from services.errors import storage_guard

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MovementFilter:
    product_id: Optional[int] = None
    location_id: Optional[int] = None
    actor_id: Optional[uuid.UUID] = None
    kind: Optional[str] = None
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    limit: Optional[int] = None


async def append_movement(
    db: AsyncSession,
    *,
    actor_id: uuid.UUID,
    product_id: int,
    location_id: int,
    kind: str,
    quantity: int,
) -> Movement:
    """Persist one fully-resolved movement; assigns id and timestamp."""
    if kind not in MOVEMENT_KINDS:
        raise ValueError(f"kind must be one of {MOVEMENT_KINDS}, got {kind!r}")
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        raise ValueError(f"quantity must be a positive integer, got {quantity!r}")

    movement = Movement(
        actor_id=actor_id,
        product_id=product_id,
        location_id=location_id,
        kind=kind,
        quantity=quantity,
    )
    async with storage_guard("movement append"):
        db.add(movement)
        await db.commit()
        await db.refresh(movement)

    logger.info(
        "Movement %s: %s %d of product %s at location %s by %s",
        movement.id, kind, quantity, product_id, location_id, actor_id,
    )
    return movement


def _apply_filter(stmt, f: MovementFilter):
    if f.product_id is not None:
        stmt = stmt.where(Movement.product_id == f.product_id)
    if f.location_id is not None:
        stmt = stmt.where(Movement.location_id == f.location_id)
    if f.actor_id is not None:
        stmt = stmt.where(Movement.actor_id == f.actor_id)
    if f.kind is not None:
        stmt = stmt.where(Movement.kind == f.kind)
    if f.start is not None:
        stmt = stmt.where(Movement.created_at >= f.start)
    if f.end is not None:
        stmt = stmt.where(Movement.created_at <= f.end)
    return stmt


async def query_movements(db: AsyncSession, f: Optional[MovementFilter] = None) -> List[Movement]:
    """Movements matching `f`, most recent first."""
    f = f or MovementFilter()
    stmt = _apply_filter(select(Movement), f).order_by(Movement.created_at.desc(), Movement.id.desc())
    if f.limit is not None:
        stmt = stmt.limit(f.limit)
    async with storage_guard("movement query"):
        res = await db.execute(stmt)
        return list(res.scalars().all())


async def count_movements(db: AsyncSession, f: Optional[MovementFilter] = None) -> int:
    stmt = _apply_filter(select(func.count(Movement.id)), f or MovementFilter())
    async with storage_guard("movement count"):
        res = await db.execute(stmt)
        return int(res.scalar_one())
