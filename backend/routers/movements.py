from datetime import datetime
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from core.auth import current_optional_user
from core.config import settings
from db.database import get_async_session
from db.users import User
from schemas.movements import MovementCreate, MovementKind, MovementOut
from services.actors import DefaultActorProvider, get_default_actor_provider
from services.intake import record_movement
from services.ledger import MovementFilter, query_movements
from services.refs import MAX_ID

router = APIRouter()


@router.post("/", response_model=MovementOut, status_code=status.HTTP_201_CREATED)
async def create_movement(
    payload: MovementCreate,
    db: AsyncSession = Depends(get_async_session),
    user: Optional[User] = Depends(current_optional_user),
    actor_provider: DefaultActorProvider = Depends(get_default_actor_provider),
):
    movement = await record_movement(
        db,
        payload,
        actor_provider=actor_provider,
        current_user=user,
        reject_overdraw=settings.reject_overdraw,
    )
    return MovementOut(**movement.to_schema)


@router.get("/", response_model=List[MovementOut])
async def list_movements(
    product_id: Optional[int] = Query(default=None, ge=1, le=MAX_ID),
    location_id: Optional[int] = Query(default=None, ge=1, le=MAX_ID),
    actor_id: Optional[UUID] = None,
    kind: Optional[MovementKind] = None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    limit: Optional[int] = Query(default=None, ge=1, le=1000),
    db: AsyncSession = Depends(get_async_session),
):
    """Ledger entries, most recent first, optionally filtered."""
    movements = await query_movements(
        db,
        MovementFilter(
            product_id=product_id,
            location_id=location_id,
            actor_id=actor_id,
            kind=kind,
            start=start,
            end=end,
            limit=limit,
        ),
    )
    return [MovementOut(**m.to_schema) for m in movements]


@router.get("/product/{product_id}", response_model=List[MovementOut])
async def list_movements_by_product(
    product_id: int = Path(ge=1, le=MAX_ID),
    db: AsyncSession = Depends(get_async_session),
):
    movements = await query_movements(db, MovementFilter(product_id=product_id))
    return [MovementOut(**m.to_schema) for m in movements]


@router.get("/location/{location_id}", response_model=List[MovementOut])
async def list_movements_by_location(
    location_id: int = Path(ge=1, le=MAX_ID),
    db: AsyncSession = Depends(get_async_session),
):
    movements = await query_movements(db, MovementFilter(location_id=location_id))
    return [MovementOut(**m.to_schema) for m in movements]


@router.get("/actor/{actor_id}", response_model=List[MovementOut])
async def list_movements_by_actor(actor_id: UUID, db: AsyncSession = Depends(get_async_session)):
    movements = await query_movements(db, MovementFilter(actor_id=actor_id))
    return [MovementOut(**m.to_schema) for m in movements]
