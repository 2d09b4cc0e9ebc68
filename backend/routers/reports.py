from datetime import timedelta

from fastapi import APIRouter, Depends
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from db.database import get_async_session, utcnow
from db.product import Product as ProductModel
from schemas.stock import StatsOut
from services.errors import storage_guard
from services.ledger import MovementFilter, count_movements
from services.stock import locations_with_stock

router = APIRouter()


@router.get("/stats", response_model=StatsOut)
async def get_stats(db: AsyncSession = Depends(get_async_session)):
    """Dashboard counters, all derived from the ledger and catalog."""
    async with storage_guard("stats"):
        res = await db.execute(select(func.count(ProductModel.id)))
        total_products = int(res.scalar_one())

    since = utcnow() - timedelta(days=30)
    return StatsOut(
        total_products=total_products,
        locations_with_stock=len(await locations_with_stock(db)),
        monthly_movements=await count_movements(db, MovementFilter(start=since)),
    )
