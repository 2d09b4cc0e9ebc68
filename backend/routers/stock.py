from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from db.database import get_async_session
from db.location import Location
from schemas.stock import LocationStockOut, ProductStockBreakdown, StockOut
from services.catalog import resolve_product
from services.locations import LocationDirectory
from services.stock import derive_stock, stock_by_location

router = APIRouter()


@router.get("/", response_model=StockOut)
async def get_stock(
    product_id: str,
    location_id: Optional[str] = None,
    db: AsyncSession = Depends(get_async_session),
):
    """
    Current stock of a product, at one location or across all of them.

    Both parameters accept an id or a code (product code/barcode, address).
    """
    pid = await resolve_product(db, product_id)
    lid = await LocationDirectory(db).resolve(location_id) if location_id is not None else None
    quantity = await derive_stock(db, product_id=pid, location_id=lid)
    return StockOut(product_id=pid, location_id=lid, quantity=quantity)


@router.get("/product/{product_ref}/locations", response_model=ProductStockBreakdown)
async def get_stock_breakdown(product_ref: str, db: AsyncSession = Depends(get_async_session)):
    pid = await resolve_product(db, product_ref)
    per_location = await stock_by_location(db, product_id=pid)

    rows = []
    for location_id, quantity in per_location.items():
        loc = await db.get(Location, location_id)
        rows.append(
            LocationStockOut(
                location_id=location_id,
                address=loc.display_address if loc else str(location_id),
                quantity=quantity,
            )
        )
    return ProductStockBreakdown(product_id=pid, total=sum(r.quantity for r in rows), locations=rows)
