from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from db.database import get_async_session
from db.location import Location
from db.product import Product
from schemas.locations import LocationRead, LocationResolved
from schemas.stock import LocationContentsOut, ProductAtLocationOut
from services.locations import LocationDirectory
from services.stock import stock_by_product_at_location

router = APIRouter()


@router.get("/", response_model=List[LocationRead])
async def list_locations(db: AsyncSession = Depends(get_async_session)):
    """All compartments; address is synthesized from the coordinates when not stored."""
    locations = await LocationDirectory(db).list()
    return [LocationRead(**loc.to_schema) for loc in locations]


@router.get("/resolve/{ref}", response_model=LocationResolved)
async def resolve_location(ref: str, db: AsyncSession = Depends(get_async_session)):
    location_id = await LocationDirectory(db).resolve(ref)
    return LocationResolved(input=ref, location_id=location_id)


@router.post("/recover/{address}", response_model=LocationResolved)
async def recover_location(address: str, db: AsyncSession = Depends(get_async_session)):
    """Re-create one of the required compartments if it went missing."""
    location_id = await LocationDirectory(db).recover(address)
    return LocationResolved(input=address, location_id=location_id)


@router.get("/{ref}/stock", response_model=LocationContentsOut)
async def get_location_contents(ref: str, db: AsyncSession = Depends(get_async_session)):
    """Products currently held in a compartment, with their derived stock."""
    location_id = await LocationDirectory(db).resolve(ref)
    location = await db.get(Location, location_id)
    per_product = await stock_by_product_at_location(db, location_id=location_id)

    products = []
    for product_id, quantity in per_product.items():
        product = await db.get(Product, product_id)
        products.append(
            ProductAtLocationOut(
                product_id=product_id,
                product_code=product.product_code if product else str(product_id),
                name=product.name if product else "",
                quantity=quantity,
            )
        )
    return LocationContentsOut(location_id=location_id, address=location.display_address, products=products)
