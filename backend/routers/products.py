from typing import List

from fastapi import APIRouter, Depends, HTTPException, Path, Query, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from db.database import get_async_session
from db.product import Product as ProductModel
from schemas.products import ProductRead
from services.catalog import find_product_by_code, get_product, search_products
from services.refs import MAX_ID

router = APIRouter()


@router.get("/", response_model=List[ProductRead])
async def list_products(db: AsyncSession = Depends(get_async_session)):
    res = await db.execute(select(ProductModel).order_by(func.lower(ProductModel.name).asc()))
    return [ProductRead(**p.to_schema) for p in res.scalars().all()]


@router.get("/search", response_model=List[ProductRead])
async def search(q: str = Query(min_length=1), db: AsyncSession = Depends(get_async_session)):
    """Case-insensitive substring match on name, product code and barcode."""
    return [ProductRead(**p.to_schema) for p in await search_products(db, q)]


@router.get("/by-code/{code}", response_model=ProductRead)
async def get_by_code(code: str, db: AsyncSession = Depends(get_async_session)):
    product = await find_product_by_code(db, code)
    if not product:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Product with code {code} not found")
    return ProductRead(**product.to_schema)


@router.get("/{product_id}", response_model=ProductRead)
async def get_by_id(product_id: int = Path(ge=1, le=MAX_ID), db: AsyncSession = Depends(get_async_session)):
    product = await get_product(db, product_id)
    if not product:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Product with id {product_id} not found")
    return ProductRead(**product.to_schema)
