"""Read side of the product catalog used by movement intake."""

from typing import List, Optional

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from db.product import Product
from services.errors import ProductNotFound, storage_guard
from services.refs import ById, parse_ref


async def get_product(db: AsyncSession, product_id: int) -> Optional[Product]:
    async with storage_guard("product lookup"):
        return await db.get(Product, product_id)


async def find_product_by_code(db: AsyncSession, code: str) -> Optional[Product]:
    """Exact match on product code or barcode."""
    code = (code or "").strip()
    if not code:
        return None
    async with storage_guard("product lookup"):
        res = await db.execute(
            select(Product)
            .where(or_(Product.product_code == code, Product.barcode == code))
            .order_by(Product.id.asc())
        )
        return res.scalars().first()


async def product_exists(db: AsyncSession, product_id: int) -> bool:
    return await get_product(db, product_id) is not None


async def search_products(db: AsyncSession, term: str) -> List[Product]:
    qq = f"%{(term or '').strip().lower()}%"
    async with storage_guard("product search"):
        res = await db.execute(
            select(Product)
            .where(
                or_(
                    func.lower(Product.name).like(qq),
                    func.lower(Product.product_code).like(qq),
                    func.lower(Product.barcode).like(qq),
                )
            )
            .order_by(func.lower(Product.name).asc())
        )
        return list(res.scalars().all())


async def resolve_product(db: AsyncSession, value) -> int:
    """
    Resolve a product reference to its id.

    A number that fits the id range is tried as an id first and then as a code
    (barcodes are numeric); anything else is looked up by code.
    """
    try:
        ref = parse_ref(value)
    except ValueError:
        raise ProductNotFound("Product reference is empty", {"field": "product_ref", "value": value})

    if isinstance(ref, ById):
        product = await get_product(db, ref.id)
        if product is not None:
            return product.id

    product = await find_product_by_code(db, ref.raw)
    if product is not None:
        return product.id

    raise ProductNotFound(f"Product not found: {ref.raw}", {"field": "product_ref", "value": ref.raw})
