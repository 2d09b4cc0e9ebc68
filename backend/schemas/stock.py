from typing import List, Optional

from pydantic import BaseModel


class StockOut(BaseModel):
    product_id: int
    location_id: Optional[int] = None
    quantity: int


class LocationStockOut(BaseModel):
    location_id: int
    address: str
    quantity: int


class ProductStockBreakdown(BaseModel):
    product_id: int
    total: int
    locations: List[LocationStockOut]


class StatsOut(BaseModel):
    total_products: int
    locations_with_stock: int
    monthly_movements: int


class ProductAtLocationOut(BaseModel):
    product_id: int
    product_code: str
    name: str
    quantity: int


class LocationContentsOut(BaseModel):
    location_id: int
    address: str
    products: List[ProductAtLocationOut]
