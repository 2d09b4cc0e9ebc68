from pydantic import BaseModel


class ProductRead(BaseModel):
    id: int
    barcode: str
    product_code: str
    name: str
    department: str
    category: str
    subcategory: str
