from sqlalchemy import Column, DateTime, Integer, String
from sqlalchemy.sql import func

from .database import Base, utcnow


class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, autoincrement=True)
    barcode = Column(String, nullable=False, unique=True, index=True)
    product_code = Column(String, nullable=False, unique=True, index=True)
    name = Column(String, nullable=False)
    department = Column(String, nullable=False)
    category = Column(String, nullable=False)
    subcategory = Column(String, nullable=False)

    created_at = Column(DateTime, nullable=False, default=utcnow, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, default=utcnow, server_default=func.now(), onupdate=utcnow)

    @property
    def to_schema(self):
        return {
            "id": self.id,
            "barcode": self.barcode,
            "product_code": self.product_code,
            "name": self.name,
            "department": self.department,
            "category": self.category,
            "subcategory": self.subcategory,
        }
