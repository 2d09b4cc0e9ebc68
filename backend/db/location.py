"""
Fixed storage compartments.

Address format is `<corridor><row><col>`, e.g. "3B7". Some rows were created
with only the coordinates populated, so `address` is nullable and readers go
through `display_address`.
"""

from sqlalchemy import Column, DateTime, Integer, String, UniqueConstraint
from sqlalchemy.sql import func

from .database import Base, utcnow


def format_address(corridor: int, row: str, col: int) -> str:
    return f"{int(corridor)}{(row or '').upper()}{int(col)}"


class Location(Base):
    __tablename__ = "locations"
    __table_args__ = (
        UniqueConstraint("corridor", "row_letter", "col", name="ux_locations_corridor_row_col"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    address = Column(String, nullable=True, unique=True, index=True)
    corridor = Column(Integer, nullable=False)
    row = Column("row_letter", String(1), nullable=False)  # 'A' | 'B' | 'C'
    col = Column(Integer, nullable=False)

    created_at = Column(DateTime, nullable=False, default=utcnow, server_default=func.now())

    @property
    def display_address(self) -> str:
        return self.address or format_address(self.corridor, self.row, self.col)

    @property
    def to_schema(self):
        return {
            "id": self.id,
            "address": self.display_address,
            "corridor": self.corridor,
            "row": self.row,
            "col": self.col,
        }
