from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Index, Integer, Text, Uuid
from sqlalchemy.sql import func

from .database import Base, utcnow


MOVEMENT_KINDS = ("IN", "OUT")


class Movement(Base):
    """Append-only ledger row. Stock is derived from these; rows are never updated or deleted."""
    __tablename__ = "movements"
    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_movements_quantity_positive"),
        CheckConstraint("kind IN ('IN', 'OUT')", name="ck_movements_kind"),
        Index("ix_movements_product_location", "product_id", "location_id"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    actor_id = Column(Uuid, ForeignKey("users.id"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)
    location_id = Column(Integer, ForeignKey("locations.id"), nullable=False, index=True)

    kind = Column(Text, nullable=False)  # 'IN' | 'OUT'
    quantity = Column(Integer, nullable=False)

    created_at = Column(DateTime, nullable=False, default=utcnow, server_default=func.now(), index=True)

    @property
    def signed_quantity(self) -> int:
        return self.quantity if self.kind == "IN" else -self.quantity

    @property
    def to_schema(self):
        return {
            "id": self.id,
            "actor_id": self.actor_id,
            "product_id": self.product_id,
            "location_id": self.location_id,
            "kind": self.kind,
            "quantity": self.quantity,
            "timestamp": self.created_at,
        }
