from fastapi_users.db import SQLAlchemyBaseUserTableUUID
from sqlalchemy import Column, DateTime, String
from sqlalchemy.sql import func

from .database import Base, utcnow


class User(SQLAlchemyBaseUserTableUUID, Base):
    """Actor identity: every movement is attributed to one of these."""
    __tablename__ = "users"

    full_name = Column(String, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow, server_default=func.now(), index=True)

    @property
    def to_schema(self):
        return {
            "id": self.id,
            "email": self.email,
            "full_name": self.full_name,
        }
