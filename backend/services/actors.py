import logging
import uuid
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from db.users import User
from services.errors import ActorNotFound, ActorProvisioningFailed, storage_guard

logger = logging.getLogger(__name__)

# Never matches a real password hash, so the placeholder actor cannot log in.
UNUSABLE_PASSWORD = "!"


class DefaultActorProvider:
    """
    Supplies the actor used when a movement arrives without one.

    Looks up the oldest existing actor; creates the placeholder identity only
    when there is none. Repeated calls converge on the same actor.
    """

    def __init__(self, email: str, full_name: str):
        self.email = email
        self.full_name = full_name

    async def get(self, db: AsyncSession) -> User:
        async with storage_guard("actor lookup"):
            existing = await self._first(db)
        if existing is not None:
            return existing

        actor = User(
            email=self.email,
            full_name=self.full_name,
            hashed_password=UNUSABLE_PASSWORD,
            is_active=True,
            is_superuser=False,
            is_verified=False,
        )
        db.add(actor)
        try:
            await db.commit()
        except IntegrityError:
            # Someone else created it first; take theirs.
            await db.rollback()
            existing = await self._first(db)
            if existing is None:
                raise ActorProvisioningFailed(
                    "Default actor could not be created",
                    {"email": self.email},
                )
            return existing
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error("Default actor creation failed: %s", e)
            raise ActorProvisioningFailed(
                f"Default actor could not be created: {e}",
                {"email": self.email},
            ) from e

        await db.refresh(actor)
        logger.info("Created default actor %s (%s)", actor.id, actor.email)
        return actor

    async def _first(self, db: AsyncSession) -> Optional[User]:
        res = await db.execute(select(User).order_by(User.created_at.asc(), User.id.asc()).limit(1))
        return res.scalar_one_or_none()


def get_default_actor_provider() -> DefaultActorProvider:
    return DefaultActorProvider(settings.default_actor_email, settings.default_actor_name)


async def require_actor(db: AsyncSession, actor_id) -> uuid.UUID:
    """Validate a caller-supplied actor id and return it as a UUID."""
    try:
        parsed = actor_id if isinstance(actor_id, uuid.UUID) else uuid.UUID(str(actor_id).strip())
    except (ValueError, AttributeError):
        raise ActorNotFound(
            f"Actor id is not a valid UUID: {actor_id}",
            {"field": "actor_id", "value": str(actor_id)},
        )
    async with storage_guard("actor lookup"):
        actor = await db.get(User, parsed)
    if actor is None:
        raise ActorNotFound(
            f"Actor not found: {parsed}",
            {"field": "actor_id", "value": str(parsed)},
        )
    return actor.id
