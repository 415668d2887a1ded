from __future__ import annotations

import structlog
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from cronwatch.models.user import User
from cronwatch.utils.exceptions import StorageError

logger = structlog.get_logger(__name__)


class OwnerDirectory:
    """Resolves the notification address of a monitor's owner."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def get_email(self, user_id: int) -> str | None:
        """
        Look up an owner's email.

        Args:
            user_id: Owner ID

        Returns:
            Email address, or None if the owner is unknown

        Raises:
            StorageError: If the lookup itself failed
        """
        try:
            async with self.session_factory() as db:
                result = await db.execute(select(User.email).where(User.id == user_id))
                email = result.scalar_one_or_none()
        except SQLAlchemyError as exc:
            raise StorageError("owner lookup", str(exc)) from exc

        if email is None:
            logger.warning("owner_not_found", user_id=user_id)
        return email
