from datetime import datetime, timezone
from typing import Any, Generic, Optional, Type, TypeVar
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from specflow.utils.logging import get_logger

ModelType = TypeVar("ModelType")

LOGGER = get_logger(__name__)


class BaseRepository(Generic[ModelType]):
    """Shared persistence for one mapped table.

    Every write commits immediately. A failed write rolls the session back,
    is logged with the model name and re-raised so the request handler
    decides how to surface it.
    """

    def __init__(self, session: AsyncSession, model: Type[ModelType]):
        """Bind the repository to a session.

        Args:
            session: Request-scoped async session
            model: Mapped class whose rows this repository reads and writes
        """
        self.session = session
        self.model = model
        self.logger = LOGGER

    async def get_by_id(self, id: UUID) -> Optional[ModelType]:
        result = await self.session.execute(select(self.model).where(self.model.id == id))
        return result.scalar_one_or_none()

    async def create(self, **values: Any) -> ModelType:
        """Insert one row built from ``values`` and commit.

        Returns:
            The persisted instance with server defaults flushed in
        """
        instance = self.model(**values)
        self.session.add(instance)
        await self._commit(f"insert {self.model.__name__}")
        return instance

    async def save(self, instance: ModelType, **changes: Any) -> ModelType:
        """Apply ``changes`` to a loaded instance, stamp ``updated_at`` and commit."""
        for column, value in changes.items():
            if hasattr(instance, column):
                setattr(instance, column, value)
        if hasattr(instance, "updated_at"):
            instance.updated_at = datetime.now(timezone.utc)

        await self._commit(f"update {self.model.__name__}")
        return instance

    async def delete(self, id: UUID) -> bool:
        """Remove the row with ``id``; False when there was nothing to remove."""
        instance = await self.get_by_id(id)
        if instance is None:
            return False

        await self.session.delete(instance)
        await self._commit(f"delete {self.model.__name__} {id}")
        return True

    async def _commit(self, action: str) -> None:
        try:
            await self.session.flush()
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            self.logger.error(f"Failed to {action}: {e}", exc_info=True)
            raise
