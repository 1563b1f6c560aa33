from typing import List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from specflow.database.models import Project
from specflow.repositories.base_repository import BaseRepository


class ProjectRepository(BaseRepository[Project]):
    """Repository for managing Project records."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, Project)

    async def get_owned(self, project_id: UUID, user_id: str) -> Optional[Project]:
        """Get a project only if it belongs to ``user_id``."""
        query = select(self.model).where(
            self.model.id == project_id,
            self.model.user_id == user_id,
        )
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def list_for_user(self, user_id: str) -> List[Project]:
        query = (
            select(self.model)
            .where(self.model.user_id == user_id)
            .order_by(self.model.created_at.desc())
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())
