from typing import List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from specflow.core.exceptions import NotFoundError
from specflow.database.models import Project
from specflow.repositories.project_repository import ProjectRepository
from specflow.utils.logging import get_logger

LOGGER = get_logger(__name__)


class ProjectService:
    """Project creation, listing and ownership checks."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.project_repo = ProjectRepository(session)

    async def create_project(self, user_id: str, name: str, description: Optional[str] = None) -> Project:
        project = await self.project_repo.create(user_id=user_id, name=name, description=description)
        LOGGER.info(f"Created project {project.id} for user {user_id}")
        return project

    async def list_projects(self, user_id: str) -> List[Project]:
        return await self.project_repo.list_for_user(user_id)

    async def require_owned(self, project_id: UUID, user_id: str) -> Project:
        """Return the project if ``user_id`` owns it.

        Raises:
            NotFoundError: If the project does not exist or belongs to someone else
        """
        project = await self.project_repo.get_owned(project_id, user_id)
        if project is None:
            raise NotFoundError("Project not found")
        return project
