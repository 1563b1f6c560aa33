"""Management of a project's data flow relationships on behalf of a user."""

from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from specflow.core.exceptions import NotFoundError
from specflow.database.models import DataFlowRelationship
from specflow.repositories.dataflow_repository import DataFlowRepository
from specflow.services.dataflow.engine import DataFlowContext, DataFlowEngine, FieldMapping
from specflow.services.dataflow.transforms import TransformType
from specflow.services.project_service import ProjectService
from specflow.utils.logging import get_logger

LOGGER = get_logger(__name__)


class DataFlowService:
    """Ownership-checked CRUD over relationships plus on-demand propagation."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.projects = ProjectService(session)
        self.relationship_repo = DataFlowRepository(session)
        self.engine = DataFlowEngine(session, relationship_repo=self.relationship_repo)

    async def list_relationships(self, project_id: UUID, user_id: str) -> List[DataFlowRelationship]:
        await self.projects.require_owned(project_id, user_id)
        return await self.relationship_repo.list_for_project(project_id)

    async def create_relationship(
        self,
        user_id: str,
        project_id: UUID,
        source_step_id: int,
        target_step_id: int,
        source_field: str,
        target_field: str,
        transform_type: Optional[TransformType] = None,
        transform_config: Optional[Dict[str, Any]] = None,
    ) -> DataFlowRelationship:
        """Add a relationship to a project.

        Raises:
            NotFoundError: If the project is not the caller's
            ConflictError: If the same field pair is already mapped between these steps
        """
        await self.projects.require_owned(project_id, user_id)
        relationship = await self.relationship_repo.create_relationship(
            project_id=project_id,
            source_step_id=source_step_id,
            target_step_id=target_step_id,
            source_field=source_field,
            target_field=target_field,
            transform_type=transform_type.value if transform_type else None,
            transform_config=transform_config,
        )
        LOGGER.info(
            f"Created data flow {source_step_id}:{source_field} -> {target_step_id}:{target_field} "
            f"for project {project_id}"
        )
        return relationship

    async def process(
        self,
        user_id: str,
        project_id: UUID,
        source_step_id: int,
        target_step_id: int,
    ) -> List[FieldMapping]:
        """Propagate one step transition now and return what was written."""
        await self.projects.require_owned(project_id, user_id)
        return await self.engine.propagate(
            DataFlowContext(
                project_id=project_id,
                source_step_id=source_step_id,
                target_step_id=target_step_id,
            )
        )

    async def set_active(self, relationship_id: UUID, user_id: str, is_active: bool) -> DataFlowRelationship:
        relationship = await self._require_owned_relationship(relationship_id, user_id)
        return await self.relationship_repo.save(relationship, is_active=is_active)

    async def delete_relationship(self, relationship_id: UUID, user_id: str) -> None:
        await self._require_owned_relationship(relationship_id, user_id)
        await self.relationship_repo.delete(relationship_id)

    async def _require_owned_relationship(self, relationship_id: UUID, user_id: str) -> DataFlowRelationship:
        relationship = await self.relationship_repo.get_by_id(relationship_id)
        if relationship is None or await self.projects.project_repo.get_owned(relationship.project_id, user_id) is None:
            raise NotFoundError("Data flow relationship not found")
        return relationship
