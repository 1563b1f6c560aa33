from typing import Any, Dict, Iterable, List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from specflow.core.exceptions import ConflictError
from specflow.database.models import DataFlowRelationship
from specflow.repositories.base_repository import BaseRepository

UNIQUE_CONSTRAINT = "uq_data_flow_relationship"


class DataFlowRepository(BaseRepository[DataFlowRelationship]):
    """Repository for step-to-step field mapping relationships."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, DataFlowRelationship)

    async def get_active(
        self,
        project_id: UUID,
        source_step_id: int,
        target_step_id: int,
    ) -> List[DataFlowRelationship]:
        """Get the active relationships for one source -> target transition.

        Args:
            project_id: Owning project
            source_step_id: Step whose document is read
            target_step_id: Step whose document is written

        Returns:
            Relationships in creation order.
        """
        query = (
            select(self.model)
            .where(
                self.model.project_id == project_id,
                self.model.source_step_id == source_step_id,
                self.model.target_step_id == target_step_id,
                self.model.is_active.is_(True),
            )
            .order_by(self.model.created_at, self.model.id)
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def list_for_project(self, project_id: UUID) -> List[DataFlowRelationship]:
        """Get every relationship of a project, active or not, ordered by step pair."""
        query = (
            select(self.model)
            .where(self.model.project_id == project_id)
            .order_by(self.model.source_step_id, self.model.target_step_id, self.model.created_at)
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def create_relationship(
        self,
        project_id: UUID,
        source_step_id: int,
        target_step_id: int,
        source_field: str,
        target_field: str,
        transform_type: Optional[str] = None,
        transform_config: Optional[Dict[str, Any]] = None,
    ) -> DataFlowRelationship:
        """Create a single relationship.

        Raises:
            ConflictError: If the project already maps this field pair between these steps
        """
        try:
            return await self.create(
                project_id=project_id,
                source_step_id=source_step_id,
                target_step_id=target_step_id,
                source_field=source_field,
                target_field=target_field,
                transform_type=transform_type,
                transform_config=transform_config,
                is_active=True,
            )
        except IntegrityError as e:
            raise ConflictError(
                f"Relationship {source_step_id}:{source_field} -> {target_step_id}:{target_field} already exists",
                original_error=e,
            ) from e

    async def insert_ignoring_duplicates(self, rows: Iterable[Dict[str, Any]]) -> int:
        """Insert relationship rows, skipping any that hit the uniqueness constraint.

        Args:
            rows: Column values per relationship

        Returns:
            Number of rows actually inserted
        """
        inserted = 0
        try:
            for row in rows:
                stmt = (
                    insert(self.model)
                    .values(**row)
                    .on_conflict_do_nothing(constraint=UNIQUE_CONSTRAINT)
                    .returning(self.model.id)
                )
                result = await self.session.execute(stmt)
                if result.scalar_one_or_none() is not None:
                    inserted += 1
            await self.session.commit()
            return inserted
        except SQLAlchemyError as e:
            await self.session.rollback()
            self.logger.error(
                f"Error seeding {self.model.__name__} rows: {str(e)}",
                exc_info=True
            )
            raise
