from datetime import datetime, timezone
from typing import Any, Dict, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from specflow.database.models import ProjectWorkflow, WorkflowResponse
from specflow.repositories.base_repository import BaseRepository


class WorkflowRepository(BaseRepository[ProjectWorkflow]):
    """Repository for per-project guided workflow records."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, ProjectWorkflow)

    async def get_by_project(
        self,
        project_id: UUID,
        include_responses: bool = False,
    ) -> Optional[ProjectWorkflow]:
        """Get the workflow of a project.

        Args:
            project_id: Project UUID
            include_responses: Eagerly load the step responses

        Returns:
            The workflow, or None when the project has not started one
        """
        query = select(self.model).where(self.model.project_id == project_id)
        if include_responses:
            query = query.options(selectinload(self.model.responses)).execution_options(populate_existing=True)
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def create_workflow(self, project_id: UUID) -> ProjectWorkflow:
        """Start a workflow at step 1."""
        return await self.create(
            project_id=project_id,
            current_step=1,
            is_completed=False,
            started_at=datetime.now(timezone.utc),
        )

    async def advance_to(self, workflow: ProjectWorkflow, step_id: int) -> ProjectWorkflow:
        return await self.save(workflow, current_step=step_id)

    async def mark_completed(self, workflow: ProjectWorkflow) -> ProjectWorkflow:
        return await self.save(
            workflow,
            is_completed=True,
            completed_at=datetime.now(timezone.utc),
        )


class WorkflowResponseRepository(BaseRepository[WorkflowResponse]):
    """Repository for the per-step response documents."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, WorkflowResponse)

    async def get_by_workflow_and_step(
        self,
        workflow_id: UUID,
        step_id: int,
    ) -> Optional[WorkflowResponse]:
        """Get the response document of one step.

        Args:
            workflow_id: Parent workflow UUID
            step_id: Step number

        Returns:
            The response row, or None when the step has no document yet
        """
        query = select(self.model).where(
            self.model.workflow_id == workflow_id,
            self.model.step_id == step_id,
        )
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def create_response(
        self,
        workflow_id: UUID,
        step_id: int,
        responses: Dict[str, Any],
        completed: bool = False,
        ai_suggestions: Optional[str] = None,
    ) -> WorkflowResponse:
        return await self.create(
            workflow_id=workflow_id,
            step_id=step_id,
            responses=responses,
            completed=completed,
            ai_suggestions=ai_suggestions,
        )

    async def replace_responses(
        self,
        response: WorkflowResponse,
        responses: Dict[str, Any],
    ) -> WorkflowResponse:
        """Overwrite the stored document of an existing response row."""
        return await self.save(response, responses=responses)

    async def upsert_step(
        self,
        workflow_id: UUID,
        step_id: int,
        responses: Dict[str, Any],
        completed: bool,
        ai_suggestions: Optional[str] = None,
    ) -> WorkflowResponse:
        """Create or fully update the response of a step from a user save."""
        existing = await self.get_by_workflow_and_step(workflow_id, step_id)
        if existing is None:
            return await self.create_response(
                workflow_id, step_id, responses, completed=completed, ai_suggestions=ai_suggestions
            )
        return await self.save(
            existing,
            responses=responses,
            completed=completed,
            ai_suggestions=ai_suggestions,
        )
