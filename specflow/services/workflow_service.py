"""Guided workflow lifecycle: start, step saves and forward propagation."""

from typing import Any, Dict, Optional
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from specflow.core.config import settings
from specflow.core.exceptions import NotFoundError, ValidationError
from specflow.database.models import ProjectWorkflow, WorkflowResponse
from specflow.repositories.workflow_repository import WorkflowRepository, WorkflowResponseRepository
from specflow.services.dataflow.engine import DataFlowContext, DataFlowEngine
from specflow.services.project_service import ProjectService
from specflow.utils.logging import get_logger

LOGGER = get_logger(__name__)


class WorkflowService:
    """Coordinates workflow repositories with the data flow engine.

    Every public method checks that the caller owns the project first.
    """

    def __init__(self, session: AsyncSession):
        """Initialize workflow service with database session.

        Args:
            session: Async database session for repository access
        """
        self.session = session
        self.projects = ProjectService(session)
        self.workflow_repo = WorkflowRepository(session)
        self.response_repo = WorkflowResponseRepository(session)
        self.engine = DataFlowEngine(
            session,
            workflow_repo=self.workflow_repo,
            response_repo=self.response_repo,
        )
        self.total_steps = settings.total_steps

    async def create_workflow(self, project_id: UUID, user_id: str) -> ProjectWorkflow:
        """Start the guided workflow of a project and seed its default data flows.

        Raises:
            NotFoundError: If the project is not the caller's
            ValidationError: If the project already has a workflow
        """
        await self.projects.require_owned(project_id, user_id)

        if await self.workflow_repo.get_by_project(project_id) is not None:
            raise ValidationError("Workflow already exists")

        workflow = await self.workflow_repo.create_workflow(project_id)
        LOGGER.info(f"Started workflow {workflow.id} for project {project_id}")

        if settings.workflow.seed_default_data_flows:
            await self.engine.create_default_data_flows(project_id)

        return await self.workflow_repo.get_by_project(project_id, include_responses=True)

    async def get_workflow(self, project_id: UUID, user_id: str) -> ProjectWorkflow:
        await self.projects.require_owned(project_id, user_id)
        workflow = await self.workflow_repo.get_by_project(project_id, include_responses=True)
        if workflow is None:
            raise NotFoundError("Workflow not found")
        return workflow

    async def get_step_response(self, project_id: UUID, step_id: int, user_id: str) -> WorkflowResponse:
        self._check_step(step_id)
        workflow = await self._require_workflow(project_id, user_id)

        response = await self.response_repo.get_by_workflow_and_step(workflow.id, step_id)
        if response is None:
            raise NotFoundError("Step response not found")
        return response

    async def save_step_response(
        self,
        project_id: UUID,
        step_id: int,
        user_id: str,
        responses: Dict[str, Any],
        completed: bool,
        ai_suggestions: Optional[str] = None,
    ) -> WorkflowResponse:
        """Store a step's answers and move the workflow forward.

        Completing the current step advances ``current_step``; completing the
        last step closes the workflow. Completing any earlier step pushes its
        mapped fields into the next step's document.
        """
        self._check_step(step_id)
        workflow = await self._require_workflow(project_id, user_id)

        response = await self.response_repo.upsert_step(
            workflow.id, step_id, responses, completed=completed, ai_suggestions=ai_suggestions
        )

        if completed and step_id == workflow.current_step and step_id < self.total_steps:
            await self.workflow_repo.advance_to(workflow, step_id + 1)

        if completed and step_id == self.total_steps:
            await self.workflow_repo.mark_completed(workflow)
            LOGGER.info(f"Workflow {workflow.id} completed")

        if completed and step_id < self.total_steps and settings.workflow.propagate_on_step_complete:
            await self._propagate_forward(project_id, step_id, response)

        return response

    async def _propagate_forward(self, project_id: UUID, step_id: int, saved: WorkflowResponse) -> None:
        # A failed propagation only leaves the next step less pre-filled
        context = DataFlowContext(project_id=project_id, source_step_id=step_id, target_step_id=step_id + 1)
        try:
            await self.engine.propagate(context)
        except SQLAlchemyError as e:
            await self.session.rollback()
            LOGGER.warning(
                f"Data flow {step_id} -> {step_id + 1} failed for project {project_id}: {e}",
                exc_info=True,
            )
            # rollback expires every loaded instance; reload the committed save
            await self.session.refresh(saved)

    async def _require_workflow(self, project_id: UUID, user_id: str) -> ProjectWorkflow:
        await self.projects.require_owned(project_id, user_id)
        workflow = await self.workflow_repo.get_by_project(project_id)
        if workflow is None:
            raise NotFoundError("Workflow not found")
        return workflow

    def _check_step(self, step_id: int) -> None:
        if step_id < 1 or step_id > self.total_steps:
            raise ValidationError("Invalid step ID")
