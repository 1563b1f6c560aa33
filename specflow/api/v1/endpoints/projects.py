"""Project and guided workflow endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Path, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from specflow.core.auth import get_current_user
from specflow.core.database import get_async_session as get_session
from specflow.schemas.auth import CurrentUser
from specflow.schemas.project import ProjectCreateRequest, ProjectResponse
from specflow.schemas.response import ApiResponse
from specflow.schemas.workflow import StepResponseSchema, StepUpdateRequest, WorkflowSchema
from specflow.services.project_service import ProjectService
from specflow.services.workflow_service import WorkflowService
from specflow.utils.logging import get_logger
from specflow.utils.responses import create_api_response

LOGGER = get_logger(__name__)

router = APIRouter()


async def get_project_service(
    db_session: Annotated[AsyncSession, Depends(get_session)]
) -> ProjectService:
    return ProjectService(db_session)


async def get_workflow_service(
    db_session: Annotated[AsyncSession, Depends(get_session)]
) -> WorkflowService:
    return WorkflowService(db_session)


@router.post(
    "/",
    response_model=ApiResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a project",
    operation_id="create_project",
)
async def create_project(
    request: Request,
    payload: ProjectCreateRequest,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    project_service: Annotated[ProjectService, Depends(get_project_service)],
) -> ApiResponse:
    project = await project_service.create_project(current_user.id, payload.name, payload.description)
    return create_api_response(
        data=ProjectResponse.model_validate(project),
        message="Project created successfully",
        request=request,
    )


@router.get(
    "/",
    response_model=ApiResponse,
    summary="List projects",
    operation_id="list_projects",
)
async def list_projects(
    request: Request,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    project_service: Annotated[ProjectService, Depends(get_project_service)],
) -> ApiResponse:
    projects = await project_service.list_projects(current_user.id)
    return create_api_response(
        data=[ProjectResponse.model_validate(project) for project in projects],
        message="Projects retrieved successfully",
        request=request,
    )


@router.post(
    "/{project_id}/workflow",
    response_model=ApiResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Start the guided workflow",
    operation_id="create_project_workflow",
)
async def create_workflow(
    request: Request,
    project_id: UUID,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    workflow_service: Annotated[WorkflowService, Depends(get_workflow_service)],
) -> ApiResponse:
    """Create the workflow and seed the project's default data flows."""
    workflow = await workflow_service.create_workflow(project_id, current_user.id)
    return create_api_response(
        data=WorkflowSchema.model_validate(workflow),
        message="Workflow created successfully",
        request=request,
    )


@router.get(
    "/{project_id}/workflow",
    response_model=ApiResponse,
    summary="Get the guided workflow",
    operation_id="get_project_workflow",
)
async def get_workflow(
    request: Request,
    project_id: UUID,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    workflow_service: Annotated[WorkflowService, Depends(get_workflow_service)],
) -> ApiResponse:
    workflow = await workflow_service.get_workflow(project_id, current_user.id)
    return create_api_response(
        data=WorkflowSchema.model_validate(workflow),
        message="Workflow retrieved successfully",
        request=request,
    )


@router.put(
    "/{project_id}/workflow/steps/{step_id}",
    response_model=ApiResponse,
    summary="Save a step's responses",
    operation_id="save_workflow_step",
)
async def save_step(
    request: Request,
    project_id: UUID,
    payload: StepUpdateRequest,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    workflow_service: Annotated[WorkflowService, Depends(get_workflow_service)],
    step_id: int = Path(..., description="Workflow step number"),
) -> ApiResponse:
    """Upsert a step response; completing it propagates mapped fields to the next step."""
    response = await workflow_service.save_step_response(
        project_id,
        step_id,
        current_user.id,
        responses=payload.responses,
        completed=payload.completed,
        ai_suggestions=payload.ai_suggestions,
    )
    return create_api_response(
        data=StepResponseSchema.model_validate(response),
        message="Step saved successfully",
        request=request,
    )


@router.get(
    "/{project_id}/workflow/steps/{step_id}",
    response_model=ApiResponse,
    summary="Get a step's responses",
    operation_id="get_workflow_step",
)
async def get_step(
    request: Request,
    project_id: UUID,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    workflow_service: Annotated[WorkflowService, Depends(get_workflow_service)],
    step_id: int = Path(..., description="Workflow step number"),
) -> ApiResponse:
    response = await workflow_service.get_step_response(project_id, step_id, current_user.id)
    return create_api_response(
        data=StepResponseSchema.model_validate(response),
        message="Step retrieved successfully",
        request=request,
    )
