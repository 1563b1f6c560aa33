"""Data flow relationship endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from specflow.core.auth import get_current_user
from specflow.core.database import get_async_session as get_session
from specflow.schemas.auth import CurrentUser
from specflow.schemas.dataflow import (
    DataFlowProcessRequest,
    DataFlowProcessResponse,
    DataFlowRelationshipCreateRequest,
    DataFlowRelationshipResponse,
    DataFlowRelationshipUpdateRequest,
    FieldMappingResponse,
)
from specflow.schemas.response import ApiResponse
from specflow.services.dataflow_service import DataFlowService
from specflow.utils.logging import get_logger
from specflow.utils.responses import create_api_response

LOGGER = get_logger(__name__)

router = APIRouter()


async def get_dataflow_service(
    db_session: Annotated[AsyncSession, Depends(get_session)]
) -> DataFlowService:
    return DataFlowService(db_session)


@router.get(
    "/",
    response_model=ApiResponse,
    summary="List data flow relationships",
    operation_id="list_data_flow_relationships",
)
async def list_relationships(
    request: Request,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    dataflow_service: Annotated[DataFlowService, Depends(get_dataflow_service)],
    project_id: UUID = Query(..., description="Project whose relationships to list"),
) -> ApiResponse:
    relationships = await dataflow_service.list_relationships(project_id, current_user.id)
    return create_api_response(
        data=[DataFlowRelationshipResponse.model_validate(rel) for rel in relationships],
        message="Data flow relationships retrieved successfully",
        request=request,
    )


@router.post(
    "/relationships",
    response_model=ApiResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a data flow relationship",
    operation_id="create_data_flow_relationship",
)
async def create_relationship(
    request: Request,
    payload: DataFlowRelationshipCreateRequest,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    dataflow_service: Annotated[DataFlowService, Depends(get_dataflow_service)],
) -> ApiResponse:
    relationship = await dataflow_service.create_relationship(
        current_user.id,
        project_id=payload.project_id,
        source_step_id=payload.source_step_id,
        target_step_id=payload.target_step_id,
        source_field=payload.source_field,
        target_field=payload.target_field,
        transform_type=payload.transform_type,
        transform_config=payload.transform_config,
    )
    return create_api_response(
        data=DataFlowRelationshipResponse.model_validate(relationship),
        message="Data flow relationship created successfully",
        request=request,
    )


@router.post(
    "/process",
    response_model=ApiResponse,
    summary="Propagate fields between two steps",
    operation_id="process_data_flow",
)
async def process_data_flow(
    request: Request,
    payload: DataFlowProcessRequest,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    dataflow_service: Annotated[DataFlowService, Depends(get_dataflow_service)],
) -> ApiResponse:
    """Run the source step's active relationships and merge the results into the target step."""
    mappings = await dataflow_service.process(
        current_user.id,
        project_id=payload.project_id,
        source_step_id=payload.source_step_id,
        target_step_id=payload.target_step_id,
    )
    data = DataFlowProcessResponse(
        project_id=payload.project_id,
        source_step_id=payload.source_step_id,
        target_step_id=payload.target_step_id,
        mappings=[FieldMappingResponse(**mapping.to_dict()) for mapping in mappings],
    )
    return create_api_response(
        data=data,
        message="Data flow processed successfully",
        request=request,
    )


@router.put(
    "/relationships/{relationship_id}",
    response_model=ApiResponse,
    summary="Activate or deactivate a relationship",
    operation_id="update_data_flow_relationship",
)
async def update_relationship(
    request: Request,
    relationship_id: UUID,
    payload: DataFlowRelationshipUpdateRequest,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    dataflow_service: Annotated[DataFlowService, Depends(get_dataflow_service)],
) -> ApiResponse:
    relationship = await dataflow_service.set_active(relationship_id, current_user.id, payload.is_active)
    return create_api_response(
        data=DataFlowRelationshipResponse.model_validate(relationship),
        message="Data flow relationship updated successfully",
        request=request,
    )


@router.delete(
    "/relationships/{relationship_id}",
    response_model=ApiResponse,
    summary="Delete a relationship",
    operation_id="delete_data_flow_relationship",
)
async def delete_relationship(
    request: Request,
    relationship_id: UUID,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    dataflow_service: Annotated[DataFlowService, Depends(get_dataflow_service)],
) -> ApiResponse:
    await dataflow_service.delete_relationship(relationship_id, current_user.id)
    return create_api_response(
        data={"id": str(relationship_id)},
        message="Data flow relationship deleted successfully",
        request=request,
    )
