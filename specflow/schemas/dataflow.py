"""Schemas for the data flow endpoints."""

from datetime import datetime
from typing import Annotated, Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from specflow.core.config import settings
from specflow.services.dataflow.transforms import TransformType

StepNumber = Annotated[int, Field(ge=1, le=settings.total_steps, description="Workflow step number")]


class DataFlowRelationshipCreateRequest(BaseModel):
    """Declare that a field of one step should populate a field of another."""

    project_id: UUID
    source_step_id: StepNumber
    target_step_id: StepNumber
    source_field: str = Field(..., min_length=1, description="Dot-separated path in the source step")
    target_field: str = Field(..., min_length=1, description="Dot-separated path in the target step")
    transform_type: Optional[TransformType] = Field(None, description="Transform applied to the value")
    transform_config: Optional[Dict[str, Any]] = Field(None, description="Options for the transform")


class DataFlowProcessRequest(BaseModel):
    """Run propagation for one step transition."""

    project_id: UUID
    source_step_id: StepNumber
    target_step_id: StepNumber


class DataFlowRelationshipUpdateRequest(BaseModel):
    is_active: bool


class DataFlowRelationshipResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    project_id: UUID
    source_step_id: int
    target_step_id: int
    source_field: str
    target_field: str
    transform_type: Optional[str] = None
    transform_config: Optional[Dict[str, Any]] = None
    is_active: bool
    created_at: datetime
    updated_at: datetime


class FieldMappingResponse(BaseModel):
    source_field: str
    target_field: str
    value: Any = None


class DataFlowProcessResponse(BaseModel):
    project_id: UUID
    source_step_id: int
    target_step_id: int
    mappings: List[FieldMappingResponse]
