"""Schemas for the guided workflow endpoints."""

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class StepUpdateRequest(BaseModel):
    """User save of one step's answers."""

    responses: Dict[str, Any] = Field(..., description="Step response document")
    completed: bool = Field(..., description="Whether the user finished the step")
    ai_suggestions: Optional[str] = Field(None, description="Latest assistant suggestions for the step")


class StepResponseSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    workflow_id: UUID
    step_id: int
    responses: Dict[str, Any]
    completed: bool
    ai_suggestions: Optional[str] = None
    updated_at: datetime


class WorkflowSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    project_id: UUID
    current_step: int
    is_completed: bool
    started_at: datetime
    completed_at: Optional[datetime] = None
    responses: List[StepResponseSchema] = Field(default_factory=list)
