"""Database module for SQLAlchemy models."""

from specflow.database.models import (
    DataFlowRelationship,
    Project,
    ProjectWorkflow,
    WorkflowResponse,
)

__all__ = [
    "DataFlowRelationship",
    "Project",
    "ProjectWorkflow",
    "WorkflowResponse",
]
