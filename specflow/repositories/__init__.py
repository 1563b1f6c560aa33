"""Repository layer modules."""

from specflow.repositories.dataflow_repository import DataFlowRepository
from specflow.repositories.project_repository import ProjectRepository
from specflow.repositories.workflow_repository import WorkflowRepository, WorkflowResponseRepository

__all__ = [
    "DataFlowRepository",
    "ProjectRepository",
    "WorkflowRepository",
    "WorkflowResponseRepository",
]
