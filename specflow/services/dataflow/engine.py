"""Propagation of fields between guided-workflow steps.

The engine reads a project's active relationships for one step transition,
pulls each source field out of the source step's response document,
transforms it and merges the results into the target step's document.

Propagation is best effort: missing relationships, a missing source
document or a missing workflow turn the call into a no-op. Persistence
errors are not caught here and reach the caller.
"""

import copy
from dataclasses import asdict, dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from specflow.database.models import DataFlowRelationship
from specflow.repositories.dataflow_repository import DataFlowRepository
from specflow.repositories.workflow_repository import WorkflowRepository, WorkflowResponseRepository
from specflow.services.dataflow.defaults import DEFAULT_DATA_FLOWS, DefaultDataFlow
from specflow.services.dataflow.transforms import apply_transform
from specflow.utils.logging import get_logger
from specflow.utils.nested_path import MISSING, get_nested_value, set_nested_value

LOGGER = get_logger(__name__)


@dataclass(frozen=True)
class DataFlowContext:
    """One source -> target step transition of a project."""

    project_id: UUID
    source_step_id: int
    target_step_id: int


@dataclass(frozen=True)
class FieldMapping:
    """A value ready to be written at ``target_field`` of the target step."""

    source_field: str
    target_field: str
    value: Any

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class DataFlowEngine:
    """Reads, transforms and merges step data along a project's relationships."""

    def __init__(
        self,
        session: Optional[AsyncSession] = None,
        *,
        relationship_repo: Optional[DataFlowRepository] = None,
        workflow_repo: Optional[WorkflowRepository] = None,
        response_repo: Optional[WorkflowResponseRepository] = None,
    ):
        """Initialize the engine.

        Args:
            session: Async database session used to build the default repositories
            relationship_repo: Relationship store override
            workflow_repo: Workflow store override
            response_repo: Step response store override
        """
        self.relationship_repo = relationship_repo or DataFlowRepository(session)
        self.workflow_repo = workflow_repo or WorkflowRepository(session)
        self.response_repo = response_repo or WorkflowResponseRepository(session)

    async def process_data_flow(self, context: DataFlowContext) -> List[FieldMapping]:
        """Compute the mappings for one step transition.

        Args:
            context: Project and step pair to process

        Returns:
            Mappings in relationship order; empty when there is nothing to
            propagate yet.
        """
        relationships = await self.relationship_repo.get_active(
            context.project_id, context.source_step_id, context.target_step_id
        )
        if not relationships:
            LOGGER.debug(
                f"No active relationships for project {context.project_id} "
                f"step {context.source_step_id} -> {context.target_step_id}"
            )
            return []

        source_data = await self._load_step_document(context.project_id, context.source_step_id)
        if source_data is None:
            LOGGER.debug(
                f"No response document for project {context.project_id} step {context.source_step_id}"
            )
            return []

        mappings = build_mappings(source_data, relationships)

        LOGGER.info(
            f"Built {len(mappings)}/{len(relationships)} mappings for project {context.project_id} "
            f"step {context.source_step_id} -> {context.target_step_id}"
        )
        return mappings

    async def apply_mappings_to_step(
        self,
        project_id: UUID,
        step_id: int,
        mappings: Sequence[FieldMapping],
    ) -> None:
        """Merge mappings into a step's response document.

        Mappings are written in order, so a later mapping to the same (or an
        enclosing) path overwrites an earlier one. The row is created with
        ``completed=False`` when the step has no document yet.
        """
        if not mappings:
            return

        workflow = await self.workflow_repo.get_by_project(project_id)
        if workflow is None:
            # Cannot attach a step response without a parent workflow
            LOGGER.debug(f"Project {project_id} has no workflow, skipping {len(mappings)} mappings")
            return

        existing = await self.response_repo.get_by_workflow_and_step(workflow.id, step_id)
        current = existing.responses if existing is not None and isinstance(existing.responses, dict) else {}

        updated = merge_mappings(current, mappings)

        if existing is not None:
            await self.response_repo.replace_responses(existing, updated)
        else:
            await self.response_repo.create_response(workflow.id, step_id, updated, completed=False)

        LOGGER.info(f"Applied {len(mappings)} mappings to project {project_id} step {step_id}")

    async def propagate(self, context: DataFlowContext) -> List[FieldMapping]:
        """Process a transition and write the result into the target step."""
        mappings = await self.process_data_flow(context)
        await self.apply_mappings_to_step(context.project_id, context.target_step_id, mappings)
        return mappings

    async def create_default_data_flows(
        self,
        project_id: UUID,
        flows: Iterable[DefaultDataFlow] = DEFAULT_DATA_FLOWS,
    ) -> int:
        """Seed the built-in relationships for a project.

        Safe to call repeatedly: relationships the project already has are
        left as they are.

        Returns:
            Number of relationships newly created
        """
        inserted = await self.relationship_repo.insert_ignoring_duplicates(
            flow.to_row(project_id) for flow in flows
        )
        LOGGER.info(f"Seeded {inserted} default data flow relationships for project {project_id}")
        return inserted

    async def _load_step_document(self, project_id: UUID, step_id: int) -> Optional[Dict[str, Any]]:
        workflow = await self.workflow_repo.get_by_project(project_id)
        if workflow is None:
            return None

        response = await self.response_repo.get_by_workflow_and_step(workflow.id, step_id)
        if response is None:
            return None

        return response.responses if isinstance(response.responses, dict) else {}


def build_mappings(
    source_data: Dict[str, Any],
    relationships: Iterable[DataFlowRelationship],
) -> List[FieldMapping]:
    """Extract and transform every relationship's source field.

    Relationships whose source path does not resolve are skipped. A resolved
    ``None`` is kept and propagated as null.
    """
    mappings: List[FieldMapping] = []

    for relationship in relationships:
        value = get_nested_value(source_data, relationship.source_field)
        if value is MISSING:
            continue

        if relationship.transform_type:
            value = apply_transform(value, relationship.transform_type, relationship.transform_config)

        mappings.append(
            FieldMapping(
                source_field=relationship.source_field,
                target_field=relationship.target_field,
                value=value,
            )
        )

    return mappings


def merge_mappings(document: Dict[str, Any], mappings: Iterable[FieldMapping]) -> Dict[str, Any]:
    """Return a copy of ``document`` with every mapping written at its target path."""
    merged = copy.deepcopy(document)
    for mapping in mappings:
        set_nested_value(merged, mapping.target_field, copy.deepcopy(mapping.value))
    return merged
