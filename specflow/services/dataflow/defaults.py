"""Built-in step-to-step relationships seeded for every new project."""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

from specflow.services.dataflow.transforms import AggregationType, TransformType


@dataclass(frozen=True)
class DefaultDataFlow:
    """Template for one relationship, without the owning project."""

    source_step_id: int
    target_step_id: int
    source_field: str
    target_field: str
    transform_type: Optional[TransformType] = TransformType.COPY
    transform_config: Optional[Dict[str, Any]] = field(default=None, hash=False, compare=False)

    def to_row(self, project_id: Any) -> Dict[str, Any]:
        """Column values for inserting this flow under ``project_id``."""
        return {
            "project_id": project_id,
            "source_step_id": self.source_step_id,
            "target_step_id": self.target_step_id,
            "source_field": self.source_field,
            "target_field": self.target_field,
            "transform_type": self.transform_type.value if self.transform_type else None,
            "transform_config": dict(self.transform_config) if self.transform_config else None,
            "is_active": True,
        }


DEFAULT_DATA_FLOWS: Tuple[DefaultDataFlow, ...] = (
    # Idea -> project details: app name and initial idea
    DefaultDataFlow(1, 2, "appName", "projectName"),
    DefaultDataFlow(1, 2, "appIdea", "initialIdea"),
    # Project details -> personas
    DefaultDataFlow(2, 3, "elevatorPitch", "projectSummary"),
    DefaultDataFlow(2, 3, "targetAudience", "primaryUsers"),
    # Personas -> feature planning
    DefaultDataFlow(
        3,
        4,
        "userPersonas",
        "targetUsers",
        transform_type=TransformType.AGGREGATE,
        transform_config={"type": AggregationType.CONCAT.value, "separator": "\n"},
    ),
    # Features -> user flows
    DefaultDataFlow(4, 5, "coreFeatures", "featureList"),
    # User flows -> technical planning
    DefaultDataFlow(5, 6, "primaryUserFlow", "mainWorkflow"),
)
