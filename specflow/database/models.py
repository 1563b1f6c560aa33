"""SQLAlchemy models for all database tables."""

import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    ForeignKey,
    Integer,
    String,
    Text,
    TIMESTAMP,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import UUID, JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from specflow.core.database import Base

# JSONB on Postgres; plain JSON where the dialect has no JSONB (SQLite test sessions)
JSONDocument = JSONB().with_variant(JSON(), "sqlite")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Project(Base):
    """A user's app idea being turned into a specification."""

    __tablename__ = "projects"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    user_id: Mapped[str] = mapped_column(
        String, nullable=False, index=True
    )  # auth subject (JWT "sub")
    name: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow
    )

    # Relationships
    workflow: Mapped["ProjectWorkflow | None"] = relationship(
        "ProjectWorkflow", back_populates="project", uselist=False, cascade="all, delete-orphan"
    )
    data_flow_relationships: Mapped[list["DataFlowRelationship"]] = relationship(
        "DataFlowRelationship", back_populates="project", cascade="all, delete-orphan"
    )


class ProjectWorkflow(Base):
    """Progress of a project through the guided steps."""

    __tablename__ = "project_workflows"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    project_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("projects.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    current_step: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    is_completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    started_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=utcnow, server_default=func.now()
    )
    completed_at: Mapped[datetime | None] = mapped_column(
        TIMESTAMP(timezone=True), nullable=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow
    )

    # Relationships
    project: Mapped["Project"] = relationship("Project", back_populates="workflow")
    responses: Mapped[list["WorkflowResponse"]] = relationship(
        "WorkflowResponse",
        back_populates="workflow",
        cascade="all, delete-orphan",
        order_by="WorkflowResponse.step_id",
    )


class WorkflowResponse(Base):
    """Persisted JSON document for one (workflow, step) pair."""

    __tablename__ = "workflow_responses"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    workflow_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("project_workflows.id", ondelete="CASCADE"), nullable=False
    )
    step_id: Mapped[int] = mapped_column(Integer, nullable=False)
    responses: Mapped[dict[str, Any]] = mapped_column(JSONDocument, nullable=False, default=dict)
    completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    ai_suggestions: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow
    )

    # Relationships
    workflow: Mapped["ProjectWorkflow"] = relationship("ProjectWorkflow", back_populates="responses")

    __table_args__ = (
        UniqueConstraint("workflow_id", "step_id", name="uq_workflow_response_step"),
        {"comment": "Per-step response documents of a project workflow"},
    )


class DataFlowRelationship(Base):
    """Declared edge copying a field of one step's document into another step's document."""

    __tablename__ = "data_flow_relationships"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    project_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False
    )
    source_step_id: Mapped[int] = mapped_column(Integer, nullable=False)
    target_step_id: Mapped[int] = mapped_column(Integer, nullable=False)
    source_field: Mapped[str] = mapped_column(
        String, nullable=False, comment="Dot-separated path into the source step document"
    )
    target_field: Mapped[str] = mapped_column(
        String, nullable=False, comment="Dot-separated path into the target step document"
    )
    transform_type: Mapped[str | None] = mapped_column(
        String, nullable=True
    )  # copy | uppercase | lowercase | trim | extract | join | split | aggregate | map | template
    transform_config: Mapped[dict[str, Any] | None] = mapped_column(JSONDocument, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow
    )

    # Relationships
    project: Mapped["Project"] = relationship("Project", back_populates="data_flow_relationships")

    __table_args__ = (
        UniqueConstraint(
            "project_id",
            "source_step_id",
            "target_step_id",
            "source_field",
            "target_field",
            name="uq_data_flow_relationship",
        ),
        {"comment": "Field mappings between workflow steps"},
    )
