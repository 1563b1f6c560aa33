"""Unit tests for DataFlowRepository statements and error mapping."""

from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest
from sqlalchemy.dialects import postgresql
from sqlalchemy.exc import IntegrityError, OperationalError

from specflow.core.exceptions import ConflictError
from specflow.repositories.dataflow_repository import UNIQUE_CONSTRAINT, DataFlowRepository
from specflow.services.dataflow.defaults import DEFAULT_DATA_FLOWS


def compile_sql(stmt) -> str:
    return str(stmt.compile(dialect=postgresql.dialect()))


@pytest.fixture
def mock_session() -> MagicMock:
    session = MagicMock()
    session.execute = AsyncMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    return session


class TestInsertIgnoringDuplicates:
    """Tests for idempotent relationship seeding."""

    @pytest.mark.asyncio
    async def test_uses_on_conflict_do_nothing(self, mock_session):
        result = MagicMock()
        result.scalar_one_or_none.return_value = uuid4()
        mock_session.execute.return_value = result
        repo = DataFlowRepository(mock_session)

        await repo.insert_ignoring_duplicates([DEFAULT_DATA_FLOWS[0].to_row(uuid4())])

        sql = compile_sql(mock_session.execute.call_args.args[0])
        assert "INSERT INTO data_flow_relationships" in sql
        assert f"ON CONFLICT ON CONSTRAINT {UNIQUE_CONSTRAINT} DO NOTHING" in sql
        assert "RETURNING data_flow_relationships.id" in sql

    @pytest.mark.asyncio
    async def test_counts_only_inserted_rows(self, mock_session):
        result = MagicMock()
        result.scalar_one_or_none.side_effect = [uuid4(), None, uuid4()]
        mock_session.execute.return_value = result
        repo = DataFlowRepository(mock_session)
        project_id = uuid4()

        inserted = await repo.insert_ignoring_duplicates(flow.to_row(project_id) for flow in DEFAULT_DATA_FLOWS[:3])

        assert inserted == 2
        assert mock_session.execute.await_count == 3
        mock_session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_other_errors_roll_back_and_propagate(self, mock_session):
        mock_session.execute.side_effect = OperationalError("INSERT", {}, Exception("connection reset"))
        repo = DataFlowRepository(mock_session)

        with pytest.raises(OperationalError):
            await repo.insert_ignoring_duplicates([DEFAULT_DATA_FLOWS[0].to_row(uuid4())])

        mock_session.rollback.assert_awaited_once()
        mock_session.commit.assert_not_awaited()


class TestCreateRelationship:
    @pytest.mark.asyncio
    async def test_duplicate_raises_conflict(self, mock_session):
        mock_session.flush.side_effect = IntegrityError("INSERT", {}, Exception("duplicate key"))
        repo = DataFlowRepository(mock_session)

        with pytest.raises(ConflictError):
            await repo.create_relationship(
                project_id=uuid4(),
                source_step_id=1,
                target_step_id=2,
                source_field="appName",
                target_field="projectName",
            )

        mock_session.rollback.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_creates_active_relationship(self, mock_session):
        repo = DataFlowRepository(mock_session)
        project_id = uuid4()

        relationship = await repo.create_relationship(
            project_id=project_id,
            source_step_id=2,
            target_step_id=3,
            source_field="targetAudience",
            target_field="primaryUsers",
            transform_type="trim",
        )

        mock_session.add.assert_called_once_with(relationship)
        assert relationship.project_id == project_id
        assert relationship.is_active is True
        assert relationship.transform_type == "trim"


class TestGetActive:
    @pytest.mark.asyncio
    async def test_filters_active_rows_in_creation_order(self, mock_session):
        result = MagicMock()
        result.scalars.return_value.all.return_value = []
        mock_session.execute.return_value = result
        repo = DataFlowRepository(mock_session)

        assert await repo.get_active(uuid4(), 1, 2) == []

        sql = compile_sql(mock_session.execute.call_args.args[0])
        assert "data_flow_relationships.is_active IS true" in sql
        assert "ORDER BY data_flow_relationships.created_at, data_flow_relationships.id" in sql
