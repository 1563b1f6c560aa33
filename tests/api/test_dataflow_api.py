"""API tests for the data flow and workflow endpoints."""

from datetime import datetime, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock, patch
from uuid import uuid4

import pytest
from fastapi import status

from specflow.api.v1.endpoints.dataflow import get_dataflow_service
from specflow.api.v1.endpoints.projects import get_workflow_service
from specflow.core.auth import get_current_user
from specflow.core.exceptions import ConflictError, NotFoundError
from specflow.main import app
from specflow.schemas.auth import CurrentUser
from specflow.services.dataflow.engine import FieldMapping
from specflow.services.dataflow_service import DataFlowService
from specflow.services.workflow_service import WorkflowService


@pytest.fixture
def current_user(user_id) -> CurrentUser:
    return CurrentUser(id=user_id, email="builder@example.com")


@pytest.fixture
def mock_dataflow_service():
    service = AsyncMock(spec=DataFlowService)
    app.dependency_overrides[get_dataflow_service] = lambda: service
    return service


@pytest.fixture
def mock_workflow_service():
    service = AsyncMock(spec=WorkflowService)
    app.dependency_overrides[get_workflow_service] = lambda: service
    return service


@pytest.fixture
def authenticated(current_user):
    app.dependency_overrides[get_current_user] = lambda: current_user
    return current_user


def make_relationship_row(project_id, **overrides):
    now = datetime.now(timezone.utc)
    values = dict(
        id=uuid4(),
        project_id=project_id,
        source_step_id=1,
        target_step_id=2,
        source_field="appName",
        target_field="projectName",
        transform_type="copy",
        transform_config=None,
        is_active=True,
        created_at=now,
        updated_at=now,
    )
    values.update(overrides)
    return SimpleNamespace(**values)


class TestAuthentication:
    """Bearer token handling on protected routes."""

    def test_missing_token_is_rejected(self, test_client, mock_dataflow_service):
        response = test_client.get(f"/api/v1/dataflow/?project_id={uuid4()}")

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        mock_dataflow_service.list_relationships.assert_not_awaited()

    def test_invalid_token_is_rejected(self, test_client, mock_dataflow_service):
        response = test_client.get(
            f"/api/v1/dataflow/?project_id={uuid4()}",
            headers={"Authorization": "Bearer not-a-jwt"},
        )

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_valid_token_reaches_service(self, test_client, mock_dataflow_service, auth_headers, user_id):
        project_id = uuid4()
        mock_dataflow_service.list_relationships.return_value = [make_relationship_row(project_id)]

        response = test_client.get(f"/api/v1/dataflow/?project_id={project_id}", headers=auth_headers)

        assert response.status_code == status.HTTP_200_OK
        mock_dataflow_service.list_relationships.assert_awaited_once_with(project_id, user_id)


class TestDataFlowEndpoints:
    """Tests for /api/v1/dataflow."""

    def test_list_relationships(self, test_client, authenticated, mock_dataflow_service):
        project_id = uuid4()
        mock_dataflow_service.list_relationships.return_value = [
            make_relationship_row(project_id),
            make_relationship_row(project_id, source_field="appIdea", target_field="initialIdea", is_active=False),
        ]

        response = test_client.get(f"/api/v1/dataflow/?project_id={project_id}")

        assert response.status_code == status.HTTP_200_OK
        body = response.json()
        assert body["status"] is True
        items = body["data"]["items"]
        assert [item["target_field"] for item in items] == ["projectName", "initialIdea"]
        assert items[1]["is_active"] is False
        assert body["meta"]["request_id"]

    def test_unknown_project_is_404(self, test_client, authenticated, mock_dataflow_service):
        mock_dataflow_service.list_relationships.side_effect = NotFoundError("Project not found")

        response = test_client.get(f"/api/v1/dataflow/?project_id={uuid4()}")

        assert response.status_code == status.HTTP_404_NOT_FOUND
        detail = response.json()["detail"]
        assert detail["title"] == "Not Found"
        assert detail["detail"] == "Project not found"

    def test_process_returns_mappings(self, test_client, authenticated, mock_dataflow_service, user_id):
        project_id = uuid4()
        mock_dataflow_service.process.return_value = [
            FieldMapping(source_field="appName", target_field="projectName", value="Foo"),
            FieldMapping(source_field="appIdea", target_field="initialIdea", value=None),
        ]

        response = test_client.post(
            "/api/v1/dataflow/process",
            json={"project_id": str(project_id), "source_step_id": 1, "target_step_id": 2},
        )

        assert response.status_code == status.HTTP_200_OK
        data = response.json()["data"]
        assert data["source_step_id"] == 1
        assert data["target_step_id"] == 2
        assert data["mappings"] == [
            {"source_field": "appName", "target_field": "projectName", "value": "Foo"},
            {"source_field": "appIdea", "target_field": "initialIdea", "value": None},
        ]
        mock_dataflow_service.process.assert_awaited_once_with(
            user_id, project_id=project_id, source_step_id=1, target_step_id=2
        )

    @pytest.mark.parametrize("source_step_id,target_step_id", [(0, 1), (9, 10), (1, -2)])
    def test_process_rejects_out_of_range_steps(
        self, test_client, authenticated, mock_dataflow_service, source_step_id, target_step_id
    ):
        response = test_client.post(
            "/api/v1/dataflow/process",
            json={"project_id": str(uuid4()), "source_step_id": source_step_id, "target_step_id": target_step_id},
        )

        assert response.status_code == 422
        mock_dataflow_service.process.assert_not_awaited()

    def test_create_relationship(self, test_client, authenticated, mock_dataflow_service):
        project_id = uuid4()
        mock_dataflow_service.create_relationship.return_value = make_relationship_row(
            project_id,
            source_step_id=3,
            target_step_id=4,
            source_field="userPersonas",
            target_field="targetUsers",
            transform_type="aggregate",
            transform_config={"type": "concat", "separator": "\n"},
        )

        response = test_client.post(
            "/api/v1/dataflow/relationships",
            json={
                "project_id": str(project_id),
                "source_step_id": 3,
                "target_step_id": 4,
                "source_field": "userPersonas",
                "target_field": "targetUsers",
                "transform_type": "aggregate",
                "transform_config": {"type": "concat", "separator": "\n"},
            },
        )

        assert response.status_code == status.HTTP_201_CREATED
        assert response.json()["data"]["transform_type"] == "aggregate"
        _, kwargs = mock_dataflow_service.create_relationship.call_args
        assert kwargs["transform_type"].value == "aggregate"

    def test_create_relationship_rejects_unknown_transform(self, test_client, authenticated, mock_dataflow_service):
        response = test_client.post(
            "/api/v1/dataflow/relationships",
            json={
                "project_id": str(uuid4()),
                "source_step_id": 1,
                "target_step_id": 2,
                "source_field": "appName",
                "target_field": "projectName",
                "transform_type": "reverse",
            },
        )

        assert response.status_code == 422

    def test_duplicate_relationship_is_409(self, test_client, authenticated, mock_dataflow_service):
        mock_dataflow_service.create_relationship.side_effect = ConflictError("Relationship already exists")

        response = test_client.post(
            "/api/v1/dataflow/relationships",
            json={
                "project_id": str(uuid4()),
                "source_step_id": 1,
                "target_step_id": 2,
                "source_field": "appName",
                "target_field": "projectName",
            },
        )

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.json()["detail"]["title"] == "Conflict"

    def test_toggle_and_delete_relationship(self, test_client, authenticated, mock_dataflow_service, user_id):
        relationship_id = uuid4()
        mock_dataflow_service.set_active.return_value = make_relationship_row(uuid4(), id=relationship_id, is_active=False)

        toggled = test_client.put(f"/api/v1/dataflow/relationships/{relationship_id}", json={"is_active": False})
        deleted = test_client.delete(f"/api/v1/dataflow/relationships/{relationship_id}")

        assert toggled.status_code == status.HTTP_200_OK
        assert toggled.json()["data"]["is_active"] is False
        mock_dataflow_service.set_active.assert_awaited_once_with(relationship_id, user_id, False)
        assert deleted.status_code == status.HTTP_200_OK
        assert deleted.json()["data"] == {"id": str(relationship_id)}


class TestWorkflowStepEndpoints:
    """Tests for step saves under /api/v1/projects/{id}/workflow."""

    def test_save_step(self, test_client, authenticated, mock_workflow_service, user_id):
        project_id = uuid4()
        mock_workflow_service.save_step_response.return_value = SimpleNamespace(
            id=uuid4(),
            workflow_id=uuid4(),
            step_id=1,
            responses={"appName": "Foo"},
            completed=True,
            ai_suggestions=None,
            updated_at=datetime.now(timezone.utc),
        )

        response = test_client.put(
            f"/api/v1/projects/{project_id}/workflow/steps/1",
            json={"responses": {"appName": "Foo"}, "completed": True},
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["data"]["responses"] == {"appName": "Foo"}
        mock_workflow_service.save_step_response.assert_awaited_once_with(
            project_id, 1, user_id, responses={"appName": "Foo"}, completed=True, ai_suggestions=None
        )

    def test_missing_step_response_is_404(self, test_client, authenticated, mock_workflow_service):
        mock_workflow_service.get_step_response.side_effect = NotFoundError("Step response not found")

        response = test_client.get(f"/api/v1/projects/{uuid4()}/workflow/steps/4")

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()["detail"]["detail"] == "Step response not found"


class TestHealth:
    def test_reports_degraded_database(self, test_client):
        with patch("specflow.api.v1.endpoints.health.db_client.health_check", new_callable=AsyncMock) as mock_check:
            mock_check.return_value = {"status": "unhealthy", "connected": False, "error": "refused"}

            response = test_client.get("/health/")

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["status"] == "degraded"
        assert response.json()["database"] == "unhealthy"
