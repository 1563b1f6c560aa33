"""Unit tests for ProjectService ownership checks."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest

from specflow.core.exceptions import NotFoundError
from specflow.services.project_service import ProjectService


@pytest.fixture
def service() -> ProjectService:
    service = ProjectService(MagicMock())
    service.project_repo = AsyncMock()
    return service


class TestRequireOwned:
    @pytest.mark.asyncio
    async def test_returns_owned_project(self, service, user_id):
        project = SimpleNamespace(id=uuid4(), user_id=user_id, name="TaskFlow")
        service.project_repo.get_owned.return_value = project

        result = await service.require_owned(project.id, user_id)

        assert result is project
        service.project_repo.get_owned.assert_awaited_once_with(project.id, user_id)

    @pytest.mark.asyncio
    async def test_foreign_or_missing_project(self, service, user_id):
        service.project_repo.get_owned.return_value = None

        with pytest.raises(NotFoundError, match="Project not found"):
            await service.require_owned(uuid4(), user_id)


class TestCreateAndList:
    @pytest.mark.asyncio
    async def test_create_project_stamps_owner(self, service, user_id):
        service.project_repo.create.return_value = SimpleNamespace(id=uuid4())

        await service.create_project(user_id, "TaskFlow", "A task manager")

        service.project_repo.create.assert_awaited_once_with(
            user_id=user_id, name="TaskFlow", description="A task manager"
        )

    @pytest.mark.asyncio
    async def test_list_projects_is_scoped_to_user(self, service, user_id):
        service.project_repo.list_for_user.return_value = []

        assert await service.list_projects(user_id) == []
        service.project_repo.list_for_user.assert_awaited_once_with(user_id)
