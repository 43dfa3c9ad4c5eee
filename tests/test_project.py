"""Tests for the Project entity."""

from __future__ import annotations

import httpx
import pytest
import respx

from testdroid_client.client import TestdroidClient
from testdroid_client.exceptions import RequestError, ResponseError
from testdroid_client.models import ProjectRecord
from testdroid_client.project import Project


@pytest.fixture
def project(client: TestdroidClient) -> Project:
    return Project(client, ProjectRecord(id=9, name="Foo", type="ANDROID"))


class TestProject:
    def test_exposes_record_fields(self, project: Project) -> None:
        assert project.id == 9
        assert project.name == "Foo"
        assert repr(project) == "Project(id=9, name='Foo')"

    async def test_create_test_run(self, project: Project, cloud: respx.MockRouter) -> None:
        route = cloud.post("/api/v2/me/projects/9/runs").mock(
            return_value=httpx.Response(201, json={"id": 100, "displayName": "Test Run 1", "state": "WAITING"})
        )

        run = await project.create_test_run()

        assert run.id == 100
        assert run.display_name == "Test Run 1"
        assert run.state == "WAITING"
        assert route.calls.last.request.headers["Authorization"] == "Bearer access-1"

    async def test_create_test_run_failure(self, project: Project, cloud: respx.MockRouter) -> None:
        cloud.post("/api/v2/me/projects/9/runs").mock(
            return_value=httpx.Response(400, json={"message": "No application file"})
        )

        with pytest.raises(RequestError, match="No application file"):
            await project.create_test_run()

    async def test_get_test_runs(self, project: Project, cloud: respx.MockRouter) -> None:
        route = cloud.get("/api/v2/me/projects/9/runs").mock(
            return_value=httpx.Response(200, json={"data": [{"id": 100}, {"id": 101, "state": "FINISHED"}]})
        )

        runs = await project.get_test_runs(limit=2)

        assert [r.id for r in runs] == [100, 101]
        assert runs[1].state == "FINISHED"
        assert route.calls.last.request.url.params["limit"] == "2"

    async def test_get_test_run(self, project: Project, cloud: respx.MockRouter) -> None:
        cloud.get("/api/v2/me/projects/9/runs/100").mock(
            return_value=httpx.Response(200, json={"id": 100, "state": "RUNNING"})
        )

        run = await project.get_test_run(100)

        assert run.state == "RUNNING"

    async def test_get_test_run_malformed(self, project: Project, cloud: respx.MockRouter) -> None:
        cloud.get("/api/v2/me/projects/9/runs/100").mock(return_value=httpx.Response(200, json={"state": "RUNNING"}))

        with pytest.raises(ResponseError, match="unexpected TestRun"):
            await project.get_test_run(100)
