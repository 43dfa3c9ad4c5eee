"""Project entity bound to the client that fetched it."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from testdroid_client.client import parse_list, parse_model, unwrap_data
from testdroid_client.models import ProjectRecord, TestRun

if TYPE_CHECKING:
    from testdroid_client.client import TestdroidClient

logger = logging.getLogger(__name__)


class Project:
    """A user project; creates and lists its test runs."""

    def __init__(self, client: TestdroidClient, record: ProjectRecord) -> None:
        self._client = client
        self.record = record

    @property
    def id(self) -> int:
        return self.record.id

    @property
    def name(self) -> str:
        return self.record.name

    @property
    def _runs_path(self) -> str:
        return f"me/projects/{self.id}/runs"

    async def create_test_run(self) -> TestRun:
        """Start a new run of this project."""
        body = await self._client.post(self._runs_path)
        run = parse_model(TestRun, body, self._runs_path)
        logger.info("started test run %s for project %s", run.id, self.name)
        return run

    async def get_test_runs(self, limit: int = 0) -> list[TestRun]:
        body = await self._client.get(self._runs_path, payload={"limit": limit})
        return parse_list(TestRun, unwrap_data(body, self._runs_path))

    async def get_test_run(self, run_id: int) -> TestRun:
        path = f"{self._runs_path}/{run_id}"
        body = await self._client.get(path)
        return parse_model(TestRun, body, path)

    def __repr__(self) -> str:
        return f"Project(id={self.id!r}, name={self.name!r})"
