"""Shared pytest fixtures for the testdroid-client test suite."""

from __future__ import annotations

from collections.abc import Iterator
from urllib.parse import parse_qs

import httpx
import pytest
import respx

from testdroid_client.client import TestdroidClient
from testdroid_client.config import Settings

BASE_URL = "http://cloud.test"

TOKEN_BODY = {
    "access_token": "access-1",
    "refresh_token": "refresh-1",
    "expires_in": 3600,
    "token_type": "bearer",
}


class FakeClock:
    """Manually advanced replacement for ``time.time``."""

    def __init__(self, now: float = 1_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def form(request: httpx.Request) -> dict[str, str]:
    """Decode a form-urlencoded request body into a flat dict."""
    return {key: values[0] for key, values in parse_qs(request.content.decode()).items()}


@pytest.fixture()
def settings() -> Settings:
    """Return a Settings instance with test defaults."""
    return Settings(
        url=f"{BASE_URL}/",
        username="joe@example.com",
        password="123456",
        timeout=5,
        proxy_attempts=30,
        proxy_interval=5.0,
    )


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def client(clock: FakeClock) -> TestdroidClient:
    return TestdroidClient(
        f"{BASE_URL}/",
        "joe@example.com",
        "123456",
        timeout=5,
        proxy_attempts=30,
        proxy_interval=5.0,
        clock=clock,
    )


@pytest.fixture()
def cloud() -> Iterator[respx.MockRouter]:
    """Mocked cloud with a working token endpoint registered as route ``token``."""
    with respx.mock(base_url=BASE_URL, assert_all_called=False) as router:
        router.post("/oauth/token", name="token").mock(return_value=httpx.Response(200, json=TOKEN_BODY))
        yield router
