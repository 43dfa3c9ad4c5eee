"""Async client for the Testdroid cloud REST API (v2)."""

from __future__ import annotations

import asyncio
import json
import logging
import time
from collections.abc import Callable
from typing import TYPE_CHECKING, Any, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from testdroid_client.auth import TokenManager
from testdroid_client.config import Settings
from testdroid_client.enums import ProxyType
from testdroid_client.exceptions import PollTimeoutError, ProxyTimeoutError, RequestError, ResponseError
from testdroid_client.models import Device, DeviceSession, Label, LabelGroup, ProjectRecord, ProxySession, TestRun
from testdroid_client.polling import poll_until

if TYPE_CHECKING:
    from testdroid_client.project import Project

logger = logging.getLogger(__name__)

VERSION = "0.1.0"
USER_AGENT = f"testdroid-client/{VERSION}"
FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"

M = TypeVar("M", bound=BaseModel)


class TestdroidClient:
    """Talk to the Testdroid cloud API on behalf of one user.

    Example::

        client = TestdroidClient("https://cloud.bitbar.com/", "joe@example.com", "123456")
        devices = await client.get_devices()

    Every call obtains a bearer token from the embedded ``TokenManager``; the
    token is reused until it is about to expire.
    """

    __test__ = False

    def __init__(
        self,
        base_url: str,
        username: str,
        password: str,
        *,
        timeout: int = 30,
        proxy_attempts: int = 30,
        proxy_interval: float = 5.0,
        refresh_margin: float = 60,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._api_url = f"{self._base_url}/api/v2"
        self._timeout = timeout
        self._proxy_attempts = proxy_attempts
        self._proxy_interval = proxy_interval
        self.username = username
        self.tokens = TokenManager(
            self._base_url,
            username,
            password,
            user_agent=USER_AGENT,
            timeout=timeout,
            refresh_margin=refresh_margin,
            clock=clock,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> TestdroidClient:
        return cls(
            settings.url,
            settings.username,
            settings.password,
            timeout=settings.timeout,
            proxy_attempts=settings.proxy_attempts,
            proxy_interval=settings.proxy_interval,
            refresh_margin=settings.token_refresh_margin,
        )

    @property
    def api_url(self) -> str:
        return self._api_url

    # ── Request primitives ──────────────────────────────────────

    async def request(
        self,
        method: str,
        path: str,
        *,
        payload: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        """Send an authenticated request and return the raw response.

        GET payloads go into the query string, anything else is sent as a
        form body. Non-2xx responses are returned, not raised.

        Raises:
            AuthError: If no token could be obtained.
            RequestError: If the request could not be sent.
        """
        method = method.upper()
        url = f"{self._api_url}/{path.lstrip('/')}"
        merged = await self._build_headers(headers)
        payload = payload or {}

        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                if method == "GET":
                    resp = await client.request(method, url, params=payload, headers=merged)
                else:
                    resp = await client.request(method, url, data=payload or None, headers=merged)
        except httpx.HTTPError as exc:
            raise RequestError(f"{method} {path} failed: {exc!r}") from exc

        logger.debug("%s %s -> %d", method, path, resp.status_code)
        return resp

    async def _build_headers(self, headers: dict[str, str] | None) -> dict[str, str]:
        merged = {"Accept": "application/json", "User-Agent": USER_AGENT}
        merged.update(headers or {})
        merged["Authorization"] = f"Bearer {await self.tokens.get_token()}"
        return merged

    async def get(
        self,
        path: str,
        *,
        payload: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        """GET ``path`` and return the decoded JSON body."""
        logger.debug("retrieving /%s with payload %s", path, payload)
        resp = await self.request("GET", path, payload=payload, headers=headers)
        return _body(resp, path)

    async def post(
        self,
        path: str,
        *,
        payload: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        """POST a form-encoded ``payload`` to ``path`` and return the decoded JSON body."""
        logger.debug("submitting to /%s with payload %s", path, payload)
        merged = dict(headers or {})
        merged["Content-Type"] = FORM_CONTENT_TYPE
        resp = await self.request("POST", path, payload=payload, headers=merged)
        return _body(resp, path)

    async def delete(self, path: str) -> Any:
        """DELETE ``path`` and return the decoded JSON body, if any."""
        logger.debug("deleting /%s", path)
        resp = await self.request("DELETE", path)
        return _body(resp, path)

    # ── Devices ─────────────────────────────────────────────────

    async def get_devices(self, limit: int = 0) -> list[Device]:
        """Return all devices, or at most ``limit`` of them (0 means no cap)."""
        body = await self.get("devices", payload={"limit": limit})
        return parse_list(Device, unwrap_data(body, "devices"))

    async def get_devices_by_name(self, name: str) -> list[Device]:
        """Return devices whose display name is exactly ``name``.

        The API has no name filter, so the full list is fetched and filtered here.
        """
        devices = await self.get_devices()
        return [device for device in devices if device.display_name == name]

    async def get_devices_with_label(self, label: Label | None) -> list[Device] | None:
        if not label:
            return None

        logger.debug("retrieving devices with label %s", label.display_name)
        try:
            body = await self.get("devices", payload={"label_id[]": label.id, "limit": 0})
        except RequestError as exc:
            raise RequestError(
                f"Request for devices with label {label.display_name} could not be completed. {exc.message}",
                status_code=exc.status_code,
            ) from exc
        return parse_list(Device, unwrap_data(body, "devices"))

    # ── Labels ──────────────────────────────────────────────────

    async def get_label_group(self, name: str) -> LabelGroup | None:
        """Return the label group named exactly ``name``, or None."""
        if not name:
            return None

        logger.debug("retrieving %s label group", name)
        try:
            body = await self.get("label-groups", payload={"search": name})
        except RequestError as exc:
            raise RequestError(
                f"Could not complete request to find label group. {exc.message}",
                status_code=exc.status_code,
            ) from exc

        groups = parse_list(LabelGroup, unwrap_data(body, "label-groups"))
        return next((group for group in groups if group.display_name == name), None)

    async def get_label_in_group(self, name: str, group: LabelGroup | None) -> Label | None:
        """Return the label named exactly ``name`` inside ``group``, or None."""
        if not name or not group:
            return None

        logger.debug("retrieving label %r in label group %s", name, group.display_name)
        path = f"label-groups/{group.id}/labels"
        try:
            body = await self.get(path, payload={"search": name})
        except RequestError as exc:
            raise RequestError(f"Could not retrieve label. Error: {exc.message}", status_code=exc.status_code) from exc

        labels = parse_list(Label, unwrap_data(body, path))
        return next((label for label in labels if label.display_name == name), None)

    # ── Projects ────────────────────────────────────────────────

    async def get_projects(self, limit: int = 0) -> list[Project]:
        """Return the user's projects, or at most ``limit`` of them (0 means no cap)."""
        from testdroid_client.project import Project

        try:
            body = await self.get("me/projects", payload={"limit": limit})
        except RequestError as exc:
            raise RequestError(f"Could not retrieve projects. {exc.message}", status_code=exc.status_code) from exc

        records = parse_list(ProjectRecord, unwrap_data(body, "me/projects"))
        return [Project(self, record) for record in records]

    async def get_project(self, name: str) -> Project | None:
        """Return the project named exactly ``name``, or None."""
        from testdroid_client.project import Project

        if not name:
            return None

        try:
            body = await self.get("me/projects", payload={"search": name})
        except RequestError as exc:
            raise RequestError(f"Could not retrieve projects. {exc.message}", status_code=exc.status_code) from exc

        records = parse_list(ProjectRecord, unwrap_data(body, "me/projects"))
        record = next((r for r in records if r.name == name), None)
        if record is None:
            return None
        return Project(self, record)

    async def create_test_run(self, project: Project) -> TestRun:
        """Start a new run of ``project``."""
        return await project.create_test_run()

    # ── Device sessions ─────────────────────────────────────────

    async def start_device_session(self, device_id: int) -> DeviceSession:
        """Lease the device model ``device_id`` and return the new session."""
        logger.debug("creating a device session for %s", device_id)
        try:
            body = await self.post("me/device-sessions", payload={"deviceModelId": device_id})
        except RequestError as exc:
            raise RequestError(
                f"Could not create session for {device_id}. {exc.message}",
                status_code=exc.status_code,
            ) from exc

        session = parse_model(DeviceSession, body, "me/device-sessions")
        logger.info("started device session %s", session.id)
        return session

    async def stop_device_session(self, session_id: int) -> Any:
        """Release ``session_id`` so the device can be used by other clients."""
        logger.debug("stopping device session %s", session_id)
        try:
            body = await self.post(f"me/device-sessions/{session_id}/release")
        except RequestError as exc:
            raise RequestError(
                f"Could not stop the session properly for {session_id}. {exc.message}",
                status_code=exc.status_code,
            ) from exc

        logger.info("released device session %s", session_id)
        return body

    async def get_proxy(
        self,
        proxy_type: ProxyType | str,
        session_id: int,
        *,
        cancel: asyncio.Event | None = None,
    ) -> ProxySession:
        """Wait for the cloud to create an adb or marionette proxy for a session.

        The proxy plugin is polled until it reports a proxy for the session.
        This usually takes a second or two but may take up to
        ``proxy_attempts * proxy_interval`` seconds.

        Args:
            proxy_type: ``adb`` or ``marionette``.
            session_id: Session ID as returned by ``start_device_session``.
            cancel: Optional event that aborts the wait when set.

        Returns:
            The first proxy reported for the session.

        Raises:
            ProxyTimeoutError: If no proxy appeared within the polling budget.
            PollCancelledError: If ``cancel`` was set.
            RequestError: If a poll request failed.
        """
        kind = ProxyType(proxy_type).value
        where = json.dumps({"type": kind, "sessionId": session_id})
        logger.debug("creating %s proxied session", kind)

        async def fetch() -> Any:
            return await self.get("proxy-plugin/proxies", payload={"where": where})

        try:
            proxies = await poll_until(
                fetch,
                lambda body: isinstance(body, list) and len(body) > 0,
                attempts=self._proxy_attempts,
                interval=self._proxy_interval,
                cancel=cancel,
                label=f"{kind} proxy for session {session_id}",
            )
        except PollTimeoutError as exc:
            raise ProxyTimeoutError(f"Could not get {kind} proxy session for {session_id}") from exc

        return parse_model(ProxySession, proxies[0], "proxy-plugin/proxies")


def _body(resp: httpx.Response, path: str) -> Any:
    if not resp.is_success:
        raise RequestError(_error_message(resp), status_code=resp.status_code)
    if not resp.content:
        return None
    try:
        return resp.json()
    except ValueError as exc:
        raise ResponseError(f"/{path} returned non-JSON body: {resp.text[:200]}", status_code=resp.status_code) from exc


def _error_message(resp: httpx.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        for key in ("message", "error_description", "error"):
            if body.get(key):
                return str(body[key])
    return f"HTTP {resp.status_code}: {resp.text[:200]}"


def unwrap_data(body: Any, path: str) -> list[Any]:
    """Unwrap the ``data`` list from a paged API response."""
    if not isinstance(body, dict) or not isinstance(body.get("data"), list):
        raise ResponseError(f"/{path} response has no data list")
    return body["data"]


def parse_model(model: type[M], raw: Any, path: str) -> M:
    try:
        return model.model_validate(raw)
    except ValidationError as exc:
        raise ResponseError(f"/{path} returned an unexpected {model.__name__}: {exc}") from exc


def parse_list(model: type[M], items: list[Any]) -> list[M]:
    try:
        return [model.model_validate(item) for item in items]
    except ValidationError as exc:
        raise ResponseError(f"unexpected {model.__name__} record: {exc}") from exc
