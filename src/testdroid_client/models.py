"""Frozen Pydantic schemas for Testdroid API responses."""

from __future__ import annotations

import time
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from testdroid_client.enums import ProxyType

_WIRE_CONFIG = ConfigDict(frozen=True, extra="allow", populate_by_name=True)


class Token(BaseModel):
    """An OAuth2 bearer token and its absolute expiry (epoch seconds)."""

    model_config = {"frozen": True}

    access_token: str
    refresh_token: str | None = None
    expires_at: float = 0.0

    def is_expired(self, now: float | None = None) -> bool:
        now = time.time() if now is None else now
        return now > self.expires_at

    def expires_within(self, seconds: float, now: float | None = None) -> bool:
        now = time.time() if now is None else now
        return self.expires_at <= now + seconds


class TokenGrant(BaseModel):
    """Body returned by ``oauth/token``."""

    model_config = {"extra": "ignore"}

    access_token: str
    refresh_token: str | None = None
    expires_in: float

    def to_token(self, now: float) -> Token:
        return Token(
            access_token=self.access_token,
            refresh_token=self.refresh_token,
            expires_at=now + self.expires_in,
        )


class Device(BaseModel):
    """A device model available in the cloud."""

    model_config = _WIRE_CONFIG

    id: int
    display_name: str = Field(alias="displayName")
    os_type: str | None = Field(default=None, alias="osType")
    software_version: dict[str, Any] | None = Field(default=None, alias="softwareVersion")


class LabelGroup(BaseModel):
    """A named group of device labels, e.g. "Device Groups"."""

    model_config = _WIRE_CONFIG

    id: int
    display_name: str = Field(alias="displayName")


class Label(BaseModel):
    """A single device label inside a label group."""

    model_config = _WIRE_CONFIG

    id: int
    display_name: str = Field(alias="displayName")


class ProjectRecord(BaseModel):
    """Raw project record from ``me/projects``."""

    model_config = _WIRE_CONFIG

    id: int
    name: str
    type: str | None = None
    description: str | None = None


class TestRun(BaseModel):
    """One execution of a project."""

    __test__ = False

    model_config = _WIRE_CONFIG

    id: int
    display_name: str | None = Field(default=None, alias="displayName")
    state: str | None = None


class DeviceSession(BaseModel):
    """An exclusive lease on a device."""

    model_config = _WIRE_CONFIG

    id: int
    device: dict[str, Any] | None = None
    state: str | None = None


class ProxySession(BaseModel):
    """An adb or marionette proxy endpoint bridging to a leased device."""

    model_config = _WIRE_CONFIG

    type: ProxyType
    host: str | None = None
    port: int | None = None
    session_id: int | None = Field(default=None, alias="sessionId")
