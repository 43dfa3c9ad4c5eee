"""Tests for response schemas."""

from __future__ import annotations

import pydantic
import pytest

from testdroid_client.enums import ProxyType
from testdroid_client.models import Device, ProxySession, Token, TokenGrant


class TestToken:
    def test_expiry_checks(self) -> None:
        token = Token(access_token="a", refresh_token="r", expires_at=1000.0)

        assert not token.is_expired(now=1000.0)
        assert token.is_expired(now=1000.1)
        assert token.expires_within(60, now=940.0)
        assert not token.expires_within(60, now=939.0)

    def test_grant_converts_lifetime_to_deadline(self) -> None:
        grant = TokenGrant.model_validate({"access_token": "a", "refresh_token": "r", "expires_in": 3600, "scope": "x"})

        token = grant.to_token(now=500.0)

        assert token.expires_at == 4100.0
        assert token.refresh_token == "r"

    def test_token_is_frozen(self) -> None:
        token = Token(access_token="a")
        with pytest.raises(pydantic.ValidationError):
            token.access_token = "b"  # type: ignore[misc]


class TestWireModels:
    def test_device_accepts_alias_and_field_name(self) -> None:
        assert Device.model_validate({"id": 1, "displayName": "Flame"}) == Device(id=1, display_name="Flame")

    def test_device_dump_uses_wire_names(self) -> None:
        device = Device.model_validate({"id": 1, "displayName": "Flame", "online": True})

        assert device.model_dump(by_alias=True, exclude_none=True) == {"id": 1, "displayName": "Flame", "online": True}

    def test_proxy_type_is_validated(self) -> None:
        proxy = ProxySession.model_validate({"type": "marionette", "sessionId": 3})
        assert proxy.type is ProxyType.MARIONETTE

        with pytest.raises(pydantic.ValidationError):
            ProxySession.model_validate({"type": "vnc"})
