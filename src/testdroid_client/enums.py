"""Enumerations for OAuth grants and proxy kinds."""

from __future__ import annotations

from enum import Enum, unique


@unique
class GrantType(str, Enum):
    """OAuth2 grant types accepted by ``oauth/token``."""

    PASSWORD = "password"
    REFRESH_TOKEN = "refresh_token"


@unique
class ProxyType(str, Enum):
    """Proxy kinds served by the proxy plugin."""

    ADB = "adb"
    MARIONETTE = "marionette"
