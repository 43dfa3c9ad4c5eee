"""OAuth2 token acquisition and refresh for the Testdroid cloud."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from typing import Any

import httpx
from pydantic import ValidationError

from testdroid_client.enums import GrantType
from testdroid_client.exceptions import AuthError
from testdroid_client.models import Token, TokenGrant

logger = logging.getLogger(__name__)

CLIENT_ID = "testdroid-cloud-api"


class TokenManager:
    """Cache a bearer token and renew it through the password or refresh grant.

    A missing or expired token triggers a password grant. A token that expires
    within ``refresh_margin`` seconds is renewed with its refresh token.
    Renewal runs under a lock, so concurrent callers share one grant request.
    """

    def __init__(
        self,
        base_url: str,
        username: str,
        password: str,
        *,
        user_agent: str,
        timeout: int = 30,
        refresh_margin: float = 60,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._token_url = f"{base_url.rstrip('/')}/oauth/token"
        self._username = username
        self._password = password
        self._user_agent = user_agent
        self._timeout = timeout
        self._refresh_margin = refresh_margin
        self._clock = clock
        self._token: Token | None = None
        self._lock = asyncio.Lock()

    @property
    def token(self) -> Token | None:
        return self._token

    def invalidate(self) -> None:
        """Forget the cached token; the next call performs a password grant."""
        self._token = None

    async def get_token(self) -> str:
        """Return a valid access token, requesting a new one when needed.

        Raises:
            AuthError: If the token endpoint rejects the grant or is unreachable.
        """
        async with self._lock:
            now = self._clock()
            token = self._token

            if token is None or token.is_expired(now):
                logger.debug("requesting new token")
                payload = {
                    "client_id": CLIENT_ID,
                    "grant_type": GrantType.PASSWORD.value,
                    "username": self._username,
                    "password": self._password,
                }
            elif not token.expires_within(self._refresh_margin, now):
                return token.access_token
            else:
                logger.debug("refreshing token")
                payload = {
                    "client_id": CLIENT_ID,
                    "grant_type": GrantType.REFRESH_TOKEN.value,
                    "refresh_token": token.refresh_token or "",
                }

            self._token = await self._grant(payload)
            logger.info("obtained %s token for %s", payload["grant_type"], self._username)
            return self._token.access_token

    async def _grant(self, payload: dict[str, str]) -> Token:
        headers = {
            "User-Agent": self._user_agent,
            "Content-Type": "application/x-www-form-urlencoded",
            "Accept": "application/json",
        }

        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                resp = await client.post(self._token_url, data=payload, headers=headers)
        except httpx.HTTPError as exc:
            raise AuthError(f"Token request failed: {exc!r}") from exc

        if not resp.is_success:
            raise AuthError(f"Could not retrieve token. Error response: {_error_description(resp)}")

        try:
            grant = TokenGrant.model_validate(resp.json())
        except (ValueError, ValidationError) as exc:
            raise AuthError(f"Malformed token response: {resp.text[:200]}") from exc

        return grant.to_token(self._clock())


def _error_description(resp: httpx.Response) -> str:
    try:
        body: Any = resp.json()
    except ValueError:
        return resp.text[:200]
    if isinstance(body, dict):
        return str(body.get("error_description") or body.get("error") or resp.text[:200])
    return resp.text[:200]
