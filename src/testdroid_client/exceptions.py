"""Hierarchical exception types for the Testdroid client."""

from __future__ import annotations


class TestdroidError(Exception):
    """Base exception for all Testdroid client errors."""

    __test__ = False


# ── Authentication ──────────────────────────────────────────────


class AuthError(TestdroidError):
    """OAuth token could not be obtained or refreshed."""


# ── Requests ────────────────────────────────────────────────────


class RequestError(TestdroidError):
    """API call failed or returned a non-success status."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class ResponseError(RequestError):
    """Response body did not match the expected schema."""


# ── Polling ─────────────────────────────────────────────────────


class PollTimeoutError(TestdroidError):
    """Retry budget exhausted without a satisfying result."""


class ProxyTimeoutError(PollTimeoutError):
    """No proxy session appeared within the polling budget."""


class PollCancelledError(TestdroidError):
    """Polling was aborted through its cancel event."""
