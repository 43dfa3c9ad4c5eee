"""Testdroid cloud API client."""

from .client import VERSION, TestdroidClient
from .exceptions import AuthError, ProxyTimeoutError, RequestError, TestdroidError
from .project import Project

__version__ = VERSION
__all__ = ["AuthError", "Project", "ProxyTimeoutError", "RequestError", "TestdroidClient", "TestdroidError"]
