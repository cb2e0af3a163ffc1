"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

One auth method exists: an "Authorization: Bearer <access_token>" header,
resolved through UserService.validate(). A missing or malformed header is
Unauthorized before any resource logic runs.

get_current_user() returns the active principal, with its role attached.
require(permissions) builds a dependency that additionally applies the
permission gate from auth/gate.py and raises Forbidden when bits are missing.

Both raise ModelError subclasses, not HTTPException; the exception handlers
in api/main.py render them (401 and 403).

Layer rule: no imports from api/ or ratings/.
  auth/dependencies.py may import from fastapi (for Depends/Request)
  because this module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

from collections.abc import Callable

from fastapi import Depends, Request

from auth.gate import require_permissions
from auth.models import User
from core.errors import Unauthorized

_BEARER_PREFIX = "bearer "


def bearer_token(request: Request) -> str:
    """Return the token from the Authorization header, or raise Unauthorized."""
    header = request.headers.get("Authorization", "")
    if not header.lower().startswith(_BEARER_PREFIX):
        raise Unauthorized("missing bearer token")
    token = header[len(_BEARER_PREFIX) :].strip()
    if not token:
        raise Unauthorized("empty bearer token")
    return token


def get_current_user(request: Request) -> User:
    """Require authentication.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(user: User = Depends(get_current_user)): ...
    """
    return request.app.state.user_service.validate(bearer_token(request))


def require(permissions: int) -> Callable[..., User]:
    """Build a dependency requiring every bit in permissions.

    Use as a FastAPI dependency:
        @router.get("/users/")
        def route(user: User = Depends(require(Permission.READ_USERS))): ...
    """

    def dependency(user: User = Depends(get_current_user)) -> User:
        require_permissions(user, permissions)
        return user

    return dependency
