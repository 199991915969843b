"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

Two header forms carry the same bearer JWT:
  1. Authorization: Bearer <token> -- the default for API clients.
  2. x-auth-token: <token>         -- the header the mobile client sends.

try_get_current_identity() is the soft variant (returns None on failure).
get_current_identity() wraps it and raises HTTP 401 if unauthenticated.

Nothing is cached between requests: each call re-verifies the token and
re-reads the identity, so a token for a deleted identity stops working.

Layer rule: no imports from catalog/ or client/.
  This module may import from fastapi because it is part of the FastAPI
  dependency injection system.
"""

from __future__ import annotations

from fastapi import HTTPException, Request

from auth.models import Identity
from auth.tokens import decode_access_token


def _extract_token(request: Request) -> str | None:
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        return auth_header[7:].strip() or None
    return request.headers.get("x-auth-token") or None


def try_get_current_identity(request: Request) -> Identity | None:
    """Authenticate the request from its bearer token. Never raises."""
    token = _extract_token(request)
    if not token:
        return None
    payload = decode_access_token(token)
    if payload is None:
        return None
    return request.app.state.identity_store.get_by_id(payload["sub"])


def get_current_identity(request: Request) -> Identity:
    """Require authentication. Raises HTTP 401 if the request is not authenticated.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(identity: Identity = Depends(get_current_identity)): ...
    """
    identity = try_get_current_identity(request)
    if identity is None:
        raise HTTPException(
            status_code=401,
            detail={"code": "unauthorized", "message": "No token, authorization denied"},
        )
    return identity
