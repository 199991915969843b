"""
api/routes/auth.py -- Registration and login for the custom-auth path.

Routes:
  POST /api/auth/register  -- create identity, return {token}
  POST /api/auth/login     -- verify credentials, return {token}

Both are public. Validation happens in the Pydantic request models (400
with a field error list); business failures come back from AuthGateway as
MarketplaceError subclasses and are rendered by the handler in api/main.py:
  ConflictError           -> 400 "User already exists"
  InvalidCredentialsError -> 400 "Invalid credentials" (unknown email and
                             wrong password are indistinguishable)

Tokens are returned in the body only; Cache-Control: no-store keeps them out
of intermediary caches.
"""

from __future__ import annotations

from fastapi import APIRouter, Request, Response

from api.models import LoginRequest, RegisterRequest, TokenResponse
from auth.gateway import AuthGateway

router = APIRouter()


@router.post("/auth/register", response_model=TokenResponse)
def register(request: Request, response: Response, body: RegisterRequest) -> TokenResponse:
    """Register a new user and return a bearer token."""
    gateway: AuthGateway = request.app.state.auth_gateway
    token = gateway.register(body.name, body.email, body.password)
    response.headers["Cache-Control"] = "no-store"
    return TokenResponse(token=token)


@router.post("/auth/login", response_model=TokenResponse)
def login(request: Request, response: Response, body: LoginRequest) -> TokenResponse:
    """Authenticate with email and password and return a bearer token."""
    gateway: AuthGateway = request.app.state.auth_gateway
    token = gateway.login(body.email, body.password)
    response.headers["Cache-Control"] = "no-store"
    return TokenResponse(token=token)
