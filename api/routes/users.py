"""
api/routes/users.py -- The authenticated caller's own profile.

Routes:
  GET /api/users/me  -- {id, name, email, isSeller}
  PUT /api/users/me  -- partial name/email update, returns the fresh profile

Both require a valid bearer token. There is no
route to read or change another identity's profile.
"""

from fastapi import APIRouter, Depends, Request

from api.models import ProfileResponse, ProfileUpdate
from auth.dependencies import get_current_identity
from auth.gateway import AuthGateway
from auth.models import Identity

router = APIRouter()


@router.get("/users/me", response_model=ProfileResponse)
def get_me(identity: Identity = Depends(get_current_identity)) -> ProfileResponse:
    return ProfileResponse.from_identity(identity)


@router.put("/users/me", response_model=ProfileResponse)
def update_me(
    request: Request,
    body: ProfileUpdate,
    identity: Identity = Depends(get_current_identity),
) -> ProfileResponse:
    """Update name and/or email. A new email already in use returns 400."""
    gateway: AuthGateway = request.app.state.auth_gateway
    updated = gateway.update_profile(identity.id, name=body.name, email=body.email)
    return ProfileResponse.from_identity(updated)
