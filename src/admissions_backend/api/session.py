"""Session endpoints over the identity collaborator."""

from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.security import HTTPAuthorizationCredentials
from pydantic import BaseModel
import structlog

from admissions_backend.auth.dependencies import (
    get_authorization_policy,
    get_identity_provider,
    security,
)
from admissions_backend.auth.identity import IdentityProvider
from admissions_backend.auth.policy import AuthorizationPolicy

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/session", tags=["session"])


class SessionResponse(BaseModel):
    """Current caller, or an anonymous session."""

    authenticated: bool
    identity: Optional[str] = None
    email: Optional[str] = None
    is_admin: bool = False


@router.get("", response_model=SessionResponse)
async def get_session(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    provider: IdentityProvider = Depends(get_identity_provider),
    policy: AuthorizationPolicy = Depends(get_authorization_policy),
):
    """Who is signed in and whether they have admin access."""
    identity = provider.current_identity(credentials.credentials if credentials else None)
    if identity is None:
        return SessionResponse(authenticated=False)
    return SessionResponse(
        authenticated=True,
        identity=identity.identity,
        email=identity.email,
        is_admin=policy.is_authorized(identity),
    )


@router.post("/sign-out", status_code=204)
async def sign_out(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    provider: IdentityProvider = Depends(get_identity_provider),
):
    """End the current session."""
    if credentials:
        provider.sign_out(credentials.credentials)
