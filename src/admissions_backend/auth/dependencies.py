"""FastAPI dependencies for authentication, authorization and service wiring."""

from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session
import structlog

from admissions_backend.core.database import get_db
from admissions_backend.core.error_handling import AuthenticationError, AuthorizationError
from admissions_backend.repositories.application import SQLAlchemyApplicationRepository
from admissions_backend.repositories.base import ApplicationRepository
from admissions_backend.services.lifecycle_service import ApplicationLifecycleService

from .identity import Identity, IdentityProvider, JWTIdentityProvider
from .policy import AllowListPolicy, AuthorizationPolicy

logger = structlog.get_logger(__name__)

# Security scheme - missing credentials are reported by get_current_identity
security = HTTPBearer(auto_error=False)

_identity_provider = JWTIdentityProvider()
_authorization_policy = AllowListPolicy()


def get_identity_provider() -> IdentityProvider:
    return _identity_provider


def get_authorization_policy() -> AuthorizationPolicy:
    return _authorization_policy


def get_current_identity(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    provider: IdentityProvider = Depends(get_identity_provider),
) -> Identity:
    """Get the authenticated caller from the bearer token.

    Raises:
        AuthenticationError: If no valid token is presented
    """
    if not credentials:
        logger.warning("No credentials provided")
        raise AuthenticationError("Could not validate credentials")

    return provider.authenticate(credentials.credentials)


def require_admin(
    identity: Identity = Depends(get_current_identity),
    policy: AuthorizationPolicy = Depends(get_authorization_policy),
) -> Identity:
    """Get the caller, requiring admin access.

    Raises:
        AuthorizationError: If the policy does not authorize the caller
    """
    if not policy.is_authorized(identity):
        logger.warning("Admin access denied", identity=identity.identity, email=identity.email)
        raise AuthorizationError("Admin access required")
    return identity


def get_application_repository(db: Session = Depends(get_db)) -> ApplicationRepository:
    return SQLAlchemyApplicationRepository(db)


def get_lifecycle_service(
    repository: ApplicationRepository = Depends(get_application_repository),
) -> ApplicationLifecycleService:
    return ApplicationLifecycleService(repository)
