"""Authentication and authorization module."""

from .dependencies import get_current_identity, get_lifecycle_service, require_admin
from .identity import Identity, IdentityProvider, JWTIdentityProvider
from .policy import AllowListPolicy, AuthorizationPolicy

__all__ = [
    "get_current_identity",
    "get_lifecycle_service",
    "require_admin",
    "Identity",
    "IdentityProvider",
    "JWTIdentityProvider",
    "AllowListPolicy",
    "AuthorizationPolicy",
]
