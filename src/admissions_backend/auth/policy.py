"""Admin authorization policies."""

from abc import ABC, abstractmethod
from typing import Iterable, Optional

import structlog

from admissions_backend.core.config import settings

from .identity import Identity

logger = structlog.get_logger(__name__)


class AuthorizationPolicy(ABC):
    """Decides whether an authenticated identity may use the admin surface."""

    @abstractmethod
    def is_authorized(self, identity: Identity) -> bool:
        """Whether the identity has admin access."""


class AllowListPolicy(AuthorizationPolicy):
    """Admin access by membership of a static allow-list.

    Entries are matched case-insensitively against the identity's email and,
    failing that, its identifier.
    """

    def __init__(self, allowed: Optional[Iterable[str]] = None):
        source = settings.admin_emails if allowed is None else allowed
        self.allowed = frozenset(entry.strip().lower() for entry in source if entry and entry.strip())

    def is_authorized(self, identity: Identity) -> bool:
        candidates = {(identity.email or "").lower(), identity.identity.lower()}
        authorized = bool(candidates & self.allowed)
        if not authorized:
            logger.debug("Admin access not granted", identity=identity.identity)
        return authorized
