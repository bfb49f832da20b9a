"""Identity collaborator: who is calling.

Identities are established by an external identity service that issues signed
tokens; this module only verifies them.
"""

import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional

from jose import JWTError, jwt
from pydantic import BaseModel
import structlog

from admissions_backend.core.config import settings
from admissions_backend.core.error_handling import AuthenticationError

logger = structlog.get_logger(__name__)


class Identity(BaseModel):
    """Authenticated caller."""

    identity: str
    email: Optional[str] = None


class IdentityProvider(ABC):
    """Authentication surface consumed by the API."""

    @abstractmethod
    def authenticate(self, credentials: str) -> Identity:
        """Exchange credentials for an identity.

        Raises:
            AuthenticationError: If the credentials are not valid
        """

    @abstractmethod
    def current_identity(self, token: Optional[str]) -> Optional[Identity]:
        """Identity behind a session token, or None when signed out."""

    @abstractmethod
    def sign_out(self, token: str) -> None:
        """End the session the token belongs to."""


class JWTIdentityProvider(IdentityProvider):
    """Verifies signed identity tokens with python-jose."""

    def __init__(
        self,
        secret_key: Optional[str] = None,
        algorithm: Optional[str] = None,
        expire_minutes: Optional[int] = None,
    ):
        self.secret_key = secret_key or settings.secret_key
        self.algorithm = algorithm or settings.algorithm
        self.expire_minutes = expire_minutes or settings.access_token_expire_minutes
        # jti -> exp (epoch seconds) of signed-out tokens
        self._revoked: Dict[str, float] = {}

    def issue_token(self, identity: str, email: Optional[str] = None, expires_delta: Optional[timedelta] = None) -> str:
        """Create a signed token carrying the identity and email.

        Args:
            identity: Stable user identifier (token subject)
            email: Email address, if known
            expires_delta: Token lifetime; defaults to the configured expiry

        Returns:
            Encoded JWT
        """
        now = datetime.now(timezone.utc)
        expire = now + (expires_delta or timedelta(minutes=self.expire_minutes))
        jti = str(uuid.uuid4())
        payload = {"sub": identity, "email": email, "exp": expire, "iat": now, "jti": jti}

        token = jwt.encode(payload, self.secret_key, algorithm=self.algorithm)
        logger.debug("Identity token issued", identity=identity, jti=jti, expires_at=expire.isoformat())
        return token

    def authenticate(self, credentials: str) -> Identity:
        try:
            payload = jwt.decode(credentials, self.secret_key, algorithms=[self.algorithm])
        except JWTError as e:
            logger.warning("Token verification failed", error=str(e))
            raise AuthenticationError("Could not validate credentials", original_error=e)

        subject = payload.get("sub")
        if not subject:
            logger.warning("Token missing subject")
            raise AuthenticationError("Could not validate credentials")

        self._prune_revoked()
        jti = payload.get("jti")
        if jti and jti in self._revoked:
            logger.warning("Revoked token rejected", identity=subject, jti=jti)
            raise AuthenticationError("Session has been signed out")

        return Identity(identity=subject, email=payload.get("email"))

    def current_identity(self, token: Optional[str]) -> Optional[Identity]:
        if not token:
            return None
        try:
            return self.authenticate(token)
        except AuthenticationError:
            return None

    def sign_out(self, token: str) -> None:
        """Revoke a verified token until it expires.

        Tokens that fail verification are ignored; an expired token needs no revocation.
        """
        try:
            claims = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except JWTError as e:
            logger.warning("Sign-out with unverifiable token", error=str(e))
            return

        self._prune_revoked()
        jti = claims.get("jti")
        if jti:
            exp = claims.get("exp")
            self._revoked[jti] = float(exp) if exp is not None else float("inf")
            logger.info("Identity signed out", identity=claims.get("sub"), jti=jti)

    def _prune_revoked(self) -> None:
        now = datetime.now(timezone.utc).timestamp()
        expired = [jti for jti, exp in self._revoked.items() if exp <= now]
        for jti in expired:
            del self._revoked[jti]
