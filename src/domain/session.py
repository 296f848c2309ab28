"""
Session issuer - mints access/refresh credentials for a verified identity.

Both tokens are HS256 JWTs distinguished by their "type" claim. Refresh
mechanics are handled elsewhere; this module only issues and decodes.
"""

import logging
import secrets
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from jose import JWTError, jwt

from .clock import utc_now
from .models import AuthSession, User

logger = logging.getLogger(__name__)

ACCESS = "access"
REFRESH = "refresh"


@dataclass
class SessionIssuer:
    secret: str
    algorithm: str = "HS256"
    access_ttl_seconds: int = 900
    refresh_ttl_seconds: int = 60 * 60 * 24 * 7
    clock: Callable[[], datetime] = field(default=utc_now)

    def issue(self, user: User) -> AuthSession:
        """Mint an access/refresh pair bound to the user."""
        now = self.clock()
        access_token = self._encode(user, ACCESS, now, self.access_ttl_seconds)
        refresh_token = self._encode(user, REFRESH, now, self.refresh_ttl_seconds)
        logger.info("Issued session for user %s", user.id)
        return AuthSession(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_in=self.access_ttl_seconds,
            user=user,
        )

    def decode(self, token: str, expected_type: str = ACCESS) -> dict | None:
        """Return the claims of a valid, unexpired token of the expected type, else None."""
        try:
            claims = jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except JWTError:
            return None
        if claims.get("type") != expected_type:
            return None
        return claims

    def _encode(self, user: User, token_type: str, now: datetime, ttl_seconds: int) -> str:
        claims = {
            "sub": user.id,
            "type": token_type,
            "user_type": user.user_type.value,
            "iat": int(now.timestamp()),
            "exp": int((now + timedelta(seconds=ttl_seconds)).timestamp()),
            "jti": secrets.token_urlsafe(16),
        }
        return jwt.encode(claims, self.secret, algorithm=self.algorithm)
