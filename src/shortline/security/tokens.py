"""Service tokens for blob access and internal calls.

A token is an HS256 JWT whose subject is the resource it grants access to
(a blob id for the blob store, a user id for the internal delete cascade).
Tokens are issued by this service and verified with the same shared secret.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta
from typing import Any

from jose import JWTError, jwt
from jose.exceptions import ExpiredSignatureError

from shortline.config import settings

logger = logging.getLogger(__name__)


class InvalidTokenError(Exception):
    """Raised when token validation fails."""

    pass


class TokenService:
    """Issues and verifies subject-bound service tokens."""

    ALGORITHM = "HS256"

    def __init__(self, secret: str, ttl_seconds: int = 3600):
        if not secret:
            raise ValueError("Token secret must not be empty")
        self.secret = secret
        self.ttl_seconds = ttl_seconds

    def issue(self, subject: str, ttl_seconds: int | None = None) -> str:
        """Issue a token granting access to `subject`."""
        now = datetime.now(UTC)
        ttl = self.ttl_seconds if ttl_seconds is None else ttl_seconds
        claims = {
            "sub": subject,
            "iat": int(now.timestamp()),
            "exp": int((now + timedelta(seconds=ttl)).timestamp()),
        }
        return jwt.encode(claims, self.secret, algorithm=self.ALGORITHM)

    def decode(self, token: str) -> dict[str, Any]:
        """Verify signature and expiry and return the claims.

        Raises:
            InvalidTokenError: If the token is malformed, forged or expired
        """
        try:
            return jwt.decode(
                token,
                self.secret,
                algorithms=[self.ALGORITHM],
                options={"verify_exp": True},
            )
        except ExpiredSignatureError as e:
            raise InvalidTokenError("Token has expired") from e
        except JWTError as e:
            raise InvalidTokenError(f"Invalid token: {e}") from e

    def is_valid(self, token: str | None, subject: str) -> bool:
        """True iff the token verifies and was issued for `subject`."""
        if not token:
            return False
        try:
            claims = self.decode(token)
        except InvalidTokenError as e:
            logger.debug(f"Rejected token for {subject}: {e}")
            return False
        return claims.get("sub") == subject


_token_service: TokenService | None = None


def get_token_service() -> TokenService:
    """Get the global token service configured from settings."""
    global _token_service
    if _token_service is None:
        _token_service = TokenService(settings.token_secret, settings.token_ttl_seconds)
    return _token_service
