"""Security module for shortline.

Provides subject-bound service tokens used to authorise blob access and
internal cascade calls. User credentials are checked by the AuthGate in
shortline.services.auth.
"""

from shortline.security.tokens import InvalidTokenError, TokenService, get_token_service

__all__ = [
    "InvalidTokenError",
    "TokenService",
    "get_token_service",
]
