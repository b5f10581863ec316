"""Request identity: FastAPI dependencies resolving the calling user.

Public interface:
    ``current_user``  returns AuthContext, or raises 401 when auth is enabled.

The folder service only records *who* created a folder or uploaded a
document; it does not authorize. When ``settings.auth_enabled`` is False
every request is anonymous so the development workflow is unbroken.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .config import settings
from .token_factory import decode_token
from ..exceptions import AuthenticationError

logger = logging.getLogger(__name__)

_bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class AuthContext:
    """Identity of the caller. ``user_id`` is None for anonymous requests."""

    user_id: Optional[str]
    email: Optional[str] = None

    @property
    def is_anonymous(self) -> bool:
        return self.user_id is None

    @property
    def display_name(self) -> str:
        return self.email or self.user_id or "Unknown User"


_ANONYMOUS = AuthContext(user_id=None)


def _resolve(credentials: Optional[HTTPAuthorizationCredentials]) -> Optional[AuthContext]:
    if credentials is None:
        return None
    payload = decode_token(
        credentials.credentials, settings.jwt_secret_key, settings.jwt_algorithm
    )
    if payload is None:
        return None
    return AuthContext(user_id=payload.sub, email=payload.email)


def current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
) -> AuthContext:
    """Require a valid bearer token when auth is enabled."""
    if not settings.auth_enabled:
        return _ANONYMOUS

    if credentials is None:
        raise AuthenticationError("Missing authentication token")

    context = _resolve(credentials)
    if context is None:
        raise AuthenticationError("Invalid or expired token")
    return context
