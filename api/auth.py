"""
Bearer token verification for protected routes.

Tokens are issued elsewhere; this module only checks the signature and pulls
the user id out of the claims.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

import structlog
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from api.errors import Unauthenticated
from utilities.config import config

logger = structlog.get_logger(__name__)

# auto_error is off so a missing header becomes our own 401 body
security = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class AuthenticatedUser:
    """Identity of the caller, threaded into every protected operation."""
    user_id: str


def _user_id_from_claims(payload: Dict[str, Any]) -> Optional[str]:
    """Accepts `sub`, a top-level `id`, or a nested `user.id` claim."""
    user_id = payload.get("sub") or payload.get("id")
    if not user_id and isinstance(payload.get("user"), dict):
        user_id = payload["user"].get("id")
    return str(user_id) if user_id else None


def decode_access_token(token: str) -> AuthenticatedUser:
    """
    Validate a bearer token and return the caller's identity.

    Args:
        token: Encoded JWT

    Returns:
        AuthenticatedUser for the token subject

    Raises:
        Unauthenticated: If the token is invalid, expired or has no subject
    """
    try:
        payload = jwt.decode(token, config.secret_key, algorithms=[config.algorithm])
    except JWTError as e:
        logger.warning("Invalid access token", error=str(e))
        raise Unauthenticated("Token is not valid")

    user_id = _user_id_from_claims(payload)
    if not user_id:
        logger.warning("Access token has no subject")
        raise Unauthenticated("Token is not valid")

    return AuthenticatedUser(user_id=user_id)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> AuthenticatedUser:
    """FastAPI dependency guarding protected routes."""
    if credentials is None or not credentials.credentials:
        raise Unauthenticated("No token, authorization denied")
    return decode_access_token(credentials.credentials)
