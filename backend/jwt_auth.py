"""
JWT Authentication Module for Callout

Responders log in with email + password and receive a signed access token.
The token carries the responder id (`sub`) and role, so identifying the
caller on a response submission is a signature check, not a DB lookup.

Delivery:
- API clients: Authorization: Bearer <token> header
- Browser: httpOnly cookie named "callout_jwt"

Incident creation and listing do not require a token. Response submission
does (see get_current_claims).

DEPENDENCIES: PyJWT, bcrypt
"""

import os
import secrets
import logging
from datetime import datetime, timezone, timedelta
from typing import Optional

import bcrypt
import jwt  # PyJWT
from fastapi import Request

from errors import UnauthenticatedError

logger = logging.getLogger(__name__)

# =============================================================================
# CONFIGURATION
# =============================================================================

# JWT signing key MUST be set in production via environment variable.
# If not set, generates a random key; tokens are invalidated on restart.
_default_secret = secrets.token_urlsafe(64)
JWT_SECRET = os.environ.get("CALLOUT_JWT_SECRET", _default_secret)
if JWT_SECRET == _default_secret:
    logger.warning(
        "CALLOUT_JWT_SECRET not set in environment, using random key. "
        "Tokens will be invalidated on restart."
    )

JWT_ALGORITHM = "HS256"
# Matches the 30-day session lifetime responders are used to
ACCESS_TOKEN_LIFETIME = timedelta(hours=int(os.environ.get("CALLOUT_TOKEN_HOURS", "720")))

ACCESS_COOKIE = "callout_jwt"


# =============================================================================
# PASSWORDS
# =============================================================================

def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, password_hash: Optional[str]) -> bool:
    if not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Malformed stored hash
        return False


# =============================================================================
# TOKEN CREATION
# =============================================================================

def create_access_token(responder_id: str, role: str) -> str:
    """
    Create a signed JWT access token.

    Args:
        responder_id: Responder primary key (becomes the `sub` claim)
        role: Responder role (ADMIN, LEADER, MEMBER)

    Returns:
        Encoded JWT string
    """
    now = datetime.now(timezone.utc)
    payload = {
        "sub": responder_id,
        "role": role,
        "iat": now,
        "exp": now + ACCESS_TOKEN_LIFETIME,
    }
    return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALGORITHM)


# =============================================================================
# TOKEN VALIDATION
# =============================================================================

class TokenClaims:
    """Parsed and validated JWT claims."""

    __slots__ = ("responder_id", "role", "exp")

    def __init__(self, payload: dict):
        self.responder_id = payload["sub"]
        self.role = payload.get("role", "MEMBER")
        self.exp = payload.get("exp")


def validate_access_token(token: str) -> Optional[TokenClaims]:
    """
    Validate a JWT access token by checking its signature and expiration.

    Returns:
        TokenClaims if valid, None if invalid/expired.
    """
    try:
        payload = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
        return TokenClaims(payload)
    except jwt.ExpiredSignatureError:
        return None
    except jwt.InvalidTokenError as e:
        logger.warning(f"Invalid JWT: {e}")
        return None
    except KeyError:
        logger.warning("JWT missing subject claim")
        return None


def extract_token_from_request(request) -> Optional[str]:
    """
    Extract JWT access token from request.

    Priority order:
    1. Authorization: Bearer <token> header
    2. callout_jwt cookie
    """
    auth_header = request.headers.get("authorization", "")
    if auth_header.startswith("Bearer "):
        return auth_header[7:]

    token = request.cookies.get(ACCESS_COOKIE)
    if token:
        return token

    return None


# =============================================================================
# FASTAPI DEPENDENCIES
# =============================================================================

def get_current_claims(request: Request) -> TokenClaims:
    """Require an authenticated responder."""
    token = extract_token_from_request(request)
    if not token:
        raise UnauthenticatedError("Authentication required")

    claims = validate_access_token(token)
    if claims is None:
        raise UnauthenticatedError("Invalid or expired token")
    return claims


def set_auth_cookie(response, access_token: str):
    """Set the access token cookie on a login response."""
    response.set_cookie(
        key=ACCESS_COOKIE,
        value=access_token,
        max_age=int(ACCESS_TOKEN_LIFETIME.total_seconds()),
        httponly=True,
        secure=True,
        samesite="lax",
    )
