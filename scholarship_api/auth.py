"""Token issuing/verification and the FastAPI access dependencies.

Tokens are stateless HS256 JWTs carrying whatever identity claims the
client posted to `/jwt` (at minimum an `email`) plus an `exp` set
`TOKEN_EXPIRE_DAYS` after issue. There is no revocation list: a token
stays valid until it expires.

`verify_token` is the gate for every protected route. It only checks
that the bearer token is genuine and unexpired; it does not look at the
caller's role. `require_role` layers an optional role check on top,
switched on with `ENFORCE_ADMIN_ROLES`.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from fastapi import Depends, Request, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlmodel import Session

from . import repositories
from .config import settings
from .database import get_session

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)

_RESERVED_CLAIMS = ("exp", "iat", "nbf")


class AuthenticationError(Exception):
    """Missing, malformed, wrongly signed or expired bearer token."""


class AuthorizationError(Exception):
    """Authenticated caller lacks the role a route requires."""


def issue_token(claims: dict) -> str:
    """Sign `claims` into a bearer token valid for `TOKEN_EXPIRE_DAYS`."""
    payload = {k: v for k, v in claims.items() if k not in _RESERVED_CLAIMS}
    now = datetime.now(timezone.utc)
    payload["iat"] = now
    payload["exp"] = now + timedelta(days=settings.TOKEN_EXPIRE_DAYS)
    return jwt.encode(payload, settings.ACCESS_TOKEN_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_token(token: Optional[str]) -> dict:
    """Verify a token and return its claims.

    Raises `AuthenticationError` on any failure; the reason is only
    logged so callers cannot tell the cases apart.
    """
    if not token:
        raise AuthenticationError("missing token")
    try:
        return jwt.decode(
            token,
            settings.ACCESS_TOKEN_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
            options={"require": ["exp"]},
        )
    except jwt.ExpiredSignatureError as exc:
        logger.debug("rejected expired token")
        raise AuthenticationError("token expired") from exc
    except jwt.PyJWTError as exc:
        logger.debug("rejected token: %s", exc)
        raise AuthenticationError("invalid token") from exc


def verify_token(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Security(bearer_scheme),
) -> dict:
    """FastAPI dependency guarding protected routes.

    Short-circuits with `AuthenticationError` when the `Authorization`
    header is absent, before the route touches the database. On success
    the decoded claims are stored on `request.state.user` and returned.
    """
    if credentials is None:
        raise AuthenticationError("missing authorization header")
    claims = decode_token(credentials.credentials)
    request.state.user = claims
    return claims


def require_role(*roles: str):
    """Dependency factory for administrator routes.

    With `ENFORCE_ADMIN_ROLES` off this behaves exactly like
    `verify_token`. With it on, the caller's stored role (looked up by the
    token's email) must be one of `roles`.
    """

    def _role_dependency(
        claims: dict = Depends(verify_token),
        session: Session = Depends(get_session),
    ) -> dict:
        if not settings.ENFORCE_ADMIN_ROLES:
            return claims
        user = repositories.UserRepository(session).get_by_email(claims.get("email") or "")
        if user is None or user.role not in roles:
            raise AuthorizationError(f"role required: {', '.join(roles)}")
        return claims

    return _role_dependency


# Roles allowed on administrator and staff routes when enforcement is on.
require_admin = require_role("Admin")
require_staff = require_role("Admin", "Moderator")
