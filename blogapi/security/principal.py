"""
Blog API — Principal Resolver
===============================

What:  Turns a bearer token into a Principal (user id, email, admin flag).
Why:   Every protected route needs the same answer to "who is calling?"
How:   TokenService signs/verifies HS256 JWTs with PyJWT; the FastAPI
       dependencies below decode the token and load the user row.
Who:   `require_principal` / `optional_principal` are used by the routers.
When:  Awaited by FastAPI before the route body runs.

Failure Reasons (AuthenticationError.reason):
    missing  → no Authorization header on a route that needs one
    expired  → signature fine, `exp` in the past
    invalid  → malformed header, bad signature, missing claims, unknown user

Optional-auth mode:
    `optional_principal` returns None only when NO Authorization header was
    sent. A header that is present but unusable is still rejected; a bad
    token never degrades to anonymous access.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from blogapi.database import get_db_session
from blogapi.exceptions import AuthenticationError
from blogapi.models.user import User

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Principal:
    """The authenticated identity attached to a request."""

    user_id: uuid.UUID
    email: str
    is_admin: bool = False


class TokenService:
    """
    Issues and verifies access tokens.

    Claims:
        sub       user id (string UUID)
        email     user email at issue time (informational)
        is_admin  role flag at issue time (informational; the stored flag wins)
        iat, exp  issue and expiry timestamps
    """

    def __init__(self, secret: str, algorithm: str = "HS256", lifetime_seconds: int = 3600):
        self._secret = secret
        self._algorithm = algorithm
        self.lifetime_seconds = lifetime_seconds

    def issue(self, user: User, now: Optional[datetime] = None) -> str:
        issued_at = now or datetime.now(timezone.utc)
        payload = {
            "sub": str(user.id),
            "email": user.email,
            "is_admin": bool(user.is_admin),
            "iat": issued_at,
            "exp": issued_at + timedelta(seconds=self.lifetime_seconds),
        }
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def decode(self, token: str) -> Dict[str, Any]:
        """
        Verify signature and expiry, returning the claims.

        Raises:
            AuthenticationError("expired") when `exp` has passed
            AuthenticationError("invalid") for anything else that is wrong
        """
        try:
            claims = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={"require": ["exp", "sub"]},
            )
        except jwt.ExpiredSignatureError:
            raise AuthenticationError("expired")
        except jwt.InvalidTokenError as e:
            logger.debug("Rejected token: %s", e)
            raise AuthenticationError("invalid", context={"error": type(e).__name__})
        return claims


async def resolve_principal(token: str, db: AsyncSession, tokens: TokenService) -> Principal:
    """
    Decode `token` and load the user it names.

    Role flags come from the stored user, not from the token, so a revoked
    admin loses the role as soon as the row changes.
    """
    claims = tokens.decode(token)
    try:
        user_id = uuid.UUID(str(claims["sub"]))
    except ValueError:
        raise AuthenticationError("invalid", context={"sub": claims.get("sub")})

    user = await db.get(User, user_id)
    if user is None:
        # Token outlived its user
        raise AuthenticationError("invalid", context={"user_id": str(user_id)})

    return Principal(user_id=user.id, email=user.email, is_admin=bool(user.is_admin))


# ── FastAPI Dependencies ──────────────────────────────────────────────────
# auto_error=False: missing/malformed headers are reported with our own
# envelope instead of FastAPI's default 403
bearer_scheme = HTTPBearer(auto_error=False)


async def optional_principal(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db_session, scope="function"),
) -> Optional[Principal]:
    if credentials is None:
        if request.headers.get("Authorization"):
            # Header sent but not "Bearer <token>"
            raise AuthenticationError("invalid")
        return None
    tokens: TokenService = request.app.state.context.tokens
    return await resolve_principal(credentials.credentials, db, tokens)


async def require_principal(
    principal: Optional[Principal] = Depends(optional_principal),
) -> Principal:
    if principal is None:
        raise AuthenticationError("missing")
    return principal
