"""
Blog API — Account Service
============================

What:  Registration and login.
How:   Passwords go through PasswordService (argon2); tokens through
       TokenService (JWT). Emails are stored and compared lower-case.

Login never says which half of the credentials was wrong: unknown email
and bad password produce the same "Invalid credentials" rejection.
"""

import logging

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from blogapi.exceptions import AuthenticationError, ConflictError, DatabaseError
from blogapi.models import User
from blogapi.schemas.auth import LoginRequest, RegisterRequest, TokenResponse, UserPublic
from blogapi.security.passwords import PasswordService
from blogapi.security.principal import TokenService

logger = logging.getLogger(__name__)


def to_public(user: User) -> UserPublic:
    return UserPublic(
        id=user.id,
        username=user.username,
        first_name=user.first_name,
        family_name=user.family_name,
        full_name=user.full_name,
        email=user.email,
        is_author=user.is_author,
        is_admin=user.is_admin,
        created_at=user.created_at,
    )


class AuthService:
    def __init__(self, passwords: PasswordService, tokens: TokenService):
        self.passwords = passwords
        self.tokens = tokens

    async def register(self, db: AsyncSession, data: RegisterRequest) -> User:
        """
        Create an account.

        Raises:
            ConflictError: username or email already taken
        """
        email = data.email.lower()
        result = await db.execute(
            select(User.username, User.email).where(
                or_(User.username == data.username, User.email == email)
            )
        )
        for username, existing_email in result.all():
            if username == data.username:
                raise ConflictError(message="Username is already taken", context={"field": "username"})
            if existing_email == email:
                raise ConflictError(message="Email is already registered", context={"field": "email"})

        try:
            user = User(
                username=data.username,
                first_name=data.first_name,
                family_name=data.family_name,
                email=email,
                is_author=False,
                is_admin=False,
            )
            user.set_password(data.password, self.passwords)
            db.add(user)
            await db.flush()
        except IntegrityError:
            # Lost a race with a concurrent registration
            raise ConflictError(message="Username or email is already registered")
        except SQLAlchemyError as e:
            logger.error("Failed to register user %r: %s", data.username, e, exc_info=True)
            raise DatabaseError(context={"operation": "register"})

        logger.info("User %s registered", user.id)
        return user

    async def login(self, db: AsyncSession, data: LoginRequest) -> TokenResponse:
        result = await db.execute(select(User).where(User.email == data.email.lower()))
        user = result.scalar_one_or_none()
        if user is None or not self.passwords.verify(user.password_hash, data.password):
            raise AuthenticationError("credentials")

        if self.passwords.needs_rehash(user.password_hash):
            user.set_password(data.password, self.passwords)
            await db.flush()

        return TokenResponse(
            access_token=self.tokens.issue(user),
            token_type="bearer",
            expires_in=self.tokens.lifetime_seconds,
            user=to_public(user),
        )
