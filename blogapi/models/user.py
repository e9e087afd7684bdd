"""
Blog API — User SQLAlchemy Model
==================================

What:  ORM model for the `users` table.
Who:   Created by AuthService.register; read by the principal resolver on
       every authenticated request.

Lifecycle:
    1. Created at registration (is_author = is_admin = False)
    2. Role flags changed only by tools/grant_role.py
    3. Never deleted through the API
"""

from sqlalchemy import Boolean, String, false
from sqlalchemy.orm import Mapped, mapped_column

from blogapi.database import Base
from blogapi.models.common import TimestampMixin, UUIDPrimaryKeyMixin


class User(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "users"

    username: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    family_name: Mapped[str] = mapped_column(String(100), nullable=False)

    # Stored lower-case; uniqueness is enforced on the normalized value
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)

    # argon2 encoded hash (includes algorithm parameters and salt)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)

    is_author: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )
    is_admin: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )

    def set_password(self, plaintext: str, hasher) -> None:
        """Hash and store a new plaintext password. The only way the hash changes."""
        self.password_hash = hasher.hash(plaintext)

    @property
    def full_name(self) -> str:
        """'Family, First' display form; empty when either part is missing."""
        if self.first_name and self.family_name:
            return f"{self.family_name}, {self.first_name}"
        return ""

    def __repr__(self) -> str:
        return f"<User(id={self.id}, username='{self.username}', admin={self.is_admin})>"
