"""
Blog API — Password Hashing
=============================

What:  Thin wrapper around argon2-cffi's PasswordHasher.
Why:   Keeps the hashing primitive swappable and gives verify() a boolean
       contract instead of argon2's exception-based one.
"""

import logging
from typing import Optional

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError

logger = logging.getLogger(__name__)


class PasswordService:
    def __init__(self, hasher: Optional[PasswordHasher] = None):
        self._hasher = hasher or PasswordHasher()

    def hash(self, plaintext: str) -> str:
        return self._hasher.hash(plaintext)

    def verify(self, password_hash: str, plaintext: str) -> bool:
        """True iff `plaintext` matches the stored hash."""
        try:
            return self._hasher.verify(password_hash, plaintext)
        except VerificationError:
            return False
        except InvalidHashError:
            # Stored value is not an argon2 hash at all (corrupt or legacy row)
            logger.warning("Stored password hash could not be parsed")
            return False

    def needs_rehash(self, password_hash: str) -> bool:
        """True when the hash was made with weaker parameters than the current ones."""
        try:
            return self._hasher.check_needs_rehash(password_hash)
        except InvalidHashError:
            return False
