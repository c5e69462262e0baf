"""
Password hashing and verification using Argon2id.

Hashing is deliberately slow and memory-hard, so every call runs in a worker
thread to keep the event loop responsive.
"""
import asyncio
import logging
from typing import Optional

from argon2 import PasswordHasher
from argon2.exceptions import (
    HashingError,
    InvalidHashError,
    VerificationError,
    VerifyMismatchError,
)

logger = logging.getLogger(__name__)


class PasswordHashingError(Exception):
    """Raised when the hasher fails for a reason other than a wrong password."""
    pass


class PasswordService:
    """
    Argon2id password hashing.

    Args:
        hasher: argon2 PasswordHasher; defaults to the library's recommended
            Argon2id parameters. Tests pass a cheaper one.
    """

    def __init__(self, hasher: Optional[PasswordHasher] = None):
        self._hasher = hasher or PasswordHasher()
        self._dummy_hash: Optional[str] = None

    def _hash_sync(self, plaintext: str) -> str:
        try:
            return self._hasher.hash(plaintext)
        except HashingError as e:
            logger.error(f"Failed to hash password: {e}")
            raise PasswordHashingError("password hashing failed") from e

    def _verify_sync(self, password_hash: str, plaintext: str) -> bool:
        try:
            return self._hasher.verify(password_hash, plaintext)
        except VerifyMismatchError:
            return False
        except InvalidHashError as e:
            logger.error(f"Failed to parse password hash: {e}")
            raise PasswordHashingError("stored password hash is invalid") from e
        except VerificationError as e:
            logger.error(f"Password verification error: {e}")
            raise PasswordHashingError("password verification failed") from e

    async def hash_password(self, plaintext: str) -> str:
        """
        Hash a password.

        Returns:
            Argon2 PHC-format hash string

        Raises:
            PasswordHashingError: If the hasher fails
        """
        return await asyncio.to_thread(self._hash_sync, plaintext)

    async def verify_password(self, password_hash: str, plaintext: str) -> bool:
        """
        Verify a password against its hash.

        Returns:
            True if the password matches, False if it does not

        Raises:
            PasswordHashingError: If the hash is corrupt or verification fails unexpectedly
        """
        return await asyncio.to_thread(self._verify_sync, password_hash, plaintext)

    async def burn_verification(self, plaintext: str) -> None:
        """
        Run one verification against a throwaway hash.

        Used when there is no stored hash to check, so a missing account costs
        about as much time as a wrong password.
        """
        if self._dummy_hash is None:
            self._dummy_hash = await self.hash_password("careerbridge-dummy-password")
        await self.verify_password(self._dummy_hash, plaintext)
