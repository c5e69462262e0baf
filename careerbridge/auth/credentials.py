"""Credential Verifier: local email + password login."""

import logging
from uuid import UUID

from .errors import AuthFailure, AuthFailureReason
from .passwords import PasswordHashingError, PasswordService
from .repositories import AccountRepository, AccountStoreError

logger = logging.getLogger(__name__)


class CredentialVerifier:
    """
    Checks an email + password pair against the stored Argon2 hash.

    Unknown email, provider-only account, and wrong password all raise the
    same AuthFailure(INVALID_CREDENTIALS) so callers cannot enumerate accounts.
    """

    def __init__(self, account_repo: AccountRepository, passwords: PasswordService):
        self._account_repo = account_repo
        self._passwords = passwords

    async def verify(self, email: str, plaintext_password: str) -> UUID:
        """
        Verify local credentials.

        Returns:
            Account ID of the matching account

        Raises:
            AuthFailure: INVALID_CREDENTIALS on any mismatch, INTERNAL on
                store or hasher failure
        """
        try:
            account = await self._account_repo.get_by_email(email)
        except AccountStoreError as e:
            logger.error(f"Account lookup failed during login: {e}")
            raise AuthFailure(AuthFailureReason.INTERNAL, "account store unavailable") from e

        try:
            if account is None or not account.has_password:
                await self._passwords.burn_verification(plaintext_password)
                raise AuthFailure(AuthFailureReason.INVALID_CREDENTIALS)

            is_valid = await self._passwords.verify_password(
                account.password_hash, plaintext_password
            )
        except PasswordHashingError as e:
            raise AuthFailure(AuthFailureReason.INTERNAL, str(e)) from e

        if not is_valid:
            raise AuthFailure(AuthFailureReason.INVALID_CREDENTIALS)

        return account.account_id
