"""
Identity Resolver.

Maps a verified external identity, or a new local registration, to an
internal account. The resolver only ever creates accounts or attaches a link
to a linkless account; it never deletes, merges, or overwrites a link.
"""
import logging
from typing import Optional
from uuid import UUID, uuid4

from .errors import RegisterFailure, RegisterFailureReason
from .models import Account, ExternalIdentity, ResolvedAccount
from .passwords import PasswordHashingError, PasswordService
from .repositories import (
    AccountAlreadyExistsError,
    AccountNotFoundError,
    AccountRepository,
    AccountStoreError,
)
from .utils import normalize_email, utcnow

logger = logging.getLogger(__name__)


class IdentityResolver:
    """
    Decides which account an identity belongs to.

    Concurrent attempts for the same identity or email are arbitrated by the
    store's uniqueness constraints. The loser of a race re-runs the lookup
    branches once instead of surfacing the constraint violation.
    """

    def __init__(self, account_repo: AccountRepository, passwords: PasswordService):
        self._account_repo = account_repo
        self._passwords = passwords

    # ========================================================================
    # FEDERATED
    # ========================================================================

    async def resolve(self, identity: ExternalIdentity) -> ResolvedAccount:
        """
        Resolve an external identity to an account.

        Order:
        1. Existing link for (provider, external_id)
        2. Account with the same email: attach the link if it has none,
           otherwise use it as-is
        3. New passwordless account linked to the provider

        Returns:
            ResolvedAccount(account_id, is_new_account)

        Raises:
            AccountStoreError: If the store fails, or a race cannot be settled
        """
        try:
            return await self._resolve_once(identity)
        except AccountAlreadyExistsError:
            logger.info(
                f"Concurrent write for {identity.provider} identity "
                f"{identity.external_id}; re-resolving"
            )

        resolved = await self._lookup(identity)
        if resolved is None:
            raise AccountStoreError(
                f"{identity.provider} identity {identity.external_id} "
                f"could not be resolved after a uniqueness conflict"
            )
        return resolved

    async def _resolve_once(self, identity: ExternalIdentity) -> ResolvedAccount:
        resolved = await self._lookup(identity)
        if resolved is not None:
            return resolved

        account_id = await self._create_linked_account(identity)
        return ResolvedAccount(account_id=account_id, is_new_account=True)

    async def _lookup(self, identity: ExternalIdentity) -> Optional[ResolvedAccount]:
        """Steps 1 and 2. Returns None when no account matches."""
        existing = await self._account_repo.get_by_provider(
            identity.provider, identity.external_id
        )
        if existing:
            logger.debug(f"Found account {existing.account_id} by {identity.provider} link")
            return ResolvedAccount(account_id=existing.account_id, is_new_account=False)

        by_email = await self._account_repo.get_by_email(identity.email)
        if by_email is None:
            return None

        if not by_email.is_linked:
            attached = await self._account_repo.attach_provider(
                by_email.account_id,
                identity.provider,
                identity.external_id,
                identity.avatar_url,
            )
            if attached:
                logger.info(
                    f"Linked {identity.provider} identity to existing account "
                    f"{by_email.account_id}"
                )
                return ResolvedAccount(account_id=by_email.account_id, is_new_account=False)
            # Another request linked it first; fall through as an existing user
            logger.info(f"Account {by_email.account_id} was linked concurrently")
        else:
            logger.info(
                f"Account {by_email.account_id} already linked to "
                f"{by_email.linked_provider}; signing in without relinking"
            )

        return ResolvedAccount(account_id=by_email.account_id, is_new_account=False)

    async def _create_linked_account(self, identity: ExternalIdentity) -> UUID:
        now = utcnow()
        account = Account(
            account_id=uuid4(),
            email=normalize_email(identity.email),
            full_name=identity.display_name,
            password_hash=None,
            avatar_url=identity.avatar_url,
            linked_provider=identity.provider,
            provider_external_id=identity.external_id,
            created_at=now,
            updated_at=now,
        )
        await self._account_repo.create(account)
        logger.info(
            f"Created account {account.account_id} via {identity.provider} "
            f"for {account.email}"
        )
        return account.account_id

    # ========================================================================
    # LOCAL REGISTRATION
    # ========================================================================

    async def register(self, email: str, password: str, full_name: str) -> UUID:
        """
        Create a local account with a password.

        Returns:
            New account ID

        Raises:
            RegisterFailure: EMAIL_TAKEN if the email is in use, INTERNAL if
                hashing or the store fails
        """
        normalized = normalize_email(email)

        try:
            if await self._account_repo.get_by_email(normalized) is not None:
                raise RegisterFailure(RegisterFailureReason.EMAIL_TAKEN)

            password_hash = await self._passwords.hash_password(password)

            now = utcnow()
            account = Account(
                account_id=uuid4(),
                email=normalized,
                full_name=full_name.strip(),
                password_hash=password_hash,
                avatar_url=None,
                linked_provider=None,
                provider_external_id=None,
                created_at=now,
                updated_at=now,
            )
            await self._account_repo.create(account)
        except AccountAlreadyExistsError as e:
            raise RegisterFailure(RegisterFailureReason.EMAIL_TAKEN) from e
        except PasswordHashingError as e:
            raise RegisterFailure(RegisterFailureReason.INTERNAL, str(e)) from e
        except AccountStoreError as e:
            logger.error(f"Account store failed during registration: {e}")
            raise RegisterFailure(RegisterFailureReason.INTERNAL, "account store unavailable") from e

        logger.info(f"Registered local account {account.account_id} for {normalized}")
        return account.account_id

    async def get_account(self, account_id: UUID) -> Account:
        """
        Load an account by ID.

        Raises:
            AccountNotFoundError: If no such account exists
        """
        account = await self._account_repo.get_by_id(account_id)
        if account is None:
            raise AccountNotFoundError(f"Account {account_id} not found")
        return account
