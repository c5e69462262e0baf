"""
Account Store repositories.

The identity core only needs lookup-by-id, lookup-by-email,
lookup-by-(provider, external id), insert, and attach-link. Each write is a
single transaction; uniqueness violations surface as AccountAlreadyExistsError
so callers can tell a lost race from an internal fault.
"""
import logging
from datetime import timezone
from typing import Dict, Optional, Protocol, Tuple, runtime_checkable
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from .db_models import AccountORM
from .models import Account
from .utils import normalize_email, utcnow

logger = logging.getLogger(__name__)


class AccountStoreError(Exception):
    """Raised when the Account Store fails."""
    pass


class AccountAlreadyExistsError(AccountStoreError):
    """Raised when a write violates email or provider-identity uniqueness."""
    pass


class AccountNotFoundError(AccountStoreError):
    """Raised when an account is not found."""
    pass


@runtime_checkable
class AccountRepository(Protocol):
    """Protocol for account storage."""

    async def get_by_id(self, account_id: UUID) -> Optional[Account]:
        """Get account by ID."""
        ...

    async def get_by_email(self, email: str) -> Optional[Account]:
        """Get account by email (case-insensitive)."""
        ...

    async def get_by_provider(self, provider: str, external_id: str) -> Optional[Account]:
        """Get account by linked provider and provider external ID."""
        ...

    async def create(self, account: Account) -> Account:
        """Insert a new account. Raises AccountAlreadyExistsError on conflict."""
        ...

    async def attach_provider(
        self,
        account_id: UUID,
        provider: str,
        external_id: str,
        avatar_url: Optional[str],
    ) -> bool:
        """
        Link an external identity to a linkless account.

        Returns:
            True if the link was attached, False if the account already had one.
        """
        ...


class InMemoryAccountRepository:
    """In-memory implementation of AccountRepository."""

    def __init__(self):
        self._accounts: Dict[UUID, Account] = {}
        self._by_email: Dict[str, UUID] = {}  # normalized email -> account_id
        self._by_provider: Dict[Tuple[str, str], UUID] = {}  # (provider, external_id) -> account_id

    async def get_by_id(self, account_id: UUID) -> Optional[Account]:
        """Get account by ID."""
        return self._accounts.get(account_id)

    async def get_by_email(self, email: str) -> Optional[Account]:
        """Get account by email."""
        account_id = self._by_email.get(normalize_email(email))
        if account_id:
            return self._accounts.get(account_id)
        return None

    async def get_by_provider(self, provider: str, external_id: str) -> Optional[Account]:
        """Get account by OAuth provider and provider ID."""
        account_id = self._by_provider.get((provider, external_id))
        if account_id:
            return self._accounts.get(account_id)
        return None

    async def create(self, account: Account) -> Account:
        """Create a new account."""
        email = normalize_email(account.email)

        if account.account_id in self._accounts:
            raise AccountAlreadyExistsError(f"Account {account.account_id} already exists")

        if email in self._by_email:
            raise AccountAlreadyExistsError("Email already registered")

        provider_key = None
        if account.linked_provider is not None:
            provider_key = (account.linked_provider, account.provider_external_id)
            if provider_key in self._by_provider:
                raise AccountAlreadyExistsError(
                    f"{account.linked_provider} identity already linked"
                )

        account.email = email
        self._accounts[account.account_id] = account
        self._by_email[email] = account.account_id
        if provider_key is not None:
            self._by_provider[provider_key] = account.account_id

        return account

    async def attach_provider(
        self,
        account_id: UUID,
        provider: str,
        external_id: str,
        avatar_url: Optional[str],
    ) -> bool:
        """Link provider identity if the account has none."""
        account = self._accounts.get(account_id)
        if account is None:
            raise AccountNotFoundError(f"Account {account_id} not found")

        if account.is_linked:
            return False

        provider_key = (provider, external_id)
        if provider_key in self._by_provider:
            raise AccountAlreadyExistsError(f"{provider} identity already linked")

        account.linked_provider = provider
        account.provider_external_id = external_id
        account.avatar_url = avatar_url
        account.updated_at = utcnow()
        self._by_provider[provider_key] = account_id
        return True

    def clear(self) -> None:
        """Clear all accounts (for testing)."""
        self._accounts.clear()
        self._by_email.clear()
        self._by_provider.clear()


def _aware(value):
    """SQLite drops tzinfo; all stored timestamps are UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _orm_to_account(orm: AccountORM) -> Account:
    return Account(
        account_id=orm.account_id,
        email=orm.email,
        full_name=orm.full_name,
        password_hash=orm.password_hash,
        avatar_url=orm.avatar_url,
        linked_provider=orm.linked_provider,
        provider_external_id=orm.provider_external_id,
        created_at=_aware(orm.created_at),
        updated_at=_aware(orm.updated_at),
    )


class SqlAlchemyAccountRepository:
    """
    Relational implementation of AccountRepository.

    Uses one short-lived AsyncSession per operation from the shared pool.
    All queries are SQLAlchemy expressions (parameterized).
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def _fetch_one(self, query) -> Optional[Account]:
        try:
            async with self._session_factory() as session:
                result = await session.execute(query)
                orm = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise AccountStoreError(f"Account lookup failed: {e}") from e
        return _orm_to_account(orm) if orm else None

    async def get_by_id(self, account_id: UUID) -> Optional[Account]:
        """Get account by ID."""
        return await self._fetch_one(
            select(AccountORM).where(AccountORM.account_id == account_id)
        )

    async def get_by_email(self, email: str) -> Optional[Account]:
        """Get account by email."""
        return await self._fetch_one(
            select(AccountORM).where(AccountORM.email == normalize_email(email))
        )

    async def get_by_provider(self, provider: str, external_id: str) -> Optional[Account]:
        """Get account by OAuth provider and provider ID."""
        return await self._fetch_one(
            select(AccountORM).where(
                AccountORM.linked_provider == provider,
                AccountORM.provider_external_id == external_id,
            )
        )

    async def create(self, account: Account) -> Account:
        """Create a new account in a single transaction."""
        account.email = normalize_email(account.email)
        orm = AccountORM(
            account_id=account.account_id,
            email=account.email,
            full_name=account.full_name,
            password_hash=account.password_hash,
            avatar_url=account.avatar_url,
            linked_provider=account.linked_provider,
            provider_external_id=account.provider_external_id,
            created_at=account.created_at,
            updated_at=account.updated_at,
        )

        async with self._session_factory() as session:
            try:
                session.add(orm)
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                logger.debug(f"Uniqueness violation creating account: {e.orig}")
                raise AccountAlreadyExistsError("Account email or identity already exists") from e
            except SQLAlchemyError as e:
                await session.rollback()
                raise AccountStoreError(f"Failed to create account: {e}") from e

        return account

    async def attach_provider(
        self,
        account_id: UUID,
        provider: str,
        external_id: str,
        avatar_url: Optional[str],
    ) -> bool:
        """
        Link provider identity if the account has none.

        The WHERE clause on linked_provider makes the check-and-set a single
        conditional UPDATE, so a concurrent link can never be overwritten.
        """
        query = (
            update(AccountORM)
            .where(
                AccountORM.account_id == account_id,
                AccountORM.linked_provider.is_(None),
            )
            .values(
                linked_provider=provider,
                provider_external_id=external_id,
                avatar_url=avatar_url,
                updated_at=utcnow(),
            )
        )

        async with self._session_factory() as session:
            try:
                result = await session.execute(query)
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                raise AccountAlreadyExistsError(f"{provider} identity already linked") from e
            except SQLAlchemyError as e:
                await session.rollback()
                raise AccountStoreError(f"Failed to link account: {e}") from e

        if result.rowcount == 1:
            return True

        if await self.get_by_id(account_id) is None:
            raise AccountNotFoundError(f"Account {account_id} not found")
        return False
