"""Tests for account store repositories (in-memory and SQLAlchemy)."""

from datetime import timedelta
from uuid import uuid4

import pytest

from careerbridge.auth.models import Account
from careerbridge.auth.repositories import (
    AccountAlreadyExistsError,
    AccountNotFoundError,
    AccountRepository,
    InMemoryAccountRepository,
)
from careerbridge.auth.utils import utcnow


def make_account(
    email="bob@example.com",
    password_hash="$argon2id$fake",
    provider=None,
    external_id=None,
) -> Account:
    now = utcnow()
    return Account(
        account_id=uuid4(),
        email=email,
        full_name="Bob",
        password_hash=password_hash,
        avatar_url=None,
        linked_provider=provider,
        provider_external_id=external_id,
        created_at=now,
        updated_at=now,
    )


class TestAccount:
    """Tests for Account helpers."""

    def test_local_account(self):
        """A registered account has a password and no link."""
        account = make_account()
        assert account.has_password is True
        assert account.is_linked is False

    def test_oauth_account(self):
        """An OAuth-created account is linked and passwordless."""
        account = make_account(password_hash=None, provider="google", external_id="g-1")
        assert account.has_password is False
        assert account.is_linked is True


class TestAccountRepository:
    """Behaviour shared by every AccountRepository implementation."""

    @pytest.mark.asyncio
    async def test_satisfies_protocol(self, account_repo):
        """Both stores implement the AccountRepository protocol."""
        assert isinstance(account_repo, AccountRepository)

    @pytest.mark.asyncio
    async def test_create_and_get_by_id(self, account_repo):
        """Created account can be loaded by ID."""
        account = make_account()
        await account_repo.create(account)

        loaded = await account_repo.get_by_id(account.account_id)

        assert loaded is not None
        assert loaded.email == "bob@example.com"
        assert loaded.password_hash == "$argon2id$fake"
        assert loaded.created_at.tzinfo is not None

    @pytest.mark.asyncio
    async def test_email_is_normalized(self, account_repo):
        """Emails are stored lower-cased and matched case-insensitively."""
        await account_repo.create(make_account(email="  Bob@Example.COM "))

        loaded = await account_repo.get_by_email("BOB@example.com")

        assert loaded is not None
        assert loaded.email == "bob@example.com"

    @pytest.mark.asyncio
    async def test_missing_lookups_return_none(self, account_repo):
        """Lookups for unknown keys return None."""
        assert await account_repo.get_by_id(uuid4()) is None
        assert await account_repo.get_by_email("nobody@example.com") is None
        assert await account_repo.get_by_provider("google", "nope") is None

    @pytest.mark.asyncio
    async def test_duplicate_email_rejected(self, account_repo):
        """A second account with the same email is a uniqueness violation."""
        await account_repo.create(make_account(email="dup@example.com"))

        with pytest.raises(AccountAlreadyExistsError):
            await account_repo.create(make_account(email="DUP@example.com"))

    @pytest.mark.asyncio
    async def test_duplicate_provider_identity_rejected(self, account_repo):
        """A (provider, external_id) pair maps to at most one account."""
        await account_repo.create(make_account(
            email="a@example.com", password_hash=None, provider="github", external_id="42",
        ))

        with pytest.raises(AccountAlreadyExistsError):
            await account_repo.create(make_account(
                email="b@example.com", password_hash=None, provider="github", external_id="42",
            ))

    @pytest.mark.asyncio
    async def test_same_external_id_on_different_providers(self, account_repo):
        """Identity uniqueness is per provider."""
        await account_repo.create(make_account(
            email="a@example.com", provider="github", external_id="42",
        ))
        await account_repo.create(make_account(
            email="b@example.com", provider="google", external_id="42",
        ))

        github = await account_repo.get_by_provider("github", "42")
        google = await account_repo.get_by_provider("google", "42")
        assert github.email == "a@example.com"
        assert google.email == "b@example.com"

    @pytest.mark.asyncio
    async def test_attach_provider_to_linkless_account(self, account_repo):
        """attach_provider links a linkless account and updates its avatar."""
        account = make_account()
        await account_repo.create(account)

        attached = await account_repo.attach_provider(
            account.account_id, "google", "g-1", "https://img.test/b.png"
        )

        assert attached is True
        linked = await account_repo.get_by_provider("google", "g-1")
        assert linked.account_id == account.account_id
        assert linked.avatar_url == "https://img.test/b.png"
        assert linked.password_hash == "$argon2id$fake"

    @pytest.mark.asyncio
    async def test_attach_provider_never_overwrites(self, account_repo):
        """An existing link is never replaced."""
        account = make_account(provider="github", external_id="42")
        await account_repo.create(account)

        attached = await account_repo.attach_provider(account.account_id, "google", "g-1", None)

        assert attached is False
        loaded = await account_repo.get_by_id(account.account_id)
        assert loaded.linked_provider == "github"
        assert loaded.provider_external_id == "42"
        assert await account_repo.get_by_provider("google", "g-1") is None

    @pytest.mark.asyncio
    async def test_attach_provider_missing_account(self, account_repo):
        """Linking an unknown account raises AccountNotFoundError."""
        with pytest.raises(AccountNotFoundError):
            await account_repo.attach_provider(uuid4(), "google", "g-1", None)

    @pytest.mark.asyncio
    async def test_attach_provider_identity_taken(self, account_repo):
        """Linking an identity already owned by another account is a conflict."""
        await account_repo.create(make_account(
            email="owner@example.com", provider="google", external_id="g-1",
        ))
        other = make_account(email="other@example.com")
        await account_repo.create(other)

        with pytest.raises(AccountAlreadyExistsError):
            await account_repo.attach_provider(other.account_id, "google", "g-1", None)


class TestInMemoryAccountRepository:
    """In-memory specifics."""

    @pytest.mark.asyncio
    async def test_attach_updates_timestamp(self, memory_repo):
        """Linking bumps updated_at."""
        account = make_account()
        account.updated_at = account.updated_at - timedelta(hours=1)
        before = account.updated_at
        await memory_repo.create(account)

        await memory_repo.attach_provider(account.account_id, "google", "g-1", None)

        assert (await memory_repo.get_by_id(account.account_id)).updated_at > before

    @pytest.mark.asyncio
    async def test_clear(self, memory_repo: InMemoryAccountRepository):
        """clear() removes everything."""
        account = make_account()
        await memory_repo.create(account)

        memory_repo.clear()

        assert await memory_repo.get_by_id(account.account_id) is None
        assert await memory_repo.get_by_email(account.email) is None
