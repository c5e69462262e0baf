"""
Authentication data models.

Defines core domain models for the identity core:
- Account: durable identity record
- ExternalIdentity: normalized profile returned by an OAuth provider
- OAuthTokens / AuthorizationRequest: transient OAuth exchange state
- SessionClaims: decoded session token
- AccountSummary / ResolvedAccount / LoginResult: outcomes handed to callers
"""
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID


class OAuthProviderName(str, Enum):
    """Supported OAuth providers."""
    GOOGLE = "google"
    GITHUB = "github"


@dataclass
class Account:
    """
    Core account identity.

    password_hash is None (never "") for accounts created through OAuth.
    linked_provider and provider_external_id are either both set or both None.
    """
    account_id: UUID
    email: str
    full_name: str
    password_hash: Optional[str]
    avatar_url: Optional[str]
    linked_provider: Optional[str]
    provider_external_id: Optional[str]
    created_at: datetime
    updated_at: datetime

    @property
    def has_password(self) -> bool:
        """True if the account supports local email/password login."""
        return self.password_hash is not None

    @property
    def is_linked(self) -> bool:
        """True if an external identity is attached."""
        return self.linked_provider is not None

    def summary(self) -> "AccountSummary":
        """Public view of the account (no credentials)."""
        return AccountSummary(
            account_id=self.account_id,
            email=self.email,
            full_name=self.full_name,
            avatar_url=self.avatar_url,
            linked_provider=self.linked_provider,
        )


@dataclass(frozen=True)
class AccountSummary:
    """Account fields safe to return to clients."""
    account_id: UUID
    email: str
    full_name: str
    avatar_url: Optional[str]
    linked_provider: Optional[str]


@dataclass(frozen=True)
class ExternalIdentity:
    """
    Profile of a verified external identity.

    Every provider normalizes its user-info payload into this shape, so the
    resolver never branches on provider type. email is always the verified one.
    """
    provider: str
    external_id: str
    email: str
    display_name: str
    avatar_url: Optional[str] = None


@dataclass(frozen=True)
class OAuthTokens:
    """Token endpoint response."""
    access_token: str
    token_type: str = "Bearer"
    scope: Optional[str] = None


@dataclass(frozen=True)
class AuthorizationRequest:
    """
    Start of an OAuth login attempt.

    csrf_token is the opaque state value embedded in redirect_url; the caller
    correlates it with the eventual callback.
    """
    provider: str
    redirect_url: str
    csrf_token: str


@dataclass(frozen=True)
class SessionClaims:
    """Claims carried by a session token."""
    subject: str
    email: str
    issued_at: datetime
    expires_at: datetime

    @property
    def account_id(self) -> UUID:
        """Subject parsed as an account id."""
        return UUID(self.subject)


@dataclass(frozen=True)
class ResolvedAccount:
    """Identity resolution outcome."""
    account_id: UUID
    is_new_account: bool


@dataclass(frozen=True)
class LoginResult:
    """Outcome of a completed login or registration."""
    account: AccountSummary
    token: str
    is_new_account: bool
