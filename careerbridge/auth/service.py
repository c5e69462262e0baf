"""
Authentication service.

Business logic for local registration/login, OAuth login, and session
validation. Every attempt moves through

    START -> VERIFYING -> RESOLVED -> ISSUING -> ISSUED
                  \\-> FAILED(kind)

No intermediate state is persisted or visible to callers; a failed attempt
leaves no partial account or link behind.
"""
import logging
import secrets
from datetime import timedelta
from enum import Enum
from typing import Dict, Mapping, Optional
from uuid import UUID

import httpx

from careerbridge.core.config import Settings
from .credentials import CredentialVerifier
from .errors import IdentityError
from .models import AccountSummary, AuthorizationRequest, LoginResult, SessionClaims
from .passwords import PasswordService
from .providers import OAuthProvider, build_providers
from .repositories import AccountRepository
from .resolver import IdentityResolver
from .tokens import SessionTokenService

logger = logging.getLogger(__name__)


class LoginState(str, Enum):
    """Stages of a login attempt (diagnostic only)."""
    START = "start"
    VERIFYING = "verifying"
    RESOLVED = "resolved"
    ISSUING = "issuing"
    ISSUED = "issued"
    FAILED = "failed"


class _Attempt:
    """Tags the log lines of one login attempt."""

    def __init__(self, path: str):
        self.attempt_id = secrets.token_hex(4)
        self.path = path
        self.state = LoginState.START

    def advance(self, state: LoginState, detail: str = "") -> None:
        self.state = state
        logger.debug(f"[{self.path}:{self.attempt_id}] {state.value} {detail}".rstrip())

    def fail(self, error: Exception) -> None:
        self.state = LoginState.FAILED
        reason = getattr(error, "reason", None)
        kind = reason.value if reason is not None else type(error).__name__
        logger.warning(f"[{self.path}:{self.attempt_id}] failed ({kind})")


class AuthService:
    """
    Entry point used by the HTTP layer.

    Handles:
    - Local registration and email/password login
    - OAuth begin/complete per configured provider
    - Session token validation for downstream collaborators
    """

    def __init__(
        self,
        account_repo: AccountRepository,
        tokens: SessionTokenService,
        providers: Optional[Mapping[str, OAuthProvider]] = None,
        passwords: Optional[PasswordService] = None,
    ):
        passwords = passwords or PasswordService()
        self._account_repo = account_repo
        self._tokens = tokens
        self._providers: Dict[str, OAuthProvider] = dict(providers or {})
        self._verifier = CredentialVerifier(account_repo, passwords)
        self._resolver = IdentityResolver(account_repo, passwords)

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        account_repo: AccountRepository,
        http_client: Optional[httpx.AsyncClient] = None,
        passwords: Optional[PasswordService] = None,
    ) -> "AuthService":
        """Wire the service from process configuration."""
        tokens = SessionTokenService(
            signing_secret=settings.signing_secret,
            ttl=timedelta(seconds=settings.token_ttl_seconds),
        )
        return cls(
            account_repo=account_repo,
            tokens=tokens,
            providers=build_providers(settings, http_client=http_client),
            passwords=passwords,
        )

    @property
    def provider_names(self) -> list[str]:
        return sorted(self._providers)

    def get_provider(self, provider_id: str) -> OAuthProvider:
        """
        Get OAuth provider by name.

        Raises:
            ValueError: If provider not configured
        """
        if provider_id not in self._providers:
            raise ValueError(f"Provider '{provider_id}' not configured")
        return self._providers[provider_id]

    # ========================================================================
    # LOCAL
    # ========================================================================

    async def register(self, email: str, password: str, full_name: str) -> LoginResult:
        """
        Register a local account and sign it in.

        Raises:
            RegisterFailure: EMAIL_TAKEN or INTERNAL
        """
        attempt = _Attempt("register")
        try:
            attempt.advance(LoginState.VERIFYING)
            account_id = await self._resolver.register(email, password, full_name)
            attempt.advance(LoginState.RESOLVED, str(account_id))
            result = await self._issue(attempt, account_id, is_new_account=True)
        except IdentityError as e:
            attempt.fail(e)
            raise
        logger.info(f"Registered and signed in account {account_id}")
        return result

    async def login(self, email: str, password: str) -> LoginResult:
        """
        Email/password login.

        Raises:
            AuthFailure: INVALID_CREDENTIALS or INTERNAL
        """
        attempt = _Attempt("local")
        try:
            attempt.advance(LoginState.VERIFYING)
            account_id = await self._verifier.verify(email, password)
            attempt.advance(LoginState.RESOLVED, str(account_id))
            result = await self._issue(attempt, account_id, is_new_account=False)
        except IdentityError as e:
            attempt.fail(e)
            raise
        logger.info(f"Account {account_id} logged in with password")
        return result

    # ========================================================================
    # OAUTH
    # ========================================================================

    def begin_oauth(self, provider_id: str) -> AuthorizationRequest:
        """
        Start an OAuth login.

        Raises:
            ValueError: If provider not configured
        """
        request = self.get_provider(provider_id).begin_login()
        logger.info(f"Redirecting to {provider_id} for login")
        return request

    async def complete_oauth(self, provider_id: str, code: str) -> LoginResult:
        """
        Finish an OAuth login: exchange code, fetch profile, resolve, issue.

        Raises:
            ValueError: If provider not configured
            OAuthFailure: On any provider-side failure
            AccountStoreError: If the store fails
        """
        provider = self.get_provider(provider_id)
        attempt = _Attempt(provider_id)
        try:
            attempt.advance(LoginState.VERIFYING)
            identity = await provider.complete_login(code)
            resolved = await self._resolver.resolve(identity)
            attempt.advance(LoginState.RESOLVED, str(resolved.account_id))
            result = await self._issue(attempt, resolved.account_id, resolved.is_new_account)
        except IdentityError as e:
            attempt.fail(e)
            raise

        action = "created" if result.is_new_account else "logged in"
        logger.info(f"Account {result.account.account_id} {action} via {provider_id}")
        return result

    # ========================================================================
    # SESSIONS
    # ========================================================================

    def validate_session(self, token: str) -> SessionClaims:
        """
        Validate a session token.

        Raises:
            TokenFailure: EXPIRED, BAD_SIGNATURE or MALFORMED
        """
        return self._tokens.validate(token)

    async def get_account_summary(self, account_id: UUID) -> AccountSummary:
        """
        Current account data for a validated session.

        Raises:
            AccountNotFoundError: If the account no longer exists
        """
        account = await self._resolver.get_account(account_id)
        return account.summary()

    async def _issue(self, attempt: _Attempt, account_id: UUID, is_new_account: bool) -> LoginResult:
        account = await self._resolver.get_account(account_id)
        attempt.advance(LoginState.ISSUING)
        token = self._tokens.issue(account.account_id, account.email)
        attempt.advance(LoginState.ISSUED)
        return LoginResult(
            account=account.summary(),
            token=token,
            is_new_account=is_new_account,
        )
