"""OAuth provider base interface."""

import logging
import secrets
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, AsyncIterator, Optional
from urllib.parse import urlencode

import httpx

from careerbridge.auth.errors import OAuthFailure, OAuthFailureReason
from careerbridge.auth.models import AuthorizationRequest, ExternalIdentity, OAuthTokens

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OAuthConfig:
    """Configuration for an OAuth provider."""
    client_id: str
    client_secret: str
    redirect_uri: str
    authorize_url: str
    token_url: str
    userinfo_url: str
    scopes: tuple[str, ...]
    emails_url: Optional[str] = None
    timeout: float = 10.0


def generate_csrf_token() -> str:
    """Generate the anti-forgery state value (43-char URL-safe base64)."""
    return secrets.token_urlsafe(32)


class OAuthProvider(ABC):
    """
    Base class for OAuth providers.

    Drives the authorization-code flow and normalizes the provider's profile
    into an ExternalIdentity. Failures raise OAuthFailure; nothing is retried.

    Args:
        config: Provider endpoints and credentials
        http_client: Shared client to use. If omitted, a client with a bounded
            timeout is created for each login attempt.
    """

    def __init__(self, config: OAuthConfig, http_client: Optional[httpx.AsyncClient] = None):
        self.config = config
        self._http_client = http_client

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the provider name (e.g., 'google', 'github')."""
        ...

    def get_authorization_url(self, state: str) -> str:
        """
        Get the OAuth authorization URL.

        Args:
            state: Random state parameter for CSRF protection

        Returns:
            Full authorization URL to redirect user to
        """
        params = {
            "client_id": self.config.client_id,
            "redirect_uri": self.config.redirect_uri,
            "response_type": "code",
            "scope": " ".join(self.config.scopes),
            "state": state,
        }
        params.update(self._get_extra_auth_params())
        return f"{self.config.authorize_url}?{urlencode(params)}"

    def _get_extra_auth_params(self) -> dict:
        """Override to add provider-specific auth params."""
        return {}

    def _default_headers(self) -> dict:
        """Override to add provider-specific request headers."""
        return {"Accept": "application/json"}

    def begin_login(self) -> AuthorizationRequest:
        """Start a login attempt with a fresh CSRF token."""
        csrf_token = generate_csrf_token()
        return AuthorizationRequest(
            provider=self.provider_name,
            redirect_url=self.get_authorization_url(csrf_token),
            csrf_token=csrf_token,
        )

    async def complete_login(self, code: str) -> ExternalIdentity:
        """
        Exchange the authorization code and fetch the user's profile.

        The code exchange always completes before the profile fetch starts.

        Raises:
            OAuthFailure: On exchange failure, provider outage, bad payload,
                or missing verified email
        """
        async with self._client() as client:
            tokens = await self.exchange_code(client, code)
            identity = await self.get_user_info(client, tokens)

        logger.info(
            f"Fetched {self.provider_name} identity {identity.external_id}"
        )
        return identity

    @asynccontextmanager
    async def _client(self) -> AsyncIterator[httpx.AsyncClient]:
        if self._http_client is not None:
            yield self._http_client
            return
        async with httpx.AsyncClient(timeout=httpx.Timeout(self.config.timeout)) as client:
            yield client

    async def exchange_code(self, client: httpx.AsyncClient, code: str) -> OAuthTokens:
        """
        Exchange authorization code for tokens.

        Providers reject a code that was already redeemed, so a replayed code
        fails here with CODE_EXCHANGE_FAILED.
        """
        data = await self._post_token_request(client, code)

        if "error" in data:
            logger.warning(
                f"{self.provider_name} rejected authorization code: {data.get('error')}"
            )
            raise OAuthFailure(
                OAuthFailureReason.CODE_EXCHANGE_FAILED,
                f"{self.provider_name} token error: {data.get('error')}",
            )

        access_token = data.get("access_token")
        if not isinstance(access_token, str) or not access_token:
            raise OAuthFailure(
                OAuthFailureReason.CODE_EXCHANGE_FAILED,
                f"{self.provider_name} token response has no access_token",
            )

        return OAuthTokens(
            access_token=access_token,
            token_type=data.get("token_type", "Bearer"),
            scope=data.get("scope"),
        )

    @abstractmethod
    async def get_user_info(self, client: httpx.AsyncClient, tokens: OAuthTokens) -> ExternalIdentity:
        """
        Get user information from the provider.

        Args:
            client: HTTP client for this attempt
            tokens: OAuth tokens from exchange_code

        Returns:
            ExternalIdentity with a verified email
        """
        ...

    async def _post_token_request(self, client: httpx.AsyncClient, code: str) -> dict:
        """
        Make token exchange request.

        Returns:
            JSON object from token endpoint
        """
        data = {
            "client_id": self.config.client_id,
            "client_secret": self.config.client_secret,
            "code": code,
            "redirect_uri": self.config.redirect_uri,
            "grant_type": "authorization_code",
        }

        try:
            response = await client.post(
                self.config.token_url,
                data=data,
                headers=self._default_headers(),
            )
        except httpx.TimeoutException as e:
            logger.error(f"{self.provider_name} token endpoint timed out: {e}")
            raise OAuthFailure(OAuthFailureReason.PROVIDER_UNAVAILABLE, "token endpoint timed out") from e
        except httpx.HTTPError as e:
            logger.error(f"{self.provider_name} token endpoint unreachable: {e}")
            raise OAuthFailure(OAuthFailureReason.PROVIDER_UNAVAILABLE, "token endpoint unreachable") from e

        if not response.is_success:
            if 400 <= response.status_code < 500:
                logger.warning(
                    f"{self.provider_name} code exchange rejected with HTTP {response.status_code}"
                )
                raise OAuthFailure(
                    OAuthFailureReason.CODE_EXCHANGE_FAILED,
                    f"token endpoint returned {response.status_code}",
                )
            logger.error(f"{self.provider_name} token endpoint returned HTTP {response.status_code}")
            raise OAuthFailure(
                OAuthFailureReason.PROVIDER_UNAVAILABLE,
                f"token endpoint returned {response.status_code}",
            )

        payload = self._parse_json(response, "token response")
        if not isinstance(payload, dict):
            raise OAuthFailure(OAuthFailureReason.MALFORMED_RESPONSE, "token response is not an object")
        return payload

    async def _get_json(self, client: httpx.AsyncClient, url: str, access_token: str) -> Any:
        """
        Fetch a JSON document from a provider API with the access token.

        Returns:
            Decoded JSON (object or array)
        """
        headers = self._default_headers()
        headers["Authorization"] = f"Bearer {access_token}"

        try:
            response = await client.get(url, headers=headers)
        except httpx.TimeoutException as e:
            logger.error(f"{self.provider_name} request to {url} timed out: {e}")
            raise OAuthFailure(OAuthFailureReason.PROVIDER_UNAVAILABLE, "user-info request timed out") from e
        except httpx.HTTPError as e:
            logger.error(f"{self.provider_name} request to {url} failed: {e}")
            raise OAuthFailure(OAuthFailureReason.PROVIDER_UNAVAILABLE, "user-info request failed") from e

        if not response.is_success:
            logger.error(f"{self.provider_name} {url} returned HTTP {response.status_code}")
            raise OAuthFailure(
                OAuthFailureReason.PROVIDER_UNAVAILABLE,
                f"{url} returned {response.status_code}",
            )

        return self._parse_json(response, url)

    def _parse_json(self, response: httpx.Response, what: str) -> Any:
        try:
            return response.json()
        except ValueError as e:
            logger.error(f"{self.provider_name} returned invalid JSON for {what}")
            raise OAuthFailure(OAuthFailureReason.MALFORMED_RESPONSE, f"invalid JSON in {what}") from e

    def _malformed(self, detail: str) -> OAuthFailure:
        logger.error(f"Malformed {self.provider_name} payload: {detail}")
        return OAuthFailure(OAuthFailureReason.MALFORMED_RESPONSE, detail)
