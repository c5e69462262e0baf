"""GitHub OAuth provider."""

from typing import Optional

import httpx

from careerbridge.auth.errors import OAuthFailure, OAuthFailureReason
from careerbridge.auth.models import ExternalIdentity, OAuthProviderName, OAuthTokens
from .base import OAuthConfig, OAuthProvider


def create_github_config(
    client_id: str,
    client_secret: str,
    redirect_uri: str,
    timeout: float = 10.0,
) -> OAuthConfig:
    """Create GitHub OAuth configuration."""
    return OAuthConfig(
        client_id=client_id,
        client_secret=client_secret,
        redirect_uri=redirect_uri,
        authorize_url="https://github.com/login/oauth/authorize",
        token_url="https://github.com/login/oauth/access_token",
        userinfo_url="https://api.github.com/user",
        emails_url="https://api.github.com/user/emails",
        scopes=("read:user", "user:email"),
        timeout=timeout,
    )


class GitHubOAuthProvider(OAuthProvider):
    """
    GitHub OAuth app provider.

    GitHub omits the email from /user when the user keeps it private; the
    address is then taken from /user/emails, and only an entry that is both
    primary and verified is accepted.
    """

    @property
    def provider_name(self) -> str:
        return OAuthProviderName.GITHUB.value

    def _default_headers(self) -> dict:
        # GitHub's API rejects requests without a User-Agent
        return {
            "Accept": "application/json",
            "User-Agent": "CareerBridge",
        }

    async def get_user_info(self, client: httpx.AsyncClient, tokens: OAuthTokens) -> ExternalIdentity:
        """Get user info from GitHub."""
        data = await self._get_json(client, self.config.userinfo_url, tokens.access_token)
        if not isinstance(data, dict):
            raise self._malformed("/user is not an object")

        external_id = data.get("id")
        login = data.get("login")
        if isinstance(external_id, bool) or not isinstance(external_id, int):
            raise self._malformed("/user has no numeric id")
        if not isinstance(login, str) or not login:
            raise self._malformed("/user has no login")

        email = data.get("email")
        if not isinstance(email, str) or not email:
            email = await self._fetch_primary_verified_email(client, tokens)

        name = data.get("name")
        if not isinstance(name, str) or not name.strip():
            name = login

        avatar_url = data.get("avatar_url")
        return ExternalIdentity(
            provider=self.provider_name,
            external_id=str(external_id),
            email=email,
            display_name=name,
            avatar_url=avatar_url if isinstance(avatar_url, str) else None,
        )

    async def _fetch_primary_verified_email(
        self, client: httpx.AsyncClient, tokens: OAuthTokens
    ) -> str:
        emails = await self._get_json(client, self.config.emails_url, tokens.access_token)
        if not isinstance(emails, list):
            raise self._malformed("/user/emails is not a list")

        chosen: Optional[str] = None
        for entry in emails:
            if not isinstance(entry, dict):
                raise self._malformed("/user/emails entry is not an object")
            if entry.get("primary") is True and entry.get("verified") is True:
                address = entry.get("email")
                if isinstance(address, str) and address:
                    chosen = address
                    break

        if chosen is None:
            raise OAuthFailure(
                OAuthFailureReason.NO_VERIFIED_EMAIL,
                "GitHub account has no primary verified email",
            )
        return chosen
