"""Google OAuth provider."""

import httpx

from careerbridge.auth.errors import OAuthFailure, OAuthFailureReason
from careerbridge.auth.models import ExternalIdentity, OAuthProviderName, OAuthTokens
from .base import OAuthConfig, OAuthProvider


def create_google_config(
    client_id: str,
    client_secret: str,
    redirect_uri: str,
    timeout: float = 10.0,
) -> OAuthConfig:
    """Create Google OAuth configuration."""
    return OAuthConfig(
        client_id=client_id,
        client_secret=client_secret,
        redirect_uri=redirect_uri,
        authorize_url="https://accounts.google.com/o/oauth2/v2/auth",
        token_url="https://oauth2.googleapis.com/token",
        userinfo_url="https://www.googleapis.com/oauth2/v2/userinfo",
        scopes=("openid", "email", "profile"),
        timeout=timeout,
    )


class GoogleOAuthProvider(OAuthProvider):
    """Google OAuth 2.0 provider."""

    @property
    def provider_name(self) -> str:
        return OAuthProviderName.GOOGLE.value

    def _get_extra_auth_params(self) -> dict:
        """Let users pick among signed-in Google accounts."""
        return {"prompt": "select_account"}

    async def get_user_info(self, client: httpx.AsyncClient, tokens: OAuthTokens) -> ExternalIdentity:
        """Get user info from Google."""
        data = await self._get_json(client, self.config.userinfo_url, tokens.access_token)
        if not isinstance(data, dict):
            raise self._malformed("userinfo is not an object")

        # v2 userinfo uses id/verified_email, the OIDC endpoint sub/email_verified
        external_id = data.get("id", data.get("sub"))
        if isinstance(external_id, bool) or not isinstance(external_id, (str, int)) or external_id == "":
            raise self._malformed("userinfo has no account id")

        email = data.get("email")
        verified = data.get("verified_email", data.get("email_verified"))
        if not isinstance(email, str) or not email or verified is not True:
            raise OAuthFailure(
                OAuthFailureReason.NO_VERIFIED_EMAIL,
                "Google account has no verified email",
            )

        name = data.get("name")
        if not isinstance(name, str) or not name.strip():
            name = email.split("@")[0]

        picture = data.get("picture")
        return ExternalIdentity(
            provider=self.provider_name,
            external_id=str(external_id),
            email=email,
            display_name=name,
            avatar_url=picture if isinstance(picture, str) else None,
        )
