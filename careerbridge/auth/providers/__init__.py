"""OAuth providers and the registry built from Settings."""

import logging
from typing import Dict, Optional

import httpx

from careerbridge.auth.models import OAuthProviderName
from careerbridge.core.config import Settings
from .base import OAuthConfig, OAuthProvider
from .github import GitHubOAuthProvider, create_github_config
from .google import GoogleOAuthProvider, create_google_config

logger = logging.getLogger(__name__)

_FACTORIES = {
    OAuthProviderName.GOOGLE.value: (create_google_config, GoogleOAuthProvider),
    OAuthProviderName.GITHUB.value: (create_github_config, GitHubOAuthProvider),
}


def build_providers(
    settings: Settings,
    http_client: Optional[httpx.AsyncClient] = None,
) -> Dict[str, OAuthProvider]:
    """
    Instantiate every provider whose credentials are configured.

    Returns:
        Mapping of provider name to provider
    """
    providers: Dict[str, OAuthProvider] = {}
    for name, (make_config, provider_cls) in _FACTORIES.items():
        credentials = settings.provider(name)
        if credentials is None:
            logger.info(f"{name} OAuth not configured ({name.upper()}_CLIENT_ID missing)")
            continue
        config = make_config(
            client_id=credentials.client_id,
            client_secret=credentials.client_secret,
            redirect_uri=credentials.redirect_uri,
            timeout=settings.oauth_http_timeout_seconds,
        )
        providers[name] = provider_cls(config, http_client=http_client)
        logger.info(f"Registered {name} OAuth provider")

    if not providers:
        logger.warning("No OAuth providers configured! Only email/password login is available.")
    return providers


__all__ = [
    "GitHubOAuthProvider",
    "GoogleOAuthProvider",
    "OAuthConfig",
    "OAuthProvider",
    "build_providers",
    "create_github_config",
    "create_google_config",
]
