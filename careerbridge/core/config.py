# config.py

"""
Configuration for the CareerBridge identity core.

All environment-derived values are read once by load_settings() into an
immutable Settings value. Components receive Settings explicitly; nothing
re-reads the environment at call time.
"""

import os
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, Optional

from dotenv import load_dotenv


DEFAULT_TOKEN_TTL_SECONDS = 24 * 60 * 60
DEFAULT_FRONTEND_URL = "http://localhost:5173"
DEFAULT_DATABASE_URL = "sqlite+aiosqlite:///./careerbridge.db"

# Providers that may be configured via <NAME>_CLIENT_ID etc.
KNOWN_PROVIDERS = ("google", "github")


class ConfigurationError(RuntimeError):
    """Raised when required configuration is missing or invalid."""
    pass


@dataclass(frozen=True)
class ProviderCredentials:
    """OAuth application credentials for one identity provider."""
    client_id: str
    client_secret: str
    redirect_uri: str


@dataclass(frozen=True)
class Settings:
    """
    Immutable process configuration.

    Built once at startup and passed by reference into every component.
    Swapping signing_secret only requires a new environment value.
    """
    signing_secret: str
    token_ttl_seconds: int = DEFAULT_TOKEN_TTL_SECONDS
    frontend_redirect_base: str = DEFAULT_FRONTEND_URL
    database_url: str = DEFAULT_DATABASE_URL
    providers: Mapping[str, ProviderCredentials] = field(
        default_factory=lambda: MappingProxyType({})
    )
    oauth_http_timeout_seconds: float = 10.0
    oauth_state_max_age_seconds: int = 600
    https_only: bool = False
    log_level: str = "INFO"
    log_format: str = "text"

    def __post_init__(self):
        if not self.signing_secret:
            raise ConfigurationError("signing_secret must not be empty")
        if self.token_ttl_seconds <= 0:
            raise ConfigurationError("token_ttl_seconds must be positive")
        # Freeze the provider mapping even if a plain dict was passed in
        if not isinstance(self.providers, MappingProxyType):
            object.__setattr__(self, "providers", MappingProxyType(dict(self.providers)))

    def provider(self, name: str) -> Optional[ProviderCredentials]:
        """Credentials for a provider, or None if it is not configured."""
        return self.providers.get(name)


def _env_int(environ: Mapping[str, str], name: str, default: int) -> int:
    raw = environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from exc


def _env_float(environ: Mapping[str, str], name: str, default: float) -> float:
    raw = environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from exc


def _env_bool(environ: Mapping[str, str], name: str, default: bool = False) -> bool:
    raw = environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _load_provider(environ: Mapping[str, str], name: str) -> Optional[ProviderCredentials]:
    prefix = name.upper()
    client_id = (environ.get(f"{prefix}_CLIENT_ID") or "").strip()
    client_secret = (environ.get(f"{prefix}_CLIENT_SECRET") or "").strip()
    redirect_uri = (environ.get(f"{prefix}_REDIRECT_URI") or "").strip()

    if not client_id and not client_secret:
        return None
    if not (client_id and client_secret and redirect_uri):
        raise ConfigurationError(
            f"{prefix}_CLIENT_ID, {prefix}_CLIENT_SECRET and {prefix}_REDIRECT_URI "
            f"must all be set to enable {name} login"
        )
    return ProviderCredentials(
        client_id=client_id,
        client_secret=client_secret,
        redirect_uri=redirect_uri,
    )


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """
    Build Settings from the environment.

    Args:
        environ: Mapping to read from. Defaults to os.environ after loading .env.

    Returns:
        Settings

    Raises:
        ConfigurationError: If JWT_SECRET is missing or a value is invalid
    """
    if environ is None:
        load_dotenv(override=False)
        environ = os.environ

    signing_secret = environ.get("JWT_SECRET")
    if not signing_secret:
        raise ConfigurationError(
            "JWT_SECRET not found in environment!\n"
            "Add to your .env file:\n"
            "JWT_SECRET=<long random string>"
        )

    providers = {}
    for name in KNOWN_PROVIDERS:
        credentials = _load_provider(environ, name)
        if credentials is not None:
            providers[name] = credentials

    return Settings(
        signing_secret=signing_secret,
        token_ttl_seconds=_env_int(environ, "JWT_EXPIRATION", DEFAULT_TOKEN_TTL_SECONDS),
        frontend_redirect_base=(environ.get("FRONTEND_URL") or DEFAULT_FRONTEND_URL).rstrip("/"),
        database_url=environ.get("DATABASE_URL") or DEFAULT_DATABASE_URL,
        providers=providers,
        oauth_http_timeout_seconds=_env_float(environ, "OAUTH_HTTP_TIMEOUT", 10.0),
        oauth_state_max_age_seconds=_env_int(environ, "OAUTH_STATE_MAX_AGE", 600),
        https_only=_env_bool(environ, "HTTPS_ONLY", False),
        log_level=environ.get("LOG_LEVEL", "INFO"),
        log_format=environ.get("LOG_FORMAT", "text"),
    )
