"""
Identity failure taxonomy.

Each failure is an exception carrying a reason enum. The reason exists for
logging and diagnostics; the HTTP layer collapses authentication failures into
a single unauthorized response.
"""
from enum import Enum


class AuthFailureReason(str, Enum):
    """Why a local login failed."""
    INVALID_CREDENTIALS = "invalid_credentials"
    INTERNAL = "internal"


class OAuthFailureReason(str, Enum):
    """Why a federated login failed."""
    CODE_EXCHANGE_FAILED = "code_exchange_failed"
    PROVIDER_UNAVAILABLE = "provider_unavailable"
    MALFORMED_RESPONSE = "malformed_response"
    NO_VERIFIED_EMAIL = "no_verified_email"
    CSRF_MISMATCH = "csrf_mismatch"


class RegisterFailureReason(str, Enum):
    """Why a registration failed."""
    EMAIL_TAKEN = "email_taken"
    INTERNAL = "internal"


class TokenFailureReason(str, Enum):
    """Why a session token was rejected."""
    EXPIRED = "expired"
    BAD_SIGNATURE = "bad_signature"
    MALFORMED = "malformed"


class IdentityError(Exception):
    """Base class for identity core failures."""

    def __init__(self, reason: Enum, detail: str = ""):
        self.reason = reason
        self.detail = detail
        super().__init__(f"{reason.value}: {detail}" if detail else reason.value)


class AuthFailure(IdentityError):
    """Local email/password authentication failed."""

    def __init__(self, reason: AuthFailureReason, detail: str = ""):
        super().__init__(reason, detail)


class OAuthFailure(IdentityError):
    """OAuth handshake or profile fetch failed."""

    def __init__(self, reason: OAuthFailureReason, detail: str = ""):
        super().__init__(reason, detail)


class RegisterFailure(IdentityError):
    """Local registration failed."""

    def __init__(self, reason: RegisterFailureReason, detail: str = ""):
        super().__init__(reason, detail)


class TokenFailure(IdentityError):
    """Session token validation failed."""

    def __init__(self, reason: TokenFailureReason, detail: str = ""):
        super().__init__(reason, detail)
