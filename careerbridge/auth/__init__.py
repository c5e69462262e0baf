"""
Identity core.

Local and federated login, identity resolution, and session tokens.
"""
from .errors import (
    AuthFailure,
    AuthFailureReason,
    IdentityError,
    OAuthFailure,
    OAuthFailureReason,
    RegisterFailure,
    RegisterFailureReason,
    TokenFailure,
    TokenFailureReason,
)
from .models import (
    Account,
    AccountSummary,
    ExternalIdentity,
    LoginResult,
    OAuthProviderName,
    SessionClaims,
)
from .service import AuthService
from .utils import utcnow

__all__ = [
    'Account',
    'AccountSummary',
    'AuthFailure',
    'AuthFailureReason',
    'AuthService',
    'ExternalIdentity',
    'IdentityError',
    'LoginResult',
    'OAuthFailure',
    'OAuthFailureReason',
    'OAuthProviderName',
    'RegisterFailure',
    'RegisterFailureReason',
    'SessionClaims',
    'TokenFailure',
    'TokenFailureReason',
    'utcnow',
]
