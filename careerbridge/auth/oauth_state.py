"""
OAuth state correlation.

The CSRF token from begin_login travels two ways: as the `state` parameter
through the provider, and inside a signed, short-lived cookie set on the
login redirect. The callback is only accepted when both agree.
"""
import hmac
import logging
from typing import Optional

from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from .errors import OAuthFailure, OAuthFailureReason
from .models import AuthorizationRequest

logger = logging.getLogger(__name__)

STATE_COOKIE_NAME = "oauth_state"


class OAuthStateSigner:
    """
    Signs and checks the OAuth state cookie.

    Args:
        secret: Signing key (Settings.signing_secret)
        max_age_seconds: How long a login attempt may take
    """

    def __init__(self, secret: str, max_age_seconds: int = 600):
        self._serializer = URLSafeTimedSerializer(secret, salt="oauth-state")
        self.max_age_seconds = max_age_seconds

    def dumps(self, request: AuthorizationRequest) -> str:
        """Cookie value for a login attempt."""
        return self._serializer.dumps({"provider": request.provider, "csrf": request.csrf_token})

    def verify(self, cookie_value: Optional[str], provider: str, state: Optional[str]) -> None:
        """
        Check a callback against the cookie set at login.

        Raises:
            OAuthFailure: CSRF_MISMATCH if the cookie is missing, tampered,
                expired, for another provider, or disagrees with state
        """
        if not cookie_value or not state:
            raise OAuthFailure(OAuthFailureReason.CSRF_MISMATCH, "missing state")

        try:
            data = self._serializer.loads(cookie_value, max_age=self.max_age_seconds)
        except SignatureExpired as e:
            raise OAuthFailure(OAuthFailureReason.CSRF_MISMATCH, "login attempt expired") from e
        except BadSignature as e:
            logger.warning("OAuth state cookie failed signature check")
            raise OAuthFailure(OAuthFailureReason.CSRF_MISMATCH, "invalid state cookie") from e

        if not isinstance(data, dict) or data.get("provider") != provider:
            raise OAuthFailure(OAuthFailureReason.CSRF_MISMATCH, "state issued for another provider")

        expected = data.get("csrf")
        if not isinstance(expected, str) or not hmac.compare_digest(
            expected.encode("utf-8"), state.encode("utf-8")
        ):
            raise OAuthFailure(OAuthFailureReason.CSRF_MISMATCH, "state mismatch")
