"""
Session Token Service.

Issues and validates stateless HS256 JWTs carrying sub, email, iat and exp.
Validity is fully determined by the signature and the embedded expiry; there
is no server-side session store or revocation list.
"""
import json
import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional
from uuid import UUID

import jwt
from jwt.utils import base64url_decode

from .errors import TokenFailure, TokenFailureReason
from .models import SessionClaims
from .utils import utcnow

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
REQUIRED_CLAIMS = ("sub", "email", "iat", "exp")


class SessionTokenService:
    """
    Signs and verifies session tokens with a shared secret.

    Args:
        signing_secret: HMAC key, from Settings.signing_secret
        ttl: Token lifetime (default 24 hours)
        clock: Returns the current aware UTC time; injectable for tests
    """

    def __init__(
        self,
        signing_secret: str,
        ttl: timedelta = timedelta(hours=24),
        clock: Callable[[], datetime] = utcnow,
    ):
        if not signing_secret:
            raise ValueError("signing_secret must not be empty")
        self._secret = signing_secret
        self._ttl = ttl
        self._clock = clock

    @property
    def ttl(self) -> timedelta:
        return self._ttl

    def _now_ts(self) -> int:
        return int(self._clock().timestamp())

    def issue(self, account_id: UUID, email: str) -> str:
        """
        Issue a token for an account.

        Returns:
            Compact JWS string, presented by clients as a Bearer credential
        """
        issued_at = self._now_ts()
        payload = {
            "sub": str(account_id),
            "email": email,
            "iat": issued_at,
            "exp": issued_at + int(self._ttl.total_seconds()),
        }
        token = jwt.encode(payload, self._secret, algorithm=ALGORITHM)
        logger.debug(f"Issued session token for {account_id} (exp={payload['exp']})")
        return token

    def validate(self, token: str) -> SessionClaims:
        """
        Verify signature and expiry.

        The signature is checked before anything in the payload is trusted;
        expiry is then checked against the service clock.

        Returns:
            SessionClaims

        Raises:
            TokenFailure: EXPIRED, BAD_SIGNATURE or MALFORMED
        """
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[ALGORITHM],
                options={
                    "require": list(REQUIRED_CLAIMS),
                    "verify_exp": False,
                    "verify_iat": False,
                    "verify_nbf": False,
                },
            )
        except jwt.InvalidSignatureError as e:
            raise TokenFailure(TokenFailureReason.BAD_SIGNATURE, str(e)) from e
        except jwt.DecodeError as e:
            # Header and payload intact means only the signature segment is bad
            if _signed_segments_decode(token):
                raise TokenFailure(TokenFailureReason.BAD_SIGNATURE, str(e)) from e
            raise TokenFailure(TokenFailureReason.MALFORMED, str(e)) from e
        except jwt.PyJWTError as e:
            raise TokenFailure(TokenFailureReason.MALFORMED, str(e)) from e

        claims = self._claims_from_payload(payload)

        if self._now_ts() > int(claims.expires_at.timestamp()):
            raise TokenFailure(TokenFailureReason.EXPIRED, f"expired at {claims.expires_at.isoformat()}")

        return claims

    def _claims_from_payload(self, payload: dict) -> SessionClaims:
        subject = payload.get("sub")
        email = payload.get("email")
        iat = payload.get("iat")
        exp = payload.get("exp")

        if not isinstance(subject, str) or not isinstance(email, str):
            raise TokenFailure(TokenFailureReason.MALFORMED, "sub and email must be strings")
        if not _is_timestamp(iat) or not _is_timestamp(exp):
            raise TokenFailure(TokenFailureReason.MALFORMED, "iat and exp must be integers")
        try:
            UUID(subject)
        except ValueError as e:
            raise TokenFailure(TokenFailureReason.MALFORMED, "sub is not an account id") from e

        return SessionClaims(
            subject=subject,
            email=email,
            issued_at=datetime.fromtimestamp(iat, tz=timezone.utc),
            expires_at=datetime.fromtimestamp(exp, tz=timezone.utc),
        )


def _is_timestamp(value: Optional[object]) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _signed_segments_decode(token: str) -> bool:
    """True if a compact JWS has a decodable JSON header and payload."""
    if not isinstance(token, str):
        return False
    segments = token.split(".")
    if len(segments) != 3 or not segments[2]:
        return False
    try:
        header = json.loads(base64url_decode(segments[0]))
        payload = json.loads(base64url_decode(segments[1]))
    except (ValueError, TypeError):
        return False
    return isinstance(header, dict) and isinstance(payload, dict)
