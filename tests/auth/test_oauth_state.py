"""Tests for the OAuth state cookie."""

import time

import pytest

from careerbridge.auth.errors import OAuthFailure, OAuthFailureReason
from careerbridge.auth.models import AuthorizationRequest
from careerbridge.auth.oauth_state import OAuthStateSigner


@pytest.fixture
def signer():
    return OAuthStateSigner("state-secret", max_age_seconds=600)


@pytest.fixture
def attempt():
    return AuthorizationRequest(
        provider="google",
        redirect_url="https://accounts.google.com/o/oauth2/v2/auth?state=csrf-abc",
        csrf_token="csrf-abc",
    )


def assert_csrf_mismatch(fn, *args):
    with pytest.raises(OAuthFailure) as exc_info:
        fn(*args)
    assert exc_info.value.reason == OAuthFailureReason.CSRF_MISMATCH


class TestOAuthStateSigner:
    """Tests for OAuthStateSigner."""

    def test_matching_state_accepted(self, signer, attempt):
        """Cookie and state from the same attempt verify."""
        signer.verify(signer.dumps(attempt), "google", "csrf-abc")

    def test_cookie_does_not_expose_plain_secret(self, signer, attempt):
        """The cookie value is signed."""
        cookie = signer.dumps(attempt)
        assert "." in cookie

    def test_missing_cookie(self, signer):
        """No cookie means the callback was not started here."""
        assert_csrf_mismatch(signer.verify, None, "google", "csrf-abc")

    def test_missing_state(self, signer, attempt):
        """No state parameter is rejected."""
        assert_csrf_mismatch(signer.verify, signer.dumps(attempt), "google", None)

    def test_state_mismatch(self, signer, attempt):
        """A state value from another attempt is rejected."""
        assert_csrf_mismatch(signer.verify, signer.dumps(attempt), "google", "csrf-other")

    def test_non_ascii_state(self, signer, attempt):
        """A non-ASCII state value is a mismatch, not a TypeError."""
        assert_csrf_mismatch(signer.verify, signer.dumps(attempt), "google", "csrf-été")

    def test_wrong_provider(self, signer, attempt):
        """A cookie for Google cannot complete a GitHub callback."""
        assert_csrf_mismatch(signer.verify, signer.dumps(attempt), "github", "csrf-abc")

    def test_tampered_cookie(self, signer, attempt):
        """A modified cookie fails the signature check."""
        cookie = signer.dumps(attempt)
        assert_csrf_mismatch(signer.verify, ("A" if cookie[0] != "A" else "B") + cookie[1:], "google", "csrf-abc")

    def test_cookie_from_other_secret(self, signer, attempt):
        """A cookie signed with another key is rejected."""
        other = OAuthStateSigner("other-secret")
        assert_csrf_mismatch(signer.verify, other.dumps(attempt), "google", "csrf-abc")

    def test_expired_cookie(self, attempt, monkeypatch):
        """A login attempt older than max_age is rejected."""
        signer = OAuthStateSigner("state-secret", max_age_seconds=60)
        cookie = signer.dumps(attempt)
        now = time.time()
        monkeypatch.setattr(time, "time", lambda: now + 120)

        assert_csrf_mismatch(signer.verify, cookie, "google", "csrf-abc")
