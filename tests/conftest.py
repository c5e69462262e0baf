"""
Shared pytest fixtures for all tests.

Provides cheap password hashing, account stores (in-memory and SQLite), and
a scriptable fake of the Google and GitHub HTTP APIs.
"""

import json
from typing import Callable, Dict, Optional, Tuple

import httpx
import pytest
import pytest_asyncio
from argon2 import PasswordHasher

from careerbridge.auth.passwords import PasswordService
from careerbridge.auth.repositories import InMemoryAccountRepository, SqlAlchemyAccountRepository
from careerbridge.core.config import ProviderCredentials, Settings
from careerbridge.core.database import create_engine, create_session_factory, init_database


TEST_SECRET = "test-signing-secret-with-enough-entropy"
FRONTEND = "http://frontend.test"


# =============================================================================
# CONFIGURATION FIXTURES
# =============================================================================

@pytest.fixture
def settings() -> Settings:
    """Settings with both providers enabled."""
    return Settings(
        signing_secret=TEST_SECRET,
        frontend_redirect_base=FRONTEND,
        database_url="sqlite+aiosqlite:///:memory:",
        providers={
            "google": ProviderCredentials(
                client_id="google-client",
                client_secret="google-secret",
                redirect_uri="http://api.test/auth/google/callback",
            ),
            "github": ProviderCredentials(
                client_id="github-client",
                client_secret="github-secret",
                redirect_uri="http://api.test/auth/github/callback",
            ),
        },
    )


@pytest.fixture
def passwords() -> PasswordService:
    """Argon2id with minimal cost so tests stay fast."""
    return PasswordService(PasswordHasher(time_cost=1, memory_cost=8, parallelism=1))


# =============================================================================
# STORE FIXTURES
# =============================================================================

@pytest.fixture
def memory_repo() -> InMemoryAccountRepository:
    """Create fresh in-memory account repository."""
    return InMemoryAccountRepository()


@pytest_asyncio.fixture
async def sql_repo():
    """SQLAlchemy repository on a private in-memory SQLite database."""
    engine = create_engine(Settings(
        signing_secret=TEST_SECRET,
        database_url="sqlite+aiosqlite:///:memory:",
    ))
    await init_database(engine)

    yield SqlAlchemyAccountRepository(create_session_factory(engine))

    await engine.dispose()


@pytest_asyncio.fixture(params=["memory", "sql"])
async def account_repo(request):
    """Run a test once per AccountRepository implementation."""
    if request.param == "memory":
        yield InMemoryAccountRepository()
        return

    engine = create_engine(Settings(
        signing_secret=TEST_SECRET,
        database_url="sqlite+aiosqlite:///:memory:",
    ))
    await init_database(engine)

    yield SqlAlchemyAccountRepository(create_session_factory(engine))

    await engine.dispose()


# =============================================================================
# PROVIDER HTTP FAKE
# =============================================================================

def _bare_url(request: httpx.Request) -> str:
    return f"{request.url.scheme}://{request.url.host}{request.url.path}"


Route = Tuple[str, str]  # (method, url without query)
Responder = Callable[[httpx.Request], httpx.Response]


class FakeProviderAPI:
    """
    Scriptable stand-in for provider endpoints, served via httpx.MockTransport.

    Token endpoints accept each authorization code once, like real providers.
    """

    GOOGLE_TOKEN = "https://oauth2.googleapis.com/token"
    GOOGLE_USERINFO = "https://www.googleapis.com/oauth2/v2/userinfo"
    GITHUB_TOKEN = "https://github.com/login/oauth/access_token"
    GITHUB_USER = "https://api.github.com/user"
    GITHUB_EMAILS = "https://api.github.com/user/emails"

    def __init__(self):
        self.routes: Dict[Route, Responder] = {}
        self.requests: list[httpx.Request] = []
        self.redeemed_codes: set[str] = set()
        self.google_profile: dict = {
            "id": "g-123",
            "email": "alice@example.com",
            "verified_email": True,
            "name": "Alice Doe",
            "picture": "https://img.test/alice.png",
        }
        self.github_profile: dict = {
            "id": 42,
            "login": "alice-gh",
            "name": "Alice GH",
            "email": None,
            "avatar_url": "https://img.test/gh.png",
        }
        self.github_emails: list = [
            {"email": "old@example.com", "primary": False, "verified": True},
            {"email": "alice@example.com", "primary": True, "verified": True},
        ]

        self.routes[("POST", self.GOOGLE_TOKEN)] = self._token_json
        self.routes[("GET", self.GOOGLE_USERINFO)] = lambda r: httpx.Response(200, json=self.google_profile)
        self.routes[("POST", self.GITHUB_TOKEN)] = self._token_json
        self.routes[("GET", self.GITHUB_USER)] = lambda r: httpx.Response(200, json=self.github_profile)
        self.routes[("GET", self.GITHUB_EMAILS)] = lambda r: httpx.Response(200, json=self.github_emails)

    def _token_json(self, request: httpx.Request) -> httpx.Response:
        form = dict(httpx.QueryParams(request.content.decode()))
        code = form.get("code", "")
        if code in self.redeemed_codes or code.startswith("bad"):
            # GitHub answers 200 with an error body; Google answers 400
            if request.url.host == "github.com":
                return httpx.Response(200, json={"error": "bad_verification_code"})
            return httpx.Response(400, json={"error": "invalid_grant"})
        self.redeemed_codes.add(code)
        return httpx.Response(200, json={"access_token": f"at-{code}", "token_type": "bearer"})

    def set(self, method: str, url: str, responder: Responder) -> None:
        self.routes[(method, url)] = responder

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        key = (request.method, _bare_url(request))
        responder = self.routes.get(key)
        if responder is None:
            return httpx.Response(404, content=json.dumps({"message": "Not Found"}))
        return responder(request)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))

    def last_request_to(self, url: str) -> Optional[httpx.Request]:
        for request in reversed(self.requests):
            if _bare_url(request) == url:
                return request
        return None


@pytest.fixture
def provider_api() -> FakeProviderAPI:
    return FakeProviderAPI()


@pytest_asyncio.fixture
async def provider_client(provider_api):
    """httpx client whose requests are answered by provider_api."""
    async with provider_api.client() as client:
        yield client
