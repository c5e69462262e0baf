"""
Main FastAPI application for the CareerBridge identity service.

Run with:
    uvicorn careerbridge.api.main:create_app --factory
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import FastAPI

from careerbridge.auth.oauth_state import OAuthStateSigner
from careerbridge.auth.passwords import PasswordService
from careerbridge.auth.repositories import AccountRepository, SqlAlchemyAccountRepository
from careerbridge.auth.routes import router as auth_router
from careerbridge.auth.service import AuthService
from careerbridge.core.config import Settings, load_settings
from careerbridge.core.database import create_engine, create_session_factory, init_database
from careerbridge.core.logging import configure_logging
from .middleware import CorrelationIDMiddleware, RequestLoggingMiddleware, add_exception_handlers

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    account_repo: Optional[AccountRepository] = None,
    http_client: Optional[httpx.AsyncClient] = None,
    passwords: Optional[PasswordService] = None,
) -> FastAPI:
    """
    Build the application.

    Args:
        settings: Process configuration (default: load_settings())
        account_repo: Account store; when omitted, a SQLAlchemy store is
            created on startup from settings.database_url
        http_client: Shared client for provider calls (tests inject a mock)
        passwords: Password hashing service
    """
    settings = settings or load_settings()
    configure_logging(settings.log_level, settings.log_format)

    def build_service(repo: AccountRepository) -> AuthService:
        return AuthService.from_settings(
            settings,
            account_repo=repo,
            http_client=http_client,
            passwords=passwords,
        )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting CareerBridge identity service")
        engine = None
        if account_repo is None:
            engine = create_engine(settings)
            try:
                await init_database(engine)
            except Exception as e:
                logger.error(f"Database initialization failed: {e}")
                await engine.dispose()
                raise
            app.state.auth_service = build_service(
                SqlAlchemyAccountRepository(create_session_factory(engine))
            )
        logger.info(f"OAuth providers: {app.state.auth_service.provider_names or 'none'}")

        yield

        logger.info("Shutting down CareerBridge identity service")
        if engine is not None:
            await engine.dispose()

    app = FastAPI(
        title="CareerBridge Identity",
        description="Account registration, login and session tokens",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.state_signer = OAuthStateSigner(
        settings.signing_secret,
        max_age_seconds=settings.oauth_state_max_age_seconds,
    )
    if account_repo is not None:
        app.state.auth_service = build_service(account_repo)

    # Order matters - last added = first executed
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(CorrelationIDMiddleware)
    add_exception_handlers(app)

    app.include_router(auth_router)

    @app.get("/health", tags=["health"])
    async def health():
        """Liveness check."""
        return {"status": "ok"}

    return app


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "careerbridge.api.main:create_app",
        factory=True,
        host="0.0.0.0",
        port=8000,
    )
