"""
Authentication dependencies.

FastAPI dependencies for route protection and the shared auth components
stored on app.state by create_app.
"""
import logging
from typing import Optional

from fastapi import Depends, Header, HTTPException, Request, status

from careerbridge.core.config import Settings
from .errors import TokenFailure
from .models import SessionClaims
from .oauth_state import OAuthStateSigner
from .service import AuthService

logger = logging.getLogger(__name__)

UNAUTHORIZED = "Unauthorized"


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


def get_state_signer(request: Request) -> OAuthStateSigner:
    return request.app.state.state_signer


def unauthorized() -> HTTPException:
    """The single 401 returned for every authentication failure."""
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=UNAUTHORIZED,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


async def get_current_claims(
    authorization: Optional[str] = Header(None),
    auth_service: AuthService = Depends(get_auth_service),
) -> SessionClaims:
    """
    Validate the Bearer session token (required).

    Raises:
        HTTPException: 401 if the header is missing or the token is rejected
    """
    token = _bearer_token(authorization)
    if token is None:
        raise unauthorized()

    try:
        return auth_service.validate_session(token)
    except TokenFailure as e:
        # Kind is for diagnostics only; the client always sees a bare 401
        logger.info(f"Rejected session token ({e.reason.value})")
        raise unauthorized() from e
