"""
Authentication routes.

Local registration/login, OAuth login/callback per provider, and the
current-account endpoint. Every authentication failure is reported to the
client as a bare "Unauthorized"; the failure kind is only logged.
"""
import logging
from typing import Optional
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import RedirectResponse

from careerbridge.core.config import Settings
from .dependencies import (
    get_auth_service,
    get_current_claims,
    get_settings,
    get_state_signer,
    unauthorized,
)
from .errors import (
    AuthFailure,
    AuthFailureReason,
    OAuthFailure,
    OAuthFailureReason,
    RegisterFailure,
    RegisterFailureReason,
)
from .models import SessionClaims
from .oauth_state import STATE_COOKIE_NAME, OAuthStateSigner
from .repositories import AccountNotFoundError, AccountStoreError
from .schemas import (
    AccountSummaryResponse,
    ErrorResponse,
    LoginRequest,
    LoginResponse,
    RegisterRequest,
    RegisterResponse,
)
from .service import AuthService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["authentication"])

EMAIL_TAKEN_MESSAGE = "Email already in use."
INTERNAL_MESSAGE = "Internal server error"
OAUTH_FAILED = "oauth_failed"


# ============================================================================
# HELPER FUNCTIONS
# ============================================================================

def frontend_callback_url(settings: Settings, **params: str) -> str:
    """Frontend page that receives the outcome of an OAuth login."""
    return f"{settings.frontend_redirect_base}/auth/callback?{urlencode(params)}"


def _internal_error() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=INTERNAL_MESSAGE,
    )


# ============================================================================
# LOCAL ROUTES
# ============================================================================

@router.post(
    "/register",
    status_code=status.HTTP_201_CREATED,
    response_model=RegisterResponse,
    responses={409: {"model": ErrorResponse}},
)
async def register(
    body: RegisterRequest,
    auth_service: AuthService = Depends(get_auth_service),
):
    """
    Create a local account and return its first session token.

    Returns:
        201 {account_id, token}; 409 if the email is already in use
    """
    try:
        result = await auth_service.register(body.email, body.password, body.full_name)
    except RegisterFailure as e:
        if e.reason == RegisterFailureReason.EMAIL_TAKEN:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=EMAIL_TAKEN_MESSAGE)
        logger.error(f"Registration failed: {e}")
        raise _internal_error()

    return RegisterResponse(account_id=result.account.account_id, token=result.token)


@router.post(
    "/login",
    response_model=LoginResponse,
    responses={401: {"model": ErrorResponse}},
)
async def login(
    body: LoginRequest,
    auth_service: AuthService = Depends(get_auth_service),
):
    """
    Email/password login.

    Unknown email, OAuth-only account and wrong password are indistinguishable.
    """
    try:
        result = await auth_service.login(body.email, body.password)
    except AuthFailure as e:
        if e.reason == AuthFailureReason.INVALID_CREDENTIALS:
            raise unauthorized()
        logger.error(f"Login failed: {e}")
        raise _internal_error()

    return LoginResponse(
        token=result.token,
        account=AccountSummaryResponse.from_summary(result.account),
    )


@router.get(
    "/me",
    response_model=AccountSummaryResponse,
    responses={401: {"model": ErrorResponse}},
)
async def me(
    claims: SessionClaims = Depends(get_current_claims),
    auth_service: AuthService = Depends(get_auth_service),
):
    """Account behind the presented session token."""
    try:
        summary = await auth_service.get_account_summary(claims.account_id)
    except AccountNotFoundError:
        logger.info(f"Valid token for missing account {claims.subject}")
        raise unauthorized()
    return AccountSummaryResponse.from_summary(summary)


# ============================================================================
# OAUTH ROUTES
# ============================================================================

@router.get("/{provider_id}/login")
async def oauth_login(
    provider_id: str,
    auth_service: AuthService = Depends(get_auth_service),
    signer: OAuthStateSigner = Depends(get_state_signer),
    settings: Settings = Depends(get_settings),
):
    """
    Initiate OAuth login flow.

    Returns:
        302 redirect to the provider, with the signed state cookie set
    """
    try:
        authorization = auth_service.begin_oauth(provider_id)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    response = RedirectResponse(url=authorization.redirect_url, status_code=status.HTTP_302_FOUND)
    response.set_cookie(
        key=STATE_COOKIE_NAME,
        value=signer.dumps(authorization),
        max_age=signer.max_age_seconds,
        path="/auth",
        secure=settings.https_only,
        httponly=True,
        samesite="lax",
    )
    return response


@router.get("/{provider_id}/callback")
async def oauth_callback(
    provider_id: str,
    request: Request,
    code: Optional[str] = Query(None),
    state: Optional[str] = Query(None),
    error: Optional[str] = Query(None),
    auth_service: AuthService = Depends(get_auth_service),
    signer: OAuthStateSigner = Depends(get_state_signer),
    settings: Settings = Depends(get_settings),
):
    """
    OAuth callback.

    Flow:
    1. Check state against the signed cookie
    2. Exchange code, fetch profile, resolve account (AuthService)
    3. Redirect to the frontend with the session token

    Returns:
        302 to {frontend}/auth/callback?token=...&new_user=true|false, or
        ?error=oauth_failed on any failure
    """
    try:
        auth_service.get_provider(provider_id)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    try:
        signer.verify(request.cookies.get(STATE_COOKIE_NAME), provider_id, state)
        if error or not code:
            raise OAuthFailure(
                OAuthFailureReason.CODE_EXCHANGE_FAILED,
                f"provider returned no code ({error or 'missing'})",
            )
        result = await auth_service.complete_oauth(provider_id, code)
        target = frontend_callback_url(
            settings,
            token=result.token,
            new_user="true" if result.is_new_account else "false",
        )
    except OAuthFailure as e:
        logger.warning(f"OAuth login via {provider_id} failed: {e}")
        target = frontend_callback_url(settings, error=OAUTH_FAILED)
    except AccountStoreError as e:
        logger.error(f"Account store failed during {provider_id} login: {e}")
        target = frontend_callback_url(settings, error=OAUTH_FAILED)

    response = RedirectResponse(url=target, status_code=status.HTTP_302_FOUND)
    response.delete_cookie(STATE_COOKIE_NAME, path="/auth")
    return response
