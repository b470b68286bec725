from __future__ import annotations

import logging

from fastapi import APIRouter, Cookie, Depends, Request, Response
from fastapi.responses import JSONResponse

from authcore.api.deps import (
    get_auth_orchestrator,
    get_current_claims,
    get_google_oauth_client,
)
from authcore.api.schemas.auth import (
    GoogleLoginRequest,
    LoginRequest,
    RegisterRequest,
    RevokeAllResponse,
    TokenResponse,
)
from authcore.application.dto.auth import (
    AccessTokenClaims,
    AuthErrorKind,
    AuthFailure,
    AuthResult,
)
from authcore.application.use_cases.auth_common import UNKNOWN_ORIGIN
from authcore.application.use_cases.auth_orchestrator import AuthOrchestrator
from authcore.domain.exceptions import GoogleTokenValidationError
from authcore.infrastructure.clients.google_oidc_client import GoogleOidcClient
from authcore.shared.config import get_settings


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/auth", tags=["auth"])

REFRESH_COOKIE_NAME = "refresh_token"
REFRESH_COOKIE_PATH = "/"

_STATUS_BY_KIND = {
    AuthErrorKind.VALIDATION_FAILED: (422, "Validation Failed"),
    AuthErrorKind.CONFLICT: (409, "Conflict"),
    AuthErrorKind.INVALID_CREDENTIALS: (401, "Unauthorized"),
    AuthErrorKind.TOO_MANY_ATTEMPTS: (429, "Too Many Requests"),
    AuthErrorKind.FORBIDDEN: (403, "Forbidden"),
    AuthErrorKind.INTERNAL_ERROR: (500, "Internal Server Error"),
}


def _set_refresh_cookie(response: Response, refresh_token: str, max_age_seconds: int) -> None:
    response.set_cookie(
        key=REFRESH_COOKIE_NAME,
        value=refresh_token,
        httponly=True,
        secure=get_settings().cookie_secure,
        samesite="strict",
        max_age=max_age_seconds,
        path=REFRESH_COOKIE_PATH,
    )


def _refresh_cookie_max_age() -> int:
    return get_settings().refresh_token_ttl_days * 24 * 60 * 60


def problem_response(failure: AuthFailure) -> JSONResponse:
    status_code, title = _STATUS_BY_KIND[failure.kind]
    body: dict = {"title": title, "status": status_code, "detail": failure.message}
    headers: dict[str, str] = {}
    if failure.field_errors:
        body["errors"] = failure.field_errors
    if failure.retry_after_seconds is not None:
        headers["Retry-After"] = str(failure.retry_after_seconds)
    return JSONResponse(
        status_code=status_code,
        content=body,
        headers=headers,
        media_type="application/problem+json",
    )


def _token_response(result: AuthResult, *, status_code: int = 200) -> Response:
    if isinstance(result, AuthFailure):
        return problem_response(result)

    payload = TokenResponse(
        access_token=result.access_token,
        token_type=result.token_type,
        access_expires_at=result.access_expires_at,
    )
    response = JSONResponse(status_code=status_code, content=payload.model_dump(mode="json"))
    _set_refresh_cookie(response, result.refresh_token, max_age_seconds=_refresh_cookie_max_age())
    return response


def _origin_key(request: Request) -> str:
    if request.client is None or not request.client.host:
        return UNKNOWN_ORIGIN
    return request.client.host


@router.post("/register", response_model=TokenResponse, status_code=201)
def register(
    req: RegisterRequest,
    orchestrator: AuthOrchestrator = Depends(get_auth_orchestrator),
):
    result = orchestrator.register(
        email=req.email,
        password=req.password,
        display_name=req.display_name,
    )
    return _token_response(result, status_code=201)


@router.post("/login", response_model=TokenResponse)
def login(
    req: LoginRequest,
    request: Request,
    orchestrator: AuthOrchestrator = Depends(get_auth_orchestrator),
):
    result = orchestrator.login(
        email=req.email,
        password=req.password,
        origin_key=_origin_key(request),
    )
    return _token_response(result)


@router.post("/refresh", response_model=TokenResponse)
def refresh(
    refresh_token_cookie: str | None = Cookie(default=None, alias=REFRESH_COOKIE_NAME),
    orchestrator: AuthOrchestrator = Depends(get_auth_orchestrator),
):
    if not refresh_token_cookie:
        return problem_response(
            AuthFailure(kind=AuthErrorKind.FORBIDDEN, message="Refresh token is invalid or expired.")
        )
    return _token_response(orchestrator.refresh(refresh_token=refresh_token_cookie))


@router.post("/logout", status_code=204)
def logout(
    refresh_token_cookie: str | None = Cookie(default=None, alias=REFRESH_COOKIE_NAME),
    orchestrator: AuthOrchestrator = Depends(get_auth_orchestrator),
):
    orchestrator.logout(refresh_token=refresh_token_cookie)
    response = Response(status_code=204)
    response.delete_cookie(
        key=REFRESH_COOKIE_NAME,
        path=REFRESH_COOKIE_PATH,
        httponly=True,
        secure=get_settings().cookie_secure,
        samesite="strict",
    )
    return response


@router.post("/google", response_model=TokenResponse)
def login_google(
    req: GoogleLoginRequest,
    google_client: GoogleOidcClient = Depends(get_google_oauth_client),
    orchestrator: AuthOrchestrator = Depends(get_auth_orchestrator),
):
    try:
        identity = google_client.verify_id_token(id_token=req.id_token)
    except GoogleTokenValidationError as exc:
        logger.warning("Rejected Google id_token: %s", exc)
        return JSONResponse(
            status_code=401,
            content={"title": "Unauthorized", "status": 401, "detail": str(exc)},
            media_type="application/problem+json",
        )

    result = orchestrator.oauth_sign_in(
        subject=identity.subject,
        email=identity.email,
        display_name=identity.name or "",
        avatar_url=identity.picture,
    )
    return _token_response(result)


@router.post("/sessions/revoke-all", response_model=RevokeAllResponse)
def revoke_all_sessions(
    claims: AccessTokenClaims = Depends(get_current_claims),
    orchestrator: AuthOrchestrator = Depends(get_auth_orchestrator),
):
    revoked = orchestrator.revoke_all_sessions(user_id=claims.user_id)
    if isinstance(revoked, AuthFailure):
        return problem_response(revoked)
    return RevokeAllResponse(revoked=revoked)
