from __future__ import annotations

import logging
from typing import Callable

from authcore.application.dto.auth import (
    AuthErrorKind,
    AuthFailure,
    AuthResult,
    LoginLocalInput,
    LogoutInput,
    OAuthSignInInput,
    RefreshSessionInput,
    RegisterUserInput,
    TokenPair,
)
from authcore.application.ports.failed_login_counter_port import FailedLoginCounterPort
from authcore.application.ports.refresh_token_port import RefreshTokenPort
from authcore.application.ports.token_port import TokenPort
from authcore.application.ports.user_directory_port import UserDirectoryPort
from authcore.domain.exceptions import (
    DomainError,
    EmailAlreadyExistsError,
    ExternalSignInError,
    InvalidCredentialsError,
    RefreshSessionInvalidError,
    RegistrationValidationError,
    StoreError,
    TooManyAttemptsError,
)

from .login_local import LOCKOUT_SECONDS, MAX_FAILED_ATTEMPTS, LoginLocalUseCase
from .logout_session import LogoutSessionUseCase
from .oauth_sign_in import OAuthSignInUseCase
from .refresh_session import INVALID_REFRESH_MESSAGE, RefreshSessionUseCase
from .register_user import RegisterUserUseCase
from .upsert_external_user import UpsertExternalUserUseCase


logger = logging.getLogger(__name__)

INVALID_CREDENTIALS_MESSAGE = "Invalid email or password."
INTERNAL_ERROR_MESSAGE = "An unexpected error occurred."


class AuthOrchestrator:
    """Caller-facing command surface for the credential and session lifecycle.

    Every command returns either a ``TokenPair`` or an ``AuthFailure``; no
    collaborator exception crosses this boundary.
    """

    def __init__(
        self,
        *,
        user_directory: UserDirectoryPort,
        failed_login_counter: FailedLoginCounterPort,
        token_port: TokenPort,
        refresh_token_port: RefreshTokenPort,
        max_failed_attempts: int = MAX_FAILED_ATTEMPTS,
        lockout_seconds: int = LOCKOUT_SECONDS,
    ):
        self._refresh_token_port = refresh_token_port
        self._lockout_seconds = lockout_seconds
        self._register = RegisterUserUseCase(
            user_directory=user_directory,
            token_port=token_port,
            refresh_token_port=refresh_token_port,
        )
        self._login = LoginLocalUseCase(
            user_directory=user_directory,
            failed_login_counter=failed_login_counter,
            token_port=token_port,
            refresh_token_port=refresh_token_port,
            max_failed_attempts=max_failed_attempts,
            lockout_seconds=lockout_seconds,
        )
        self._refresh = RefreshSessionUseCase(
            user_directory=user_directory,
            token_port=token_port,
            refresh_token_port=refresh_token_port,
        )
        self._logout = LogoutSessionUseCase(
            token_port=token_port,
            refresh_token_port=refresh_token_port,
        )
        self._oauth_sign_in = OAuthSignInUseCase(
            user_directory=user_directory,
            external_user_linker=UpsertExternalUserUseCase(user_directory=user_directory),
            token_port=token_port,
            refresh_token_port=refresh_token_port,
        )

    def register(self, *, email: str, password: str, display_name: str) -> AuthResult:
        return self._run(
            "register",
            lambda: self._register.execute(
                RegisterUserInput(email=email, password=password, display_name=display_name)
            ),
        )

    def login(self, *, email: str, password: str, origin_key: str) -> AuthResult:
        return self._run(
            "login",
            lambda: self._login.execute(
                LoginLocalInput(email=email, password=password, origin_key=origin_key)
            ),
        )

    def refresh(self, *, refresh_token: str) -> AuthResult:
        return self._run(
            "refresh",
            lambda: self._refresh.execute(RefreshSessionInput(refresh_token=refresh_token)),
        )

    def logout(self, *, refresh_token: str | None) -> None:
        try:
            self._logout.execute(LogoutInput(refresh_token=refresh_token))
        except StoreError as exc:
            # Logout is not an authentication check; the session is left to expire.
            logger.warning("Refresh token revocation failed during logout: %s", exc)
        except Exception:  # noqa: BLE001
            logger.exception("Unexpected failure in auth command logout")

    def oauth_sign_in(
        self,
        *,
        subject: str,
        email: str,
        display_name: str,
        avatar_url: str | None = None,
    ) -> AuthResult:
        return self._run(
            "oauth_sign_in",
            lambda: self._oauth_sign_in.execute(
                OAuthSignInInput(
                    subject=subject,
                    email=email,
                    display_name=display_name,
                    avatar_url=avatar_url,
                )
            ),
        )

    def revoke_all_sessions(self, *, user_id: str) -> int | AuthFailure:
        try:
            revoked = self._refresh_token_port.revoke_all_for_user(user_id=user_id)
        except Exception:  # noqa: BLE001
            logger.exception("Unexpected failure in auth command revoke_all_sessions")
            return AuthFailure(kind=AuthErrorKind.INTERNAL_ERROR, message=INTERNAL_ERROR_MESSAGE)
        logger.info("Revoked %d refresh tokens for user %s", revoked, user_id)
        return revoked

    def _run(self, command: str, fn: Callable[[], TokenPair]) -> AuthResult:
        try:
            return fn()
        except DomainError as exc:
            return self._to_failure(command, exc)
        except Exception:  # noqa: BLE001
            logger.exception("Unexpected failure in auth command %s", command)
            return AuthFailure(kind=AuthErrorKind.INTERNAL_ERROR, message=INTERNAL_ERROR_MESSAGE)

    def _to_failure(self, command: str, exc: DomainError) -> AuthFailure:
        if isinstance(exc, RegistrationValidationError):
            return AuthFailure(
                kind=AuthErrorKind.VALIDATION_FAILED,
                message=str(exc),
                field_errors=exc.field_errors,
            )
        if isinstance(exc, EmailAlreadyExistsError):
            return AuthFailure(kind=AuthErrorKind.CONFLICT, message=str(exc))
        if isinstance(exc, InvalidCredentialsError):
            return AuthFailure(
                kind=AuthErrorKind.INVALID_CREDENTIALS,
                message=INVALID_CREDENTIALS_MESSAGE,
            )
        if isinstance(exc, TooManyAttemptsError):
            return AuthFailure(
                kind=AuthErrorKind.TOO_MANY_ATTEMPTS,
                message=str(exc),
                retry_after_seconds=self._lockout_seconds,
            )
        if isinstance(exc, RefreshSessionInvalidError):
            return AuthFailure(kind=AuthErrorKind.FORBIDDEN, message=INVALID_REFRESH_MESSAGE)
        if isinstance(exc, ExternalSignInError):
            return AuthFailure(kind=AuthErrorKind.INTERNAL_ERROR, message=str(exc))

        logger.error("Auth command %s failed: %s", command, exc)
        return AuthFailure(kind=AuthErrorKind.INTERNAL_ERROR, message=INTERNAL_ERROR_MESSAGE)
