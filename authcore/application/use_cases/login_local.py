from __future__ import annotations

import logging

from authcore.application.dto.auth import LoginLocalInput, TokenPair
from authcore.application.ports.failed_login_counter_port import FailedLoginCounterPort
from authcore.application.ports.refresh_token_port import RefreshTokenPort
from authcore.application.ports.token_port import TokenPort
from authcore.application.ports.user_directory_port import UserDirectoryPort
from authcore.domain.exceptions import InvalidCredentialsError, TooManyAttemptsError

from .auth_common import issue_token_pair, normalize_email, normalize_origin_key, utcnow


logger = logging.getLogger(__name__)

MAX_FAILED_ATTEMPTS = 5
LOCKOUT_SECONDS = 900


class LoginLocalUseCase:
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
        self._user_directory = user_directory
        self._failed_login_counter = failed_login_counter
        self._token_port = token_port
        self._refresh_token_port = refresh_token_port
        self._max_failed_attempts = max(1, int(max_failed_attempts))
        self._lockout_seconds = int(lockout_seconds)

    def execute(self, command: LoginLocalInput) -> TokenPair:
        # Counter is keyed by origin only, never by account.
        origin = normalize_origin_key(command.origin_key)

        if self._failed_login_counter.get_count(origin) >= self._max_failed_attempts:
            logger.warning("Login blocked for origin %s: lockout active.", origin)
            raise TooManyAttemptsError(self._lockout_seconds)

        user = self._user_directory.verify_credentials(
            email=normalize_email(command.email),
            password=command.password,
        )
        if user is None:
            attempts = self._failed_login_counter.record_failure(origin)
            logger.warning(
                "Failed login attempt from %s. Attempt %d/%d",
                origin,
                attempts,
                self._max_failed_attempts,
            )
            raise InvalidCredentialsError("Invalid email or password.")

        self._failed_login_counter.clear(origin)
        self._user_directory.update_last_login(user_id=user.id, at=utcnow())

        return issue_token_pair(
            user_id=user.id,
            email=user.email,
            role=user.role,
            token_port=self._token_port,
            refresh_token_port=self._refresh_token_port,
        )
