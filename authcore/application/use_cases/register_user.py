from __future__ import annotations

import re

from authcore.application.dto.auth import RegisterUserInput, TokenPair
from authcore.application.ports.refresh_token_port import RefreshTokenPort
from authcore.application.ports.token_port import TokenPort
from authcore.application.ports.user_directory_port import UserDirectoryPort
from authcore.domain.exceptions import RegistrationValidationError

from .auth_common import issue_token_pair, normalize_email


EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
PASSWORD_MIN_LENGTH = 8
DISPLAY_NAME_MIN_LENGTH = 2
DISPLAY_NAME_MAX_LENGTH = 100


def validate_registration(command: RegisterUserInput) -> dict[str, list[str]]:
    errors: dict[str, list[str]] = {}

    email = command.email.strip()
    if not email:
        errors.setdefault("email", []).append("Email is required.")
    elif len(email) > 256 or not EMAIL_PATTERN.match(email):
        errors.setdefault("email", []).append("Email is not a valid address.")

    password = command.password
    if len(password) < PASSWORD_MIN_LENGTH:
        errors.setdefault("password", []).append(
            f"Password must be at least {PASSWORD_MIN_LENGTH} characters."
        )
    if not any(ch.isupper() for ch in password):
        errors.setdefault("password", []).append("Password must contain an uppercase letter.")
    if not any(ch.islower() for ch in password):
        errors.setdefault("password", []).append("Password must contain a lowercase letter.")
    if not any(ch.isdigit() for ch in password):
        errors.setdefault("password", []).append("Password must contain a digit.")

    display_name = command.display_name.strip()
    if not DISPLAY_NAME_MIN_LENGTH <= len(display_name) <= DISPLAY_NAME_MAX_LENGTH:
        errors.setdefault("display_name", []).append(
            f"Display name must be between {DISPLAY_NAME_MIN_LENGTH} "
            f"and {DISPLAY_NAME_MAX_LENGTH} characters."
        )

    return errors


class RegisterUserUseCase:
    def __init__(
        self,
        *,
        user_directory: UserDirectoryPort,
        token_port: TokenPort,
        refresh_token_port: RefreshTokenPort,
    ):
        self._user_directory = user_directory
        self._token_port = token_port
        self._refresh_token_port = refresh_token_port

    def execute(self, command: RegisterUserInput) -> TokenPair:
        errors = validate_registration(command)
        if errors:
            raise RegistrationValidationError("One or more validation errors occurred.", errors)

        # First login for this account: last_login stays unset.
        user = self._user_directory.register(
            email=normalize_email(command.email),
            password=command.password,
            display_name=command.display_name.strip(),
        )
        return issue_token_pair(
            user_id=user.id,
            email=user.email,
            role=user.role,
            token_port=self._token_port,
            refresh_token_port=self._refresh_token_port,
        )
