from __future__ import annotations

from collections.abc import Mapping


class DomainError(Exception):
    """Base for domain errors."""


class RegistrationValidationError(DomainError):
    """Registration input rejected; carries per-field messages."""

    def __init__(self, message: str, field_errors: Mapping[str, list[str]] | None = None):
        super().__init__(message)
        self.field_errors: dict[str, list[str]] = {
            field: list(messages) for field, messages in (field_errors or {}).items()
        }


class EmailAlreadyExistsError(DomainError):
    """Email is already registered."""


class InvalidCredentialsError(DomainError):
    """Email/password pair did not match a user."""


class TooManyAttemptsError(DomainError):
    """Origin is locked out after repeated failed logins."""

    def __init__(self, retry_after_seconds: int):
        super().__init__(f"Too many failed login attempts. Retry after {retry_after_seconds} seconds.")
        self.retry_after_seconds = retry_after_seconds


class RefreshSessionInvalidError(DomainError):
    """Refresh token unknown, rotated, revoked or expired, or its user is gone."""


class ExternalSignInError(DomainError):
    """External identity could not be resolved to a local user."""


class InvalidAccessTokenError(DomainError):
    """Access token failed signature or claim validation."""


class GoogleTokenValidationError(DomainError):
    """Google id_token could not be verified."""


class StoreError(DomainError):
    """A backing store failed."""


class UserDirectoryError(StoreError):
    """User directory read or write failed."""


class TokenStoreError(StoreError):
    """Refresh token persistence failed."""


class CounterStoreError(StoreError):
    """Ephemeral counter store failed."""
