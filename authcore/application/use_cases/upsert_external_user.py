from __future__ import annotations

import logging

from authcore.application.dto.auth import ExternalUserResult
from authcore.application.ports.user_directory_port import UserDirectoryPort
from authcore.domain.entities.user import ROLE_MEMBER
from authcore.domain.exceptions import DomainError

from .auth_common import normalize_email


logger = logging.getLogger(__name__)


class UpsertExternalUserUseCase:
    """Resolve a third-party identity assertion to a local user.

    Lookup order is subject, then email, then create. The first match wins,
    so a repeated sign-in with the same subject never touches the directory
    beyond the read.
    """

    def __init__(self, *, user_directory: UserDirectoryPort):
        self._user_directory = user_directory

    def execute(
        self,
        *,
        subject: str,
        email: str,
        display_name: str,
        avatar_url: str | None,
    ) -> ExternalUserResult:
        email = normalize_email(email)
        try:
            user = self._user_directory.get_user_by_external_subject(external_subject=subject)
            if user is not None:
                return ExternalUserResult(success=True, user=user)

            user = self._user_directory.get_user_by_email(email=email)
            if user is not None:
                linked = self._user_directory.link_external_subject(
                    user_id=user.id,
                    external_subject=subject,
                    avatar_url=avatar_url if not user.avatar_url else None,
                )
                logger.info("Linked external identity to existing user %s", linked.id)
                return ExternalUserResult(success=True, user=linked)

            name = display_name.strip() if display_name and display_name.strip() else email.split("@")[0]
            created = self._user_directory.create_external_user(
                email=email,
                display_name=name,
                avatar_url=avatar_url,
                external_subject=subject,
                role=ROLE_MEMBER,
                email_verified=True,
            )
            logger.info("Created user %s from external identity", created.id)
            return ExternalUserResult(success=True, user=created)
        except DomainError as exc:
            logger.error("External identity upsert failed for %s: %s", email, exc)
            return ExternalUserResult(success=False, error=str(exc) or exc.__class__.__name__)
