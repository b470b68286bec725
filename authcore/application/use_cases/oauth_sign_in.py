from __future__ import annotations

import logging

from authcore.application.dto.auth import OAuthSignInInput, TokenPair
from authcore.application.ports.refresh_token_port import RefreshTokenPort
from authcore.application.ports.token_port import TokenPort
from authcore.application.ports.user_directory_port import UserDirectoryPort
from authcore.domain.exceptions import ExternalSignInError

from .auth_common import issue_token_pair, utcnow
from .upsert_external_user import UpsertExternalUserUseCase


logger = logging.getLogger(__name__)


class OAuthSignInUseCase:
    def __init__(
        self,
        *,
        user_directory: UserDirectoryPort,
        external_user_linker: UpsertExternalUserUseCase,
        token_port: TokenPort,
        refresh_token_port: RefreshTokenPort,
    ):
        self._user_directory = user_directory
        self._external_user_linker = external_user_linker
        self._token_port = token_port
        self._refresh_token_port = refresh_token_port

    def execute(self, command: OAuthSignInInput) -> TokenPair:
        result = self._external_user_linker.execute(
            subject=command.subject,
            email=command.email,
            display_name=command.display_name,
            avatar_url=command.avatar_url,
        )
        if not result.success or result.user is None:
            logger.error("External sign-in failed for %s: %s", command.email, result.error)
            raise ExternalSignInError("External sign-in failed. Please try again.")

        user = result.user
        self._user_directory.update_last_login(user_id=user.id, at=utcnow())

        return issue_token_pair(
            user_id=user.id,
            email=user.email,
            role=user.role,
            token_port=self._token_port,
            refresh_token_port=self._refresh_token_port,
        )
