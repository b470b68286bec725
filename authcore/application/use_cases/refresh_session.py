from __future__ import annotations

from authcore.application.dto.auth import RefreshSessionInput, TokenPair
from authcore.application.ports.refresh_token_port import RefreshTokenPort
from authcore.application.ports.token_port import TokenPort
from authcore.application.ports.user_directory_port import UserDirectoryPort
from authcore.domain.exceptions import RefreshSessionInvalidError

from .auth_common import issue_token_pair


INVALID_REFRESH_MESSAGE = "Refresh token is invalid or expired."


class RefreshSessionUseCase:
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

    def execute(self, command: RefreshSessionInput) -> TokenPair:
        token = (command.refresh_token or "").strip()
        if not token:
            raise RefreshSessionInvalidError(INVALID_REFRESH_MESSAGE)

        refresh_hash = self._token_port.hash_token(token=token)

        def _tx(refresh_token_port: RefreshTokenPort) -> TokenPair | None:
            user_id = refresh_token_port.consume(token_hash=refresh_hash)
            if user_id is None:
                return None

            # The consumed row stays revoked even when its owner has vanished.
            user = self._user_directory.get_user_by_id(user_id=user_id)
            if user is None:
                return None

            return issue_token_pair(
                user_id=user.id,
                email=user.email,
                role=user.role,
                token_port=self._token_port,
                refresh_token_port=refresh_token_port,
            )

        pair = self._refresh_token_port.execute_in_transaction(_tx)
        if pair is None:
            raise RefreshSessionInvalidError(INVALID_REFRESH_MESSAGE)
        return pair
