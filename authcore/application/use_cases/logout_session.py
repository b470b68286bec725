from __future__ import annotations

from authcore.application.dto.auth import LogoutInput
from authcore.application.ports.refresh_token_port import RefreshTokenPort
from authcore.application.ports.token_port import TokenPort


class LogoutSessionUseCase:
    def __init__(self, *, token_port: TokenPort, refresh_token_port: RefreshTokenPort):
        self._token_port = token_port
        self._refresh_token_port = refresh_token_port

    def execute(self, command: LogoutInput) -> None:
        token = (command.refresh_token or "").strip()
        if not token:
            return

        refresh_hash = self._token_port.hash_token(token=token)
        self._refresh_token_port.revoke(token_hash=refresh_hash)
