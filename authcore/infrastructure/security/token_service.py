from __future__ import annotations

import hashlib
import logging
import secrets
from datetime import datetime, timedelta, timezone
from uuid import uuid4

import jwt
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from authcore.application.dto.auth import AccessToken, AccessTokenClaims
from authcore.application.ports.token_port import TokenPort
from authcore.domain.exceptions import InvalidAccessTokenError


logger = logging.getLogger(__name__)

ALGORITHM = "RS256"
REFRESH_TOKEN_BYTES = 64
REQUIRED_CLAIMS = ["sub", "email", "role", "jti", "iat", "exp", "iss", "aud"]


class JwtTokenService(TokenPort):
    def __init__(
        self,
        *,
        private_key: rsa.RSAPrivateKey,
        issuer: str,
        audience: str,
        access_ttl_minutes: int = 15,
        refresh_ttl_days: int = 7,
        key_id: str | None = None,
    ):
        if not issuer:
            raise ValueError("JWT issuer is required.")
        if not audience:
            raise ValueError("JWT audience is required.")
        self._private_key = private_key
        self._public_key = private_key.public_key()
        self._issuer = issuer
        self._audience = audience
        self._access_ttl_minutes = access_ttl_minutes
        self._refresh_ttl_days = refresh_ttl_days
        self._key_id = key_id

    def generate_access_token(self, *, user_id: str, email: str, role: str) -> AccessToken:
        now = datetime.now(timezone.utc)
        iat = int(now.timestamp())
        exp = iat + self._access_ttl_minutes * 60
        payload = {
            "sub": user_id,
            "email": email,
            "role": role,
            "jti": str(uuid4()),
            "iat": iat,
            "nbf": iat,
            "exp": exp,
            "iss": self._issuer,
            "aud": self._audience,
        }
        headers = {"kid": self._key_id} if self._key_id else None
        token = jwt.encode(payload, self._private_key, algorithm=ALGORITHM, headers=headers)
        return AccessToken(token=token, expires_at=datetime.fromtimestamp(exp, tz=timezone.utc))

    def decode_access_token(self, *, token: str) -> AccessTokenClaims:
        try:
            payload = jwt.decode(
                token,
                self._public_key,
                algorithms=[ALGORITHM],
                audience=self._audience,
                issuer=self._issuer,
                options={"require": REQUIRED_CLAIMS},
            )
        except jwt.PyJWTError as exc:
            raise InvalidAccessTokenError("Invalid access token.") from exc

        user_id = payload.get("sub")
        if not user_id or not isinstance(user_id, str):
            raise InvalidAccessTokenError("Invalid token subject.")

        return AccessTokenClaims(
            user_id=user_id,
            email=str(payload["email"]),
            role=str(payload["role"]),
            jti=str(payload["jti"]),
            issued_at=datetime.fromtimestamp(int(payload["iat"]), tz=timezone.utc),
            expires_at=datetime.fromtimestamp(int(payload["exp"]), tz=timezone.utc),
        )

    def generate_refresh_token(self) -> str:
        return secrets.token_urlsafe(REFRESH_TOKEN_BYTES)

    def hash_token(self, *, token: str) -> str:
        return hashlib.sha256(token.encode("utf-8", errors="surrogatepass")).hexdigest()

    def refresh_token_expires_at(self, *, now: datetime) -> datetime:
        return now + timedelta(days=self._refresh_ttl_days)

    def public_key_pem(self) -> str:
        return self._public_key.public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        ).decode("ascii")


def load_signing_key(*, private_key_pem: str | None, allow_ephemeral: bool) -> rsa.RSAPrivateKey:
    if private_key_pem:
        key = serialization.load_pem_private_key(private_key_pem.encode("utf-8"), password=None)
        if not isinstance(key, rsa.RSAPrivateKey):
            raise ValueError("JWT_PRIVATE_KEY_PEM must be an RSA private key.")
        return key
    if not allow_ephemeral:
        raise ValueError("JWT_PRIVATE_KEY_PEM is required outside development.")
    # Tokens signed with this key do not survive a restart.
    logger.warning("No JWT signing key configured; generating an ephemeral RSA key.")
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)
