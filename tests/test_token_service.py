from __future__ import annotations

from datetime import datetime, timedelta, timezone

import jwt
import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from authcore.domain.exceptions import InvalidAccessTokenError
from authcore.infrastructure.security.token_service import JwtTokenService, load_signing_key


SIGNING_KEY = rsa.generate_private_key(public_exponent=65537, key_size=2048)
OTHER_KEY = rsa.generate_private_key(public_exponent=65537, key_size=2048)


def _service(key=SIGNING_KEY, **overrides) -> JwtTokenService:
    params = {
        "private_key": key,
        "issuer": "authcore-tests",
        "audience": "authcore-clients",
        "key_id": "k1",
    }
    params.update(overrides)
    return JwtTokenService(**params)


def test_access_token_carries_identity_claims_and_fifteen_minute_expiry():
    service = _service()
    before = datetime.now(timezone.utc).replace(microsecond=0)

    access = service.generate_access_token(user_id="user-1", email="alice@example.com", role="Member")

    header = jwt.get_unverified_header(access.token)
    assert header["alg"] == "RS256"
    assert header["kid"] == "k1"

    payload = jwt.decode(
        access.token,
        SIGNING_KEY.public_key(),
        algorithms=["RS256"],
        audience="authcore-clients",
        issuer="authcore-tests",
    )
    assert payload["sub"] == "user-1"
    assert payload["email"] == "alice@example.com"
    assert payload["role"] == "Member"
    assert payload["jti"]
    assert payload["exp"] - payload["iat"] == 15 * 60
    assert access.expires_at >= before + timedelta(minutes=15)


def test_each_access_token_has_a_unique_jti():
    service = _service()
    first = service.decode_access_token(
        token=service.generate_access_token(user_id="u", email="e@x.io", role="Member").token
    )
    second = service.decode_access_token(
        token=service.generate_access_token(user_id="u", email="e@x.io", role="Member").token
    )
    assert first.jti != second.jti


def test_decode_rejects_token_signed_with_other_key():
    forged = _service(OTHER_KEY).generate_access_token(user_id="u", email="e@x.io", role="Admin")

    with pytest.raises(InvalidAccessTokenError):
        _service().decode_access_token(token=forged.token)


def test_decode_rejects_wrong_audience_and_expired_tokens():
    foreign = _service(audience="someone-else").generate_access_token(user_id="u", email="e@x.io", role="Member")
    expired = _service(access_ttl_minutes=-1).generate_access_token(user_id="u", email="e@x.io", role="Member")

    with pytest.raises(InvalidAccessTokenError):
        _service().decode_access_token(token=foreign.token)
    with pytest.raises(InvalidAccessTokenError):
        _service().decode_access_token(token=expired.token)


def test_refresh_tokens_are_long_url_safe_and_unique():
    service = _service()
    tokens = {service.generate_refresh_token() for _ in range(200)}

    assert len(tokens) == 200
    for token in tokens:
        assert len(token) == 86
        assert all(ch.isalnum() or ch in "-_" for ch in token)


def test_hash_token_is_deterministic_sha256_hex():
    service = _service()

    digest = service.hash_token(token="abc")

    assert digest == "ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad"
    assert service.hash_token(token="abc") == digest
    assert service.hash_token(token="abd") != digest


def test_hash_token_accepts_any_str_including_lone_surrogates():
    service = _service()

    first = service.hash_token(token="\ud800")

    assert len(first) == 64
    assert service.hash_token(token="\ud800") == first
    assert service.hash_token(token="\udfff") != first


def test_refresh_expiry_is_seven_days_out():
    now = datetime(2026, 1, 1, tzinfo=timezone.utc)
    assert _service().refresh_token_expires_at(now=now) == datetime(2026, 1, 8, tzinfo=timezone.utc)


def test_public_key_pem_verifies_issued_tokens():
    service = _service()
    public_key = serialization.load_pem_public_key(service.public_key_pem().encode("ascii"))
    access = service.generate_access_token(user_id="u", email="e@x.io", role="Owner")

    payload = jwt.decode(access.token, public_key, algorithms=["RS256"], audience="authcore-clients")

    assert payload["role"] == "Owner"


def test_load_signing_key_from_pem_and_ephemeral_rules():
    pem = SIGNING_KEY.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("ascii")

    loaded = load_signing_key(private_key_pem=pem, allow_ephemeral=False)
    assert loaded.private_numbers() == SIGNING_KEY.private_numbers()

    assert isinstance(load_signing_key(private_key_pem=None, allow_ephemeral=True), rsa.RSAPrivateKey)
    with pytest.raises(ValueError):
        load_signing_key(private_key_pem=None, allow_ephemeral=False)


def test_service_requires_issuer_and_audience():
    with pytest.raises(ValueError):
        _service(issuer="")
    with pytest.raises(ValueError):
        _service(audience="")
