from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from authcore.api.deps import get_auth_orchestrator, get_current_claims, get_google_oauth_client
from authcore.application.dto.auth import (
    AccessTokenClaims,
    AuthErrorKind,
    AuthFailure,
    GoogleIdentityInfo,
    TokenPair,
)
from authcore.domain.exceptions import GoogleTokenValidationError
from authcore import main as main_module
from authcore.main import app


def _pair(refresh_token: str = "refresh-1") -> TokenPair:
    now = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)
    return TokenPair(
        access_token="access-1",
        refresh_token=refresh_token,
        access_expires_at=now + timedelta(minutes=15),
        refresh_expires_at=now + timedelta(days=7),
        user_id="user-1",
    )


class FakeOrchestrator:
    def __init__(self):
        self.calls: list[tuple[str, dict]] = []
        self.results: dict[str, object] = {}

    def _record(self, name: str, **kwargs):
        self.calls.append((name, kwargs))
        return self.results.get(name, _pair())

    def register(self, **kwargs):
        return self._record("register", **kwargs)

    def login(self, **kwargs):
        return self._record("login", **kwargs)

    def refresh(self, **kwargs):
        return self._record("refresh", **kwargs)

    def logout(self, **kwargs):
        self.calls.append(("logout", kwargs))

    def oauth_sign_in(self, **kwargs):
        return self._record("oauth_sign_in", **kwargs)

    def revoke_all_sessions(self, **kwargs):
        self.calls.append(("revoke_all_sessions", kwargs))
        return 4


class FakeGoogleClient:
    def verify_id_token(self, *, id_token: str) -> GoogleIdentityInfo:
        if id_token != "good":
            raise GoogleTokenValidationError("Invalid Google id_token.")
        return GoogleIdentityInfo(
            subject="g-1",
            email="carol@example.com",
            email_verified=True,
            name="Carol",
            picture=None,
        )


@pytest.fixture
def orchestrator():
    fake = FakeOrchestrator()
    app.dependency_overrides[get_auth_orchestrator] = lambda: fake
    app.dependency_overrides[get_google_oauth_client] = lambda: FakeGoogleClient()
    yield fake
    app.dependency_overrides.clear()


@pytest.fixture
def client(orchestrator):
    return TestClient(app)


def test_register_returns_201_and_sets_refresh_cookie(client, orchestrator):
    response = client.post(
        "/api/v1/auth/register",
        json={"email": "alice@example.com", "password": "Str0ngPass", "display_name": "Alice"},
    )

    assert response.status_code == 201
    assert response.json()["access_token"] == "access-1"
    assert response.json()["token_type"] == "Bearer"
    cookie = response.headers["set-cookie"]
    assert cookie.startswith("refresh_token=refresh-1")
    assert "HttpOnly" in cookie
    assert "Max-Age=604800" in cookie
    assert "Path=/" in cookie
    assert "samesite=strict" in cookie.lower()
    assert "secure" in cookie.lower()
    assert "refresh-1" not in response.text
    assert orchestrator.calls == [
        ("register", {"email": "alice@example.com", "password": "Str0ngPass", "display_name": "Alice"})
    ]


def test_register_validation_failure_is_422_problem(client, orchestrator):
    orchestrator.results["register"] = AuthFailure(
        kind=AuthErrorKind.VALIDATION_FAILED,
        message="One or more validation errors occurred.",
        field_errors={"password": ["Password must contain a digit."]},
    )

    response = client.post(
        "/api/v1/auth/register",
        json={"email": "alice@example.com", "password": "weak", "display_name": "Alice"},
    )

    assert response.status_code == 422
    assert response.json()["errors"] == {"password": ["Password must contain a digit."]}
    assert "set-cookie" not in response.headers


def test_register_conflict_is_409(client, orchestrator):
    orchestrator.results["register"] = AuthFailure(kind=AuthErrorKind.CONFLICT, message="Email already in use.")

    response = client.post(
        "/api/v1/auth/register",
        json={"email": "alice@example.com", "password": "Str0ngPass", "display_name": "Alice"},
    )

    assert response.status_code == 409


def test_login_passes_client_host_as_origin(client, orchestrator):
    response = client.post("/api/v1/auth/login", json={"email": "alice@example.com", "password": "x"})

    assert response.status_code == 200
    name, kwargs = orchestrator.calls[0]
    assert name == "login"
    assert kwargs["origin_key"] == "testclient"


def test_login_lockout_is_429_with_retry_after(client, orchestrator):
    orchestrator.results["login"] = AuthFailure(
        kind=AuthErrorKind.TOO_MANY_ATTEMPTS,
        message="Too many failed login attempts. Retry after 900 seconds.",
        retry_after_seconds=900,
    )

    response = client.post("/api/v1/auth/login", json={"email": "alice@example.com", "password": "x"})

    assert response.status_code == 429
    assert response.headers["retry-after"] == "900"


def test_login_invalid_credentials_is_401(client, orchestrator):
    orchestrator.results["login"] = AuthFailure(
        kind=AuthErrorKind.INVALID_CREDENTIALS,
        message="Invalid email or password.",
    )

    response = client.post("/api/v1/auth/login", json={"email": "alice@example.com", "password": "x"})

    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid email or password."


def test_refresh_without_cookie_is_403(client, orchestrator):
    response = client.post("/api/v1/auth/refresh")

    assert response.status_code == 403
    assert orchestrator.calls == []


def test_refresh_reads_cookie_and_rotates_it(client, orchestrator):
    orchestrator.results["refresh"] = _pair(refresh_token="refresh-2")
    client.cookies.set("refresh_token", "refresh-1")

    response = client.post("/api/v1/auth/refresh")

    assert response.status_code == 200
    assert orchestrator.calls == [("refresh", {"refresh_token": "refresh-1"})]
    assert response.headers["set-cookie"].startswith("refresh_token=refresh-2")


def test_refresh_rejected_token_is_403(client, orchestrator):
    orchestrator.results["refresh"] = AuthFailure(
        kind=AuthErrorKind.FORBIDDEN,
        message="Refresh token is invalid or expired.",
    )
    client.cookies.set("refresh_token", "stale")

    response = client.post("/api/v1/auth/refresh")

    assert response.status_code == 403


def test_logout_is_204_and_clears_cookie(client, orchestrator):
    client.cookies.set("refresh_token", "refresh-1")

    response = client.post("/api/v1/auth/logout")

    assert response.status_code == 204
    assert orchestrator.calls == [("logout", {"refresh_token": "refresh-1"})]
    cookie = response.headers["set-cookie"]
    assert cookie.startswith('refresh_token=""') or cookie.startswith("refresh_token=;")
    assert "Max-Age=0" in cookie


def test_logout_without_cookie_still_succeeds(client, orchestrator):
    response = client.post("/api/v1/auth/logout")

    assert response.status_code == 204
    assert orchestrator.calls == [("logout", {"refresh_token": None})]


def test_google_sign_in_uses_verified_identity(client, orchestrator):
    response = client.post("/api/v1/auth/google", json={"id_token": "good"})

    assert response.status_code == 200
    assert orchestrator.calls == [
        (
            "oauth_sign_in",
            {
                "subject": "g-1",
                "email": "carol@example.com",
                "display_name": "Carol",
                "avatar_url": None,
            },
        )
    ]


def test_google_sign_in_with_bad_token_is_401(client, orchestrator):
    response = client.post("/api/v1/auth/google", json={"id_token": "bad"})

    assert response.status_code == 401
    assert orchestrator.calls == []


def test_google_sign_in_internal_error_is_500(client, orchestrator):
    orchestrator.results["oauth_sign_in"] = AuthFailure(
        kind=AuthErrorKind.INTERNAL_ERROR,
        message="External sign-in failed. Please try again.",
    )

    response = client.post("/api/v1/auth/google", json={"id_token": "good"})

    assert response.status_code == 500
    assert response.json()["detail"] == "External sign-in failed. Please try again."


def test_revoke_all_requires_access_token(client, orchestrator):
    response = client.post("/api/v1/auth/sessions/revoke-all")

    assert response.status_code == 401


def test_revoke_all_uses_claims_subject(client, orchestrator):
    now = datetime.now(timezone.utc)
    app.dependency_overrides[get_current_claims] = lambda: AccessTokenClaims(
        user_id="user-1",
        email="alice@example.com",
        role="Member",
        jti="j",
        issued_at=now,
        expires_at=now + timedelta(minutes=15),
    )

    response = client.post("/api/v1/auth/sessions/revoke-all")

    assert response.status_code == 200
    assert response.json() == {"revoked": 4}
    assert orchestrator.calls == [("revoke_all_sessions", {"user_id": "user-1"})]


def test_revoke_all_store_failure_is_500_problem(client, orchestrator):
    now = datetime.now(timezone.utc)
    app.dependency_overrides[get_current_claims] = lambda: AccessTokenClaims(
        user_id="user-1",
        email="alice@example.com",
        role="Member",
        jti="j",
        issued_at=now,
        expires_at=now + timedelta(minutes=15),
    )
    orchestrator.revoke_all_sessions = lambda **kwargs: AuthFailure(
        kind=AuthErrorKind.INTERNAL_ERROR,
        message="An unexpected error occurred.",
    )

    response = client.post("/api/v1/auth/sessions/revoke-all")

    assert response.status_code == 500
    assert response.headers["content-type"].startswith("application/problem+json")
    assert response.json()["detail"] == "An unexpected error occurred."


def test_lifespan_startup_and_run_target(orchestrator, monkeypatch):
    created = []
    settings = replace(main_module.settings, db_create_schema=True, postgres_dsn="postgresql+psycopg://u@h/db")
    monkeypatch.setattr(main_module, "settings", settings)
    monkeypatch.setattr(main_module, "get_engine", lambda dsn: f"engine:{dsn}")
    monkeypatch.setattr(main_module, "create_schema", created.append)

    with TestClient(app):
        pass

    assert created == ["engine:postgresql+psycopg://u@h/db"]

    served = {}
    monkeypatch.setattr(
        main_module.uvicorn, "run", lambda target, **kwargs: served.update(kwargs, target=target)
    )

    main_module.run()

    assert served["target"] is app
    assert served["port"] == main_module.settings.app_port
