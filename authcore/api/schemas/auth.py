from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class RegisterRequest(BaseModel):
    email: str = Field(..., max_length=256)
    password: str = Field(..., max_length=256)
    display_name: str = Field(..., max_length=200)


class LoginRequest(BaseModel):
    email: str = Field(..., min_length=1, max_length=256)
    password: str = Field(..., min_length=1, max_length=256)


class GoogleLoginRequest(BaseModel):
    id_token: str = Field(..., min_length=1)


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "Bearer"
    access_expires_at: datetime


class RevokeAllResponse(BaseModel):
    revoked: int


class ProblemResponse(BaseModel):
    title: str
    status: int
    detail: str
    errors: dict[str, list[str]] | None = None
