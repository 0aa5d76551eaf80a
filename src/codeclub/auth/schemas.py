"""Pydantic schemas for the sign-in exchange."""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator

from codeclub.identity.schemas import UserResponse


class ProviderSignInRequest(BaseModel):
    """An external identity the gateway has already verified."""

    provider: str = Field(..., min_length=1, max_length=32)
    provider_id: str = Field(..., min_length=1, max_length=255)
    email: str = Field(..., min_length=3, max_length=320, pattern=r"^[^@\s]+@[^@\s]+$")
    name: str = Field(..., min_length=1, max_length=128)
    display_name: str | None = Field(None, min_length=1, max_length=64)
    icon_url: str | None = None

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        """Normalize email to lowercase."""
        return v.lower().strip()


class TokenResponse(BaseModel):
    """Token response returned after a successful sign-in."""

    access_token: str
    token_type: str = "bearer"
    expires_in: int
    created: bool
    user: UserResponse
