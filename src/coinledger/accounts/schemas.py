"""Request/response schemas for account endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field, field_validator


class AccountResponse(BaseModel):
    """Account projection returned by the API and stored in the cache."""

    id: int
    device_id: str
    name: str | None = None
    phone: str | None = None
    coins: int
    referral_code: str
    referral_url: str
    referred_by: str | None = None
    has_reviewed: bool
    share_count: int
    app_opens: int
    total_session_duration: int
    avg_session_duration: float
    last_active: datetime | None = None
    is_premium: bool
    premium_purchased_at: datetime | None = None
    premium_expires_at: datetime | None = None


class ProfileRequest(BaseModel):
    """Create or update the profile attached to a device."""

    device_id: str = Field(..., min_length=1, max_length=255)
    name: str = Field(..., max_length=128)
    phone: str


class RegisterDeviceRequest(BaseModel):
    """Register a device, optionally with a referral code from another user."""

    device_id: str = Field(..., min_length=1, max_length=255)
    referral_code: str | None = None

    @field_validator("referral_code")
    @classmethod
    def blank_code_is_none(cls, v: str | None) -> str | None:
        """Treat an empty referral code as absent."""
        if v is not None and not v.strip():
            return None
        return v
