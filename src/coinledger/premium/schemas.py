"""Request/response schemas for premium endpoints."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field


class ActivatePremiumRequest(BaseModel):
    device_id: str = Field(..., min_length=1, max_length=255)


class PremiumStatusResponse(BaseModel):
    device_id: str
    premium_active: bool
    expires_at: datetime | None = None
    days_remaining: int


class PricingResponse(BaseModel):
    price: float
    duration_days: int
    plan_name: str


class PricingUpdateRequest(BaseModel):
    price: Decimal = Field(..., gt=0, max_digits=10, decimal_places=2)
    duration_days: int = Field(..., gt=0, le=3650)
    plan_name: str = Field("Premium", min_length=1, max_length=64)
