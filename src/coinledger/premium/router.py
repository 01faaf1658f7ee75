"""Premium entitlement and pricing endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from coinledger.accounts.schemas import AccountResponse
from coinledger.accounts.service import account_projection
from coinledger.cache import LedgerCache
from coinledger.dependencies import get_cache, get_db
from coinledger.premium import service
from coinledger.premium.schemas import (
    ActivatePremiumRequest,
    PremiumStatusResponse,
    PricingResponse,
    PricingUpdateRequest,
)

router = APIRouter(prefix="/api", tags=["Premium"])


@router.post("/admin/activate-premium", response_model=AccountResponse)
async def activate_premium(
    body: ActivatePremiumRequest,
    db: AsyncSession = Depends(get_db),  # noqa: B008
    cache: LedgerCache = Depends(get_cache),  # noqa: B008
) -> AccountResponse:
    """Start or restart the device's premium window using the active plan."""
    account = await service.activate(db, cache, body.device_id)
    return account_projection(account)


@router.get("/premium/status/{device_id}", response_model=PremiumStatusResponse)
async def premium_status(
    device_id: str,
    db: AsyncSession = Depends(get_db),  # noqa: B008
) -> PremiumStatusResponse:
    """Premium status, evaluated against the current time."""
    status = await service.status(db, device_id)
    return PremiumStatusResponse(
        device_id=device_id,
        premium_active=status.premium_active,
        expires_at=status.expires_at,
        days_remaining=status.days_remaining,
    )


@router.get("/pricing", response_model=PricingResponse)
async def get_pricing(
    db: AsyncSession = Depends(get_db),  # noqa: B008
) -> PricingResponse:
    """Current premium price; falls back to the built-in plan."""
    plan = await service.get_active_plan(db)
    return PricingResponse(price=float(plan.price), duration_days=plan.duration_days, plan_name=plan.plan_name)


@router.post("/admin/update-price", response_model=PricingResponse)
async def update_price(
    body: PricingUpdateRequest,
    db: AsyncSession = Depends(get_db),  # noqa: B008
) -> PricingResponse:
    """Replace the active premium plan."""
    plan = await service.update_pricing(db, body.price, body.duration_days, body.plan_name)
    return PricingResponse(price=float(plan.price), duration_days=plan.duration_days, plan_name=plan.plan_name)
