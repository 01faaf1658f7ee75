"""Premium entitlements: plan pricing, activation and lazily evaluated status.

Expiry is never swept. ``premium_active`` is computed at read time from
``premium_expires_at``, so an entitlement lapses the moment its window ends.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import TYPE_CHECKING

import structlog
from sqlalchemy import select, update

from coinledger.accounts.service import find_by_device
from coinledger.db.models import Account, PremiumPlan
from coinledger.errors import ValidationError

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from coinledger.cache import LedgerCache

logger = structlog.get_logger()

SECONDS_PER_DAY = 86_400


@dataclass(frozen=True)
class PlanInfo:
    price: Decimal
    duration_days: int
    plan_name: str


@dataclass(frozen=True)
class PremiumStatus:
    premium_active: bool
    expires_at: datetime | None
    days_remaining: int


FALLBACK_PLAN = PlanInfo(price=Decimal("49"), duration_days=30, plan_name="Premium")


def _plan_info(plan: PremiumPlan) -> PlanInfo:
    return PlanInfo(price=Decimal(plan.price), duration_days=plan.duration_days, plan_name=plan.plan_name)


async def get_active_plan(db: AsyncSession) -> PlanInfo:
    """Return the active plan, or the built-in fallback when none is configured."""
    result = await db.execute(
        select(PremiumPlan)
        .where(PremiumPlan.is_active.is_(True))
        .order_by(PremiumPlan.id.desc())
        .limit(1)
    )
    plan = result.scalar_one_or_none()
    if plan is None:
        return FALLBACK_PLAN
    return _plan_info(plan)


def compute_status(account: Account, now: datetime | None = None) -> PremiumStatus:
    """Derive premium status for an account at ``now``."""
    if now is None:
        now = datetime.now(timezone.utc)
    expires_at = account.premium_expires_at if account.is_premium else None
    if expires_at is None or expires_at <= now:
        return PremiumStatus(premium_active=False, expires_at=expires_at, days_remaining=0)
    remaining = (expires_at - now).total_seconds()
    return PremiumStatus(
        premium_active=True,
        expires_at=expires_at,
        days_remaining=math.ceil(remaining / SECONDS_PER_DAY),
    )


async def activate(
    db: AsyncSession,
    cache: LedgerCache,
    device_id: str,
    now: datetime | None = None,
) -> Account:
    """Start (or restart) the premium window for a device from ``now``.

    Re-activation resets the window; durations do not stack.

    Raises:
        AccountNotFound: If the device has no account.
    """
    if now is None:
        now = datetime.now(timezone.utc)

    account = await find_by_device(db, device_id)
    plan = await get_active_plan(db)

    account.is_premium = True
    account.premium_purchased_at = now
    account.premium_expires_at = now + timedelta(days=plan.duration_days)
    account.updated_at = now
    await db.commit()
    await cache.invalidate_account(account.id, account.device_id)

    logger.info(
        "premium_activated",
        user_id=account.id,
        device_id=device_id,
        plan=plan.plan_name,
        expires_at=account.premium_expires_at.isoformat(),
    )
    return account


async def status(
    db: AsyncSession,
    device_id: str,
    now: datetime | None = None,
) -> PremiumStatus:
    """Premium status for a device, evaluated at read time.

    Raises:
        AccountNotFound: If the device has no account.
    """
    account = await find_by_device(db, device_id)
    return compute_status(account, now)


async def update_pricing(
    db: AsyncSession,
    price: Decimal,
    duration_days: int,
    plan_name: str,
) -> PlanInfo:
    """Upsert the single active plan; any other plan is deactivated.

    Raises:
        ValidationError: If price or duration is not positive, or the name is blank.
    """
    if price <= 0:
        raise ValidationError("price must be positive", {"price": str(price)})
    if duration_days <= 0:
        raise ValidationError("duration_days must be positive", {"duration_days": duration_days})
    plan_name = plan_name.strip()
    if not plan_name:
        raise ValidationError("plan_name is required", {"field": "plan_name"})

    now = datetime.now(timezone.utc)
    result = await db.execute(
        select(PremiumPlan).where(PremiumPlan.is_active.is_(True)).order_by(PremiumPlan.id.desc()).limit(1)
    )
    plan = result.scalar_one_or_none()
    if plan is None:
        plan = PremiumPlan(is_active=True)
        db.add(plan)
    plan.price = price
    plan.duration_days = duration_days
    plan.plan_name = plan_name
    plan.updated_at = now
    await db.flush()

    await db.execute(
        update(PremiumPlan)
        .where(PremiumPlan.id != plan.id, PremiumPlan.is_active.is_(True))
        .values(is_active=False, updated_at=now)
        .execution_options(synchronize_session=False)
    )
    await db.commit()

    logger.info("pricing_updated", price=str(price), duration_days=duration_days, plan_name=plan_name)
    return _plan_info(plan)
