"""Account store: device lookup, profile writes and device registration."""

from __future__ import annotations

import re
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, TypeVar

import structlog
from pydantic import ValidationError as SchemaError
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from coinledger.accounts.referral_codes import generate_unique_referral_code, normalize_referral_code
from coinledger.accounts.schemas import AccountResponse
from coinledger.config import get_settings
from coinledger.db.models import Account
from coinledger.errors import AccountNotFound, DeviceExists, StoreError, ValidationError

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from coinledger.cache import LedgerCache

logger = structlog.get_logger()

T = TypeVar("T")

PROFILE_SIGNUP_COINS = 5
REFERRAL_BONUS = 10

PHONE_PATTERN = re.compile(r"^\d{10}$")


def account_projection(account: Account) -> AccountResponse:
    """Build the API/cache projection of an account."""
    settings = get_settings()
    return AccountResponse(
        id=account.id,
        device_id=account.device_id,
        name=account.name,
        phone=account.phone,
        coins=account.coins,
        referral_code=account.referral_code,
        referral_url=settings.referral_url_template.format(code=account.referral_code),
        referred_by=account.referred_by,
        has_reviewed=account.has_reviewed,
        share_count=account.share_count,
        app_opens=account.app_opens,
        total_session_duration=account.total_session_duration,
        avg_session_duration=account.avg_session_duration,
        last_active=account.last_active,
        is_premium=account.is_premium,
        premium_purchased_at=account.premium_purchased_at,
        premium_expires_at=account.premium_expires_at,
    )


# ---------------------------------------------------------------------------
# Store lookups
# ---------------------------------------------------------------------------


async def get_by_device(db: AsyncSession, device_id: str) -> Account | None:
    result = await db.execute(
        select(Account)
        .where(Account.device_id == device_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def find_by_device(db: AsyncSession, device_id: str) -> Account:
    """Get an account by device identifier.

    Raises:
        AccountNotFound: If no account is registered for the device.
    """
    account = await get_by_device(db, device_id)
    if account is None:
        raise AccountNotFound(device_id=device_id)
    return account


async def find_by_id(db: AsyncSession, account_id: int) -> Account:
    """Get an account by numeric id.

    Raises:
        AccountNotFound: If the id is unknown.
    """
    account = await db.get(Account, account_id)
    if account is None:
        raise AccountNotFound(user_id=account_id)
    return account


async def find_by_referral_code(db: AsyncSession, code: str) -> Account:
    """Get the account that owns a referral code.

    Raises:
        AccountNotFound: If no account owns the code.
    """
    result = await db.execute(
        select(Account).where(Account.referral_code == normalize_referral_code(code))
    )
    account = result.scalar_one_or_none()
    if account is None:
        raise AccountNotFound(referral_code=code)
    return account


async def reload_account(db: AsyncSession, account_id: int) -> Account:
    """Re-read an account after SQL-level updates, replacing stale identity-map state."""
    account = await db.get(Account, account_id, populate_existing=True)
    if account is None:
        raise AccountNotFound(user_id=account_id)
    return account


# ---------------------------------------------------------------------------
# Cached reads
# ---------------------------------------------------------------------------


def _from_cache(cached: Any) -> AccountResponse | None:  # noqa: ANN401
    if cached is None:
        return None
    try:
        return AccountResponse.model_validate(cached)
    except SchemaError:
        logger.warning("cached_account_invalid")
        return None


async def lookup_by_device(db: AsyncSession, cache: LedgerCache, device_id: str) -> AccountResponse:
    """Cache-first account lookup by device. Populates the cache on a miss."""
    view = _from_cache(await cache.get_account_by_device(device_id))
    if view is not None:
        return view

    view = account_projection(await find_by_device(db, device_id))
    await cache.store_account(view.model_dump(mode="json"))
    return view


async def lookup_by_id(db: AsyncSession, cache: LedgerCache, account_id: int) -> AccountResponse:
    """Cache-first account lookup by id. Populates the cache on a miss."""
    view = _from_cache(await cache.get_account_by_id(account_id))
    if view is not None:
        return view

    view = account_projection(await find_by_id(db, account_id))
    await cache.store_account(view.model_dump(mode="json"))
    return view


# ---------------------------------------------------------------------------
# Account creation
# ---------------------------------------------------------------------------


async def insert_account(
    db: AsyncSession,
    device_id: str,
    *,
    coins: int,
    now: datetime,
    **fields: Any,  # noqa: ANN401
) -> Account:
    """Add a new account with a fresh referral code and flush it.

    A lost race on ``device_id`` or ``referral_code`` surfaces here as
    ``IntegrityError``; callers run this inside ``commit_with_retry``.
    """
    code = await generate_unique_referral_code(db)
    account = Account(
        device_id=device_id,
        coins=coins,
        referral_code=code,
        last_active=now,
        created_at=now,
        updated_at=now,
        **fields,
    )
    db.add(account)
    await db.flush()
    return account


async def commit_with_retry(
    db: AsyncSession,
    operation: Callable[[], Awaitable[T]],
    **context: Any,  # noqa: ANN401
) -> T:
    """Run ``operation`` and commit, retrying the whole transaction on a unique-constraint race.

    ``operation`` must re-read whatever it depends on, since a retry starts
    from a rolled-back session.

    Raises:
        StoreError: If every attempt hits a constraint violation.
    """
    attempts = get_settings().account_create_attempts
    for attempt in range(1, attempts + 1):
        try:
            result = await operation()
            await db.commit()
        except IntegrityError as exc:
            await db.rollback()
            logger.warning("insert_conflict", attempt=attempt, error=str(exc.orig), **context)
            continue
        return result
    msg = f"Could not complete write after {attempts} attempts"
    raise StoreError(msg, context)


def validate_profile(name: str | None, phone: str | None) -> tuple[str, str]:
    """Check profile fields and return them stripped.

    Raises:
        ValidationError: If name is blank or phone is not 10 digits.
    """
    name = (name or "").strip()
    if not name:
        raise ValidationError("Name is required", {"field": "name"})
    phone = (phone or "").strip()
    if not PHONE_PATTERN.fullmatch(phone):
        raise ValidationError("Phone must be a 10-digit number", {"field": "phone"})
    return name, phone


async def create_or_update_profile(
    db: AsyncSession,
    cache: LedgerCache,
    device_id: str,
    name: str | None,
    phone: str | None,
    now: datetime | None = None,
) -> tuple[Account, bool]:
    """Create the device's account with a signup bonus, or update its profile.

    Returns:
        Tuple of (account, created).

    Raises:
        ValidationError: If name is blank or phone is not 10 digits.
        DeviceExists: If a concurrent registration of the device kept winning every attempt.
    """
    name, phone = validate_profile(name, phone)
    if now is None:
        now = datetime.now(timezone.utc)

    async def _write() -> tuple[Account, bool]:
        existing = await get_by_device(db, device_id)
        if existing is not None:
            existing.name = name
            existing.phone = phone
            existing.last_active = now
            existing.updated_at = now
            await db.flush()
            return existing, False
        account = await insert_account(
            db, device_id, coins=PROFILE_SIGNUP_COINS, now=now, name=name, phone=phone
        )
        return account, True

    try:
        account, created = await commit_with_retry(db, _write, device_id=device_id)
    except StoreError as exc:
        if await get_by_device(db, device_id) is not None:
            raise DeviceExists(device_id) from exc
        raise
    await cache.invalidate_account(account.id, account.device_id)

    logger.info("profile_saved", user_id=account.id, device_id=device_id, created=created)
    return account, created


async def register_device(
    db: AsyncSession,
    cache: LedgerCache,
    device_id: str,
    referral_code: str | None = None,
    now: datetime | None = None,
) -> tuple[Account, bool]:
    """Register a device, crediting the referrer when the code resolves.

    Idempotent: an already registered device is returned unchanged and no
    bonus is paid again. Unknown referral codes are ignored.

    Returns:
        Tuple of (account, created).
    """
    from coinledger.rewards.service import award_referral

    settings = get_settings()
    if now is None:
        now = datetime.now(timezone.utc)

    async def _write() -> tuple[Account, Account | None, bool]:
        existing = await get_by_device(db, device_id)
        if existing is not None:
            return existing, None, False

        referrer: Account | None = None
        if referral_code:
            try:
                referrer = await find_by_referral_code(db, referral_code)
            except AccountNotFound:
                logger.info("referral_code_unknown", device_id=device_id, referral_code=referral_code)

        account = await insert_account(
            db,
            device_id,
            coins=settings.referee_bonus_coins if referrer else 0,
            now=now,
            referred_by=referrer.referral_code if referrer else None,
        )
        if referrer is not None:
            await award_referral(db, referrer.id)
        return account, referrer, True

    account, referrer, created = await commit_with_retry(db, _write, device_id=device_id)

    if referrer is not None:
        await cache.invalidate_account(referrer.id, referrer.device_id)
        logger.info("referral_awarded", referrer_id=referrer.id, user_id=account.id, bonus=REFERRAL_BONUS)
    if created:
        logger.info("device_registered", user_id=account.id, device_id=device_id)
    return account, created
