"""Reward ledger: review, share and referral coin credits.

Every credit is an SQL-level increment (``coins = coins + n``) inside one
transaction, so concurrent grants on the same account never lose updates.
Exactly-once delivery comes from the store, not from request memory:
the ``has_reviewed`` guard in the UPDATE for reviews, and the unique
(account_id, share_id) row for shares.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import TYPE_CHECKING

import structlog
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError

from coinledger.accounts.service import REFERRAL_BONUS, find_by_id, reload_account
from coinledger.db.models import Account, ShareEvent
from coinledger.errors import AccountNotFound, AlreadyReviewed, DuplicateShare, ValidationError

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from coinledger.cache import LedgerCache

logger = structlog.get_logger()

REVIEW_BONUS = 50
SHARE_BONUS = 10

UUID_PATTERN = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE)


def validate_share_id(share_id: str) -> str:
    """Return the share id in lowercase canonical form.

    Raises:
        ValidationError: If it is not an 8-4-4-4-12 hex UUID.
    """
    if not UUID_PATTERN.fullmatch(share_id or ""):
        raise ValidationError("Invalid share_id format", {"share_id": share_id})
    return share_id.lower()


async def award_review(db: AsyncSession, cache: LedgerCache, account_id: int) -> Account:
    """Credit the one-time review bonus.

    Raises:
        AccountNotFound: If the account does not exist.
        AlreadyReviewed: If the bonus was already paid.
    """
    now = datetime.now(timezone.utc)
    result = await db.execute(
        update(Account)
        .where(Account.id == account_id, Account.has_reviewed.is_(False))
        .values(coins=Account.coins + REVIEW_BONUS, has_reviewed=True, updated_at=now)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        await db.rollback()
        await find_by_id(db, account_id)
        raise AlreadyReviewed(account_id)

    await db.commit()
    account = await reload_account(db, account_id)
    await cache.invalidate_account(account.id, account.device_id)

    logger.info("review_awarded", user_id=account_id, bonus=REVIEW_BONUS, coins=account.coins)
    return account


async def award_share(db: AsyncSession, cache: LedgerCache, account_id: int, share_id: str) -> Account:
    """Record a share event and credit the share bonus in the same transaction.

    A retried call with the same ``share_id`` is rejected before any second
    credit: either by the pre-check or, under a race, by the unique constraint,
    which rolls back the whole transaction.

    Raises:
        ValidationError: If ``share_id`` is not a UUID.
        AccountNotFound: If the account does not exist.
        DuplicateShare: If this share was already recorded.
    """
    share_id = validate_share_id(share_id)
    now = datetime.now(timezone.utc)

    account = await find_by_id(db, account_id)
    device_id = account.device_id

    existing = await db.execute(
        select(ShareEvent.id).where(ShareEvent.account_id == account_id, ShareEvent.share_id == share_id)
    )
    if existing.scalar_one_or_none() is not None:
        logger.info("share_duplicate", user_id=account_id, share_id=share_id)
        raise DuplicateShare(account_id, share_id)

    try:
        db.add(ShareEvent(account_id=account_id, share_id=share_id, created_at=now))
        await db.flush()
        await db.execute(
            update(Account)
            .where(Account.id == account_id)
            .values(
                coins=Account.coins + SHARE_BONUS,
                share_count=Account.share_count + 1,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        logger.info("share_duplicate", user_id=account_id, share_id=share_id, race=True)
        raise DuplicateShare(account_id, share_id) from exc

    account = await reload_account(db, account_id)
    await cache.invalidate_account(account_id, device_id)

    logger.info("share_recorded", user_id=account_id, share_id=share_id, bonus=SHARE_BONUS, coins=account.coins)
    return account


async def award_referral(db: AsyncSession, referrer_id: int) -> None:
    """Credit the referral bonus to the referrer.

    Runs inside the caller's registration transaction and never commits; the
    caller invalidates the referrer's cache entry after its commit.

    Raises:
        AccountNotFound: If the referrer vanished.
    """
    result = await db.execute(
        update(Account)
        .where(Account.id == referrer_id)
        .values(coins=Account.coins + REFERRAL_BONUS, updated_at=datetime.now(timezone.utc))
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise AccountNotFound(user_id=referrer_id)
