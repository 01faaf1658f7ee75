"""Session analytics: start/end tracking, running averages and the abandoned-session sweep.

A session moves ``started -> ended`` (client call) or ``started -> auto_closed``
(sweep). Both transitions are guarded by ``end_time IS NULL`` in the UPDATE,
so a session is closed and counted exactly once even when the sweep races
the client.

``app_opens`` is counted once per session, at start. The running average is
``max(1, total_session_duration / app_opens)``.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

import structlog
from sqlalchemy import Float, and_, case, cast, select, update

from coinledger.accounts.service import commit_with_retry, find_by_device, get_by_device, insert_account
from coinledger.cache import session_key
from coinledger.db.models import Account, AppSession
from coinledger.errors import SessionNotFound, ValidationError

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from coinledger.cache import LedgerCache

logger = structlog.get_logger()

SESSION_GRACE = timedelta(minutes=2)
INACTIVITY_WINDOW = timedelta(minutes=5)

# app_sessions.session_duration is a 32-bit INTEGER column.
MAX_SESSION_DURATION = 2**31 - 1


def _average_after(duration: int):  # noqa: ANN202
    """SQL expression for the new running average once ``duration`` is added."""
    new_total = cast(Account.total_session_duration + duration, Float)
    average = new_total / Account.app_opens
    return case(
        (Account.app_opens <= 0, 1.0),
        (average < 1, 1.0),
        else_=average,
    )


async def _fold_duration(
    db: AsyncSession,
    device_id: str,
    duration: int,
    now: datetime,
    *,
    touch_last_active: bool = True,
) -> None:
    """Add a closed session's duration to the account totals and recompute the average."""
    values = {
        "total_session_duration": Account.total_session_duration + duration,
        "avg_session_duration": _average_after(duration),
        "updated_at": now,
    }
    if touch_last_active:
        values["last_active"] = now
    await db.execute(
        update(Account)
        .where(Account.device_id == device_id)
        .values(**values)
        .execution_options(synchronize_session=False)
    )


async def start_session(
    db: AsyncSession,
    cache: LedgerCache,
    device_id: str,
    session_id: str,
    now: datetime | None = None,
) -> AppSession:
    """Open a session and count an app open, creating the device's account if needed.

    Starting the same (device_id, session_id) pair again returns the existing
    session without touching any counter.
    """
    if now is None:
        now = datetime.now(timezone.utc)

    async def _write() -> tuple[AppSession, int, bool]:
        account = await get_by_device(db, device_id)
        if account is None:
            account = await insert_account(db, device_id, coins=0, now=now)

        result = await db.execute(
            select(AppSession).where(AppSession.device_id == device_id, AppSession.session_id == session_id)
        )
        existing = result.scalar_one_or_none()
        if existing is not None:
            return existing, account.id, False

        session = AppSession(device_id=device_id, session_id=session_id, start_time=now, session_duration=0)
        db.add(session)
        await db.flush()
        await db.execute(
            update(Account)
            .where(Account.id == account.id)
            .values(app_opens=Account.app_opens + 1, last_active=now, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        return session, account.id, True

    session, account_id, started = await commit_with_retry(
        db, _write, device_id=device_id, session_id=session_id
    )
    if started:
        await cache.invalidate_account(account_id, device_id)
        logger.info("session_started", device_id=device_id, session_id=session_id, user_id=account_id)
    else:
        logger.info("session_start_repeated", device_id=device_id, session_id=session_id)
    return session


async def end_session(
    db: AsyncSession,
    cache: LedgerCache,
    device_id: str,
    session_id: str,
    duration: int,
    now: datetime | None = None,
) -> tuple[AppSession, Account]:
    """Close an open session with the client-reported duration and update the account's totals.

    Raises:
        ValidationError: If ``duration`` is negative or does not fit the column.
        SessionNotFound: If no open session exists for exactly this pair.
    """
    if not 0 <= duration <= MAX_SESSION_DURATION:
        raise ValidationError(
            f"session_duration must be between 0 and {MAX_SESSION_DURATION}",
            {"session_duration": duration},
        )
    if now is None:
        now = datetime.now(timezone.utc)

    result = await db.execute(
        update(AppSession)
        .where(
            AppSession.device_id == device_id,
            AppSession.session_id == session_id,
            AppSession.end_time.is_(None),
        )
        .values(end_time=now, session_duration=duration)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        await db.rollback()
        raise SessionNotFound(device_id, session_id)

    await _fold_duration(db, device_id, duration, now)
    await db.commit()

    session_row = await db.execute(
        select(AppSession)
        .where(AppSession.device_id == device_id, AppSession.session_id == session_id)
        .execution_options(populate_existing=True)
    )
    session = session_row.scalar_one()
    account = await find_by_device(db, device_id)

    await cache.invalidate_account(account.id, device_id)
    await cache.invalidate(session_key(device_id, session_id))

    logger.info(
        "session_ended",
        device_id=device_id,
        session_id=session_id,
        duration=duration,
        avg_session_duration=account.avg_session_duration,
    )
    return session, account


async def auto_close_sessions(db: AsyncSession, cache: LedgerCache, now: datetime | None = None) -> int:
    """Close sessions abandoned by clients that never called end.

    A session is abandoned when it started more than ``SESSION_GRACE`` ago and
    its account has been inactive for longer than ``INACTIVITY_WINDOW``. The
    duration is the elapsed wall-clock time since start.

    Returns:
        Number of sessions closed.
    """
    if now is None:
        now = datetime.now(timezone.utc)

    result = await db.execute(
        select(AppSession.id, AppSession.device_id, AppSession.session_id, AppSession.start_time)
        .join(Account, Account.device_id == AppSession.device_id)
        .where(
            and_(
                AppSession.end_time.is_(None),
                AppSession.start_time < now - SESSION_GRACE,
                Account.last_active < now - INACTIVITY_WINDOW,
            )
        )
        .order_by(AppSession.start_time)
    )
    candidates = result.all()

    closed: list[tuple[str, str]] = []
    for row_id, device_id, session_id, start_time in candidates:
        duration = min(MAX_SESSION_DURATION, max(0, int((now - start_time).total_seconds())))
        closed_row = await db.execute(
            update(AppSession)
            .where(AppSession.id == row_id, AppSession.end_time.is_(None))
            .values(end_time=now, session_duration=duration, auto_closed=True)
            .execution_options(synchronize_session=False)
        )
        if closed_row.rowcount == 0:
            continue
        # last_active stays untouched: the user did not come back.
        await _fold_duration(db, device_id, duration, now, touch_last_active=False)
        closed.append((device_id, session_id))

    await db.commit()

    for device_id, session_id in closed:
        account = await get_by_device(db, device_id)
        if account is not None:
            await cache.invalidate_account(account.id, device_id)
        await cache.invalidate(session_key(device_id, session_id))

    if closed:
        logger.info("sessions_auto_closed", count=len(closed))
    return len(closed)
