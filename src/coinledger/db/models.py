"""ORM models for the ledger tables.

Schema is created by the Alembic migration ``001_ledger_tables``.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    Float,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from coinledger.db.base import Base
from coinledger.db.types import AwareDateTime, BigIntPK


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Accounts
# ---------------------------------------------------------------------------


class Account(Base):
    """One account per device installation."""

    __tablename__ = "accounts"
    __table_args__ = (
        CheckConstraint("coins >= 0", name="ck_accounts_coins_non_negative"),
        CheckConstraint("share_count >= 0", name="ck_accounts_share_count_non_negative"),
        CheckConstraint("referred_by IS NULL OR referred_by <> referral_code", name="ck_accounts_no_self_referral"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    device_id: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    phone: Mapped[str | None] = mapped_column(String(10), nullable=True)
    name: Mapped[str | None] = mapped_column(String(128), nullable=True)
    coins: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    referral_code: Mapped[str] = mapped_column(String(32), unique=True, nullable=False)
    referred_by: Mapped[str | None] = mapped_column(String(32), nullable=True)
    has_reviewed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")
    share_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")

    # --- Session analytics ---
    app_opens: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    total_session_duration: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0, server_default="0")
    avg_session_duration: Mapped[float] = mapped_column(Float, nullable=False, default=0.0, server_default="0")
    last_active: Mapped[datetime | None] = mapped_column(AwareDateTime(), nullable=True)

    # --- Premium ---
    is_premium: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")
    premium_purchased_at: Mapped[datetime | None] = mapped_column(AwareDateTime(), nullable=True)
    premium_expires_at: Mapped[datetime | None] = mapped_column(AwareDateTime(), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        AwareDateTime(), nullable=False, default=utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime | None] = mapped_column(AwareDateTime(), nullable=True)


class ShareEvent(Base):
    """One row per (account, client share token); the share de-duplication key."""

    __tablename__ = "share_events"
    __table_args__ = (UniqueConstraint("account_id", "share_id", name="uq_share_events_account_share"),)

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    account_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False
    )
    share_id: Mapped[str] = mapped_column(String(36), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        AwareDateTime(), nullable=False, default=utcnow, server_default=func.now()
    )


# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------


class AppSession(Base):
    """App usage session keyed by (device_id, client session token)."""

    __tablename__ = "app_sessions"
    __table_args__ = (
        UniqueConstraint("device_id", "session_id", name="uq_app_sessions_device_session"),
        CheckConstraint("session_duration >= 0", name="ck_app_sessions_duration_non_negative"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    device_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    session_id: Mapped[str] = mapped_column(String(128), nullable=False)
    start_time: Mapped[datetime] = mapped_column(AwareDateTime(), nullable=False)
    end_time: Mapped[datetime | None] = mapped_column(AwareDateTime(), nullable=True)
    session_duration: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    auto_closed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")


# ---------------------------------------------------------------------------
# Premium
# ---------------------------------------------------------------------------


class PremiumPlan(Base):
    """Pricing configuration; at most one row is active."""

    __tablename__ = "premium_plans"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    duration_days: Mapped[int] = mapped_column(Integer, nullable=False)
    plan_name: Mapped[str] = mapped_column(String(64), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="true")
    updated_at: Mapped[datetime | None] = mapped_column(AwareDateTime(), nullable=True)


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------


class Video(Base):
    """Catalog entry shown in the app's video sections."""

    __tablename__ = "videos"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    section: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(256), nullable=False)
    url: Mapped[str] = mapped_column(Text, nullable=False)
    thumbnail_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        AwareDateTime(), nullable=False, default=utcnow, server_default=func.now()
    )
