"""Ledger tables.

Creates accounts, share_events, app_sessions, premium_plans and videos.

Revision ID: 001_ledger_tables
Revises: None
Create Date: 2026-10-18
"""

from collections.abc import Sequence

from alembic import op

revision: str = "001_ledger_tables"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # --- Accounts ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS accounts (
            id BIGSERIAL PRIMARY KEY,
            device_id VARCHAR(255) UNIQUE NOT NULL,
            phone VARCHAR(10),
            name VARCHAR(128),
            coins INTEGER NOT NULL DEFAULT 0,
            referral_code VARCHAR(32) UNIQUE NOT NULL,
            referred_by VARCHAR(32),
            has_reviewed BOOLEAN NOT NULL DEFAULT false,
            share_count INTEGER NOT NULL DEFAULT 0,
            app_opens INTEGER NOT NULL DEFAULT 0,
            total_session_duration BIGINT NOT NULL DEFAULT 0,
            avg_session_duration DOUBLE PRECISION NOT NULL DEFAULT 0,
            last_active TIMESTAMPTZ,
            is_premium BOOLEAN NOT NULL DEFAULT false,
            premium_purchased_at TIMESTAMPTZ,
            premium_expires_at TIMESTAMPTZ,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ,
            CONSTRAINT ck_accounts_coins_non_negative CHECK (coins >= 0),
            CONSTRAINT ck_accounts_share_count_non_negative CHECK (share_count >= 0),
            CONSTRAINT ck_accounts_no_self_referral CHECK (referred_by IS NULL OR referred_by <> referral_code)
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_accounts_last_active
        ON accounts(last_active)
    """)

    # --- Share events ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS share_events (
            id BIGSERIAL PRIMARY KEY,
            account_id BIGINT NOT NULL REFERENCES accounts(id) ON DELETE CASCADE,
            share_id VARCHAR(36) NOT NULL,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_share_events_account_share UNIQUE (account_id, share_id)
        )
    """)

    # --- Sessions ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS app_sessions (
            id BIGSERIAL PRIMARY KEY,
            device_id VARCHAR(255) NOT NULL,
            session_id VARCHAR(128) NOT NULL,
            start_time TIMESTAMPTZ NOT NULL,
            end_time TIMESTAMPTZ,
            session_duration INTEGER NOT NULL DEFAULT 0,
            auto_closed BOOLEAN NOT NULL DEFAULT false,
            CONSTRAINT uq_app_sessions_device_session UNIQUE (device_id, session_id),
            CONSTRAINT ck_app_sessions_duration_non_negative CHECK (session_duration >= 0)
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS ix_app_sessions_device_id
        ON app_sessions(device_id)
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_app_sessions_open
        ON app_sessions(start_time) WHERE end_time IS NULL
    """)

    # --- Premium plans ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS premium_plans (
            id SERIAL PRIMARY KEY,
            price NUMERIC(10, 2) NOT NULL,
            duration_days INTEGER NOT NULL,
            plan_name VARCHAR(64) NOT NULL,
            is_active BOOLEAN NOT NULL DEFAULT true,
            updated_at TIMESTAMPTZ
        )
    """)

    # --- Videos ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS videos (
            id BIGSERIAL PRIMARY KEY,
            section VARCHAR(64) NOT NULL,
            title VARCHAR(256) NOT NULL,
            url TEXT NOT NULL,
            thumbnail_url TEXT,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS ix_videos_section
        ON videos(section)
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS videos")
    op.execute("DROP TABLE IF EXISTS premium_plans")
    op.execute("DROP TABLE IF EXISTS app_sessions")
    op.execute("DROP TABLE IF EXISTS share_events")
    op.execute("DROP TABLE IF EXISTS accounts")
