"""Referral code generation.

Codes are a fixed prefix plus six random digits (e.g. ``BGSHWR482913``),
drawn from a cryptographic random source. The lookup loop below only makes
collisions unlikely; the unique constraint on ``accounts.referral_code`` is
what guarantees uniqueness, and account creation retries on a lost race.
"""

from __future__ import annotations

import secrets

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from coinledger.config import get_settings
from coinledger.db.models import Account
from coinledger.errors import GenerationExhausted

CODE_DIGITS = 6
MAX_CODE_ATTEMPTS = 10


def generate_referral_code(prefix: str | None = None) -> str:
    """Generate a referral code: prefix + 6 digits in 100000-999999.

    The prefix is upper-cased so stored codes match the normalized form used
    for lookup.
    """
    if prefix is None:
        prefix = get_settings().referral_code_prefix
    prefix = normalize_referral_code(prefix)
    number = 10 ** (CODE_DIGITS - 1) + secrets.randbelow(9 * 10 ** (CODE_DIGITS - 1))
    return f"{prefix}{number}"


def normalize_referral_code(code: str) -> str:
    """Normalize a user-entered code for lookup."""
    return code.strip().upper()


async def generate_unique_referral_code(db: AsyncSession) -> str:
    """Generate a referral code that doesn't already exist in the database."""
    for _ in range(MAX_CODE_ATTEMPTS):
        code = generate_referral_code()
        existing = await db.execute(select(Account.id).where(Account.referral_code == code))
        if existing.scalar_one_or_none() is None:
            return code
    raise GenerationExhausted(
        f"Failed to generate unique referral code after {MAX_CODE_ATTEMPTS} attempts",
        {"attempts": MAX_CODE_ATTEMPTS},
    )
