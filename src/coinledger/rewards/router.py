"""Reward endpoints: review and share bonuses."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from coinledger.accounts.schemas import AccountResponse
from coinledger.accounts.service import account_projection
from coinledger.cache import LedgerCache
from coinledger.dependencies import get_cache, get_db
from coinledger.rewards.schemas import ReviewRequest, ShareRequest
from coinledger.rewards.service import award_review, award_share

router = APIRouter(prefix="/api", tags=["Rewards"])


@router.post("/submit-review", response_model=AccountResponse)
async def submit_review(
    body: ReviewRequest,
    db: AsyncSession = Depends(get_db),  # noqa: B008
    cache: LedgerCache = Depends(get_cache),  # noqa: B008
) -> AccountResponse:
    """Credit the one-time Play Store review bonus."""
    account = await award_review(db, cache, body.user_id)
    return account_projection(account)


@router.post("/share-app", response_model=AccountResponse)
async def share_app(
    body: ShareRequest,
    db: AsyncSession = Depends(get_db),  # noqa: B008
    cache: LedgerCache = Depends(get_cache),  # noqa: B008
) -> AccountResponse:
    """Record an app share and credit the share bonus once per share_id."""
    account = await award_share(db, cache, body.user_id, body.share_id)
    return account_projection(account)
