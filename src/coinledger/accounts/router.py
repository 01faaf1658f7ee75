"""Account endpoints: device lookup, profile writes, device registration."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from coinledger.accounts.schemas import AccountResponse, ProfileRequest, RegisterDeviceRequest
from coinledger.accounts.service import (
    account_projection,
    create_or_update_profile,
    lookup_by_device,
    lookup_by_id,
    register_device,
)
from coinledger.cache import LedgerCache
from coinledger.dependencies import get_cache, get_db

router = APIRouter(prefix="/api", tags=["Accounts"])


@router.get("/user/device/{device_id}", response_model=AccountResponse)
async def get_account_by_device(
    device_id: str,
    db: AsyncSession = Depends(get_db),  # noqa: B008
    cache: LedgerCache = Depends(get_cache),  # noqa: B008
) -> AccountResponse:
    """Look up the account registered for a device."""
    return await lookup_by_device(db, cache, device_id)


@router.get("/user/{account_id}", response_model=AccountResponse)
async def get_account(
    account_id: int,
    db: AsyncSession = Depends(get_db),  # noqa: B008
    cache: LedgerCache = Depends(get_cache),  # noqa: B008
) -> AccountResponse:
    """Look up an account by id."""
    return await lookup_by_id(db, cache, account_id)


@router.post("/profile", response_model=AccountResponse)
async def save_profile(
    body: ProfileRequest,
    response: Response,
    db: AsyncSession = Depends(get_db),  # noqa: B008
    cache: LedgerCache = Depends(get_cache),  # noqa: B008
) -> AccountResponse:
    """Create the device's account (201) or update its name and phone (200)."""
    account, created = await create_or_update_profile(db, cache, body.device_id, body.name, body.phone)
    response.status_code = 201 if created else 200
    return account_projection(account)


@router.post("/register-device", response_model=AccountResponse)
async def register(
    body: RegisterDeviceRequest,
    response: Response,
    db: AsyncSession = Depends(get_db),  # noqa: B008
    cache: LedgerCache = Depends(get_cache),  # noqa: B008
) -> AccountResponse:
    """Register a device (201), or return the existing registration unchanged (200)."""
    account, created = await register_device(db, cache, body.device_id, body.referral_code)
    response.status_code = 201 if created else 200
    return account_projection(account)
