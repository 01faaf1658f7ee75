"""Session analytics endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from coinledger.accounts.service import account_projection
from coinledger.cache import LedgerCache
from coinledger.dependencies import get_cache, get_db
from coinledger.sessions.schemas import (
    SessionEndRequest,
    SessionEndResponse,
    SessionResponse,
    SessionStartRequest,
)
from coinledger.sessions.service import end_session, start_session

router = APIRouter(prefix="/api/session", tags=["Sessions"])


@router.post("/start", response_model=SessionResponse)
async def session_start(
    body: SessionStartRequest,
    db: AsyncSession = Depends(get_db),  # noqa: B008
    cache: LedgerCache = Depends(get_cache),  # noqa: B008
) -> SessionResponse:
    """Open a session and count an app open."""
    session = await start_session(db, cache, body.device_id, body.session_id)
    return SessionResponse.model_validate(session)


@router.post("/end", response_model=SessionEndResponse)
async def session_end(
    body: SessionEndRequest,
    db: AsyncSession = Depends(get_db),  # noqa: B008
    cache: LedgerCache = Depends(get_cache),  # noqa: B008
) -> SessionEndResponse:
    """Close a session and return it with the updated account totals."""
    session, account = await end_session(db, cache, body.device_id, body.session_id, body.session_duration)
    return SessionEndResponse(
        session=SessionResponse.model_validate(session),
        user=account_projection(account),
    )
