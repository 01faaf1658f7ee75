"""Request/response schemas for session endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from coinledger.accounts.schemas import AccountResponse
from coinledger.sessions.service import MAX_SESSION_DURATION


class SessionStartRequest(BaseModel):
    device_id: str = Field(..., min_length=1, max_length=255)
    session_id: str = Field(..., min_length=1, max_length=128)


class SessionEndRequest(BaseModel):
    device_id: str = Field(..., min_length=1, max_length=255)
    session_id: str = Field(..., min_length=1, max_length=128)
    session_duration: int = Field(..., ge=0, le=MAX_SESSION_DURATION)


class SessionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    device_id: str
    session_id: str
    start_time: datetime
    end_time: datetime | None = None
    session_duration: int
    auto_closed: bool = False


class SessionEndResponse(BaseModel):
    session: SessionResponse
    user: AccountResponse
