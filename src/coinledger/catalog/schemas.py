"""Schemas for catalog endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class VideoResponse(BaseModel):
    id: int
    section: str
    title: str
    url: str
    thumbnail_url: str | None = None
    created_at: datetime


class VideoCreateRequest(BaseModel):
    section: str = Field(..., min_length=1, max_length=64)
    title: str = Field(..., min_length=1, max_length=256)
    url: str = Field(..., min_length=1)
    thumbnail_url: str | None = None
