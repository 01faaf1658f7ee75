"""Video catalog endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from coinledger.cache import LedgerCache
from coinledger.catalog.schemas import VideoCreateRequest, VideoResponse
from coinledger.catalog.service import DEFAULT_PAGE_SIZE, add_video, list_videos, video_dict
from coinledger.dependencies import get_cache, get_db

router = APIRouter(prefix="/api", tags=["Catalog"])


@router.get("/videos", response_model=list[VideoResponse])
async def get_videos(
    section: str | None = Query(None, max_length=64),
    limit: int = Query(DEFAULT_PAGE_SIZE),
    offset: int = Query(0),
    db: AsyncSession = Depends(get_db),  # noqa: B008
    cache: LedgerCache = Depends(get_cache),  # noqa: B008
) -> list[dict]:
    """Newest-first videos. Pages are cached for up to an hour; new videos may take that long to appear."""
    return await list_videos(db, cache, section=section, limit=limit, offset=offset)


@router.post("/admin/videos", response_model=VideoResponse, status_code=201)
async def create_video(
    body: VideoCreateRequest,
    db: AsyncSession = Depends(get_db),  # noqa: B008
) -> dict:
    """Add a video to the catalog."""
    video = await add_video(db, body.section, body.title, body.url, body.thumbnail_url)
    return video_dict(video)
