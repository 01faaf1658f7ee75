"""Video catalog with cached list pages.

Each distinct (section, limit, offset) page is cached for ``CATALOG_TTL``.
Adding a video does not invalidate existing pages: new entries appear in
cached listings within one TTL, which is the documented freshness contract
of ``GET /api/videos``.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

import structlog
from sqlalchemy import select

from coinledger.cache import CATALOG_TTL
from coinledger.db.models import Video
from coinledger.errors import ValidationError

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from coinledger.cache import LedgerCache

logger = structlog.get_logger()

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100

VIDEO_PAGE_KEY = "videos:{section}:{limit}:{offset}"


def clamp_page(limit: int | None, offset: int | None) -> tuple[int, int]:
    """Clamp paging parameters to 1..100 and >= 0."""
    limit = DEFAULT_PAGE_SIZE if limit is None else limit
    offset = 0 if offset is None else offset
    return max(1, min(MAX_PAGE_SIZE, limit)), max(0, offset)


def page_key(section: str | None, limit: int, offset: int) -> str:
    return VIDEO_PAGE_KEY.format(section=section or "all", limit=limit, offset=offset)


def video_dict(video: Video) -> dict[str, Any]:
    return {
        "id": video.id,
        "section": video.section,
        "title": video.title,
        "url": video.url,
        "thumbnail_url": video.thumbnail_url,
        "created_at": video.created_at.isoformat(),
    }


async def list_videos(
    db: AsyncSession,
    cache: LedgerCache,
    section: str | None = None,
    limit: int | None = None,
    offset: int | None = None,
) -> list[dict[str, Any]]:
    """Newest-first page of videos, optionally filtered by section."""
    limit, offset = clamp_page(limit, offset)
    key = page_key(section, limit, offset)

    cached = await cache.get(key)
    if cached is not None:
        logger.debug("catalog_cache_hit", key=key)
        return cached

    query = select(Video).order_by(Video.created_at.desc(), Video.id.desc()).limit(limit).offset(offset)
    if section:
        query = query.where(Video.section == section)
    result = await db.execute(query)
    videos = [video_dict(v) for v in result.scalars().all()]

    await cache.set(key, videos, CATALOG_TTL)
    return videos


async def add_video(
    db: AsyncSession,
    section: str,
    title: str,
    url: str,
    thumbnail_url: str | None = None,
) -> Video:
    """Insert a catalog entry. Cached list pages are left to expire."""
    section = section.strip()
    title = title.strip()
    if not section or not title or not url.strip():
        raise ValidationError("section, title and url are required")

    video = Video(
        section=section,
        title=title,
        url=url.strip(),
        thumbnail_url=thumbnail_url,
        created_at=datetime.now(timezone.utc),
    )
    db.add(video)
    await db.commit()

    logger.info("video_added", video_id=video.id, section=section)
    return video
