"""Request schemas for reward endpoints."""

from pydantic import BaseModel, Field


class ReviewRequest(BaseModel):
    user_id: int = Field(..., gt=0)


class ShareRequest(BaseModel):
    user_id: int = Field(..., gt=0)
    share_id: str = Field(..., min_length=1, max_length=64)
