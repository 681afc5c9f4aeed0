from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class ScrapeRequest(BaseModel):
    model_config = ConfigDict(strict=True)

    url: str = Field(..., min_length=1)
    force: bool = False


class AuthorOut(BaseModel):
    username: str
    displayName: Optional[str] = None
    profileUrl: str
    avatarUrl: Optional[str] = None


class EngagementOut(BaseModel):
    likes: Optional[int] = None
    comments: Optional[int] = None
    shares: Optional[int] = None
    views: Optional[int] = None


class MusicInfoOut(BaseModel):
    title: Optional[str] = None
    artist: Optional[str] = None
    url: Optional[str] = None


class ScrapedContentOut(BaseModel):
    platform: Literal["instagram", "tiktok"]
    postId: str
    url: str
    title: Optional[str] = None
    author: AuthorOut
    videoUrl: Optional[str] = None
    coverImageUrl: Optional[str] = None
    engagement: EngagementOut
    hashtags: list[str] = Field(default_factory=list)
    mentions: list[str] = Field(default_factory=list)
    timestamp: Optional[str] = None
    musicInfo: Optional[MusicInfoOut] = None


class ScrapeResponse(BaseModel):
    success: bool
    data: Optional[ScrapedContentOut] = None
    error: Optional[str] = None
    recipeId: Optional[str] = None
