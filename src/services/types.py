from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal, Optional

Platform = Literal["instagram", "tiktok"]


@dataclass
class Author:
    username: str = ""
    display_name: Optional[str] = None
    profile_url: str = ""
    avatar_url: Optional[str] = None


@dataclass
class Engagement:
    likes: Optional[int] = None
    comments: Optional[int] = None
    shares: Optional[int] = None
    views: Optional[int] = None


@dataclass
class MusicInfo:
    title: Optional[str] = None
    artist: Optional[str] = None
    url: Optional[str] = None


@dataclass
class ScrapedContent:
    platform: Platform
    post_id: str
    url: str
    title: Optional[str]
    author: Author
    video_url: Optional[str] = None
    cover_image_url: Optional[str] = None
    engagement: Engagement = field(default_factory=Engagement)
    hashtags: list[str] = field(default_factory=list)
    mentions: list[str] = field(default_factory=list)
    timestamp: Optional[datetime] = None
    music_info: Optional[MusicInfo] = None


@dataclass
class ScrapeResult:
    content: ScrapedContent
    unavailable_fields: list[str] = field(default_factory=list)


@dataclass
class StoredContent:
    """A cached ScrapedContent together with its row id."""
    id: int
    content: ScrapedContent
