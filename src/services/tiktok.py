from __future__ import annotations

import logging
import re
from typing import Any

from bs4 import BeautifulSoup

from .errors import ScrapeFailedError
from .fetcher import (
    PlatformScraper,
    _clean_string,
    _from_epoch_seconds,
    _from_iso,
    _to_int,
    iter_json_scripts,
    meta_content,
    parse_hashtags,
    parse_mentions,
)
from .types import Author, Engagement, MusicInfo, ScrapedContent, ScrapeResult

logger = logging.getLogger(__name__)

REHYDRATION_SCRIPT_ID = "__UNIVERSAL_DATA_FOR_REHYDRATION__"
VIDEO_DETAIL_KEY = "webapp.video-detail"
PROFILE_BASE_URL = "https://tiktok.com/@"

_HANDLE_RE = re.compile(r"/@([^/?#]+)")


def _as_dict(value: Any) -> dict:
    return value if isinstance(value, dict) else {}


class TikTokScraper(PlatformScraper):
    """
    Tres fontes, na ordem: JSON de reidratacao da pagina, JSON-LD VideoObject
    e, por fim, as meta tags og:*. Cada campo cai para a proxima fonte
    de forma independente.
    """

    platform = "tiktok"

    def parse(self, url: str, html: str) -> ScrapeResult:
        soup = BeautifulSoup(html, "html.parser")
        unavailable: list[str] = []

        detail = self._find_video_detail(soup)
        item = _as_dict(_as_dict(detail.get("itemInfo")).get("itemStruct")) if detail else {}
        ld = self._find_json_ld(soup) if not item else {}

        og_description = meta_content(soup, "og:description")
        description = meta_content(soup, "description")
        og_video = meta_content(soup, "og:video")
        og_image = meta_content(soup, "og:image")

        if not item and not ld and not (og_description or description or og_video or og_image):
            raise ScrapeFailedError(self.platform, "No TikTok video data found in page")

        title = (
            _clean_string(item.get("desc"))
            or _clean_string(ld.get("description"))
            or og_description
            or description
        )
        if title is None:
            unavailable.append("title")

        author = self._author(url, item, ld, unavailable)
        video_url, cover = self._media(item, ld, og_video, og_image, unavailable)
        engagement = self._engagement(item, ld, unavailable)

        timestamp = _from_epoch_seconds(item.get("createTime")) or _from_iso(ld.get("uploadDate"))
        if timestamp is None:
            unavailable.append("timestamp")

        music = None
        music_data = item.get("music")
        if isinstance(music_data, dict):
            music = MusicInfo(
                title=_clean_string(music_data.get("title")),
                artist=_clean_string(music_data.get("authorName")),
                url=_clean_string(music_data.get("playUrl")),
            )
        else:
            unavailable.append("musicInfo")

        content = ScrapedContent(
            platform="tiktok",
            post_id=self._post_id(url, item.get("id")),
            url=url,
            title=title,
            author=author,
            video_url=video_url,
            cover_image_url=cover,
            engagement=engagement,
            hashtags=parse_hashtags(title),
            mentions=parse_mentions(title),
            timestamp=timestamp,
            music_info=music,
        )
        return ScrapeResult(content=content, unavailable_fields=unavailable)

    def _find_video_detail(self, soup: BeautifulSoup) -> dict:
        for data in iter_json_scripts(soup, id=REHYDRATION_SCRIPT_ID):
            detail = _as_dict(_as_dict(data).get("__DEFAULT_SCOPE__")).get(VIDEO_DETAIL_KEY)
            if isinstance(detail, dict):
                return detail
        return {}

    def _find_json_ld(self, soup: BeautifulSoup) -> dict:
        for data in iter_json_scripts(soup, type="application/ld+json"):
            # alguns paginas mandam uma lista de objetos JSON-LD
            candidates = data if isinstance(data, list) else [data]
            for candidate in candidates:
                if isinstance(candidate, dict) and candidate.get("@type") == "VideoObject":
                    return candidate
        return {}

    def _author(self, url: str, item: dict, ld: dict, unavailable: list[str]) -> Author:
        username = ""
        display_name = None
        profile_url = ""
        avatar_url = None

        author_data = item.get("author")
        if isinstance(author_data, dict):
            username = _clean_string(author_data.get("uniqueId")) or _clean_string(author_data.get("id")) or ""
            display_name = _clean_string(author_data.get("nickname"))
            avatar_url = _clean_string(author_data.get("avatarThumb")) or _clean_string(author_data.get("avatarMedium"))
            profile_url = f"{PROFILE_BASE_URL}{username}"
        elif isinstance(ld.get("author"), dict):
            ld_author = ld["author"]
            identifier = _as_dict(ld_author.get("identifier"))
            username = _clean_string(identifier.get("value")) or _clean_string(ld_author.get("name")) or ""
            display_name = _clean_string(ld_author.get("name"))
            profile_url = _clean_string(ld_author.get("url")) or f"{PROFILE_BASE_URL}{username}"
            avatar_url = _clean_string(ld_author.get("image"))

        if not username:
            match = _HANDLE_RE.search(url)
            if match:
                username = match.group(1)
                profile_url = f"{PROFILE_BASE_URL}{username}"
            else:
                unavailable.append("author.username")

        if not avatar_url:
            unavailable.append("author.avatarUrl")
        if not display_name:
            unavailable.append("author.displayName")

        return Author(username=username, display_name=display_name, profile_url=profile_url, avatar_url=avatar_url)

    def _media(
        self,
        item: dict,
        ld: dict,
        og_video: str | None,
        og_image: str | None,
        unavailable: list[str],
    ) -> tuple[str | None, str | None]:
        video_url = None
        cover = None

        video = item.get("video")
        if isinstance(video, dict):
            video_url = _clean_string(video.get("playAddr")) or _clean_string(video.get("downloadAddr"))
            cover = _clean_string(video.get("cover")) or _clean_string(video.get("dynamicCover"))
        elif ld.get("contentUrl"):
            video_url = _clean_string(ld.get("contentUrl"))
            thumbnail = ld.get("thumbnailUrl")
            if isinstance(thumbnail, list):
                thumbnail = thumbnail[0] if thumbnail else None
            cover = _clean_string(thumbnail)

        video_url = video_url or og_video
        if not video_url:
            unavailable.append("videoUrl")
        cover = cover or og_image
        if not cover:
            unavailable.append("coverImageUrl")
        return video_url, cover

    def _engagement(self, item: dict, ld: dict, unavailable: list[str]) -> Engagement:
        engagement = Engagement()

        stats = item.get("stats")
        if isinstance(stats, dict):
            engagement.likes = _to_int(stats.get("diggCount"))
            engagement.comments = _to_int(stats.get("commentCount"))
            engagement.shares = _to_int(stats.get("shareCount"))
            engagement.views = _to_int(stats.get("playCount"))
        elif ld.get("interactionStatistic"):
            statistics = ld["interactionStatistic"]
            if isinstance(statistics, dict):
                statistics = [statistics]
            for stat in statistics if isinstance(statistics, list) else []:
                if not isinstance(stat, dict):
                    continue
                kind = stat.get("interactionType")
                if isinstance(kind, dict):
                    kind = kind.get("@type")
                kind = str(kind or "")
                count = _to_int(stat.get("userInteractionCount"))
                if kind.endswith("LikeAction"):
                    engagement.likes = count
                elif kind.endswith("CommentAction"):
                    engagement.comments = count
                elif kind.endswith("WatchAction"):
                    engagement.views = count

        for name in ("likes", "comments", "shares", "views"):
            if getattr(engagement, name) is None:
                unavailable.append(f"engagement.{name}")
        return engagement
