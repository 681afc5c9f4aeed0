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
    _to_int,
    find_key_recursively,
    iter_json_scripts,
    meta_content,
    parse_hashtags,
    parse_mentions,
)
from .types import Author, Engagement, ScrapedContent, ScrapeResult

logger = logging.getLogger(__name__)

WEB_INFO_KEY = "xdt_api__v1__media__shortcode__web_info"
PROFILE_BASE_URL = "https://instagram.com/"

# og:description: '1,234 likes, 56 comments - chef.ana on March 3, 2024: "legenda..."'
_OG_DESCRIPTION_RE = re.compile(
    r"^\s*(?P<likes>[\d,.]+)\s+likes?,\s*(?P<comments>[\d,.]+)\s+comments?\s*-\s*"
    r"(?P<username>[A-Za-z0-9._]+)\s+on\s+[^:]*:\s*(?P<caption>.*)$",
    re.DOTALL,
)
# og:title: 'Ana on Instagram: "legenda..."'
_OG_TITLE_RE = re.compile(r"^(?P<name>.+?)\s+on Instagram:\s*(?P<caption>.*)$", re.DOTALL)


def _strip_quotes(text: str | None) -> str | None:
    text = _clean_string(text)
    if text and len(text) >= 2 and text[0] in "\"“" and text[-1] in "\"”":
        text = text[1:-1].strip()
    return text or None


def _first_url(versions: object) -> str | None:
    # video_versions / candidates: lista de {"url": ...}, formato nao garantido
    if not isinstance(versions, list) or not versions:
        return None
    first = versions[0]
    return _clean_string(first.get("url")) if isinstance(first, dict) else None


class InstagramScraper(PlatformScraper):
    platform = "instagram"

    def parse(self, url: str, html: str) -> ScrapeResult:
        soup = BeautifulSoup(html, "html.parser")

        web_info = self._find_web_info(soup)
        if web_info is not None:
            items = web_info.get("items") if isinstance(web_info, dict) else None
            if isinstance(items, list) and items and isinstance(items[0], dict):
                return self._from_item(url, items[0])

        result = self._from_meta(url, soup)
        if result is None:
            raise ScrapeFailedError(
                self.platform,
                f"Failed to extract Instagram data: {WEB_INFO_KEY} not found in page",
            )
        return result

    def _find_web_info(self, soup: BeautifulSoup) -> Any:
        for data in iter_json_scripts(soup, type="application/json"):
            found = find_key_recursively(data, WEB_INFO_KEY)
            if found is not None:
                return found
        return None

    def _from_item(self, url: str, item: dict) -> ScrapeResult:
        caption = item.get("caption") if isinstance(item.get("caption"), dict) else {}
        title = _clean_string(caption.get("text"))

        owner = item.get("owner") if isinstance(item.get("owner"), dict) else {}
        username = _clean_string(owner.get("username")) or ""

        video_url = _first_url(item.get("video_versions"))

        image_versions = item.get("image_versions2") if isinstance(item.get("image_versions2"), dict) else {}
        cover = _first_url(image_versions.get("candidates"))

        content = ScrapedContent(
            platform="instagram",
            post_id=self._post_id(url, item.get("code"), item.get("pk"), item.get("id")),
            url=url,
            title=title,
            author=Author(
                username=username,
                display_name=_clean_string(owner.get("full_name")),
                profile_url=f"{PROFILE_BASE_URL}{username}" if username else "",
                avatar_url=_clean_string(owner.get("profile_pic_url")),
            ),
            video_url=video_url,
            cover_image_url=cover,
            engagement=Engagement(
                likes=_to_int(item.get("like_count")),
                comments=_to_int(item.get("comment_count")),
                shares=None,
                views=_to_int(item.get("view_count") or item.get("play_count")),
            ),
            hashtags=parse_hashtags(title),
            mentions=parse_mentions(title),
            timestamp=_from_epoch_seconds(item.get("taken_at")),
            music_info=None,
        )
        return ScrapeResult(content=content, unavailable_fields=_unavailable(content))

    def _from_meta(self, url: str, soup: BeautifulSoup) -> ScrapeResult | None:
        og_description = meta_content(soup, "og:description")
        og_title = meta_content(soup, "og:title")
        og_video = meta_content(soup, "og:video") or meta_content(soup, "og:video:secure_url")
        og_image = meta_content(soup, "og:image")

        if not (og_description or og_title or og_video or og_image):
            return None

        title = None
        username = ""
        display_name = None
        likes = comments = None

        match = _OG_DESCRIPTION_RE.match(og_description or "")
        if match:
            likes = _to_int(match.group("likes").replace(".", ""))
            comments = _to_int(match.group("comments").replace(".", ""))
            username = match.group("username")
            title = _strip_quotes(match.group("caption"))

        title_match = _OG_TITLE_RE.match(og_title or "")
        if title_match:
            display_name = _clean_string(title_match.group("name"))
            title = title or _strip_quotes(title_match.group("caption"))

        if title is None and not match:
            title = og_description

        logger.info("instagram.meta_fallback url=%s", url)
        content = ScrapedContent(
            platform="instagram",
            post_id=self._post_id(url),
            url=url,
            title=title,
            author=Author(
                username=username,
                display_name=display_name,
                profile_url=f"{PROFILE_BASE_URL}{username}" if username else "",
                avatar_url=None,
            ),
            video_url=og_video,
            cover_image_url=og_image,
            engagement=Engagement(likes=likes, comments=comments),
            hashtags=parse_hashtags(title),
            mentions=parse_mentions(title),
        )
        return ScrapeResult(content=content, unavailable_fields=_unavailable(content))


def _unavailable(content: ScrapedContent) -> list[str]:
    # shares nunca existe no Instagram, entao nao conta como ausente
    checks = [
        ("title", content.title),
        ("author.username", content.author.username),
        ("author.avatarUrl", content.author.avatar_url),
        ("videoUrl", content.video_url),
        ("coverImageUrl", content.cover_image_url),
        ("engagement.likes", content.engagement.likes),
        ("engagement.comments", content.engagement.comments),
        ("engagement.views", content.engagement.views),
        ("timestamp", content.timestamp),
    ]
    return [name for name, value in checks if value is None or value == ""]
