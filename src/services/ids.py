# src/services/ids.py
import re
from typing import Optional
from urllib.parse import urlparse

from src.services.types import Platform

_IG_HOST = "instagram.com"
_TT_HOST = "tiktok.com"

# Caminho completo de um post/reel do Instagram
_IG_PATH_RE = re.compile(r"^/(p|reel)/[A-Za-z0-9_-]+/?$")
# Caminho completo de um video do TikTok
_TT_PATH_RE = re.compile(r"^/@[A-Za-z0-9._-]+/video/\d+/?$")

_IG_ID_RE = re.compile(r"^/(?:p|reel)/([A-Za-z0-9_-]+)")
_TT_ID_RE = re.compile(r"/video/(\d+)")


def _parse(url: str) -> tuple[str, str] | None:
    """Retorna (hostname sem www., path) ou None se a URL nao for parseavel."""
    if not isinstance(url, str):
        return None
    try:
        parsed = urlparse(url.strip())
    except ValueError:
        return None
    if parsed.scheme not in ("http", "https") or not parsed.hostname:
        return None
    hostname = parsed.hostname
    if hostname.startswith("www."):
        hostname = hostname[len("www."):]
    return hostname, parsed.path


def is_instagram_url(url: str) -> bool:
    parts = _parse(url)
    if parts is None:
        return False
    hostname, path = parts
    return hostname == _IG_HOST and bool(_IG_PATH_RE.match(path))


def is_tiktok_url(url: str) -> bool:
    parts = _parse(url)
    if parts is None:
        return False
    hostname, path = parts
    return hostname == _TT_HOST and bool(_TT_PATH_RE.match(path))


def classify(url: str) -> Optional[Platform]:
    """Classifica a URL como "instagram", "tiktok" ou None."""
    if is_instagram_url(url):
        return "instagram"
    if is_tiktok_url(url):
        return "tiktok"
    return None


def extract_post_id(url: str) -> Optional[str]:
    parts = _parse(url)
    if parts is None:
        return None
    _, path = parts

    m = _IG_ID_RE.match(path)
    if m:
        return m.group(1)
    m = _TT_ID_RE.search(path)
    if m:
        return m.group(1)
    return None
