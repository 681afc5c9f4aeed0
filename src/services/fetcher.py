from __future__ import annotations

import json
import logging
import re
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Iterator, Optional

import httpx
from bs4 import BeautifulSoup

from .errors import NetworkTimeoutError, ScrapeFailedError
from .ids import extract_post_id
from .types import Platform, ScrapeResult

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30.0

BROWSER_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
}

HASHTAG_PATTERN = re.compile(r"#(\w+)")
MENTION_PATTERN = re.compile(r"@(\w+)")


def _clean_string(value: object) -> str | None:
    if not isinstance(value, str):
        return None
    stripped = value.strip()
    return stripped or None


def _to_int(value: object) -> int | None:
    # bool e subclasse de int, mas nunca e uma contagem valida
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    if isinstance(value, str):
        digits = value.strip().replace(",", "")
        if digits.isdigit():
            return int(digits)
    return None


def _from_epoch_seconds(value: object) -> datetime | None:
    seconds = _to_int(value)
    if seconds is None or seconds <= 0:
        return None
    return datetime.fromtimestamp(seconds, tz=timezone.utc)


def _from_iso(value: object) -> datetime | None:
    text = _clean_string(value)
    if not text:
        return None
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_hashtags(text: str | None) -> list[str]:
    """Hashtags na ordem em que aparecem, duplicadas inclusive."""
    if not text:
        return []
    return HASHTAG_PATTERN.findall(text)


def parse_mentions(text: str | None) -> list[str]:
    if not text:
        return []
    return MENTION_PATTERN.findall(text)


def find_key_recursively(node: Any, key: str) -> Any:
    """Busca em profundidade pela primeira ocorrencia de `key` em dicts/listas aninhados."""
    if isinstance(node, dict):
        if key in node:
            return node[key]
        for value in node.values():
            found = find_key_recursively(value, key)
            if found is not None:
                return found
    elif isinstance(node, list):
        for item in node:
            found = find_key_recursively(item, key)
            if found is not None:
                return found
    return None


def iter_json_scripts(soup: BeautifulSoup, **attrs: str) -> Iterator[Any]:
    """Itera o JSON de cada <script> que casa com `attrs`, ignorando o que nao parseia."""
    for tag in soup.find_all("script", attrs=attrs):
        raw = tag.string or tag.get_text()
        if not raw or not raw.strip():
            continue
        try:
            yield json.loads(raw)
        except (json.JSONDecodeError, ValueError):
            continue


def meta_content(soup: BeautifulSoup, key: str) -> str | None:
    """Conteudo de <meta property=key> ou <meta name=key>."""
    tag = soup.find("meta", attrs={"property": key}) or soup.find("meta", attrs={"name": key})
    if tag is None:
        return None
    return _clean_string(tag.get("content"))


class PlatformScraper(ABC):
    """
    Base dos scrapers: baixa o HTML da pagina publica e delega o parse.

    Toda falha de rede, timeout ou status nao-2xx vira ScrapeFailedError
    com o nome da plataforma na mensagem.
    """

    platform: Platform

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        self._client = client
        self.timeout_seconds = timeout_seconds

    async def scrape(self, url: str) -> ScrapeResult:
        html = await self._fetch_html(url)
        try:
            result = self.parse(url, html)
        except ScrapeFailedError:
            raise
        except Exception as error:
            raise ScrapeFailedError(self.platform, str(error)) from error
        logger.info(
            "scrape.done platform=%s post_id=%s unavailable=%s",
            self.platform,
            result.content.post_id,
            len(result.unavailable_fields),
        )
        return result

    async def _fetch_html(self, url: str) -> str:
        try:
            if self._client is not None:
                response = await self._client.get(url, headers=BROWSER_HEADERS, timeout=self.timeout_seconds)
            else:
                async with httpx.AsyncClient(follow_redirects=True) as client:
                    response = await client.get(url, headers=BROWSER_HEADERS, timeout=self.timeout_seconds)
            response.raise_for_status()
        except httpx.TimeoutException as error:
            timeout = NetworkTimeoutError(url, self.timeout_seconds)
            raise ScrapeFailedError(self.platform, str(timeout)) from error
        except httpx.HTTPStatusError as error:
            status = error.response.status_code
            raise ScrapeFailedError(self.platform, f"HTTP {status}: {error.response.reason_phrase}") from error
        except httpx.HTTPError as error:
            raise ScrapeFailedError(self.platform, str(error) or error.__class__.__name__) from error
        return response.text

    @abstractmethod
    def parse(self, url: str, html: str) -> ScrapeResult:
        """
        Converte o HTML da pagina em um ScrapeResult.

        Args:
            url: URL original, ja classificada para a plataforma
            html: Corpo da resposta

        Returns:
            ScrapeResult com os campos encontrados e a lista dos ausentes

        Raises:
            ScrapeFailedError: Quando nenhuma fonte de dados utilizavel existe
        """

    def _post_id(self, url: str, *candidates: object) -> str:
        for candidate in candidates:
            if isinstance(candidate, (int, float)) and not isinstance(candidate, bool):
                return str(int(candidate))
            text = _clean_string(candidate)
            if text:
                return text
        return extract_post_id(url) or ""
