"""Web search backend: DuckDuckGo HTML results plus page text for each hit"""

import asyncio
import logging
import re
import ssl
from dataclasses import dataclass, field
from html import unescape
from typing import List, Optional
from urllib.parse import quote

import aiohttp
import certifi

from apple_mcp.config import Settings

logger = logging.getLogger(__name__)

SEARCH_URL = "https://html.duckduckgo.com/html/?q={query}"

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/91.0.4472.114 Safari/537.36"
)

DEFAULT_MAX_RESULTS = 3
DEFAULT_FETCH_TIMEOUT = 15.0

_RESULT_BLOCK_RE = re.compile(
    r'<div class="result results_links results_links_deep web-result[^"]*">\s*'
    r'<div class="links_main links_deep result__body">([\s\S]*?)'
    r'<div class="clear"></div>\s*</div>\s*</div>'
)
_TITLE_RE = re.compile(r'<a rel="nofollow" class="result__a" href="[^"]+">([\s\S]*?)</a>')
_URL_RE = re.compile(r'<a rel="nofollow" class="result__a" href="([^"]+)"')
_DISPLAY_URL_RE = re.compile(r'<a class="result__url" href="[^"]+">\s*([^<]+)\s*</a>')
_SNIPPET_RE = re.compile(r'<a class="result__snippet"[^>]*>([\s\S]*?)</a>')

_TAG_RE = re.compile(r"<[^>]+>")
_WHITESPACE_RE = re.compile(r"\s+")

def _element_re(tag: str) -> "re.Pattern[str]":
    return re.compile(rf"<{tag}\b[^<]*(?:(?!</{tag}>)<[^<]*)*</{tag}>", re.IGNORECASE)


_NOISE_RES = [_element_re(tag) for tag in ("script", "style", "header", "footer", "nav", "aside")]
_CONTENT_RES = [_element_re(tag) for tag in ("main", "article", "body")]


@dataclass
class SearchResult:
    title: str
    url: str
    display_url: str
    snippet: str
    content: Optional[str] = None
    error: Optional[str] = None


@dataclass
class SearchResponse:
    query: str
    results: List[SearchResult] = field(default_factory=list)
    error: Optional[str] = None


def decode_entities(text: str) -> str:
    return unescape(text).replace("\xa0", " ")


def clean_html(text: str) -> str:
    """Decode entities, drop tags, trim."""
    return _TAG_RE.sub("", decode_entities(text)).strip()


def extract_results(html: str, max_results: int = DEFAULT_MAX_RESULTS) -> List[SearchResult]:
    """Scrape result blocks from a DuckDuckGo HTML page.

    Blocks missing any of title, url, display url or snippet are skipped.
    """
    results: List[SearchResult] = []
    for block in _RESULT_BLOCK_RE.finditer(html):
        if len(results) >= max_results:
            break
        body = block.group(1)
        title = _TITLE_RE.search(body)
        url = _URL_RE.search(body)
        display_url = _DISPLAY_URL_RE.search(body)
        snippet = _SNIPPET_RE.search(body)
        if not (title and url and display_url and snippet):
            continue
        results.append(
            SearchResult(
                title=clean_html(title.group(1)),
                url=url.group(1),
                display_url=clean_html(display_url.group(1)),
                snippet=clean_html(snippet.group(1)),
            )
        )
    return results


def extract_main_content(html: str) -> str:
    """Readable text of a page: main, else article, else body, else everything."""
    for pattern in _NOISE_RES:
        html = pattern.sub(" ", html)
    section = html
    for pattern in _CONTENT_RES:
        match = pattern.search(html)
        if match:
            section = match.group(0)
            break
    text = _TAG_RE.sub(" ", section)
    text = _WHITESPACE_RE.sub(" ", text).strip()
    return decode_entities(text)


class WebSearchBackend:
    """DuckDuckGo search with page content retrieval"""

    def __init__(
        self,
        user_agent: str = DEFAULT_USER_AGENT,
        fetch_timeout: float = DEFAULT_FETCH_TIMEOUT,
        max_results: int = DEFAULT_MAX_RESULTS,
    ):
        self.user_agent = user_agent
        self.fetch_timeout = fetch_timeout
        self.max_results = max_results
        self._ssl_context = ssl.create_default_context(cafile=certifi.where())

    def _session(self) -> aiohttp.ClientSession:
        return aiohttp.ClientSession(
            headers={"User-Agent": self.user_agent},
            connector=aiohttp.TCPConnector(ssl=self._ssl_context),
        )

    async def _get_text(self, session: aiohttp.ClientSession, url: str, timeout: Optional[float] = None) -> str:
        client_timeout = aiohttp.ClientTimeout(total=timeout) if timeout else None
        async with session.get(url, timeout=client_timeout) as response:
            if response.status != 200:
                raise aiohttp.ClientResponseError(
                    response.request_info,
                    response.history,
                    status=response.status,
                    message=f"Request failed with status code {response.status}",
                )
            return await response.text(errors="replace")

    async def _fill_content(self, session: aiohttp.ClientSession, result: SearchResult) -> None:
        try:
            html = await self._get_text(session, result.url, self.fetch_timeout)
            result.content = extract_main_content(html)
        except asyncio.TimeoutError:
            result.error = f"Timed out after {self.fetch_timeout:.0f} seconds"
            logger.debug("Fetching %s timed out", result.url)
        except aiohttp.ClientError as e:
            result.error = str(e) or type(e).__name__
            logger.debug("Fetching %s failed: %s", result.url, e)

    async def search(self, query: str) -> SearchResponse:
        """Search and fetch the text of each result page.

        Network failures land in ``SearchResponse.error`` (search) or
        ``SearchResult.error`` (per page) instead of raising.
        """
        async with self._session() as session:
            try:
                html = await self._get_text(session, SEARCH_URL.format(query=quote(query)))
            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                logger.warning(f"DuckDuckGo search failed: {e}")
                return SearchResponse(query=query, error=str(e) or type(e).__name__)

            results = extract_results(html, self.max_results)
            if results:
                await asyncio.gather(*(self._fill_content(session, r) for r in results))
        return SearchResponse(query=query, results=results)


async def create(settings: Optional[Settings] = None) -> WebSearchBackend:
    if settings is None:
        return WebSearchBackend()
    return WebSearchBackend(
        user_agent=settings.web_search_user_agent,
        fetch_timeout=settings.web_fetch_timeout,
        max_results=settings.web_max_results,
    )
