"""Same-host breadth-first crawler built on httpx and BeautifulSoup."""

from __future__ import annotations

import logging
from collections import deque
from urllib.parse import urldefrag, urljoin, urlparse

import httpx
from bs4 import BeautifulSoup

from src.deadline import Deadline
from src.errors import CrawlError
from src.ingestion.models import RawDocument

logger = logging.getLogger(__name__)

USER_AGENT = "site-support-bot/0.1 (+crawler)"


def _normalize_url(url: str) -> str:
    """Drop the fragment so ``/page#a`` and ``/page#b`` count as one page."""
    return urldefrag(url)[0]


def _is_text_content(content_type: str) -> bool:
    content_type = content_type.lower()
    return content_type.startswith("text/") or "html" in content_type


def extract_links(html: str, base_url: str) -> list[str]:
    """Return absolute http(s) links found in *html*, in document order."""
    soup = BeautifulSoup(html, "html.parser")
    links: list[str] = []
    for anchor in soup.find_all("a", href=True):
        href = anchor["href"].strip()
        if not href or href.startswith(("mailto:", "javascript:", "tel:")):
            continue
        absolute = _normalize_url(urljoin(base_url, href))
        if urlparse(absolute).scheme in ("http", "https"):
            links.append(absolute)
    return links


def _extract_title(html: str) -> str | None:
    soup = BeautifulSoup(html, "html.parser")
    if soup.title and soup.title.string:
        return soup.title.string.strip()
    return None


class Crawler:
    """Fetch every page reachable from a seed URL within a hop bound.

    Links are only followed when they stay on the seed's host, taken after
    any redirect of the seed itself. Each URL is fetched at most once per
    :meth:`crawl` call, so cyclic link graphs terminate.

    Args:
        client: httpx client to fetch with. One is created when omitted and
            released by :meth:`close`; a client passed in stays the caller's.
        timeout: Per-request timeout in seconds.
    """

    def __init__(self, client: httpx.Client | None = None, timeout: float = 10.0) -> None:
        self._owns_client = client is None
        self._client = client or httpx.Client(
            follow_redirects=True,
            headers={"User-Agent": USER_AGENT},
        )
        self._timeout = timeout

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> Crawler:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _fetch(self, url: str, deadline: Deadline | None) -> httpx.Response:
        timeout = deadline.timeout_for("crawl", self._timeout) if deadline else self._timeout
        response = self._client.get(url, timeout=timeout)
        response.raise_for_status()
        return response

    def crawl(
        self,
        seed_url: str,
        max_depth: int,
        deadline: Deadline | None = None,
    ) -> list[RawDocument]:
        """Breadth-first crawl from *seed_url*.

        Args:
            seed_url: Page to start from; also fixes the allowed host.
            max_depth: Maximum number of link hops away from the seed.
            deadline: Optional request budget checked before every fetch.

        Returns:
            Fetched pages in visit order.

        Raises:
            CrawlError: If the seed URL itself cannot be fetched.
        """
        seed = _normalize_url(seed_url)
        host = urlparse(seed).netloc
        if not host:
            raise CrawlError(f"Invalid seed URL: {seed_url!r}")

        visited: set[str] = {seed}
        frontier: deque[tuple[str, int]] = deque([(seed, 0)])
        documents: list[RawDocument] = []

        while frontier:
            url, depth = frontier.popleft()
            try:
                response = self._fetch(url, deadline)
            except httpx.HTTPError as exc:
                if url == seed:
                    raise CrawlError(f"Seed URL unreachable: {seed_url} ({exc})") from exc
                logger.warning("Skipping %s: %s", url, exc)
                continue

            if url == seed:
                # Links are scoped to wherever the seed redirected to.
                final_url = _normalize_url(str(response.url))
                host = urlparse(final_url).netloc or host
                visited.add(final_url)

            content_type = response.headers.get("content-type", "")
            if not _is_text_content(content_type):
                logger.warning("Skipping %s: non-text content type %r", url, content_type)
                continue

            html = response.text
            documents.append(RawDocument(url=url, html=html, title=_extract_title(html)))

            if depth >= max_depth or "html" not in content_type.lower():
                continue
            for link in extract_links(html, str(response.url)):
                if urlparse(link).netloc != host or link in visited:
                    continue
                visited.add(link)
                frontier.append((link, depth + 1))

        logger.info("Crawled %d pages from %s", len(documents), seed)
        return documents
