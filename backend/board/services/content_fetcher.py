"""Webpage content fetching for opportunity links.

Two fetchers share the same ``fetch(url) -> str`` interface:

- ``HttpContentFetcher`` downloads the page with httpx and strips it to text
  with BeautifulSoup. Fast, works for most job boards.
- ``BrowserContentFetcher`` renders the page in headless Chromium (Patchright)
  and returns the body's visible text. Needed for JS-heavy applicant trackers.

Both raise on transport failures (DNS, timeouts, refused connections). HTTP
error pages are returned as text, the same way a browser would show them, so
that "404" and "no longer available" pages can be detected by the caller.
"""

import logging
import re
from contextlib import asynccontextmanager
from functools import lru_cache
from typing import Protocol

import httpx
from bs4 import BeautifulSoup

from board.config import get_settings

logger = logging.getLogger(__name__)

USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/121.0.0.0 Safari/537.36"

_WHITESPACE = re.compile(r"\s+")


class ContentFetcher(Protocol):
    async def fetch(self, url: str) -> str: ...


def html_to_text(html: str) -> str:
    """Extract readable text from an HTML document."""
    soup = BeautifulSoup(html, "lxml")
    for element in soup(["script", "style", "noscript", "template", "svg"]):
        element.decompose()
    text = soup.get_text(" ", strip=True)
    return _WHITESPACE.sub(" ", text).strip()


class HttpContentFetcher:
    """Plain HTTP fetcher."""

    def __init__(self, timeout: int = 30, transport: httpx.AsyncBaseTransport | None = None):
        self.timeout = timeout
        self.transport = transport

    async def fetch(self, url: str) -> str:
        logger.info(f"Fetching page content: {url}")
        async with httpx.AsyncClient(
            timeout=self.timeout,
            follow_redirects=True,
            headers={"User-Agent": USER_AGENT},
            transport=self.transport,
        ) as client:
            resp = await client.get(url)

        if resp.status_code >= 400:
            logger.info(f"Page returned HTTP {resp.status_code}: {url}")

        if "html" not in resp.headers.get("content-type", "html"):
            return resp.text.strip()
        return html_to_text(resp.text)


BROWSER_LAUNCH_ARGS = [
    "--disable-blink-features=AutomationControlled",
    "--no-sandbox",
    "--disable-dev-shm-usage",
    "--disable-infobars",
    "--disable-extensions",
    "--no-first-run",
    "--window-size=1920,1080",
]

BROWSER_CONTEXT_OPTIONS = {
    "viewport": {"width": 1920, "height": 1080},
    "locale": "en-US",
    "user_agent": USER_AGENT,
    "accept_downloads": False,
}


@asynccontextmanager
async def get_browser(headless: bool = True):
    """Context manager for a headless Chromium session."""
    from patchright.async_api import async_playwright

    playwright = await async_playwright().start()
    browser = None
    try:
        browser = await playwright.chromium.launch(headless=headless, args=BROWSER_LAUNCH_ARGS)
        yield browser
    finally:
        if browser:
            await browser.close()
        await playwright.stop()


class BrowserContentFetcher:
    """Renders the page before reading it."""

    def __init__(self, timeout: int = 30):
        self.timeout = timeout

    async def fetch(self, url: str) -> str:
        logger.info(f"Rendering page content: {url}")
        async with get_browser() as browser:
            context = await browser.new_context(**BROWSER_CONTEXT_OPTIONS)
            try:
                page = await context.new_page()
                page.set_default_timeout(self.timeout * 1000)
                await page.goto(url, wait_until="domcontentloaded")
                text = await page.inner_text("body")
            finally:
                await context.close()
        return _WHITESPACE.sub(" ", text).strip()


@lru_cache
def get_content_fetcher() -> ContentFetcher:
    settings = get_settings()
    if settings.content_fetcher == "browser":
        return BrowserContentFetcher(timeout=settings.fetch_timeout)
    return HttpContentFetcher(timeout=settings.fetch_timeout)
