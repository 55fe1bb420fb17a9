"""
Browser-backed scraping of listing, detail and ratings pages using Crawl4AI.
Fetching lives in PageFetcher; field extraction is delegated to extractors.py.
"""
import asyncio
import logging
import os
import subprocess
import sys
from pathlib import Path
from typing import List, Optional
import pandas as pd

# Keep Crawl4AI's cache DB and Playwright browsers inside the project directory
_project_root = Path(__file__).resolve().parent
if not os.getenv("CRAWL4_AI_BASE_DIRECTORY"):
    os.environ["CRAWL4_AI_BASE_DIRECTORY"] = str(_project_root)
if not os.getenv("PLAYWRIGHT_BROWSERS_PATH"):
    os.environ["PLAYWRIGHT_BROWSERS_PATH"] = str(_project_root / ".playwright-browsers")

from crawl4ai import AsyncWebCrawler, BrowserConfig, CacheMode, CrawlerRunConfig
from playwright.async_api import async_playwright

from config import Settings
from errors import FetchError, ParseError
from extractors import parse_listing, parse_rating, parse_release_year
from models import Candidate

logger = logging.getLogger(__name__)


async def _ensure_playwright_chromium() -> None:
    """Install Playwright Chromium if a local browser is needed and missing."""
    try:
        async with async_playwright() as p:
            path = p.chromium.executable_path
        if path and os.path.exists(path):
            return
    except Exception as e:
        logger.debug(f"Playwright Chromium check failed: {e}")
    logger.info("Playwright Chromium not found. Installing (one-time)...")
    try:
        await asyncio.to_thread(
            subprocess.run,
            [sys.executable, "-m", "playwright", "install", "chromium"],
            check=True,
            capture_output=False,
        )
    except (OSError, subprocess.CalledProcessError) as e:
        raise FetchError(f"Playwright Chromium install failed: {e}") from e
    logger.info("Playwright Chromium install completed.")


class PageFetcher:
    """Retrieves rendered HTML through one browser session per run.

    With a CDP URL configured the session attaches to an already running
    browser (e.g. Chrome started with --remote-debugging-port=9222);
    otherwise a headless Playwright Chromium is launched.
    """

    def __init__(self, cdp_url: Optional[str] = None, debug_dir: Optional[str] = None):
        self.cdp_url = cdp_url
        self.debug_dir = Path(debug_dir) if debug_dir else None
        if cdp_url:
            self.browser_config = BrowserConfig(cdp_url=cdp_url, headless=True, verbose=False)
        else:
            self.browser_config = BrowserConfig(enable_stealth=True, headless=True, verbose=False)
        self.run_config = CrawlerRunConfig(cache_mode=CacheMode.BYPASS, wait_until="networkidle")
        self.crawler: Optional[AsyncWebCrawler] = None

    async def __aenter__(self) -> "PageFetcher":
        if not self.cdp_url:
            await _ensure_playwright_chromium()
        self.crawler = AsyncWebCrawler(config=self.browser_config)
        try:
            await self.crawler.start()
        except Exception as e:
            self.crawler = None
            raise FetchError(f"Browser session unavailable: {e}") from e
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if self.crawler is not None:
            await self.crawler.close()
            self.crawler = None

    async def fetch(self, url: str) -> str:
        """Return the rendered HTML of url; raises FetchError on any failure"""
        if self.crawler is None:
            raise FetchError("Browser session is not open")
        try:
            result = await self.crawler.arun(url=url, config=self.run_config)
        except Exception as e:
            raise FetchError(f"Navigation to {url} failed: {e}") from e

        if not result.success or not result.html:
            raise FetchError(f"Navigation to {url} failed: {result.error_message or 'empty page'}")

        if self.debug_dir:
            self._write_debug_copy(result.html)
        return result.html

    def _write_debug_copy(self, html: str) -> None:
        try:
            self.debug_dir.mkdir(parents=True, exist_ok=True)
            (self.debug_dir / "temp.html").write_text(html, encoding="utf-8")
        except OSError as e:
            logger.debug(f"Could not write debug page: {e}")


class WebScraper:
    """Listing, detail-year and ratings scraping on top of a PageFetcher"""

    def __init__(self, fetcher: PageFetcher, settings: Settings):
        self.fetcher = fetcher
        self.settings = settings

    async def scrape_listing(self, url: str) -> List[Candidate]:
        logger.info(f"Reading listing page {url}")
        html = await self.fetcher.fetch(url)
        candidates = parse_listing(html)
        logger.info(f"Found {len(candidates)} candidates on {url}")
        return candidates

    async def scrape_release_year(self, detail_url: str) -> Optional[int]:
        """Best-effort release year from a detail page; None when not shown"""
        html = await self.fetcher.fetch(detail_url)
        try:
            return parse_release_year(html)
        except ParseError:
            logger.warning(f"  No release year found on {detail_url}")
            return None

    async def scrape_rating(self, title: str, year: int, external_id: str) -> Optional[str]:
        """Confident rating text for external_id, or None"""
        url = self.settings.ratings_url(external_id)
        html = await self.fetcher.fetch(url)

        try:
            sample = parse_rating(html)
        except ParseError:
            logger.warning(f"  No rating found for {title} ({year}) at {url}")
            return None

        logger.info(f"  IMDb rating: {sample.rating_value} from {sample.vote_count} votes")
        rating = sample.confident_value(self.settings.min_rating_votes)
        if rating is None:
            logger.warning(
                f"  Zeroing {title} ({year}) rating: fewer than {self.settings.min_rating_votes} votes"
            )
        return rating

    def export_candidates(self, candidates: List[Candidate], output_dir: Optional[str] = None) -> Path:
        """Write the parsed candidate list to movies.json"""
        out_dir = Path(output_dir or self.settings.data_dir)
        out_dir.mkdir(parents=True, exist_ok=True)
        file_path = out_dir / "movies.json"

        df = pd.DataFrame([c.model_dump() for c in candidates], columns=list(Candidate.model_fields))
        df.to_json(file_path, orient="records", indent=2)
        logger.info(f"Exported {len(df)} candidates to {file_path}")
        return file_path
