"""
Entry point for the movie watcher.

    python main.py                       # scrape a random listing page (1-5)
    python main.py test                  # force-check the default candidate
    python main.py "<title>" <detail_url>  # force-check a given candidate
"""
import asyncio
import logging
import sys
from pathlib import Path
from typing import List
import httpx

from config import Settings
from database import MovieStore
from metadata import MetadataResolver
from models import Candidate
from pipeline import DEFAULT_FORCE_CANDIDATE, MovieWatcher
from scraper import PageFetcher, WebScraper

# Configure logging
def setup_logging():
    """Setup logging to both file and console"""
    log_dir = Path("logs")
    log_dir.mkdir(exist_ok=True)

    log_file = log_dir / "watcher.log"

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    file_handler = logging.FileHandler(log_file)
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(formatter)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.INFO)
    console_handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    root_logger.addHandler(file_handler)
    root_logger.addHandler(console_handler)

    return root_logger

logger = logging.getLogger(__name__)


def candidate_from_args(args: List[str]) -> Candidate:
    """Force-mode candidate: title and detail URL if both given, else the default"""
    if len(args) >= 2:
        return Candidate(title=args[0], detail_url=args[1])
    return DEFAULT_FORCE_CANDIDATE


async def main(args: List[str]) -> bool:
    """Run one batch (no args) or one forced candidate (any args)"""
    try:
        logger.info("=" * 60)
        logger.info("MOVIE WATCHER - START")
        logger.info("=" * 60)

        settings = Settings.from_env()
        store = MovieStore.from_settings(settings)
        async with PageFetcher(settings.browser_cdp_url, settings.debug_dir) as fetcher, \
                httpx.AsyncClient(timeout=settings.http_timeout) as client:
            with store:
                watcher = MovieWatcher(
                    settings,
                    WebScraper(fetcher, settings),
                    MetadataResolver(client, settings.omdb_api_key, settings.omdb_url),
                    store,
                )
                if args:
                    summary = await watcher.run_single(candidate_from_args(args))
                else:
                    summary = await watcher.run_batch()

        logger.info("=" * 60)
        logger.info(f"RUN COMPLETE: {summary.total} candidates")
        logger.info("=" * 60)
        return True

    except Exception as e:
        logger.error(f"Run aborted: {str(e)}", exc_info=True)
        return False


if __name__ == "__main__":
    setup_logging()
    success = asyncio.run(main(sys.argv[1:]))
    sys.exit(0 if success else 1)
