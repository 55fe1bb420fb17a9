"""
Batch orchestration: gate, resolve, fuse and persist each listing candidate.
"""
import logging
import random
from typing import Iterable, Optional

from config import Settings
from database import MovieStore
from errors import NotFoundError
from metadata import MetadataResolver
from models import Candidate, MovieMetadata, MovieRecord, RunSummary, default_for
from scraper import WebScraper

logger = logging.getLogger(__name__)

# Used by force mode when no candidate is given on the command line
DEFAULT_FORCE_CANDIDATE = Candidate(
    title="Lee",
    detail_url="https://ww.yesmovies.ag/movie/lee-1630857643.html",
)


def fuse_record(candidate: Candidate, metadata: MovieMetadata, rating: Optional[str]) -> MovieRecord:
    """Combine listing, metadata and rating into one record, filling gaps from FIELD_DEFAULTS.

    Callers check metadata.external_id first; MovieRecord rejects an empty one.
    """
    def pick(field_name: str, value):
        return default_for(field_name) if value is None else value

    return MovieRecord(
        title=candidate.title,
        external_id=metadata.external_id,
        release_date=pick("release_date", metadata.release_date),
        genre=pick("genre", metadata.genre),
        rating=pick("rating", rating),
        plot=pick("plot", metadata.plot),
        poster=pick("poster", metadata.poster),
        source_url=candidate.detail_url,
        box_office=pick("box_office", metadata.box_office),
        runtime_minutes=pick("runtime_minutes", metadata.runtime_minutes),
    )


class MovieWatcher:
    """Runs one ingestion pass over a list of candidates"""

    def __init__(self, settings: Settings, scraper: WebScraper, resolver: MetadataResolver,
                 store: MovieStore):
        self.settings = settings
        self.scraper = scraper
        self.resolver = resolver
        self.store = store

    def should_skip(self, title: str, force: bool = False) -> bool:
        """True when title was written fewer than freshness_days ago and force is off"""
        if force:
            return False
        days_since = self.store.days_since_update(title)
        logger.info(f"  daysSince = {days_since}")
        return days_since is not None and days_since < self.settings.freshness_days

    async def process_candidate(self, candidate: Candidate, summary: RunSummary,
                                force: bool = False) -> None:
        """Gate, resolve, fuse and persist one candidate; errors propagate to the caller"""
        if self.should_skip(candidate.title, force):
            logger.info(f"  Skipping {candidate.title} as it has been updated recently.")
            summary.skipped += 1
            return

        year = await self.scraper.scrape_release_year(candidate.detail_url)
        if year is None:
            year = default_for("year")

        metadata = await self.resolver.resolve(candidate.title, year)
        if not metadata.external_id:
            raise NotFoundError(f"OMDb returned no imdbID for {candidate.title} ({year})")

        rating = await self.scraper.scrape_rating(candidate.title, year, metadata.external_id)

        record = fuse_record(candidate, metadata, rating)
        outcome = self.store.upsert(record)
        summary.record(outcome)

    async def check_movies(self, candidates: Iterable[Candidate], force: bool = False) -> RunSummary:
        """Process candidates one at a time; a failure only costs that candidate"""
        summary = RunSummary()
        for index, candidate in enumerate(candidates):
            logger.info(f"Movie: {index}, Title: {candidate.title}, Href: {candidate.detail_url}")
            try:
                await self.process_candidate(candidate, summary, force=force)
            except Exception as e:
                logger.error(f"Error looking up movie {candidate.title}: {str(e)}", exc_info=True)
                summary.errored += 1

        self.log_summary(summary)
        return summary

    async def run_batch(self, page: Optional[int] = None) -> RunSummary:
        """Scrape one listing page and ingest every candidate on it.

        A listing fetch failure propagates and aborts the run.
        """
        page = page or random.randint(1, self.settings.listing_pages)
        url = self.settings.listing_url(page)
        candidates = await self.scraper.scrape_listing(url)
        self.scraper.export_candidates(candidates)
        return await self.check_movies(candidates)

    async def run_single(self, candidate: Candidate) -> RunSummary:
        """Force-mode check of one candidate, bypassing the listing and freshness gate"""
        return await self.check_movies([candidate], force=True)

    @staticmethod
    def log_summary(summary: RunSummary) -> None:
        logger.info(f"New movies: {summary.new}")
        logger.info(f"Errors: {summary.errored}")
        logger.info(f"Skipped: {summary.skipped}")
        logger.info(f"Updated: {summary.updated}")
