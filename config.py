"""
Runtime settings loaded from the environment (and .env via python-dotenv).
"""
import os
from pathlib import Path
from typing import Optional
from dotenv import load_dotenv
from pydantic import BaseModel, Field

load_dotenv()

DEFAULT_LISTING_URL = "https://ww.yesmovies.ag/movie/filter/movies/page/{page}.html"
DEFAULT_RATINGS_URL = "https://www.imdb.com/title/{external_id}/"
DEFAULT_OMDB_URL = "http://www.omdbapi.com/"


def _env_int(name: str, default: int) -> int:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


class Settings(BaseModel):
    """Pipeline settings"""
    omdb_api_key: str = Field("", description="OMDb API key")
    omdb_url: str = Field(DEFAULT_OMDB_URL, description="OMDb endpoint")
    listing_url_template: str = Field(DEFAULT_LISTING_URL, description="Listing page URL with {page}")
    listing_pages: int = Field(5, ge=1, description="Highest listing page index to sample")
    ratings_url_template: str = Field(DEFAULT_RATINGS_URL, description="Ratings page URL with {external_id}")
    browser_cdp_url: Optional[str] = Field(None, description="Remote browser DevTools URL")
    http_timeout: float = Field(30.0, description="OMDb request timeout in seconds")
    freshness_days: int = Field(3, ge=0, description="Skip titles updated fewer days ago than this")
    min_rating_votes: int = Field(1000, ge=0, description="Vote count below which a rating is zeroed")
    db_backend: str = Field("sqlite", description="sqlite or snowflake")
    db_path: str = Field("data/movies.db", description="SQLite database file")
    debug_dir: Optional[str] = Field(None, description="Where the last fetched page is written")
    data_dir: str = Field("data", description="Where the candidate list is exported")

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from environment variables"""
        return cls(
            omdb_api_key=(os.getenv("OMDB_API_KEY") or "").strip(),
            omdb_url=os.getenv("OMDB_URL", DEFAULT_OMDB_URL),
            listing_url_template=os.getenv("LISTING_URL_TEMPLATE", DEFAULT_LISTING_URL),
            listing_pages=_env_int("LISTING_PAGES", 5),
            ratings_url_template=os.getenv("RATINGS_URL_TEMPLATE", DEFAULT_RATINGS_URL),
            browser_cdp_url=os.getenv("BROWSER_CDP_URL") or None,
            http_timeout=_env_float("HTTP_TIMEOUT", 30.0),
            freshness_days=_env_int("FRESHNESS_DAYS", 3),
            min_rating_votes=_env_int("MIN_RATING_VOTES", 1000),
            db_backend=(os.getenv("MOVIES_DB_BACKEND") or "sqlite").strip().lower(),
            db_path=os.getenv("MOVIES_DB_PATH", "data/movies.db"),
            debug_dir=os.getenv("WATCHER_DEBUG_DIR") or None,
            data_dir=os.getenv("WATCHER_DATA_DIR", "data"),
        )

    def listing_url(self, page: int) -> str:
        return self.listing_url_template.format(page=page)

    def ratings_url(self, external_id: str) -> str:
        return self.ratings_url_template.format(external_id=external_id)

    @property
    def data_path(self) -> Path:
        return Path(self.data_dir)
