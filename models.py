"""
Pydantic models for candidates, source payloads and the persisted movie record.
"""
from datetime import date
from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field


class WatchStatus(str, Enum):
    """Stored codes for the watch_status column"""
    NONE = ""
    WANT = "w"
    SEEN = "s"
    DISMISSED = "d"


class UpsertOutcome(str, Enum):
    INSERTED = "inserted"
    UPDATED = "updated"


# Field -> value used when a source omits or garbles it.
# "year" is resolved lazily because it depends on the current date.
FIELD_DEFAULTS = {
    "year": lambda: date.today().year,
    "rating": "0",
    "runtime_minutes": 100,
    "box_office": 0,
    "genre": "",
    "plot": "",
    "poster": "",
    "release_date": None,
}


def default_for(field_name: str):
    value = FIELD_DEFAULTS[field_name]
    return value() if callable(value) else value


# ============ Source Models ============

class Candidate(BaseModel):
    """Movie stub scraped from a listing page"""
    title: str = Field(..., min_length=1, description="Display title from the listing")
    detail_url: str = Field(..., min_length=1, description="Detail page URL")
    thumbnail_url: str = Field("", description="Lazy-loaded thumbnail URL")


class MovieMetadata(BaseModel):
    """Fields pulled from the OMDb response; None means absent or unparseable"""
    external_id: Optional[str] = Field(None, description="IMDb ID (imdbID)")
    release_date: Optional[date] = Field(None, description="Released")
    genre: Optional[str] = Field(None, description="Genre, comma separated")
    plot: Optional[str] = Field(None, description="Plot")
    poster: Optional[str] = Field(None, description="Poster URL")
    box_office: Optional[int] = Field(None, description="BoxOffice in whole dollars")
    runtime_minutes: Optional[int] = Field(None, description="Runtime in minutes")


class RatingSample(BaseModel):
    """Rating and vote count read from the ratings page"""
    vote_count: int = Field(0, ge=0, description="ratingCount")
    rating_value: Optional[str] = Field(None, description="ratingValue as text")

    def confident_value(self, min_votes: int) -> Optional[str]:
        """Rating text, or None when absent or backed by too few votes"""
        if not self.rating_value or self.vote_count < min_votes:
            return None
        return self.rating_value


# ============ Persisted Model ============

class MovieRecord(BaseModel):
    """Maps to the movies table"""
    title: str = Field(..., min_length=1, description="Title as listed")
    external_id: str = Field(..., min_length=1, description="IMDb ID, unique")
    release_date: Optional[date] = Field(None, description="Release date")
    genre: str = Field("", description="Lower-cased genre list")
    rating: str = Field("0", pattern=r"^\d+(\.\d+)?$", description="Rating, '0' when not confident")
    plot: str = Field("", description="Plot summary")
    poster: str = Field("", description="Poster URL")
    source_url: str = Field("", description="Listing detail page URL")
    watch_status: WatchStatus = Field(WatchStatus.NONE, description="Set by the browsing layer only")
    box_office: int = Field(0, ge=0, description="Box office, 0 when unknown")
    runtime_minutes: int = Field(100, ge=0, description="Runtime, 100 when unknown")
    created_at: Optional[date] = Field(None, description="First insert date")
    updated_at: Optional[date] = Field(None, description="Last write date")

    @property
    def stored_genre(self) -> str:
        """Genre as written to the table: lower-cased and space padded for LIKE filters"""
        genre = self.genre.strip().lower()
        return f" {genre} " if genre else ""


# ============ Run Models ============

class RunSummary(BaseModel):
    """Outcome counters for one batch run"""
    new: int = 0
    updated: int = 0
    skipped: int = 0
    errored: int = 0

    def record(self, outcome: UpsertOutcome) -> None:
        if outcome is UpsertOutcome.INSERTED:
            self.new += 1
        else:
            self.updated += 1

    @property
    def total(self) -> int:
        return self.new + self.updated + self.skipped + self.errored
