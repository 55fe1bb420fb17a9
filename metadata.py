"""
OMDb metadata lookups by title and year.
"""
import logging
from datetime import date, datetime
from typing import Optional
import httpx

from errors import FetchError, NotFoundError
from extractors import parse_box_office, parse_runtime
from models import MovieMetadata

logger = logging.getLogger(__name__)

OMDB_DATE_FORMAT = "%d %b %Y"


def _clean(value) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    if not text or text.upper() == "N/A":
        return None
    return text


def parse_release_date(value: Optional[str]) -> Optional[date]:
    """'01 Mar 2024' -> date(2024, 3, 1); anything else -> None"""
    text = _clean(value)
    if not text:
        return None
    try:
        return datetime.strptime(text, OMDB_DATE_FORMAT).date()
    except ValueError:
        logger.debug(f"Unparseable release date {text!r}")
        return None


def metadata_from_payload(payload: dict) -> MovieMetadata:
    """Map an OMDb success envelope onto MovieMetadata"""
    return MovieMetadata(
        external_id=_clean(payload.get("imdbID")),
        release_date=parse_release_date(payload.get("Released")),
        genre=_clean(payload.get("Genre")),
        plot=_clean(payload.get("Plot")),
        poster=_clean(payload.get("Poster")),
        box_office=parse_box_office(payload.get("BoxOffice")),
        runtime_minutes=parse_runtime(_clean(payload.get("Runtime"))),
    )


class MetadataResolver:
    """Queries OMDb for canonical movie fields"""

    def __init__(self, client: httpx.AsyncClient, api_key: str, base_url: str):
        self.client = client
        self.api_key = api_key
        self.base_url = base_url
        if not self.api_key:
            logger.warning("OMDB_API_KEY not set. Metadata lookups will fail.")

    async def _query(self, title: str, year: Optional[int]) -> Optional[dict]:
        """One OMDb request; returns the payload only when Response is 'True'"""
        params = {"t": title, "apikey": self.api_key}
        if year:
            params["y"] = str(year)

        try:
            response = await self.client.get(self.base_url, params=params)
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPError as e:
            raise FetchError(f"OMDb request failed for {title!r}: {e}") from e
        except ValueError as e:
            raise FetchError(f"OMDb returned non-JSON for {title!r}") from e

        if not isinstance(payload, dict) or payload.get("Response") != "True":
            reason = payload.get("Error") if isinstance(payload, dict) else None
            logger.debug(f"OMDb miss for {title!r} (year={year}): {reason}")
            return None
        return payload

    async def resolve(self, title: str, year: Optional[int]) -> MovieMetadata:
        """Look up by title and year, retrying once without the year.

        Raises NotFoundError when neither attempt matches.
        """
        payload = await self._query(title, year)
        if payload is None and year:
            logger.info(f"  Second OMDb try without year for {title}")
            payload = await self._query(title, None)
        if payload is None:
            raise NotFoundError(f"No OMDb results found for {title} ({year})")

        metadata = metadata_from_payload(payload)
        logger.info(
            f"  OMDb data: genre: {metadata.genre}, imdbID: {metadata.external_id}, "
            f"boxOffice: {metadata.box_office}, runtime: {metadata.runtime_minutes}"
        )
        if not metadata.external_id:
            logger.warning(f"  Missing imdbID for {title} ({year}); upstream data looks unreliable")
        return metadata
