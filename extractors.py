"""
Field extraction from raw listing, detail and ratings pages.

Each function takes page text and returns named fields; none of them touch
the network, so they can be exercised against saved HTML fixtures.
"""
import logging
import re
from typing import List, Optional
from bs4 import BeautifulSoup

from errors import ParseError
from models import Candidate, RatingSample

logger = logging.getLogger(__name__)

# <p> <strong>Release:</strong><a href="https://ww.yesmovies.ag/release/2024.html">2024</a></p>
RELEASE_YEAR_RE = re.compile(r'<strong>Release:</strong> *?<a href=".*?">(\d+)</a>')

# aggregateRating":{"@type":"AggregateRating","ratingCount":83,"bestRating":10,"worstRating":1,"ratingValue":4.6
RATING_RE = re.compile(r'ratingCount":(\d+),.*?ratingValue":([\d.]+)')

RUNTIME_RE = re.compile(r"^\s*(\d+)")


def parse_listing(html: str) -> List[Candidate]:
    """Extract candidates from a listing page, in document order.

    Items missing a title, detail link or thumbnail are dropped.
    """
    soup = BeautifulSoup(html or "", "html.parser")
    candidates: List[Candidate] = []

    for item in soup.select(".ml-item"):
        title_el = item.select_one(".mli-info h2")
        link_el = item.select_one("a.ml-mask")
        thumb_el = item.select_one("img.mli-thumb")

        # Nested markup in the heading keeps its surrounding spaces
        title = title_el.get_text().strip() if title_el else ""
        href = link_el.get("href") if link_el else ""
        img_src = thumb_el.get("data-original") if thumb_el else ""

        if title and href and img_src:
            candidates.append(Candidate(title=title, detail_url=href, thumbnail_url=img_src))

    logger.debug(f"Listing yielded {len(candidates)} candidates")
    return candidates


def parse_release_year(html: str) -> int:
    """Release year from a detail page; ParseError when the anchor is missing"""
    match = RELEASE_YEAR_RE.search(html or "")
    if not match:
        raise ParseError("No Release anchor on detail page")
    return int(match.group(1))


def parse_rating(html: str) -> RatingSample:
    """Vote count and rating value from the embedded aggregateRating blob"""
    match = RATING_RE.search(html or "")
    if not match:
        raise ParseError("No aggregateRating on ratings page")
    return RatingSample(vote_count=int(match.group(1)), rating_value=match.group(2))


def parse_box_office(value: Optional[str]) -> Optional[int]:
    """'$1,234,567' -> 1234567; 'N/A', empty or non-numeric -> None"""
    if value is None:
        return None
    text = str(value).replace("$", "").replace(",", "").strip()
    if not text or text.upper() == "N/A":
        return None
    try:
        return int(text)
    except ValueError:
        return None


def parse_runtime(value: Optional[str]) -> Optional[int]:
    """'148 min' -> 148; missing or without a leading number -> None"""
    if not value:
        return None
    match = RUNTIME_RE.match(str(value))
    return int(match.group(1)) if match else None
