"""
Shared fixtures: saved pages, a scripted page fetcher and a mock OMDb API.
"""
from datetime import date
from pathlib import Path
import httpx
import pytest

from config import Settings
from database import MovieStore
from errors import FetchError

FIXTURES = Path(__file__).parent / "fixtures"

LISTING_URL = "https://ww.yesmovies.ag/movie/filter/movies/page/1.html"
DUNE_URL = "https://ww.yesmovies.ag/movie/dune-part-two-1630857000.html"

DUNE_OMDB = {
    "Title": "Dune: Part Two",
    "Year": "2024",
    "Released": "01 Mar 2024",
    "Runtime": "166 min",
    "Genre": "Action, Adventure, Drama",
    "Plot": "Paul Atreides unites with the Fremen.",
    "Poster": "https://m.media-amazon.com/images/dune2.jpg",
    "BoxOffice": "$282,144,358",
    "imdbID": "tt0001",
    "Response": "True",
}

NOT_FOUND = {"Response": "False", "Error": "Movie not found!"}


def load_fixture(name: str) -> str:
    return (FIXTURES / name).read_text(encoding="utf-8")


class FakeFetcher:
    """Serves canned HTML by URL and records every request"""

    def __init__(self, pages: dict):
        self.pages = pages
        self.requested = []

    async def fetch(self, url: str) -> str:
        self.requested.append(url)
        if url not in self.pages:
            raise FetchError(f"Navigation to {url} failed: net::ERR_CONNECTION_REFUSED")
        return self.pages[url]


class FakeOmdb:
    """httpx MockTransport handler keyed on the t (and optional y) query params"""

    def __init__(self, responses: dict):
        self.responses = responses
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        params = request.url.params
        key = (params.get("t"), params.get("y"))
        payload = self.responses.get(key, NOT_FOUND)
        return httpx.Response(200, json=payload)


class Clock:
    """Settable stand-in for date.today"""

    def __init__(self, today: date):
        self.today = today

    def __call__(self) -> date:
        return self.today


@pytest.fixture
def clock():
    return Clock(date(2024, 3, 10))


@pytest.fixture
def store(tmp_path, clock):
    movie_store = MovieStore(db_path=str(tmp_path / "movies.db"), clock=clock)
    movie_store.connect()
    yield movie_store
    movie_store.disconnect()


@pytest.fixture
def settings(tmp_path):
    return Settings(omdb_api_key="test-key", data_dir=str(tmp_path / "data"),
                    db_path=str(tmp_path / "movies.db"))
