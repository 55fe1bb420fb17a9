"""
Tests for the OMDb metadata resolver
"""
import pytest
from datetime import date
import httpx

from conftest import DUNE_OMDB, FakeOmdb
from errors import FetchError, NotFoundError
from metadata import MetadataResolver, metadata_from_payload, parse_release_date

OMDB_URL = "http://www.omdbapi.com/"


def make_resolver(handler) -> MetadataResolver:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return MetadataResolver(client, "test-key", OMDB_URL)


class TestResolve:
    @pytest.mark.asyncio
    async def test_found_with_year(self):
        omdb = FakeOmdb({("Dune: Part Two", "2024"): DUNE_OMDB})
        resolver = make_resolver(omdb)

        metadata = await resolver.resolve("Dune: Part Two", 2024)

        assert metadata.external_id == "tt0001"
        assert metadata.release_date == date(2024, 3, 1)
        assert metadata.runtime_minutes == 166
        assert metadata.box_office == 282144358
        assert len(omdb.requests) == 1
        assert omdb.requests[0].url.params["apikey"] == "test-key"

    @pytest.mark.asyncio
    async def test_retries_without_year(self):
        omdb = FakeOmdb({("Dune: Part Two", None): DUNE_OMDB})
        resolver = make_resolver(omdb)

        metadata = await resolver.resolve("Dune: Part Two", 2023)

        assert metadata.external_id == "tt0001"
        assert len(omdb.requests) == 2
        assert omdb.requests[0].url.params["y"] == "2023"
        assert "y" not in omdb.requests[1].url.params

    @pytest.mark.asyncio
    async def test_not_found_after_retry(self):
        omdb = FakeOmdb({})
        resolver = make_resolver(omdb)

        with pytest.raises(NotFoundError):
            await resolver.resolve("Nonexistent Film", 2024)
        assert len(omdb.requests) == 2

    @pytest.mark.asyncio
    async def test_missing_imdb_id_still_returns(self, caplog):
        payload = dict(DUNE_OMDB)
        del payload["imdbID"]
        resolver = make_resolver(FakeOmdb({("Dune: Part Two", "2024"): payload}))

        metadata = await resolver.resolve("Dune: Part Two", 2024)

        assert metadata.external_id is None
        assert "Missing imdbID" in caplog.text

    @pytest.mark.asyncio
    async def test_http_error_is_fetch_error(self):
        resolver = make_resolver(lambda request: httpx.Response(503, text="Service Unavailable"))
        with pytest.raises(FetchError):
            await resolver.resolve("Dune: Part Two", 2024)

    @pytest.mark.asyncio
    async def test_transport_error_is_fetch_error(self):
        def refuse(request):
            raise httpx.ConnectError("Connection refused", request=request)

        resolver = make_resolver(refuse)
        with pytest.raises(FetchError):
            await resolver.resolve("Dune: Part Two", 2024)


class TestPayloadMapping:
    def test_not_available_fields(self):
        payload = dict(DUNE_OMDB, BoxOffice="N/A", Runtime="N/A", Released="N/A", Plot="N/A")
        metadata = metadata_from_payload(payload)
        assert metadata.box_office is None
        assert metadata.runtime_minutes is None
        assert metadata.release_date is None
        assert metadata.plot is None

    def test_absent_fields(self):
        metadata = metadata_from_payload({"imdbID": "tt0001", "Response": "True"})
        assert metadata.box_office is None
        assert metadata.runtime_minutes is None
        assert metadata.genre is None

    def test_release_date_formats(self):
        assert parse_release_date("15 Nov 2019") == date(2019, 11, 15)
        assert parse_release_date("2019") is None
        assert parse_release_date(None) is None
