"""
Tests for continent resolution.
"""

import json
from unittest.mock import AsyncMock, patch
from urllib.parse import parse_qs, urlparse

import pytest

from meetups.continents import (
    CONTAINED_BY_FIELD,
    FORCED_CONTINENTS,
    ContinentResolver,
    Location,
    MaybeString,
    build_query,
    cache_key,
    parse_containing_locations,
    pick_continent,
)
from meetups.exceptions import DecodeError, NotFoundError, TransportError


def freebase_result(*names):
    """Freebase mqlread response for one country contained by `names`."""
    return {
        "result": [{
            "type": "/location/country",
            "iso3166_1_alpha2": "XX",
            CONTAINED_BY_FIELD: [
                {"type": "/location/continent", "name": name} for name in names
            ],
        }]
    }


def locations(*names):
    return [Location(type="/location/continent", name=MaybeString(n)) for n in names]


class TestMaybeString:

    def test_present(self):
        value = MaybeString("Europe")
        assert value.present
        assert str(value) == "Europe"
        assert value.to_json() == "Europe"

    def test_absent_renders_null(self):
        value = MaybeString()
        assert not value.present
        assert str(value) == "null"
        assert value.to_json() is None

    def test_from_json(self):
        assert MaybeString.from_json(None) == MaybeString()
        assert MaybeString.from_json("Asia") == MaybeString("Asia")

    def test_from_json_rejects_non_strings(self):
        with pytest.raises(DecodeError):
            MaybeString.from_json(42)


class TestPickContinent:

    def test_prefers_specific_americas_label(self):
        assert pick_continent(locations("Americas", "South America"), "BR") == "South America"

    def test_single_candidate_unchanged(self):
        assert pick_continent(locations("Europe"), "FR") == "Europe"

    def test_americas_alone_is_kept(self):
        assert pick_continent(locations("Americas"), "CA") == "Americas"

    def test_only_first_two_candidates_inspected(self):
        assert pick_continent(locations("Americas", "Americas", "North America"), "MX") == "Americas"

    def test_non_americas_first_wins(self):
        assert pick_continent(locations("Europe", "Asia"), "TR") == "Europe"

    def test_no_candidates_is_not_found(self):
        with pytest.raises(NotFoundError):
            pick_continent([], "XX")

    def test_absent_name_renders_null(self):
        assert pick_continent(locations(None), "XX") == "null"


class TestParseContainingLocations:

    def test_parses_result(self):
        locs = parse_containing_locations(freebase_result("Americas", "North America"), "CA")
        assert [str(loc.name) for loc in locs] == ["Americas", "North America"]

    def test_no_country_is_not_found(self):
        with pytest.raises(NotFoundError, match="cannot find country with code ZZ"):
            parse_containing_locations({"result": []}, "ZZ")

    def test_missing_containedby_is_empty(self):
        data = {"result": [{"type": "/location/country"}]}
        assert parse_containing_locations(data, "XX") == []

    def test_malformed_result_is_decode_error(self):
        with pytest.raises(DecodeError):
            parse_containing_locations({"result": "nope"}, "XX")


class TestQuery:

    def test_build_query_shape(self):
        assert build_query("FR") == [{
            "type": "/location/country",
            "iso3166_1_alpha2": "FR",
            "/location/location/containedby": [{"type": "/location/continent", "name": None}],
        }]

    def test_query_url_encodes_query_and_key(self, memory_cache):
        resolver = ContinentResolver(cache=memory_cache, api_key="fb-key")
        url = urlparse(resolver.query_url("FR"))
        params = parse_qs(url.query)

        assert url.netloc == "www.googleapis.com"
        assert url.path == "/freebase/v1/mqlread"
        assert params["key"] == ["fb-key"]
        assert json.loads(params["query"][0]) == build_query("FR")

    def test_cache_key_is_lowercased(self):
        assert cache_key("FR") == "cc:fr"


class TestContinentResolver:
    """Tests for ContinentResolver.resolve with HTTP mocked."""

    @pytest.mark.asyncio
    async def test_override_wins_over_cache_and_network(self, memory_cache):
        memory_cache.set("cc:us", "Americas", 3600)
        resolver = ContinentResolver(cache=memory_cache)

        with patch.object(resolver, "get_json", AsyncMock(return_value=freebase_result("Americas"))) as mock_get:
            assert await resolver.resolve("US") == "North America"

        mock_get.assert_not_awaited()

    def test_default_overrides(self, memory_cache):
        resolver = ContinentResolver(cache=memory_cache)
        assert resolver.overrides == FORCED_CONTINENTS
        assert resolver.overrides["RU"] == "Europe, Asia "

    @pytest.mark.asyncio
    async def test_override_is_case_sensitive(self, memory_cache):
        resolver = ContinentResolver(cache=memory_cache)

        with patch.object(resolver, "get_json", AsyncMock(return_value=freebase_result("Americas", "North America"))) as mock_get:
            assert await resolver.resolve("us") == "North America"

        mock_get.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_custom_overrides(self, memory_cache):
        resolver = ContinentResolver(cache=memory_cache, overrides={"AQ": "Antarctica"})

        with patch.object(resolver, "get_json", AsyncMock()) as mock_get:
            assert await resolver.resolve("AQ") == "Antarctica"

        mock_get.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_cache_hit_skips_network(self, memory_cache):
        memory_cache.set("cc:fr", "Europe", 3600)
        resolver = ContinentResolver(cache=memory_cache)

        with patch.object(resolver, "get_json", AsyncMock()) as mock_get:
            assert await resolver.resolve("FR") == "Europe"

        mock_get.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_network_result_is_cached_for_thirty_days(self, memory_cache, clock):
        resolver = ContinentResolver(cache=memory_cache)

        with patch.object(resolver, "get_json", AsyncMock(return_value=freebase_result("Americas", "South America"))) as mock_get:
            assert await resolver.resolve("BR") == "South America"
            assert memory_cache.get("cc:br") == ("South America", True)

            clock.advance(days=29)
            assert await resolver.resolve("BR") == "South America"
            assert mock_get.await_count == 1

            clock.advance(days=1)
            await resolver.resolve("BR")
            assert mock_get.await_count == 2

    @pytest.mark.asyncio
    async def test_null_name_is_a_result(self, memory_cache):
        resolver = ContinentResolver(cache=memory_cache)

        with patch.object(resolver, "get_json", AsyncMock(return_value=freebase_result(None))):
            assert await resolver.resolve("XK") == "null"

    @pytest.mark.asyncio
    async def test_no_continent_is_not_found_and_not_cached(self, memory_cache):
        resolver = ContinentResolver(cache=memory_cache)

        with patch.object(resolver, "get_json", AsyncMock(return_value=freebase_result())):
            with pytest.raises(NotFoundError):
                await resolver.resolve("XX")

        assert memory_cache.get("cc:xx") == (None, False)

    @pytest.mark.asyncio
    async def test_transport_error_propagates(self, memory_cache):
        resolver = ContinentResolver(cache=memory_cache)

        with patch.object(resolver, "get_json", AsyncMock(side_effect=TransportError("get: HTTP 403"))):
            with pytest.raises(TransportError):
                await resolver.resolve("FR")

    @pytest.mark.asyncio
    async def test_empty_country_code_is_not_found(self, memory_cache):
        resolver = ContinentResolver(cache=memory_cache)

        with patch.object(resolver, "get_json", AsyncMock()) as mock_get:
            with pytest.raises(NotFoundError):
                await resolver.resolve("")

        mock_get.assert_not_awaited()
