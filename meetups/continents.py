"""
Continent Resolver - Map ISO 3166-1 alpha-2 country codes to continent names.

Resolution order:
1. Static override table
2. Cache ("cc:<lowercased code>", 30 days)
3. Freebase MQL read query (country -> containing continent)
"""

import json
import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Any
from urllib.parse import urlencode

import aiohttp

from .cache import Cache
from .exceptions import DecodeError, NotFoundError
from .http import HTTPClient

logger = logging.getLogger(__name__)

DEFAULT_FREEBASE_URL = "https://www.googleapis.com/freebase/v1/mqlread"
CONTINENT_TTL = timedelta(days=30)

COUNTRY_TYPE = "/location/country"
CONTINENT_TYPE = "/location/continent"
COUNTRY_CODE_FIELD = "iso3166_1_alpha2"
CONTAINED_BY_FIELD = "/location/location/containedby"

# Countries the Freebase query does not answer the way we want.
FORCED_CONTINENTS: dict[str, str] = {
    "US": "North America",  # instead of Americas
    "RU": "Europe, Asia ",  # instead of Eurasia
    "NL": "Europe",  # contained by the Kingdom of the Netherlands
    "TR": "Europe, Asia",
}


@dataclass(frozen=True)
class MaybeString:
    """A string that may be absent.

    Absent values serialize to JSON null and render as the literal "null",
    which is what Freebase returns for unnamed locations.
    """
    value: str | None = None

    @property
    def present(self) -> bool:
        return self.value is not None

    def __str__(self) -> str:
        if self.value is None:
            return "null"
        return self.value

    def to_json(self) -> str | None:
        return self.value

    @classmethod
    def from_json(cls, raw: Any) -> "MaybeString":
        if raw is None:
            return cls()
        if not isinstance(raw, str):
            raise DecodeError(f"decode: expected string or null, got {type(raw).__name__}")
        return cls(raw)


ABSENT = MaybeString()


@dataclass
class Location:
    type: str
    name: MaybeString = ABSENT

    def to_json(self) -> dict[str, Any]:
        return {"type": self.type, "name": self.name.to_json()}


def build_query(country_code: str) -> list[dict[str, Any]]:
    """MQL query asking for the continents containing a country."""
    return [{
        "type": COUNTRY_TYPE,
        COUNTRY_CODE_FIELD: country_code,
        CONTAINED_BY_FIELD: [Location(type=CONTINENT_TYPE).to_json()],
    }]


def parse_containing_locations(data: Any, country_code: str) -> list[Location]:
    """
    Extract the containedby locations of the first country in a query result.

    Raises:
        DecodeError: If the result does not mirror the query shape
        NotFoundError: If no country matched the code
    """
    if not isinstance(data, dict):
        raise DecodeError("decode: expected a JSON object")

    results = data.get("result") or []
    if not isinstance(results, list):
        raise DecodeError("decode: result is not a list")
    if not results:
        raise NotFoundError(f"cannot find country with code {country_code}")

    country = results[0]
    if not isinstance(country, dict):
        raise DecodeError("decode: result entry is not an object")

    contained_by = country.get(CONTAINED_BY_FIELD) or []
    if not isinstance(contained_by, list):
        raise DecodeError(f"decode: {CONTAINED_BY_FIELD} is not a list")

    locations = []
    for item in contained_by:
        if not isinstance(item, dict):
            raise DecodeError("decode: location is not an object")
        locations.append(Location(
            type=item.get("type") or "",
            name=MaybeString.from_json(item.get("name")),
        ))
    return locations


def pick_continent(locations: list[Location], country_code: str) -> str:
    """
    Choose the continent name among candidate locations.

    Prefers a specific label such as "North America" over "Americas" when
    the first candidate is "Americas"; only the first two candidates are
    ever inspected.

    Raises:
        NotFoundError: If there are no candidates
    """
    if not locations:
        raise NotFoundError(f"cannot find continent for {country_code}")

    name = str(locations[0].name)
    if name == "Americas" and len(locations) > 1:
        name = str(locations[1].name)
    return name


def cache_key(country_code: str) -> str:
    return "cc:" + country_code.lower()


class ContinentResolver(HTTPClient):
    """Resolves country codes to continents with overrides and caching."""

    def __init__(
        self,
        cache: Cache,
        api_key: str = "",
        api_url: str = DEFAULT_FREEBASE_URL,
        overrides: dict[str, str] | None = None,
        timeout: int = 30,
        user_agent: str | None = None,
        session: aiohttp.ClientSession | None = None,
    ):
        super().__init__(timeout=timeout, user_agent=user_agent, session=session)
        self.cache = cache
        self.api_key = api_key
        self.api_url = api_url
        self.overrides = dict(FORCED_CONTINENTS if overrides is None else overrides)

    def query_url(self, country_code: str) -> str:
        query = json.dumps(build_query(country_code), separators=(",", ":"))
        return f"{self.api_url}?{urlencode({'key': self.api_key, 'query': query})}"

    async def resolve(self, country_code: str) -> str:
        """
        Return the continent containing the country.

        Raises:
            NotFoundError: If the country or its continent is unknown
            TransportError: If Freebase could not be reached
            DecodeError: If the Freebase response is malformed
        """
        if country_code in self.overrides:
            return self.overrides[country_code]

        if not country_code:
            raise NotFoundError("cannot find continent for empty country code")

        key = cache_key(country_code)
        continent, found = self.cache.get(key)
        if found:
            if isinstance(continent, str):
                return continent
            logger.warning(f"ignoring malformed cache entry {key!r}")

        data = await self.get_json(self.query_url(country_code))
        continent = pick_continent(parse_containing_locations(data, country_code), country_code)

        self.cache.set(key, continent, CONTINENT_TTL)
        return continent
