import logging
import math
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Iterable, Iterator
import requests
from src.errors import GeocodeQueryError
from src.models import GeoCoordinate, NO_TOWN

logger = logging.getLogger(__name__)

NOMINATIM_URL = "https://nominatim.openstreetmap.org/search"


class GeoCache:
    """Append-only town -> coordinate store shared by warm invocations."""

    def __init__(self, seed: dict[str, GeoCoordinate] | None = None):
        self._entries: dict[str, GeoCoordinate] = dict(seed or {})
        self._lock = threading.Lock()

    def get(self, key: str) -> GeoCoordinate | None:
        with self._lock:
            return self._entries.get(key)

    def put(self, key: str, value: GeoCoordinate) -> None:
        with self._lock:
            self._entries[key] = value

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


def normalize_town(town: str | None) -> str:
    return (town or "").strip()


def is_geocodable(town: str) -> bool:
    return bool(town) and town != NO_TOWN


def query_candidates(town: str, country: str) -> Iterator[str]:
    """Yield search queries in the order they should be tried.

    Plain town first, then the town with a country qualifier, then the
    original town with trailing comma segments stripped one at a time.
    """
    yield town
    yield f"{town}, {country}"

    prefix = town
    while "," in prefix:
        prefix = prefix[: prefix.rindex(",")]
        yield prefix


def _parse_match(data) -> GeoCoordinate | None:
    if not isinstance(data, list) or not data or not isinstance(data[0], dict):
        return None
    try:
        lat = float(data[0].get("lat"))
        lon = float(data[0].get("lon"))
    except (TypeError, ValueError):
        return None
    if not (math.isfinite(lat) and math.isfinite(lon)):
        return None
    return GeoCoordinate(lat=lat, lon=lon)


class Geocoder:
    def __init__(
        self,
        cache: GeoCache,
        session: requests.Session | None = None,
        user_agent: str = "PropertyMap/1.0",
        base_url: str = NOMINATIM_URL,
        country: str = "Slovenia",
        chunk_size: int = 5,
        timeout: float = 10,
    ):
        self.cache = cache
        self.base_url = base_url
        self.country = country
        self.chunk_size = max(1, chunk_size)
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update(
            {"User-Agent": user_agent, "Accept": "application/json"}
        )

    def _query(self, query: str):
        started = time.monotonic()
        try:
            resp = self.session.get(
                self.base_url,
                params={"format": "json", "limit": 1, "q": query},
                timeout=self.timeout,
            )
            logger.info(
                f"geocode query={query!r} status={resp.status_code} "
                f"in {(time.monotonic() - started) * 1000:.0f}ms"
            )
            resp.raise_for_status()
            return resp.json()
        except requests.RequestException as e:
            raise GeocodeQueryError(f"Nominatim query {query!r} failed: {e}") from e
        except ValueError as e:
            raise GeocodeQueryError(f"Nominatim returned invalid JSON for {query!r}") from e

    def resolve(self, town_raw: str | None) -> GeoCoordinate:
        town = normalize_town(town_raw)
        if not is_geocodable(town):
            return GeoCoordinate.unresolved()

        cached = self.cache.get(town)
        if cached is not None:
            logger.info(f"geocode cache hit for {town!r}")
            return cached

        result = GeoCoordinate.unresolved()
        try:
            for query in query_candidates(town, self.country):
                match = _parse_match(self._query(query))
                if match is not None:
                    result = match
                    break
        except GeocodeQueryError as e:
            logger.error(f"geocode failed for {town!r}: {e}")

        self.cache.put(town, result)
        logger.info(f"geocode resolved {town!r} => ({result.lat}, {result.lon})")
        return result

    def resolve_many(self, towns: Iterable[str | None]) -> dict[str, GeoCoordinate]:
        unique = []
        seen = set()
        for raw in towns:
            town = normalize_town(raw)
            if is_geocodable(town) and town not in seen:
                seen.add(town)
                unique.append(town)
        logger.info(f"geocoding {len(unique)} unique towns")

        coordinates: dict[str, GeoCoordinate] = {}
        with ThreadPoolExecutor(max_workers=self.chunk_size) as pool:
            for start in range(0, len(unique), self.chunk_size):
                chunk = unique[start : start + self.chunk_size]
                for town, coord in zip(chunk, pool.map(self.resolve, chunk)):
                    coordinates[town] = coord
        return coordinates
