from datetime import datetime, timezone
from typing import Iterable, Mapping
from src.geocoder import normalize_town
from src.models import EnrichedListing, GeoCoordinate, Listing

_UNRESOLVED = GeoCoordinate.unresolved()


def assemble(
    listings: Iterable[Listing], coordinates: Mapping[str, GeoCoordinate]
) -> list[EnrichedListing]:
    """Pair each listing with the coordinate of its trimmed town."""
    enriched = []
    for listing in listings:
        coord = coordinates.get(normalize_town(listing.town), _UNRESOLVED)
        enriched.append(
            EnrichedListing(listing=listing, latitude=coord.lat, longitude=coord.lon)
        )
    return enriched


def attach_coordinates(
    records: Iterable[dict], coordinates: Mapping[str, GeoCoordinate]
) -> list[dict]:
    """Same merge as assemble() for loose JSON records; inputs are copied."""
    out = []
    for record in records:
        town = record.get("town") if isinstance(record, dict) else None
        coord = coordinates.get(
            normalize_town(town if isinstance(town, str) else None), _UNRESOLVED
        )
        merged = dict(record) if isinstance(record, dict) else {}
        merged["latitude"] = coord.lat
        merged["longitude"] = coord.lon
        out.append(merged)
    return out


def success_envelope(properties: list[dict], source: str | None = None) -> dict:
    return {
        "success": True,
        "properties": properties,
        "count": len(properties),
        "scrapedAt": datetime.now(timezone.utc).isoformat(),
        "source": source,
    }


def failure_envelope(message: str, error: str | None = None) -> dict:
    return {
        "success": False,
        "error": error or message,
        "message": message,
        "properties": [],
    }
