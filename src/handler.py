import base64
import html
import json
import logging
import uuid
import boto3
from src.assembler import assemble, attach_coordinates, failure_envelope, success_envelope
from src.browser import build_browser_provider
from src.config import GEOCODE_CONFIG, MAP_CONFIG, SCRAPE_CONFIG
from src.errors import InputValidationError, ScrapeError
from src.geocoder import GeoCache, Geocoder
from src.map_renderer import render_map_html
from src.scrapers.nepremicnine import NepremicnineScraper

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "Content-Type",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
}

# Lives as long as the warm instance; shared by every invocation it serves.
GEO_CACHE = GeoCache()


def _response(status: int, body, content_type: str = "application/json") -> dict:
    if not isinstance(body, str):
        body = json.dumps(body)
    return {
        "statusCode": status,
        "headers": {**CORS_HEADERS, "Content-Type": content_type},
        "body": body,
    }


def _request_id(context) -> str:
    return getattr(context, "aws_request_id", None) or uuid.uuid4().hex[:12]


def _param_enabled(value: str | None, default: bool = True) -> bool:
    if value is None or value == "":
        return default
    return value.strip().lower() not in ("0", "false", "no", "off")


def get_browser_endpoint() -> str:
    """Remote browser endpoint from the environment, else from Secrets Manager."""
    if SCRAPE_CONFIG["browser_ws_endpoint"]:
        return SCRAPE_CONFIG["browser_ws_endpoint"]
    if not SCRAPE_CONFIG["browser_secret_id"]:
        return ""

    client = boto3.client("secretsmanager")
    resp = client.get_secret_value(SecretId=SCRAPE_CONFIG["browser_secret_id"])
    return json.loads(resp["SecretString"])["ws_endpoint"]


def build_geocoder() -> Geocoder:
    return Geocoder(
        cache=GEO_CACHE,
        user_agent=GEOCODE_CONFIG["user_agent"],
        base_url=GEOCODE_CONFIG["nominatim_url"],
        country=GEOCODE_CONFIG["country"],
        chunk_size=GEOCODE_CONFIG["chunk_size"],
        timeout=GEOCODE_CONFIG["timeout"],
    )


def resolve_target_url(params: dict, required: bool | None = None) -> str:
    url = (params.get("url") or "").strip()
    if url:
        return url
    if required is None:
        required = SCRAPE_CONFIG["require_url"]
    if required:
        raise InputValidationError("Missing required query parameter: url")
    return SCRAPE_CONFIG["default_listings_url"]


def scrape_properties(url: str, geocode: bool = True) -> list[dict]:
    provider = build_browser_provider(
        executable_path=SCRAPE_CONFIG["chrome_executable_path"],
        ws_endpoint=get_browser_endpoint(),
        connect_timeout_ms=SCRAPE_CONFIG["connect_timeout_ms"],
    )
    scraper = NepremicnineScraper(
        provider,
        navigation_timeout_ms=SCRAPE_CONFIG["navigation_timeout_ms"],
        content_timeout_ms=SCRAPE_CONFIG["content_timeout_ms"],
        block_trackers=SCRAPE_CONFIG["block_trackers"],
    )
    listings = scraper.scrape(url)
    if not geocode:
        return [listing.to_dict() for listing in listings]

    coordinates = build_geocoder().resolve_many(listing.town for listing in listings)
    return [enriched.to_dict() for enriched in assemble(listings, coordinates)]


def lambda_handler(event, context):
    """Listing fetch endpoint. Failures are reported in-body with status 200."""
    req_id = _request_id(context)
    method = event.get("httpMethod", "GET")
    if method == "OPTIONS":
        return _response(200, "")

    params = event.get("queryStringParameters") or {}
    try:
        url = resolve_target_url(params)
    except InputValidationError as e:
        logger.warning(f"[req:{req_id}] {e}")
        return _response(200, failure_envelope(str(e)))

    logger.info(f"[req:{req_id}] Property scrape starting url={url}")
    try:
        properties = scrape_properties(url, geocode=_param_enabled(params.get("geocode")))
    except ScrapeError as e:
        logger.error(f"[req:{req_id}] {e.error_code}: {e}")
        return _response(200, failure_envelope("Failed to scrape properties", str(e)))
    except Exception as e:
        logger.exception(f"[req:{req_id}] Unexpected scrape failure")
        return _response(200, failure_envelope("Failed to scrape properties", str(e)))

    logger.info(f"[req:{req_id}] Done. {len(properties)} properties")
    return _response(200, success_envelope(properties, source=url))


def _json_body(event) -> dict:
    raw = event.get("body") or ""
    if event.get("isBase64Encoded") and raw:
        raw = base64.b64decode(raw).decode("utf-8")
    if not raw:
        return {}
    return json.loads(raw)


def geocode_handler(event, context):
    """Attach latitude/longitude to POSTed properties by their town."""
    req_id = _request_id(context)
    method = event.get("httpMethod", "GET")
    if method == "OPTIONS":
        return _response(200, "")
    if method != "POST":
        return _response(405, {"success": False, "error": "Method not allowed"})

    try:
        body = _json_body(event)
    except ValueError as e:
        logger.warning(f"[req:{req_id}] Invalid JSON body: {e}")
        return _response(400, {"success": False, "error": "Request body must be JSON"})

    properties = body.get("properties") if isinstance(body, dict) else None
    if not isinstance(properties, list):
        return _response(
            400, {"success": False, "error": "Provide 'properties' array in request"}
        )

    try:
        towns = [p.get("town") if isinstance(p, dict) else None for p in properties]
        coordinates = build_geocoder().resolve_many(towns)
        enriched = attach_coordinates(properties, coordinates)
    except Exception as e:
        logger.exception(f"[req:{req_id}] Geocoding failed")
        return _response(200, {"success": False, "error": str(e) or "Failed to geocode"})

    logger.info(f"[req:{req_id}] Geocoded {len(enriched)} properties")
    return _response(200, {"success": True, "properties": enriched})


def _error_page(message: str) -> str:
    return (
        "<!DOCTYPE html><html><head><meta charset=\"utf-8\">"
        "<title>Property Map</title></head><body>"
        "<h2>Error Loading Properties</h2>"
        f"<p>{html.escape(message)}</p>"
        "<button onclick=\"location.reload()\">Retry</button>"
        "</body></html>"
    )


def map_handler(event, context):
    """Scrape, geocode and return the listings as a Leaflet map page.

    Without a url the default listings page is mapped.
    """
    req_id = _request_id(context)
    if event.get("httpMethod") == "OPTIONS":
        return _response(200, "")

    params = event.get("queryStringParameters") or {}
    try:
        url = resolve_target_url(params, required=False)
        properties = scrape_properties(url)
    except ScrapeError as e:
        logger.error(f"[req:{req_id}] {e.error_code}: {e}")
        return _response(200, _error_page(str(e)), content_type="text/html")
    except Exception as e:
        logger.exception(f"[req:{req_id}] Unexpected map failure")
        return _response(200, _error_page(str(e)), content_type="text/html")

    page = render_map_html(
        properties,
        center=(MAP_CONFIG["center_lat"], MAP_CONFIG["center_lng"]),
        zoom=MAP_CONFIG["zoom"],
        radius_m=MAP_CONFIG["fan_out_meters"],
        cluster_radius_px=MAP_CONFIG["cluster_radius_px"],
    )
    return _response(200, page, content_type="text/html")
