import os

DEFAULT_LISTINGS_URL = (
    "https://www.nepremicnine.net/oglasi-oddaja/gorenjska/kranj/stanovanje/"
    "1-sobno,15-sobno,2-sobno,25-sobno,3-sobno,35-sobno,4-sobno,45-sobno,"
    "5-in-vecsobno,drugo-36,apartma/cena-do-600-eur-na-mesec/"
    "?nadst[0]=vsa&nadst[1]=vsa"
)


def _flag(name: str, default: str) -> bool:
    return os.environ.get(name, default).strip().lower() in ("1", "true", "yes", "on")


_contact_email = os.environ.get("NOMINATIM_CONTACT_EMAIL", "kragelj.valentin.com")

SCRAPE_CONFIG = {
    "chrome_executable_path": os.environ.get("CHROME_EXECUTABLE_PATH", ""),
    "browser_ws_endpoint": os.environ.get("BROWSER_WS_ENDPOINT", ""),
    "browser_secret_id": os.environ.get("BROWSER_SECRET_ID", ""),
    "navigation_timeout_ms": float(os.environ.get("NAVIGATION_TIMEOUT_MS", "25000")),
    "content_timeout_ms": float(os.environ.get("CONTENT_TIMEOUT_MS", "10000")),
    "connect_timeout_ms": float(os.environ.get("CONNECT_TIMEOUT_MS", "30000")),
    "block_trackers": _flag("BLOCK_TRACKERS", "true"),
    "require_url": _flag("REQUIRE_LISTINGS_URL", "true"),
    "default_listings_url": os.environ.get("DEFAULT_LISTINGS_URL", DEFAULT_LISTINGS_URL),
}

GEOCODE_CONFIG = {
    "nominatim_url": os.environ.get(
        "NOMINATIM_URL", "https://nominatim.openstreetmap.org/search"
    ),
    "user_agent": os.environ.get(
        "NOMINATIM_USER_AGENT", f"PropertyMap/1.0 ({_contact_email})"
    ),
    "country": os.environ.get("GEOCODE_COUNTRY", "Slovenia"),
    "chunk_size": int(os.environ.get("GEOCODE_CHUNK_SIZE", "5")),
    "timeout": float(os.environ.get("GEOCODE_TIMEOUT", "10")),
}

MAP_CONFIG = {
    "center_lat": float(os.environ.get("MAP_CENTER_LAT", "45.0")),
    "center_lng": float(os.environ.get("MAP_CENTER_LNG", "15.0")),
    "zoom": int(os.environ.get("MAP_ZOOM", "6")),
    "fan_out_meters": float(os.environ.get("FAN_OUT_METERS", "100")),
    "cluster_radius_px": int(os.environ.get("CLUSTER_RADIUS_PX", "50")),
}
