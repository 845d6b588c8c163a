import os

os.environ.setdefault("CHROME_EXECUTABLE_PATH", "")
os.environ.setdefault("BROWSER_WS_ENDPOINT", "")
os.environ.setdefault("BROWSER_SECRET_ID", "")
os.environ.setdefault("REQUIRE_LISTINGS_URL", "true")
os.environ.setdefault("NOMINATIM_URL", "https://nominatim.openstreetmap.org/search")
os.environ.setdefault("NOMINATIM_USER_AGENT", "PropertyMapTests/1.0 (tests@example.com)")
os.environ.setdefault("GEOCODE_COUNTRY", "Slovenia")
os.environ.setdefault("GEOCODE_CHUNK_SIZE", "5")
