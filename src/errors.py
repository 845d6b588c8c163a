"""Failure types for the scrape and geocode pipeline."""


class ScrapeError(Exception):
    """Base class for failures surfaced to the request boundary."""

    error_code = "SCRAPE_ERROR"


class LaunchError(ScrapeError):
    """Local browser executable missing or failed to start."""

    error_code = "LAUNCH_ERROR"


class BrowserConnectionError(ScrapeError):
    """Remote browser session handshake failed or timed out."""

    error_code = "CONNECTION_ERROR"


class NavigationError(ScrapeError):
    """Target page unreachable or navigation timed out."""

    error_code = "NAVIGATION_ERROR"


class ContentTimeoutError(ScrapeError):
    """Listing content marker never appeared on the page."""

    error_code = "CONTENT_TIMEOUT"


class GeocodeQueryError(ScrapeError):
    """A single place-search call failed. Recovered inside the geocoder."""

    error_code = "GEOCODE_QUERY_ERROR"


class InputValidationError(ScrapeError):
    """Required request input missing or malformed."""

    error_code = "INPUT_VALIDATION_ERROR"
