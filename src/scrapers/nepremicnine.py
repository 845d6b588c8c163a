import logging
import time
from urllib.parse import urljoin
from bs4 import BeautifulSoup
from playwright.sync_api import Error as PlaywrightError, TimeoutError as PlaywrightTimeoutError
from src.browser import BrowserProvider
from src.errors import ContentTimeoutError, NavigationError
from src.models import (
    Listing,
    NO_IMAGE,
    NO_LINK,
    NO_PRICE,
    NO_TITLE,
    NO_TOWN,
    NO_TYPE,
    NO_URL,
)

logger = logging.getLogger(__name__)

CARD_SELECTOR = ".property-box"
TITLE_SELECTOR = "h2"
PRICE_SELECTOR = "h6"
LINK_SELECTOR = 'a[href*="/oglasi-oddaja/"]'
TYPE_SELECTOR = ".tipi"
IMAGE_SELECTOR = ".property-image img"
DETAIL_URL_SELECTOR = "a.url-title-d"

# Ad server scripts that stall the page load
BLOCKED_URL_PARTS = (
    "nepremicnine.click/www/delivery/",
    "asyncjs.php",
    "ajs.php",
)

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
VIEWPORT = {"width": 1920, "height": 1080}
LOCALE = "sl-SI"
TIMEZONE = "Europe/Ljubljana"
ACCEPT_LANGUAGE = "sl-SI,sl;q=0.9,en-US;q=0.8,en;q=0.7"


def _text(card, selector: str) -> str:
    tag = card.select_one(selector)
    return tag.get_text().strip() if tag else ""


def _href(card, selector: str, base_url: str) -> str:
    tag = card.select_one(selector)
    if not tag or not tag.get("href"):
        return ""
    return urljoin(base_url, tag["href"])


def _first_srcset_url(srcset: str) -> str:
    first = srcset.split(",")[0].strip()
    return first.split()[0] if first else ""


def _image(card, base_url: str) -> str:
    img = card.select_one(IMAGE_SELECTOR)
    if not img:
        return NO_IMAGE

    src = img.get("data-src") or img.get("src")
    if not src:
        srcset = img.get("data-srcset") or img.get("srcset")
        if srcset:
            src = _first_srcset_url(srcset)
    if not src:
        return NO_IMAGE
    return urljoin(base_url, src)


def _base_uri(soup: BeautifulSoup, page_url: str) -> str:
    base = soup.select_one("base[href]")
    if base:
        return urljoin(page_url, base["href"])
    return page_url


def parse_listings(html: str, page_url: str) -> list[Listing]:
    """Extract every listing card from a rendered results page.

    Cards are read in document order and numbered from 1. Each field is
    looked up independently; an absent element yields that field's
    sentinel instead of dropping the card. The town is the title itself,
    as the site exposes no separate location element on result cards.
    """
    soup = BeautifulSoup(html, "html.parser")
    base_url = _base_uri(soup, page_url)

    listings = []
    for index, card in enumerate(soup.select(CARD_SELECTOR), 1):
        title = _text(card, TITLE_SELECTOR) or NO_TITLE
        town = NO_TOWN if title == NO_TITLE else title

        listings.append(
            Listing(
                id=index,
                title=title,
                town=town,
                price=_text(card, PRICE_SELECTOR) or NO_PRICE,
                link=_href(card, LINK_SELECTOR, base_url) or NO_LINK,
                image=_image(card, base_url),
                property_type=_text(card, TYPE_SELECTOR) or NO_TYPE,
                url=_href(card, DETAIL_URL_SELECTOR, base_url) or NO_URL,
            )
        )
    return listings


def _block_trackers(route) -> None:
    url = route.request.url
    if any(part in url for part in BLOCKED_URL_PARTS):
        route.abort()
    else:
        route.continue_()


def _log_navigation(event: str):
    def _log(request) -> None:
        if request.is_navigation_request():
            logger.debug(f"nav.{event}: {request.method} {request.url}")

    return _log


class NepremicnineScraper:
    def __init__(
        self,
        provider: BrowserProvider,
        navigation_timeout_ms: float = 25000,
        content_timeout_ms: float = 10000,
        block_trackers: bool = True,
    ):
        self.provider = provider
        self.navigation_timeout_ms = navigation_timeout_ms
        self.content_timeout_ms = content_timeout_ms
        self.block_trackers = block_trackers

    def scrape(self, url: str) -> list[Listing]:
        logger.info(f"Scraping {url} via {self.provider.mode} browser")
        with self.provider.session() as browser:
            context = browser.new_context(
                user_agent=USER_AGENT,
                viewport=VIEWPORT,
                locale=LOCALE,
                timezone_id=TIMEZONE,
                extra_http_headers={"Accept-Language": ACCEPT_LANGUAGE},
            )
            try:
                page = context.new_page()
                page.on("request", _log_navigation("request"))
                page.on("requestfailed", _log_navigation("requestfailed"))
                if self.block_trackers:
                    page.route("**/*", _block_trackers)

                self._navigate(page, url)
                self._wait_for_listings(page)

                html = self._read_content(page)
                listings = parse_listings(html, page.url)
            finally:
                try:
                    context.close()
                except Exception as e:
                    logger.error(f"context.close: {e}")

        logger.info(f"Found {len(listings)} listings")
        return listings

    def _navigate(self, page, url: str) -> None:
        started = time.monotonic()
        try:
            page.goto(url, wait_until="domcontentloaded", timeout=self.navigation_timeout_ms)
        except PlaywrightTimeoutError as e:
            raise NavigationError(
                f"Navigation to {url} timed out after {self.navigation_timeout_ms:.0f}ms"
            ) from e
        except PlaywrightError as e:
            raise NavigationError(f"Navigation to {url} failed: {e}") from e
        logger.info(f"page.goto done in {(time.monotonic() - started) * 1000:.0f}ms")

    def _wait_for_listings(self, page) -> None:
        # Bot challenge interstitials never reach network idle, so wait on the
        # card marker itself.
        started = time.monotonic()
        try:
            page.wait_for_selector(CARD_SELECTOR, timeout=self.content_timeout_ms)
        except PlaywrightTimeoutError as e:
            raise ContentTimeoutError(
                f"Listings ({CARD_SELECTOR}) did not appear within "
                f"{self.content_timeout_ms:.0f}ms"
            ) from e
        except PlaywrightError as e:
            raise NavigationError(f"Page changed while waiting for listings: {e}") from e
        logger.info(
            f"waitForSelector({CARD_SELECTOR}) ok in "
            f"{(time.monotonic() - started) * 1000:.0f}ms"
        )

    def _read_content(self, page) -> str:
        try:
            return page.content()
        except PlaywrightError as e:
            raise NavigationError(f"Could not read rendered page: {e}") from e
