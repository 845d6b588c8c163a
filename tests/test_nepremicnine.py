import pathlib
from unittest.mock import MagicMock
import pytest
from playwright.sync_api import Error as PlaywrightError, TimeoutError as PlaywrightTimeoutError
from src.errors import ContentTimeoutError, NavigationError
from src.scrapers.nepremicnine import (
    BLOCKED_URL_PARTS,
    NepremicnineScraper,
    _block_trackers,
    parse_listings,
)

FIXTURES = pathlib.Path(__file__).parent / "fixtures"
PAGE_URL = "https://www.nepremicnine.net/oglasi-oddaja/gorenjska/kranj/"


def _results_html() -> str:
    return (FIXTURES / "nepremicnine_results.html").read_text(encoding="utf-8")


def _mock_provider(html: str = "", page_url: str = PAGE_URL):
    page = MagicMock()
    page.content.return_value = html
    page.url = page_url

    context = MagicMock()
    context.new_page.return_value = page

    browser = MagicMock()
    browser.new_context.return_value = context

    provider = MagicMock()
    provider.mode = "local"
    provider.session.return_value.__enter__.return_value = browser
    provider.session.return_value.__exit__.return_value = False
    return provider, browser, context, page


def test_parse_listings_ids_follow_document_order():
    listings = parse_listings(_results_html(), PAGE_URL)

    assert len(listings) == 4
    assert [listing.id for listing in listings] == [1, 2, 3, 4]


def test_parse_listings_full_card():
    first = parse_listings(_results_html(), PAGE_URL)[0]

    assert first.title == "Kranj, Planina"
    assert first.town == "Kranj, Planina"
    assert first.price == "550,00 €/mesec"
    assert first.property_type == "Stanovanje"
    assert first.link == "https://www.nepremicnine.net/oglasi-oddaja/kranj-stanovanje_6912345/"
    assert first.url == "https://www.nepremicnine.net/oglasi-oddaja/kranj-stanovanje_6912345/"
    # lazy-load attribute wins over the placeholder src
    assert first.image == "https://img.nepremicnine.net/slonep_oglasi2/12345.jpg"


def test_parse_listings_image_falls_back_to_srcsets():
    listings = parse_listings(_results_html(), PAGE_URL)

    assert listings[1].image == "https://www.nepremicnine.net/slike/67890-400.jpg"
    assert listings[2].image == "https://cdn.nepremicnine.net/slike/11111-small.jpg"


def test_parse_listings_missing_fields_use_sentinels():
    listings = parse_listings(_results_html(), PAGE_URL)

    assert listings[1].property_type == "No type"

    third = listings[2]
    assert third.title == "No title"
    assert third.town == "No town"
    assert third.price == "Po dogovoru"
    assert third.link == "No link"
    assert third.url == "No url-title-d"

    blank = listings[3]
    assert blank.title == "No title"
    assert blank.town == "No town"
    assert blank.price == "No price"
    assert blank.image == "No image"
    for value in blank.to_dict().values():
        assert value is not None


def test_parse_listings_respects_base_href():
    html = """
    <html><head><base href="https://static.example.si/media/"></head><body>
      <div class="property-box">
        <h2>Bled</h2>
        <div class="property-image"><img src="bled.jpg"></div>
      </div>
    </body></html>
    """
    listings = parse_listings(html, PAGE_URL)

    assert listings[0].image == "https://static.example.si/media/bled.jpg"


def test_parse_listings_empty_page():
    assert parse_listings("<html><body></body></html>", PAGE_URL) == []


def test_block_trackers_aborts_known_hosts():
    blocked = MagicMock()
    blocked.request.url = f"https://www.{BLOCKED_URL_PARTS[0]}banner.js"
    _block_trackers(blocked)
    blocked.abort.assert_called_once()
    blocked.continue_.assert_not_called()

    allowed = MagicMock()
    allowed.request.url = "https://www.nepremicnine.net/js/app.js"
    _block_trackers(allowed)
    allowed.continue_.assert_called_once()
    allowed.abort.assert_not_called()


def test_scrape_returns_listings():
    provider, browser, context, page = _mock_provider(_results_html())

    scraper = NepremicnineScraper(provider, navigation_timeout_ms=5000, content_timeout_ms=2000)
    listings = scraper.scrape(PAGE_URL)

    assert len(listings) == 4
    page.goto.assert_called_once_with(PAGE_URL, wait_until="domcontentloaded", timeout=5000)
    page.wait_for_selector.assert_called_once_with(".property-box", timeout=2000)
    page.route.assert_called_once_with("**/*", _block_trackers)

    kwargs = browser.new_context.call_args.kwargs
    assert "Chrome/" in kwargs["user_agent"]
    assert kwargs["viewport"] == {"width": 1920, "height": 1080}
    assert kwargs["locale"] == "sl-SI"
    assert kwargs["timezone_id"] == "Europe/Ljubljana"

    context.close.assert_called_once()
    provider.session.return_value.__exit__.assert_called_once()


def test_scrape_without_request_filter():
    provider, _, _, page = _mock_provider(_results_html())

    NepremicnineScraper(provider, block_trackers=False).scrape(PAGE_URL)

    page.route.assert_not_called()


def test_scrape_navigation_timeout():
    provider, _, context, page = _mock_provider()
    page.goto.side_effect = PlaywrightTimeoutError("Timeout 25000ms exceeded.")

    with pytest.raises(NavigationError):
        NepremicnineScraper(provider).scrape(PAGE_URL)

    page.wait_for_selector.assert_not_called()
    context.close.assert_called_once()
    provider.session.return_value.__exit__.assert_called_once()


def test_scrape_navigation_network_error():
    provider, _, context, page = _mock_provider()
    page.goto.side_effect = PlaywrightError("net::ERR_NAME_NOT_RESOLVED")

    with pytest.raises(NavigationError, match="ERR_NAME_NOT_RESOLVED"):
        NepremicnineScraper(provider).scrape(PAGE_URL)

    context.close.assert_called_once()


def test_scrape_bot_challenge_times_out():
    challenge = (FIXTURES / "bot_challenge.html").read_text(encoding="utf-8")
    provider, _, context, page = _mock_provider(challenge)
    page.wait_for_selector.side_effect = PlaywrightTimeoutError("Timeout 10000ms exceeded.")

    with pytest.raises(ContentTimeoutError):
        NepremicnineScraper(provider).scrape(PAGE_URL)

    page.content.assert_not_called()
    context.close.assert_called_once()
    provider.session.return_value.__exit__.assert_called_once()


def test_scrape_context_close_failure_does_not_mask_result():
    provider, _, context, _ = _mock_provider(_results_html())
    context.close.side_effect = Exception("Target closed")

    listings = NepremicnineScraper(provider).scrape(PAGE_URL)

    assert len(listings) == 4


def test_scrape_page_navigating_during_wait():
    provider, _, context, page = _mock_provider()
    page.wait_for_selector.side_effect = PlaywrightError(
        "Execution context was destroyed, most likely because of a navigation"
    )

    with pytest.raises(NavigationError, match="waiting for listings"):
        NepremicnineScraper(provider).scrape(PAGE_URL)

    page.content.assert_not_called()
    context.close.assert_called_once()
    provider.session.return_value.__exit__.assert_called_once()


def test_scrape_content_read_failure():
    provider, _, context, page = _mock_provider()
    page.content.side_effect = PlaywrightError(
        "Unable to retrieve content because the page is navigating"
    )

    with pytest.raises(NavigationError, match="page is navigating"):
        NepremicnineScraper(provider).scrape(PAGE_URL)

    context.close.assert_called_once()
