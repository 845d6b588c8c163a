import logging
import os
from contextlib import contextmanager
from typing import Iterator
from playwright.sync_api import Browser, Error as PlaywrightError, Playwright, sync_playwright
from src.errors import BrowserConnectionError, LaunchError

logger = logging.getLogger(__name__)

LAUNCH_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
]


class BrowserProvider:
    """Hands out a browser for the lifetime of one scrape."""

    mode = "base"

    def connect(self, playwright: Playwright) -> Browser:
        raise NotImplementedError

    @contextmanager
    def session(self) -> Iterator[Browser]:
        try:
            playwright = sync_playwright().start()
        except PlaywrightError as e:
            raise LaunchError(f"Could not start Playwright driver: {e}") from e

        browser = None
        try:
            browser = self.connect(playwright)
            yield browser
        finally:
            if browser is not None:
                try:
                    browser.close()
                    logger.info(f"browser.close ({self.mode}): ok")
                except Exception as e:
                    logger.error(f"browser.close ({self.mode}): {e}")
            try:
                playwright.stop()
            except Exception as e:
                logger.error(f"playwright.stop: {e}")


class LocalBrowserProvider(BrowserProvider):
    mode = "local"

    def __init__(self, executable_path: str | None = None, headless: bool = True):
        self.executable_path = executable_path or None
        self.headless = headless

    def connect(self, playwright: Playwright) -> Browser:
        if self.executable_path and not os.path.exists(self.executable_path):
            raise LaunchError(f"Browser executable not found: {self.executable_path}")

        logger.info(
            f"Launching local browser executable={self.executable_path or 'bundled'}"
        )
        try:
            return playwright.chromium.launch(
                executable_path=self.executable_path,
                headless=self.headless,
                args=LAUNCH_ARGS,
            )
        except PlaywrightError as e:
            raise LaunchError(f"Browser failed to start: {e}") from e


class RemoteBrowserProvider(BrowserProvider):
    mode = "remote"

    def __init__(self, ws_endpoint: str, timeout_ms: float = 30000):
        self.ws_endpoint = ws_endpoint
        self.timeout_ms = timeout_ms

    def connect(self, playwright: Playwright) -> Browser:
        # endpoint usually embeds an API token; keep it out of the logs
        logger.info("Connecting to remote browser session")
        try:
            return playwright.chromium.connect_over_cdp(
                self.ws_endpoint, timeout=self.timeout_ms
            )
        except PlaywrightError as e:
            raise BrowserConnectionError(f"Remote browser handshake failed: {e}") from e


def build_browser_provider(
    executable_path: str | None = None,
    ws_endpoint: str | None = None,
    connect_timeout_ms: float = 30000,
) -> BrowserProvider:
    """Pick the execution mode once: a remote endpoint wins over a local launch."""
    if ws_endpoint:
        return RemoteBrowserProvider(ws_endpoint, timeout_ms=connect_timeout_ms)
    return LocalBrowserProvider(executable_path=executable_path)
