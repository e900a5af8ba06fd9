from collections.abc import Iterator
from contextlib import contextmanager
from fnmatch import fnmatch
from typing import Optional

from playwright.sync_api import (
    Browser,
    BrowserContext,
    Page,
    Playwright,
    TimeoutError,
    sync_playwright,
)
from playwright.sync_api import Error as PlaywrightError

from dm_harvest.extract.extract_summary import normalize_identity
from dm_harvest.extract.selectors import PROFILE_LINK_SELECTOR
from dm_harvest.types.errors import FatalSetupError
from dm_harvest.types.session_config import LOGGED_IN_URL_PATTERNS, SessionConfig
from dm_harvest.utils.logger import logger

# URL fragments X redirects to when the session is not authenticated
LOGIN_URL_MARKERS = ("/login", "/i/flow/login")
CDP_CONNECT_TIMEOUT_MS = 5000


def connect_browser(playwright: Playwright, config: SessionConfig) -> Browser:
    """Attach to a running Chrome over CDP, or launch a fresh Chromium."""
    try:
        if config.cdp_url:
            browser = playwright.chromium.connect_over_cdp(
                endpoint_url=config.cdp_url, timeout=CDP_CONNECT_TIMEOUT_MS
            )
            logger.success(f"Connected to Chrome via {config.cdp_url}")
        else:
            browser = playwright.chromium.launch(
                headless=config.headless, slow_mo=config.slow_mo_ms
            )
            logger.info("Launched Chromium")
    except PlaywrightError as e:
        raise FatalSetupError(f"Could not start the browser: {e}") from e
    return browser


def open_context(browser: Browser, config: SessionConfig) -> BrowserContext:
    """Reuse the CDP browser's context, or create one seeded with the saved session."""
    if config.cdp_url and browser.contexts:
        return browser.contexts[0]

    storage_state = None
    if config.storage_state_path.exists():
        logger.info(f"Reusing saved session from {config.storage_state_path}")
        storage_state = str(config.storage_state_path)

    return browser.new_context(
        storage_state=storage_state,
        viewport={"width": config.viewport_width, "height": config.viewport_height},
    )


def is_login_page(url: str) -> bool:
    return any(marker in url for marker in LOGIN_URL_MARKERS)


def is_logged_in_url(url: str) -> bool:
    # fnmatch lets "*" cross "/", so the login flow itself would match "/i/*"
    if is_login_page(url):
        return False
    return any(fnmatch(url, pattern) for pattern in LOGGED_IN_URL_PATTERNS)


def wait_for_manual_login(page: Page, context: BrowserContext, config: SessionConfig) -> None:
    """Let the user log in by hand, then save the session for next time."""
    page.goto(config.login_url)
    logger.warning("Please log in to X in the browser window. Waiting for login to complete...")
    try:
        page.wait_for_url(is_logged_in_url, timeout=config.login_timeout_ms)
    except TimeoutError as e:
        raise FatalSetupError("Timed out waiting for manual login") from e

    config.storage_state_path.parent.mkdir(parents=True, exist_ok=True)
    context.storage_state(path=str(config.storage_state_path))
    logger.success(f"Login detected, session saved to {config.storage_state_path}")


def open_messages(page: Page, context: BrowserContext, config: SessionConfig) -> None:
    page.goto(config.messages_url)
    if is_login_page(page.url):
        wait_for_manual_login(page, context, config)
        page.goto(config.messages_url)

    try:
        page.wait_for_load_state("networkidle", timeout=config.network_idle_timeout_ms)
    except TimeoutError:
        # X keeps long-polling; the list check afterwards is what matters
        logger.debug("Network never went idle on the messages page, continuing")


def resolve_own_identity(page: Page) -> Optional[str]:
    """Read the logged-in user's handle from the sidebar profile link."""
    try:
        link = page.query_selector(PROFILE_LINK_SELECTOR)
        href = link.get_attribute("href") if link else None
    except PlaywrightError as e:
        logger.debug(f"Could not read own profile link: {e}")
        return None
    return normalize_identity(href)


@contextmanager
def browser_session(config: SessionConfig) -> Iterator[Page]:
    """Yield an authenticated page sitting on the messages screen.

    Any failure to get there raises FatalSetupError.
    """
    with sync_playwright() as playwright:
        browser = connect_browser(playwright, config)
        page = None
        try:
            try:
                context = open_context(browser, config)
                page = context.new_page()
                open_messages(page, context, config)
            except PlaywrightError as e:
                raise FatalSetupError(f"Could not open the messages page: {e}") from e
            yield page
        finally:
            if config.cdp_url:
                # Leave the user's Chrome running, only drop our tab
                if page is not None:
                    page.close()
            else:
                browser.close()
