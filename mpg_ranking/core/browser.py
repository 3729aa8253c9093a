"""
Browser management using Playwright
"""
import asyncio
import logging
import re
from datetime import datetime
from pathlib import Path
from typing import Optional, Tuple
from urllib.parse import urlparse

from playwright.async_api import async_playwright, Browser, BrowserContext, Page

from .locators import click_first

logger = logging.getLogger(__name__)

COOKIE_BUTTON_SELECTORS = [
    '#didomi-notice-agree-button',
    '#onetrust-accept-btn-handler',
    'button:has-text("Tout accepter")',
    'button:has-text("Accepter et fermer")',
    'button:has-text("Accepter")',
    'button:has-text("Accept all")',
    'button:has-text("Accept")',
    'button:has-text("J\'accepte")',
]

LOGIN_URL_PATTERNS = ['/login', '/signin', '/auth', '/connexion']

class BrowserManager:
    """Own the single Playwright browser, context and page of a run"""

    def __init__(self, headless: bool = True, timeout: int = 30000):
        self.headless = headless
        self.timeout = timeout
        self.playwright = None
        self.browser: Optional[Browser] = None
        self.context: Optional[BrowserContext] = None
        self.page: Optional[Page] = None

    async def start(self):
        """Start the browser"""
        try:
            self.playwright = await async_playwright().start()

            self.browser = await self.playwright.chromium.launch(
                headless=self.headless,
                args=[
                    '--no-sandbox',
                    '--disable-dev-shm-usage',
                    '--disable-blink-features=AutomationControlled',
                ]
            )

            # French locale so the site serves the "Équipe / Pts" layout
            self.context = await self.browser.new_context(
                viewport={'width': 1440, 'height': 1000},
                locale='fr-FR',
                timezone_id='Europe/Paris',
                user_agent='Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36'
            )
            self.context.set_default_timeout(self.timeout)

            logger.info("Browser started successfully")

        except Exception as e:
            logger.error(f"Failed to start browser: {e}")
            await self.close()
            raise

    async def new_page(self) -> Page:
        """Create the page shared by login and every league visit"""
        if not self.context:
            await self.start()

        self.page = await self.context.new_page()
        await self.page.add_init_script("""
            Object.defineProperty(navigator, 'webdriver', {
                get: () => undefined,
            });
        """)
        return self.page

    async def close(self):
        """Close the browser"""
        try:
            if self.context:
                await self.context.close()
            if self.browser:
                await self.browser.close()
            if self.playwright:
                await self.playwright.stop()

            logger.info("Browser closed successfully")

        except Exception as e:
            logger.error(f"Error closing browser: {e}")
        finally:
            self.page = None
            self.context = None
            self.browser = None
            self.playwright = None

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

async def load_page(page: Page, url: str, timeout: int = 30000, retries: int = 2,
                    network_idle_timeout: int = 10000) -> Page:
    """
    Navigate with bounded retries, then wait for network idle (best-effort)

    Raises the last navigation error once every attempt failed.
    """
    last_error: Optional[Exception] = None

    for attempt in range(1, retries + 1):
        try:
            logger.info(f"Loading page: {url} (attempt {attempt}/{retries})")
            response = await page.goto(url, wait_until='domcontentloaded', timeout=timeout)

            if response and response.status >= 400:
                logger.warning(f"Page loaded with status {response.status}: {url}")
            break

        except Exception as e:
            last_error = e
            logger.warning(f"Navigation to {url} failed: {e}")
            if attempt < retries:
                await asyncio.sleep(1)
    else:
        raise last_error

    try:
        await page.wait_for_load_state('networkidle', timeout=network_idle_timeout)
    except Exception as e:
        logger.debug(f"Network never went idle on {url}: {e}")

    return page

async def dismiss_cookie_banner(page: Page, timeout: int = 1500) -> bool:
    """Click a consent button if one is shown; never fails"""
    try:
        clicked = await click_first(page, COOKIE_BUTTON_SELECTORS, timeout_ms=timeout)
    except Exception as e:
        logger.debug(f"Cookie banner handling failed: {e}")
        return False

    if clicked:
        logger.info(f"Dismissed cookie banner ({clicked})")
        await page.wait_for_timeout(300)
        return True
    return False

def is_login_or_home(current_url: str, target_url: str) -> bool:
    """True when navigation to target_url ended on a login or home page instead"""
    current = urlparse(current_url or "")
    target = urlparse(target_url or "")
    path = current.path.rstrip('/').lower()

    if any(pattern in path for pattern in LOGIN_URL_PATTERNS):
        return True

    # Redirected to the site root while asking for a deeper page
    if path == '' and target.path.rstrip('/') != '':
        return True

    return False

def matches_post_login(url: str, pattern: str) -> bool:
    path = urlparse(url or "").path
    return bool(re.search(pattern, path)) and not is_login_or_home(url, url)

def _slug(name: str) -> str:
    return re.sub(r'[^a-z0-9]+', '_', name.lower()).strip('_') or 'page'

async def save_debug_snapshot(page: Page, name: str, debug_dir: str = "debug") -> Tuple[Optional[Path], Optional[Path]]:
    """Write a full-page screenshot and the HTML of the page for offline diagnosis"""
    directory = Path(debug_dir)
    directory.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    base = directory / f"{_slug(name)}_{timestamp}"
    screenshot_path: Optional[Path] = base.with_suffix('.png')
    html_path: Optional[Path] = base.with_suffix('.html')

    try:
        await page.screenshot(path=str(screenshot_path), full_page=True)
    except Exception as e:
        logger.warning(f"Could not capture screenshot for {name}: {e}")
        screenshot_path = None

    try:
        html = await page.content()
        html_path.write_text(html, encoding='utf-8')
    except Exception as e:
        logger.warning(f"Could not dump HTML for {name}: {e}")
        html_path = None

    logger.info(f"Debug snapshot saved for {name}: {screenshot_path}, {html_path}")
    return screenshot_path, html_path
