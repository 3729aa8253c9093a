"""
Session establishment - log into MPG with whatever login layout is served
"""
import logging
from dataclasses import dataclass
from typing import List, Optional

from playwright.async_api import Page

from ..config.enums import SessionStatus
from ..config.settings import AppConfig
from .browser import load_page, dismiss_cookie_banner, matches_post_login
from .errors import LoginError
from .locators import LocatorMatch, find_first, click_first, fill_first

logger = logging.getLogger(__name__)

EMAIL_SELECTORS = [
    'input[type="email"]',
    'input[name="email"]',
    'input[name="username"]',
    'input[autocomplete="username"]',
    'input[autocomplete="email"]',
    '#email',
]

PASSWORD_SELECTORS = [
    'input[type="password"]',
    'input[name="password"]',
    '#password',
]

SUBMIT_SELECTORS = [
    'button[type="submit"]',
    'input[type="submit"]',
    'button:has-text("Se connecter")',
    'button:has-text("Connexion")',
    'button:has-text("Log in")',
    'button:has-text("Login")',
]

# Links or buttons leading from a landing page to the login form
LOGIN_CTA_SELECTORS = [
    'a[href*="login"]',
    'a:has-text("Se connecter")',
    'button:has-text("Se connecter")',
    'a:has-text("Connexion")',
    'button:has-text("Connexion")',
    'a:has-text("Log in")',
    'button:has-text("Log in")',
]

@dataclass
class Session:
    """Authentication state shared between login and league fetching"""
    status: SessionStatus = SessionStatus.UNAUTHENTICATED
    login_attempts: int = 0

    @property
    def is_guest(self) -> bool:
        return self.status is not SessionStatus.AUTHENTICATED

class SessionEstablisher:
    """Authenticate a page against the site using the configured credentials"""

    def __init__(self, config: AppConfig, session: Optional[Session] = None):
        self.config = config
        self.timeouts = config.timeouts
        self.session = session or Session()

    async def _locate_email_field(self, page: Page, url: str) -> Optional[LocatorMatch]:
        await load_page(page, url, timeout=self.timeouts.navigation_ms,
                        retries=self.config.nav_retries,
                        network_idle_timeout=self.timeouts.network_idle_ms)
        await dismiss_cookie_banner(page)

        match = await find_first(page, EMAIL_SELECTORS, timeout_ms=self.timeouts.selector_ms)
        if match:
            return match

        # Landing page variant: follow a login call-to-action and look again
        clicked = await click_first(page, LOGIN_CTA_SELECTORS, timeout_ms=1000,
                                    click_timeout_ms=self.timeouts.click_ms)
        if clicked:
            logger.info(f"Followed login link {clicked} on {url}")
            try:
                await page.wait_for_load_state('domcontentloaded', timeout=self.timeouts.navigation_ms)
            except Exception as e:
                logger.debug(f"Login link did not trigger a navigation: {e}")
            await dismiss_cookie_banner(page)
            return await find_first(page, EMAIL_SELECTORS, timeout_ms=self.timeouts.selector_ms)

        return None

    async def _find_login_form(self, page: Page) -> Optional[LocatorMatch]:
        for url in self.config.login_urls:
            try:
                match = await self._locate_email_field(page, url)
            except Exception as e:
                logger.warning(f"Login page {url} unavailable: {e}")
                continue

            if match:
                logger.info(f"Login form found on {page.url}")
                return match
            logger.warning(f"No email field on {url}")
        return None

    async def _submit(self, match: LocatorMatch, page: Page):
        frame = match.frame
        await match.element.fill(self.config.email)

        password_selector = await fill_first(frame, PASSWORD_SELECTORS, self.config.password)
        if not password_selector:
            # Two-step forms reveal the password field after the email step
            await click_first(page, SUBMIT_SELECTORS, timeout_ms=1000, click_timeout_ms=self.timeouts.click_ms)
            password_match = await find_first(page, PASSWORD_SELECTORS, timeout_ms=self.timeouts.selector_ms)
            if not password_match:
                raise LoginError("Password field not found after email step")
            await password_match.element.fill(self.config.password)
            frame = password_match.frame
            password_selector = password_match.selector

        submitted = await click_first(page, SUBMIT_SELECTORS, timeout_ms=self.timeouts.selector_ms,
                                      click_timeout_ms=self.timeouts.click_ms)
        if not submitted:
            logger.info("No submit control found, pressing Enter in the password field")
            await frame.press(password_selector, 'Enter')

    async def _confirm(self, page: Page) -> bool:
        pattern = self.config.post_login_pattern
        try:
            await page.wait_for_url(lambda url: matches_post_login(url, pattern),
                                    timeout=self.timeouts.login_ms)
            return True
        except Exception as e:
            logger.debug(f"Post-login URL not reached: {e}")

        try:
            await page.wait_for_load_state('networkidle', timeout=self.timeouts.network_idle_ms)
        except Exception as e:
            logger.debug(f"Network never went idle after login: {e}")

        return matches_post_login(page.url, pattern)

    async def login(self, page: Page) -> SessionStatus:
        """
        Log in and return the resulting session status

        Raises:
            LoginError: no login form on any candidate URL and strict_login is set
        """
        self.session.login_attempts += 1
        logger.info(f"Logging in (attempt {self.session.login_attempts})")

        match = await self._find_login_form(page)
        if not match:
            message = f"No login form found on any of {len(self.config.login_urls)} candidate URLs"
            if self.config.strict_login:
                raise LoginError(message)
            logger.error(f"{message}, continuing as guest")
            self.session.status = SessionStatus.UNAUTHENTICATED
            return self.session.status

        try:
            await self._submit(match, page)
        except LoginError:
            raise
        except Exception as e:
            raise LoginError(f"Login form submission failed: {e}") from e

        if await self._confirm(page):
            logger.info(f"Login confirmed ({page.url})")
            self.session.status = SessionStatus.AUTHENTICATED
        else:
            logger.warning(f"Login not confirmed, still on {page.url}; continuing as guest")
            self.session.status = SessionStatus.UNCONFIRMED

        return self.session.status
