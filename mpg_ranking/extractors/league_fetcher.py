"""
League fetcher - load one league ranking page and read its table
"""
import logging
from typing import Optional

from playwright.async_api import Page

from ..config.enums import LeagueCode, FetchStatus
from ..config.schema import LeagueResult
from ..config.settings import AppConfig
from ..core.browser import load_page, dismiss_cookie_banner, is_login_or_home, save_debug_snapshot
from ..core.errors import ExtractionError, LoginError
from ..core.session import SessionEstablisher
from .ranking_extractor import extract_rankings

logger = logging.getLogger(__name__)

# Evaluated in the page: true once a ranking list or a table with body rows is rendered
TABLE_READY_SCRIPT = """
() => Boolean(
    document.querySelector('[data-testid=ranking-row]') ||
    (document.querySelector('table') && document.querySelector('tbody tr, table tr td')) ||
    document.querySelector('[role=rowgroup] [role=row], [role=grid] [role=row]')
)
"""

class LeagueFetcher:
    """Fetch league rankings one page at a time, converting every failure into an empty result"""

    def __init__(self, page: Page, config: AppConfig, establisher: SessionEstablisher):
        self.page = page
        self.config = config
        self.timeouts = config.timeouts
        self.establisher = establisher

    @property
    def session(self):
        return self.establisher.session

    async def _navigate(self, url: str):
        await load_page(self.page, url, timeout=self.timeouts.navigation_ms,
                        retries=self.config.nav_retries,
                        network_idle_timeout=self.timeouts.network_idle_ms)

    async def _open_league(self, code: LeagueCode, url: str):
        """Navigate to the league page, re-authenticating once if bounced to login/home"""
        await self._navigate(url)

        if not is_login_or_home(self.page.url, url):
            return

        logger.warning(f"{code.value}: redirected to {self.page.url}, "
                       f"re-authenticating (session {self.session.status.value})")
        try:
            await self.establisher.login(self.page)
        except LoginError as e:
            raise ExtractionError(f"re-authentication failed: {e}") from e

        await self._navigate(url)
        if is_login_or_home(self.page.url, url):
            raise ExtractionError(f"still redirected to {self.page.url} after re-authentication")

    async def _wait_for_table(self, code: LeagueCode) -> bool:
        try:
            await self.page.wait_for_function(TABLE_READY_SCRIPT, timeout=self.timeouts.table_ms)
            return True
        except Exception as e:
            logger.warning(f"{code.value}: no ranking table rendered within {self.timeouts.table_ms} ms ({e})")
            return False

    async def _snapshot(self, code: LeagueCode):
        if not self.config.debug_snapshots:
            return
        try:
            await save_debug_snapshot(self.page, f"league_{code.value}", self.config.debug_dir)
        except Exception as e:
            logger.warning(f"{code.value}: debug snapshot failed: {e}")

    async def fetch(self, code: LeagueCode, url: Optional[str]) -> LeagueResult:
        """
        Fetch one league

        Never raises: navigation, login and extraction problems are logged and
        returned as an empty LeagueResult with a FAILED / EMPTY / SKIPPED status.
        """
        if not url:
            logger.warning(f"{code.value}: no URL configured, using an empty ranking")
            return LeagueResult.failed(code, url, FetchStatus.SKIPPED, "no URL configured")

        if self.session.is_guest:
            logger.info(f"{code.value}: fetching without a confirmed session ({self.session.status.value})")

        try:
            await self._open_league(code, url)
            await dismiss_cookie_banner(self.page)

            if not await self._wait_for_table(code):
                # The permissive strategies may still find rows in whatever rendered
                logger.info(f"{code.value}: trying extraction on the current page anyway")

            html = await self.page.content()
            strategy, entries = extract_rankings(html)

        except Exception as e:
            logger.error(f"{code.value}: league unavailable: {e}")
            await self._snapshot(code)
            return LeagueResult.failed(code, url, FetchStatus.FAILED, str(e))

        if not entries:
            logger.warning(f"{code.value}: no rows extracted from {self.page.url}")
            await self._snapshot(code)
            return LeagueResult.failed(code, url, FetchStatus.EMPTY, "no rows extracted")

        logger.info(f"{code.value}: {len(entries)} teams read ({strategy})")
        return LeagueResult(code=code, url=url, entries=entries,
                            status=FetchStatus.OK, strategy=strategy)
