"""
Main execution script for the MPG global ranking
"""
import argparse
import asyncio
import logging
import sys
from logging.handlers import MemoryHandler
from typing import Dict, List, Optional

from .config.enums import LeagueCode, FetchStatus
from .config.schema import AggregatedTeamRow, LeagueResult
from .config.settings import AppConfig, load_config
from .core.browser import BrowserManager
from .core.errors import ConfigError, LoginError
from .core.logger import setup_logger
from .core.session import Session, SessionEstablisher
from .extractors.league_fetcher import LeagueFetcher
from .exporters.html_renderer import HtmlExporter, render_html
from .ranking.aggregator import aggregate

logger = logging.getLogger("mpg_ranking")

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_CONFIG = 2

class RankingGenerator:
    """Authenticate, fetch every league, aggregate, render and write"""

    def __init__(self, config: AppConfig):
        self.config = config
        self.session = Session()
        self.results: Dict[LeagueCode, LeagueResult] = {}
        self.table: List[AggregatedTeamRow] = []

    async def fetch_all_leagues(self) -> Dict[LeagueCode, LeagueResult]:
        """Log in once, then visit each league sequentially; the browser is always closed"""
        browser_manager = BrowserManager(headless=self.config.headless,
                                         timeout=self.config.timeouts.page_ms)
        try:
            await browser_manager.start()
            page = await browser_manager.new_page()

            establisher = SessionEstablisher(self.config, self.session)
            status = await establisher.login(page)
            logger.info(f"Session status: {status.value}")

            fetcher = LeagueFetcher(page, self.config, establisher)
            for code in LeagueCode:
                self.results[code] = await fetcher.fetch(code, self.config.leagues.get(code))
                await asyncio.sleep(self.config.league_pause_ms / 1000)

        finally:
            await browser_manager.close()

        return self.results

    def build_table(self) -> List[AggregatedTeamRow]:
        leagues = {code: result.entries for code, result in self.results.items()}
        self.table = aggregate(leagues, alphabetical_tiebreak=self.config.alphabetical_tiebreak)
        return self.table

    def export(self) -> str:
        document = render_html(
            self.table,
            logo_url=self.config.logo_url,
            title=self.config.page_title,
            timezone=self.config.timezone,
        )
        return HtmlExporter(self.config.output_path).write(document)

    def print_summary(self):
        """Log per-league status and team counts"""
        logger.info("=== RANKING SUMMARY ===")
        for code in LeagueCode:
            result = self.results.get(code)
            if result is None:
                logger.info(f"  {code.value}: not fetched")
                continue
            detail = f" ({result.error})" if result.error else ""
            logger.info(f"  {code.value}: {result.status.value}, {len(result.entries)} teams{detail}")

        failed = [code.value for code, result in self.results.items() if result.status is not FetchStatus.OK]
        if failed:
            logger.warning(f"Leagues without data: {', '.join(failed)}")
        logger.info(f"Teams in global ranking: {len(self.table)}")

    async def run(self) -> str:
        logger.info("=== MPG RANKING STARTED ===")
        await self.fetch_all_leagues()
        self.build_table()
        self.print_summary()
        output = self.export()
        logger.info("=== MPG RANKING COMPLETED ===")
        return output

def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Generate the MPG global ranking page")
    parser.add_argument('--config', help="YAML file overriding the packaged defaults")
    parser.add_argument('--output', help="Path of the HTML file to write")
    parser.add_argument('--headful', action='store_true', help="Show the browser window")
    parser.add_argument('--log-level', help="Console log level (DEBUG, INFO, ...)")
    return parser.parse_args(argv)

def _replay_startup(startup: MemoryHandler, **logger_options):
    """Set up the real handlers, then pass them the buffered startup records"""
    logger.removeHandler(startup)
    setup_logger(**logger_options)
    startup.setTarget(logger)
    startup.close()

async def main(argv: Optional[List[str]] = None) -> int:
    """Entry point; returns the process exit code"""
    args = parse_args(argv)
    overrides = {
        'output_path': args.output,
        'headless': False if args.headful else None,
        'log_level': args.log_level,
    }

    # Hold records emitted while loading the configuration until the handlers exist
    startup = MemoryHandler(capacity=1000, flushLevel=logging.CRITICAL + 1)
    logger.setLevel(logging.DEBUG)
    logger.addHandler(startup)
    try:
        config = load_config(args.config, overrides=overrides)
    except ConfigError as e:
        _replay_startup(startup, log_level=args.log_level or "INFO")
        logger.error(f"Configuration error: {e}")
        return EXIT_CONFIG

    _replay_startup(startup, log_level=config.log_level, log_dir=config.log_dir)

    try:
        output = await RankingGenerator(config).run()
    except LoginError as e:
        logger.error(f"Login failed: {e}")
        return EXIT_FAILURE
    except Exception as e:
        logger.exception(f"Ranking generation failed: {e}")
        return EXIT_FAILURE

    logger.info(f"Page: {output}")
    return EXIT_OK

def cli():
    sys.exit(asyncio.run(main()))

if __name__ == "__main__":
    cli()
