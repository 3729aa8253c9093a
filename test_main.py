"""
Tests for the command line entry point and the generator pipeline
"""
import asyncio
import logging
from pathlib import Path

import pytest

from mpg_ranking import main as main_module
from mpg_ranking.config.enums import FetchStatus, LeagueCode
from mpg_ranking.config.schema import LeagueResult, TeamLeagueEntry
from mpg_ranking.config.settings import load_config
from mpg_ranking.core.errors import ConfigError, LoginError
from mpg_ranking.main import EXIT_CONFIG, EXIT_FAILURE, EXIT_OK, RankingGenerator, parse_args

CREDENTIALS = {"MPG_EMAIL": "coach@example.com", "MPG_PASSWORD": "s3cret-pass"}


@pytest.fixture(autouse=True)
def fresh_logger():
    """Each run of main() sets up its own handlers"""
    package_logger = logging.getLogger("mpg_ranking")

    def reset():
        for handler in list(package_logger.handlers):
            package_logger.removeHandler(handler)
            handler.close()

    reset()
    yield package_logger
    reset()


@pytest.fixture
def workdir(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def config(workdir):
    return load_config(env=CREDENTIALS, overrides={
        "output_path": str(workdir / "docs" / "index.html"),
        "log_dir": str(workdir / "logs"),
    })


def fake_results():
    return {
        LeagueCode.FR: LeagueResult(LeagueCode.FR, "u", [TeamLeagueEntry("A", 10), TeamLeagueEntry("B", 8)],
                                    strategy="header_table"),
        LeagueCode.EN: LeagueResult(LeagueCode.EN, "u", [TeamLeagueEntry("B", 9)], strategy="marker_rows"),
        LeagueCode.ES: LeagueResult.failed(LeagueCode.ES, "u", FetchStatus.FAILED, "timeout"),
        LeagueCode.IT: LeagueResult.failed(LeagueCode.IT, None, FetchStatus.SKIPPED, "no URL configured"),
    }


def test_parse_args():
    args = parse_args(["--output", "out.html", "--headful", "--log-level", "DEBUG"])
    assert args.output == "out.html"
    assert args.headful is True
    assert args.log_level == "DEBUG"
    assert parse_args([]).headful is False


def test_config_error_exit_code(workdir, monkeypatch):
    def broken_config(*args, **kwargs):
        raise ConfigError("Missing credentials")

    monkeypatch.setattr(main_module, "load_config", broken_config)
    assert asyncio.run(main_module.main([])) == EXIT_CONFIG


def test_login_error_exit_code(config, monkeypatch):
    async def refuse(self):
        raise LoginError("No login form found")

    monkeypatch.setattr(main_module, "load_config", lambda *args, **kwargs: config)
    monkeypatch.setattr(RankingGenerator, "fetch_all_leagues", refuse)
    assert asyncio.run(main_module.main([])) == EXIT_FAILURE


def test_unexpected_error_exit_code(config, monkeypatch):
    async def crash(self):
        raise RuntimeError("browser crashed")

    monkeypatch.setattr(main_module, "load_config", lambda *args, **kwargs: config)
    monkeypatch.setattr(RankingGenerator, "fetch_all_leagues", crash)
    assert asyncio.run(main_module.main([])) == EXIT_FAILURE


def test_successful_run_writes_page(config, monkeypatch):
    async def fetched(self):
        self.results = fake_results()
        return self.results

    monkeypatch.setattr(main_module, "load_config", lambda *args, **kwargs: config)
    monkeypatch.setattr(RankingGenerator, "fetch_all_leagues", fetched)

    assert asyncio.run(main_module.main([])) == EXIT_OK

    output = Path(config.output_path)
    assert output.exists()
    document = output.read_text(encoding="utf-8")
    assert "<td class=\"\">B</td>" in document
    assert "Mis à jour automatiquement" in document


def test_failed_leagues_count_as_empty(config):
    generator = RankingGenerator(config)
    generator.results = fake_results()

    table = generator.build_table()

    assert [row.team_name for row in table] == ["B", "A"]
    assert table[0].points == {LeagueCode.FR: 8, LeagueCode.EN: 9, LeagueCode.ES: 0, LeagueCode.IT: 0}


def test_config_warnings_reach_the_log_file(config, monkeypatch):
    def load_with_warning(*args, **kwargs):
        logging.getLogger("mpg_ranking.config.settings").warning("No URL configured for league IT, it will be empty")
        return config

    async def fetched(self):
        self.results = fake_results()
        return self.results

    monkeypatch.setattr(main_module, "load_config", load_with_warning)
    monkeypatch.setattr(RankingGenerator, "fetch_all_leagues", fetched)

    assert asyncio.run(main_module.main([])) == EXIT_OK

    log_files = list(Path(config.log_dir).glob("ranking_*.log"))
    assert len(log_files) == 1
    assert "No URL configured for league IT" in log_files[0].read_text(encoding="utf-8")


def test_config_error_is_logged_to_file(workdir, monkeypatch):
    def broken_config(*args, **kwargs):
        logging.getLogger("mpg_ranking.config.settings").info("Loading configuration overrides from bad.yaml")
        raise ConfigError("Invalid setting settings.headless")

    monkeypatch.setattr(main_module, "load_config", broken_config)
    assert asyncio.run(main_module.main([])) == EXIT_CONFIG

    text = "".join(path.read_text(encoding="utf-8") for path in (workdir / "logs").glob("*.log"))
    assert "Loading configuration overrides from bad.yaml" in text
    assert "Invalid setting settings.headless" in text
