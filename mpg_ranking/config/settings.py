"""
Application configuration loaded from YAML defaults, an optional user file
and environment variables (.env supported through python-dotenv)

The merged document is validated against SETTINGS_SCHEMA with jsonschema
before the AppConfig is built.
"""
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import yaml
from dateutil import tz
from dotenv import load_dotenv
from jsonschema import Draft7Validator, FormatChecker
from jsonschema.exceptions import best_match

from .enums import LeagueCode
from ..core.errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).parent / "leagues.yaml"

_timeout = {'type': 'integer', 'minimum': 1}
_flag = {'type': 'boolean'}
_text = {'type': 'string', 'minLength': 1}

SETTINGS_SCHEMA = {
    'type': 'object',
    'properties': {
        'leagues': {
            'type': ['object', 'null'],
            'additionalProperties': {'type': ['string', 'null']},
        },
        'settings': {
            'type': 'object',
            'properties': {
                'headless': _flag,
                'login_urls': {
                    'anyOf': [_text, {'type': 'array', 'items': _text, 'minItems': 1}],
                },
                'post_login_pattern': {**_text, 'format': 'regex'},
                'strict_login': _flag,
                'alphabetical_tiebreak': _flag,
                'output_path': _text,
                'logo_url': {'type': ['string', 'null']},
                'page_title': {'type': 'string'},
                'timezone': {**_text, 'format': 'timezone'},
                'log_level': {'type': 'string', 'pattern': '(?i)^(debug|info|warning|error|critical)$'},
                'log_dir': _text,
                'debug_snapshots': _flag,
                'debug_dir': _text,
                'league_pause_ms': {'type': 'integer', 'minimum': 0},
                'nav_retries': {'type': 'integer', 'minimum': 1},
                'timeouts': {
                    'type': 'object',
                    'properties': {
                        'page_ms': _timeout,
                        'navigation_ms': _timeout,
                        'network_idle_ms': _timeout,
                        'table_ms': _timeout,
                        'login_ms': _timeout,
                        'selector_ms': _timeout,
                        'click_ms': _timeout,
                    },
                    'additionalProperties': False,
                },
            },
            'additionalProperties': False,
        },
    },
}

FORMAT_CHECKER = FormatChecker()

@FORMAT_CHECKER.checks('timezone')
def _is_timezone(value) -> bool:
    if not isinstance(value, str):
        return True
    return tz.gettz(value) is not None

# Environment variable -> (setting, parsed as a YAML scalar)
ENV_SETTINGS = {
    'MPG_OUTPUT': ('output_path', False),
    'MPG_LOG_LEVEL': ('log_level', False),
    'MPG_DEBUG_DIR': ('debug_dir', False),
    'MPG_HEADLESS': ('headless', True),
}

@dataclass(frozen=True)
class Timeouts:
    """Per-operation timeouts, in milliseconds"""
    page_ms: int = 30000
    navigation_ms: int = 30000
    network_idle_ms: int = 10000
    table_ms: int = 12000
    login_ms: int = 15000
    selector_ms: int = 5000
    click_ms: int = 3000

@dataclass(frozen=True)
class AppConfig:
    """Everything the pipeline needs, built once at startup"""
    email: str
    password: str
    leagues: Dict[LeagueCode, Optional[str]]
    login_urls: List[str] = field(default_factory=lambda: ["https://mpg.football/login"])
    post_login_pattern: str = r"/(dashboard|league|championships?)"
    strict_login: bool = True
    alphabetical_tiebreak: bool = False
    headless: bool = True
    output_path: str = "docs/index.html"
    logo_url: Optional[str] = None
    page_title: str = "Classement MPG — Global"
    timezone: str = "Europe/Paris"
    log_level: str = "INFO"
    log_dir: str = "logs"
    debug_snapshots: bool = True
    debug_dir: str = "debug"
    league_pause_ms: int = 300
    nav_retries: int = 2
    timeouts: Timeouts = field(default_factory=Timeouts)

    def __repr__(self) -> str:
        # Keep the password out of logs and tracebacks
        return (f"AppConfig(email={self.email!r}, leagues={len(self.leagues)}, "
                f"output_path={self.output_path!r}, headless={self.headless})")

def _read_yaml(path: Path) -> Dict[str, Any]:
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError as e:
        raise ConfigError(f"Configuration file not found: {path}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Configuration file {path} must contain a mapping")
    return data

def _merge(base: Dict[str, Any], override: Mapping[str, Any]) -> Dict[str, Any]:
    """Recursively merge override into a copy of base"""
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), Mapping):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged

def _env_value(env_key: str, raw: str, as_scalar: bool) -> Any:
    if not as_scalar:
        return raw
    try:
        return yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid value for {env_key}: {raw!r}") from e

def validate_settings(data: Mapping[str, Any]):
    """
    Check the merged configuration document against SETTINGS_SCHEMA

    Raises:
        ConfigError: describing the most relevant violation
    """
    validator = Draft7Validator(SETTINGS_SCHEMA, format_checker=FORMAT_CHECKER)
    error = best_match(validator.iter_errors(data))
    if error is None:
        return
    location = '.'.join(str(part) for part in error.absolute_path) or 'configuration'
    raise ConfigError(f"Invalid setting {location}: {error.message}")

def _build_leagues(raw: Mapping[str, Any], env: Mapping[str, str]) -> Dict[LeagueCode, Optional[str]]:
    leagues: Dict[LeagueCode, Optional[str]] = {}
    for code in LeagueCode:
        url = raw.get(code.value)
        env_key = f"MPG_LEAGUE_{code.value}"
        if env_key in env:
            url = env[env_key]
        url = url.strip() if url else None
        if not url:
            logger.warning(f"No URL configured for league {code.value}, it will be empty")
            url = None
        leagues[code] = url

    unknown = set(raw) - {code.value for code in LeagueCode}
    if unknown:
        logger.warning(f"Ignoring unknown league codes in configuration: {sorted(unknown)}")

    return leagues

def load_config(config_path: Optional[str] = None,
                env: Optional[Mapping[str, str]] = None,
                overrides: Optional[Mapping[str, Any]] = None) -> AppConfig:
    """
    Build the application configuration

    Layers, lowest priority first:
    - packaged defaults (leagues.yaml next to this module)
    - the user YAML file (config_path argument or MPG_CONFIG)
    - environment variables (MPG_*), after loading a .env file
    - explicit overrides (command line)

    Raises:
        ConfigError: credentials missing or a setting is malformed
    """
    if env is None:
        load_dotenv()
        env = os.environ

    data = _read_yaml(DEFAULT_CONFIG_PATH)

    user_path = config_path or env.get('MPG_CONFIG')
    if user_path:
        logger.info(f"Loading configuration overrides from {user_path}")
        data = _merge(data, _read_yaml(Path(user_path)))

    layer: Dict[str, Any] = {}
    for env_key, (setting, as_scalar) in ENV_SETTINGS.items():
        if env.get(env_key):
            layer[setting] = _env_value(env_key, env[env_key], as_scalar)
    for key, value in (overrides or {}).items():
        if value is not None:
            layer[key] = value
    data = _merge(data, {'settings': layer})

    validate_settings(data)

    email = (env.get('MPG_EMAIL') or '').strip()
    password = env.get('MPG_PASSWORD') or ''
    if not email or not password:
        raise ConfigError("Missing credentials: MPG_EMAIL and MPG_PASSWORD must be set")

    settings = data.get('settings') or {}
    login_urls = settings.get('login_urls', ["https://mpg.football/login"])
    if isinstance(login_urls, str):
        login_urls = [login_urls]

    return AppConfig(
        email=email,
        password=password,
        leagues=_build_leagues(data.get('leagues') or {}, env),
        login_urls=list(login_urls),
        post_login_pattern=settings.get('post_login_pattern', AppConfig.post_login_pattern),
        strict_login=settings.get('strict_login', True),
        alphabetical_tiebreak=settings.get('alphabetical_tiebreak', False),
        headless=settings.get('headless', True),
        output_path=settings.get('output_path', AppConfig.output_path),
        logo_url=settings.get('logo_url') or None,
        page_title=settings.get('page_title', AppConfig.page_title),
        timezone=settings.get('timezone', AppConfig.timezone),
        log_level=settings.get('log_level', 'INFO').upper(),
        log_dir=settings.get('log_dir', 'logs'),
        debug_snapshots=settings.get('debug_snapshots', True),
        debug_dir=settings.get('debug_dir', 'debug'),
        league_pause_ms=settings.get('league_pause_ms', 300),
        nav_retries=settings.get('nav_retries', 2),
        timeouts=Timeouts(**(settings.get('timeouts') or {})),
    )
