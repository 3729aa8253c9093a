"""
Exception types raised by the ranking generator
"""


class RankingError(Exception):
    """Base exception for ranking generator errors."""

    pass


class ConfigError(RankingError):
    """Raised when required configuration (credentials, files) is missing or invalid."""

    pass


class LoginError(RankingError):
    """Raised when no login form can be located on any candidate URL."""

    pass


class ExtractionError(RankingError):
    """Raised when a league page cannot be loaded or read."""

    pass
