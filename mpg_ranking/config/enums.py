"""
Enum definitions for leagues, session state and fetch outcomes
"""
from enum import Enum

class LeagueCode(Enum):
    FR = "FR"
    EN = "EN"
    ES = "ES"
    IT = "IT"

class SessionStatus(Enum):
    UNAUTHENTICATED = "UNAUTHENTICATED"
    AUTHENTICATED = "AUTHENTICATED"
    UNCONFIRMED = "UNCONFIRMED"

class FetchStatus(Enum):
    OK = "OK"
    EMPTY = "EMPTY"
    FAILED = "FAILED"
    SKIPPED = "SKIPPED"
