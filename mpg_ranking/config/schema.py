"""
Data schema definitions for scraped and aggregated rankings
"""
from dataclasses import dataclass, field
from typing import Optional, List, Dict
from .enums import LeagueCode, FetchStatus

@dataclass
class TeamLeagueEntry:
    """One team line read from a league ranking page"""
    team_name: str
    points: int
    goal_diff: int = 0

@dataclass
class LeagueResult:
    """Outcome of fetching one league page"""
    code: LeagueCode
    url: Optional[str] = None
    entries: List[TeamLeagueEntry] = field(default_factory=list)
    status: FetchStatus = FetchStatus.OK
    strategy: Optional[str] = None  # extraction strategy that matched
    error: Optional[str] = None

    @classmethod
    def failed(cls, code: LeagueCode, url: Optional[str], status: FetchStatus,
               error: Optional[str] = None) -> "LeagueResult":
        return cls(code=code, url=url, entries=[], status=status, error=error)

@dataclass
class AggregatedTeamRow:
    """Combined ranking line for one team across every league"""

    team_name: str
    points: Dict[LeagueCode, int] = field(default_factory=dict)
    goal_diffs: Dict[LeagueCode, int] = field(default_factory=dict)
    total_points: int = 0
    total_goal_diff: int = 0
    green_count: int = 0
    red_count: int = 0
    rank: int = 0
