"""
Aggregation of league rankings into the global table
"""
import logging
from typing import Dict, Iterable, List, Mapping, Set, Tuple

from ..config.enums import LeagueCode
from ..config.schema import AggregatedTeamRow, TeamLeagueEntry
from ..core.utils import normalize_team_name, team_key

logger = logging.getLogger(__name__)

LEAGUE_COLUMNS: Tuple[LeagueCode, ...] = tuple(LeagueCode)

def column_extremes(rows: Iterable[AggregatedTeamRow]) -> Dict[LeagueCode, Tuple[int, int]]:
    """(max, min) points per league column; (0, 0) when there are no teams"""
    rows = list(rows)
    extremes = {}
    for code in LEAGUE_COLUMNS:
        values = [row.points.get(code, 0) for row in rows]
        extremes[code] = (max(values, default=0), min(values, default=0))
    return extremes

def _sort_key(row: AggregatedTeamRow, alphabetical: bool):
    key = (-row.total_points, -row.green_count, row.red_count, -row.total_goal_diff)
    if alphabetical:
        key += (row.team_name.casefold(),)
    return key

def aggregate(leagues: Mapping[LeagueCode, List[TeamLeagueEntry]],
              alphabetical_tiebreak: bool = False) -> List[AggregatedTeamRow]:
    """
    Merge per-league entries into one ranked row per team

    Teams are matched on a case/whitespace-insensitive key and keep the first
    spelling seen (leagues read in FR, EN, ES, IT order). Missing leagues count
    as 0. Ordering: total points desc, green count desc, red count asc, total
    goal difference desc; remaining ties keep first-seen order unless
    alphabetical_tiebreak is set.
    """
    by_team: Dict[str, AggregatedTeamRow] = {}
    seen: Dict[str, Set[LeagueCode]] = {}

    for code in LEAGUE_COLUMNS:
        for entry in leagues.get(code) or []:
            key = team_key(entry.team_name)
            if not key:
                continue
            row = by_team.get(key)
            if row is None:
                row = AggregatedTeamRow(
                    team_name=normalize_team_name(entry.team_name),
                    points={c: 0 for c in LEAGUE_COLUMNS},
                    goal_diffs={c: 0 for c in LEAGUE_COLUMNS},
                )
                by_team[key] = row
            # A duplicate inside one league keeps its first line
            if code in seen.setdefault(key, set()):
                logger.debug(f"Duplicate team {entry.team_name} in {code.value}, ignored")
                continue
            seen[key].add(code)
            row.points[code] = entry.points
            row.goal_diffs[code] = entry.goal_diff

    rows = list(by_team.values())
    for row in rows:
        row.total_points = sum(row.points[c] for c in LEAGUE_COLUMNS)
        row.total_goal_diff = sum(row.goal_diffs[c] for c in LEAGUE_COLUMNS)

    extremes = column_extremes(rows)
    for row in rows:
        row.green_count = sum(1 for c in LEAGUE_COLUMNS if row.points[c] == extremes[c][0])
        row.red_count = sum(1 for c in LEAGUE_COLUMNS if row.points[c] == extremes[c][1])

    rows.sort(key=lambda row: _sort_key(row, alphabetical_tiebreak))

    for index, row in enumerate(rows):
        row.rank = index + 1

    logger.info(f"Aggregated {len(rows)} teams across {len(LEAGUE_COLUMNS)} leagues")
    return rows
