"""
Ranking table extraction - ordered chain of strategies over a page snapshot

Each strategy is a plain function taking a BeautifulSoup document and returning
a list of TeamLeagueEntry; an empty list means "no match" and the next strategy
is tried.
"""
import logging
import re
from typing import Callable, List, Optional, Sequence, Tuple

from bs4 import BeautifulSoup, Tag

from ..config.schema import TeamLeagueEntry
from ..core.utils import (
    clean_text, parse_int, find_int, is_integer_text, has_letter,
    normalize_team_name, team_key,
)

logger = logging.getLogger(__name__)

MARKER_ROW_SELECTOR = '[data-testid="ranking-row"]'
TEAM_NAME_SELECTORS = ['[data-testid="team-name"]', '.team-name', '.name']
HEADER_SELECTOR = 'thead th, [role="columnheader"]'
ROW_SELECTOR = 'table tr, [role="rowgroup"] [role="row"], [role="grid"] [role="row"], [role="table"] [role="row"]'
CELL_SELECTOR = 'td, th, [role="cell"], [role="gridcell"], [role="rowheader"]'
PERMISSIVE_ROW_SELECTOR = 'tr, [role="row"], li'
PERMISSIVE_CELL_SELECTOR = 'td, th, [role="cell"], [role="gridcell"], span, div'

TEAM_HEADER_PATTERN = re.compile(r'(équipe|equipe|team|club)', re.IGNORECASE)
POINTS_HEADER_PATTERN = re.compile(r'^(pts|points?)\b', re.IGNORECASE)
POINTS_ANYWHERE_PATTERN = re.compile(r'\b(pts|points?)\b', re.IGNORECASE)
DIFF_HEADER_PATTERN = re.compile(r'(\+/-|\+/−|diff|goal)', re.IGNORECASE)

POINTS_PREFIX_PATTERN = re.compile(r'\b(?:pts?|points?)\s*:?\s*(\d+)', re.IGNORECASE)
POINTS_SUFFIX_PATTERN = re.compile(r'(?<![\w+\-−])(\d+)\s*(?:pts?|points?)\b', re.IGNORECASE)
DIFF_LABEL_PATTERN = re.compile(r'(?:\+/-|\+/−|diff\w*)\s*:?\s*([+\-−]?\d+)', re.IGNORECASE)
SIGNED_PATTERN = re.compile(r'(?<![\w])[+\-−]\s?\d+')
NUMBER_PATTERN = re.compile(r'(?<![\w+\-−])\d+')
LEADING_RANK_PATTERN = re.compile(r'^\d+\s*[.)]?\s+')

Strategy = Callable[[BeautifulSoup], List[TeamLeagueEntry]]

def _text(element: Optional[Tag]) -> str:
    if element is None:
        return ""
    return clean_text(element.get_text(" "))

def _dedupe(entries: List[TeamLeagueEntry]) -> List[TeamLeagueEntry]:
    """Keep the first row for each team"""
    seen = set()
    unique = []
    for entry in entries:
        key = team_key(entry.team_name)
        if not key or key in seen:
            continue
        seen.add(key)
        unique.append(entry)
    return unique

def _make_entry(team: Optional[str], points: int, diff: int = 0) -> Optional[TeamLeagueEntry]:
    name = normalize_team_name(team)
    if not name or not has_letter(name):
        return None
    return TeamLeagueEntry(team_name=name, points=points, goal_diff=diff)

def _points_from_label(text: str) -> Optional[int]:
    match = POINTS_PREFIX_PATTERN.search(text) or POINTS_SUFFIX_PATTERN.search(text)
    if match:
        return parse_int(match.group(1))
    return None

# Strategy 1: explicit ranking-row markers

def _marker_team(row: Tag) -> str:
    for selector in TEAM_NAME_SELECTORS:
        name = _text(row.select_one(selector))
        if name:
            return name
    # Whole-row text without the leading rank, cut before the next number
    text = LEADING_RANK_PATTERN.sub('', _text(row))
    return re.split(r'\s[+\-−]?\d', text, maxsplit=1)[0]

def _label_candidates(row: Tag) -> List[Tag]:
    elements = row.find_all(True)
    leaves = [element for element in elements if element.find(True) is None]
    wrappers = [element for element in reversed(elements) if element.find(True) is not None]
    return leaves + wrappers + [row]

def _marker_points(row: Tag, remaining_text: str) -> Optional[int]:
    # An element labelled "Pts 4", "Points : 4" or "4 pts": leaves, then wrappers innermost first
    for element in _label_candidates(row):
        points = _points_from_label(_text(element))
        if points is not None:
            return points

    # title / aria-label mentioning points
    for element in [row] + row.find_all(True):
        for attr in ('title', 'aria-label'):
            value = clean_text(element.get(attr))
            if value and POINTS_ANYWHERE_PATTERN.search(value):
                found = find_int(value)
                if found is None:
                    found = find_int(_text(element))
                if found is not None:
                    return found

    # Last resort: first number not prefixed by a sign (a signed number is the +/-)
    match = NUMBER_PATTERN.search(LEADING_RANK_PATTERN.sub('', remaining_text))
    if match:
        return int(match.group(0))
    return None

def _marker_diff(remaining_text: str) -> int:
    match = DIFF_LABEL_PATTERN.search(remaining_text)
    if match:
        return parse_int(match.group(1))
    match = SIGNED_PATTERN.search(remaining_text)
    if match:
        return parse_int(match.group(0))
    return 0

def extract_marker_rows(soup: BeautifulSoup) -> List[TeamLeagueEntry]:
    """Rows tagged data-testid=ranking-row, preferred over generic tables"""
    entries = []
    for row in soup.select(MARKER_ROW_SELECTOR):
        team = _marker_team(row)
        remaining = _text(row).replace(team, " ", 1) if team else _text(row)
        points = _marker_points(row, remaining)
        if points is None:
            continue
        entry = _make_entry(team, points, _marker_diff(remaining))
        if entry:
            entries.append(entry)
    return _dedupe(entries)

# Strategies 2 and 3: structured tables

def _owning_row(cell: Tag) -> Optional[Tag]:
    for parent in cell.parents:
        if parent.name == 'tr' or parent.get('role') == 'row':
            return parent
    return None

def _header_texts(soup: BeautifulSoup) -> List[str]:
    headers = soup.select(HEADER_SELECTOR)
    if not headers:
        # Tables without <thead>: first row made only of <th>
        for row in soup.select('table tr'):
            cells = row.find_all(['th', 'td'])
            if cells and all(cell.name == 'th' for cell in cells):
                headers = cells
                break
    return [_text(header).lower() for header in headers]

def _table_rows(soup: BeautifulSoup) -> List[List[str]]:
    rows = []
    for row in soup.select(ROW_SELECTOR):
        cells = [cell for cell in row.select(CELL_SELECTOR) if _owning_row(cell) is row]
        # Header rows are made only of <th>
        if not cells or all(cell.name == 'th' for cell in cells):
            continue
        rows.append([_text(cell) for cell in cells])
    return rows

def _find_index(headers: Sequence[str], pattern: re.Pattern) -> Optional[int]:
    for index, header in enumerate(headers):
        if pattern.search(header):
            return index
    return None

def map_columns(headers: Sequence[str]) -> Tuple[Optional[int], Optional[int], Optional[int]]:
    """Locate team, points and diff columns from lower-cased header labels"""
    points_index = _find_index(headers, POINTS_HEADER_PATTERN)
    if points_index is None:
        points_index = _find_index(headers, POINTS_ANYWHERE_PATTERN)
    return (
        _find_index(headers, TEAM_HEADER_PATTERN),
        points_index,
        _find_index(headers, DIFF_HEADER_PATTERN),
    )

def _cell(cells: Sequence[str], index: Optional[int]) -> Optional[str]:
    if index is None or index >= len(cells):
        return None
    return cells[index]

def resolve_columns(mapped: Tuple[Optional[int], Optional[int], Optional[int]],
                    width: int) -> Tuple[int, int, Optional[int]]:
    """
    Fill unmatched columns with their positional defaults for a row of width cells

    team is the 2nd cell, points the last cell and diff the cell before points
    (no diff when that cell is the team one).
    """
    team_index, points_index, diff_index = mapped
    if team_index is None:
        team_index = 1
    if points_index is None:
        points_index = width - 1
    if diff_index is None:
        diff_index = points_index - 1
        if diff_index < 0 or diff_index == team_index:
            diff_index = None
    return team_index, points_index, diff_index

def extract_header_table(soup: BeautifulSoup) -> List[TeamLeagueEntry]:
    """Table whose headers name the team or points column; other columns fall back to positions"""
    mapped = map_columns(_header_texts(soup))
    if mapped[0] is None and mapped[1] is None:
        return []

    entries = []
    for cells in _table_rows(soup):
        team_index, points_index, diff_index = resolve_columns(mapped, len(cells))
        if team_index == points_index:
            continue
        points_text = _cell(cells, points_index)
        if points_text is None or find_int(points_text) is None:
            continue
        entry = _make_entry(_cell(cells, team_index), parse_int(points_text),
                            parse_int(_cell(cells, diff_index)))
        if entry:
            entries.append(entry)
    return _dedupe(entries)

def extract_positional_table(soup: BeautifulSoup) -> List[TeamLeagueEntry]:
    """Same rows without header mapping: team 2nd, points last, diff before points"""
    entries = []
    for cells in _table_rows(soup):
        if len(cells) < 3 or find_int(cells[-1]) is None:
            continue
        entry = _make_entry(cells[1], parse_int(cells[-1]), parse_int(cells[-2]))
        if entry:
            entries.append(entry)
    return _dedupe(entries)

# Strategy 4: permissive scan

def extract_permissive_rows(soup: BeautifulSoup) -> List[TeamLeagueEntry]:
    """Any row-like element: first alphabetic cell is the team, first integer cell the points"""
    entries = []
    for row in soup.select(PERMISSIVE_ROW_SELECTOR):
        texts = [text for text in (_text(cell) for cell in row.select(PERMISSIVE_CELL_SELECTOR)) if text]
        team = next((text for text in texts if has_letter(text)), None)
        points_text = next((text for text in texts if is_integer_text(text)), None)
        if team is None or points_text is None:
            continue
        entry = _make_entry(team, parse_int(points_text))
        if entry:
            entries.append(entry)
    return _dedupe(entries)

STRATEGIES: List[Tuple[str, Strategy]] = [
    ('marker_rows', extract_marker_rows),
    ('header_table', extract_header_table),
    ('positional_table', extract_positional_table),
    ('permissive_rows', extract_permissive_rows),
]

def extract_rankings(html: str) -> Tuple[Optional[str], List[TeamLeagueEntry]]:
    """
    Run the strategy chain on a page snapshot

    Returns:
        (strategy name, entries), or (None, []) when nothing matched
    """
    soup = BeautifulSoup(html or "", 'html.parser')

    for name, strategy in STRATEGIES:
        entries = strategy(soup)
        if entries:
            logger.debug(f"Strategy {name} matched {len(entries)} rows")
            return name, entries
        logger.debug(f"Strategy {name} found no rows")

    return None, []
