"""
Utility functions for cleaning scraped text
"""
import re
from typing import Optional

INT_PATTERN = re.compile(r'[+\-−]?\s*\d+')
PURE_INT_PATTERN = re.compile(r'^[+\-−]?\d+$')
LETTER_PATTERN = re.compile(r'[^\W\d_]')

# Suffixes appended to team names on some layouts ("Team — Coach", "Team - 3 J.", "Team, owner")
NAME_SEPARATORS = [' — ', ' – ', ' - ', ',']

def clean_text(text: Optional[str]) -> str:
    """Collapse whitespace (including non-breaking spaces) and trim"""
    if not text:
        return ""
    return re.sub(r'\s+', ' ', str(text).replace('\xa0', ' ')).strip()

def parse_int(text: Optional[str], default: int = 0) -> int:
    """
    Extract the first (optionally signed) integer from text

    Examples:
    - "42 pts" -> 42
    - "+7" -> 7
    - "−3" -> -3
    - "n/a" -> 0
    """
    match = INT_PATTERN.search(clean_text(text))
    if not match:
        return default
    token = match.group(0).replace('−', '-').replace(' ', '')
    return int(token)

def find_int(text: Optional[str]) -> Optional[int]:
    """Like parse_int but returns None when there is no integer"""
    if not INT_PATTERN.search(clean_text(text)):
        return None
    return parse_int(text)

def is_integer_text(text: Optional[str]) -> bool:
    """True when the text is a single integer and nothing else"""
    return bool(PURE_INT_PATTERN.match(clean_text(text).replace(' ', '')))

def has_letter(text: Optional[str]) -> bool:
    return bool(LETTER_PATTERN.search(text or ""))

def normalize_team_name(text: Optional[str]) -> str:
    """
    Normalise a scraped team name so the same team matches across leagues

    Examples:
    - "  Les  Bleus  " -> "Les Bleus"
    - "Les Bleus — Jean" -> "Les Bleus"
    - "FC Nantes, Pierre" -> "FC Nantes"
    """
    name = clean_text(text)
    for separator in NAME_SEPARATORS:
        head = name.split(separator)[0].strip()
        if head:
            name = head
    return name

def team_key(name: str) -> str:
    """Join key for a team across leagues (case and whitespace insensitive)"""
    return normalize_team_name(name).casefold()
