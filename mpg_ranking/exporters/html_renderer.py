"""
HTML exporter for the global ranking
"""
import html
import logging
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Sequence

from dateutil import tz

from ..config.schema import AggregatedTeamRow
from ..ranking.aggregator import LEAGUE_COLUMNS, column_extremes

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "Classement MPG — Global"
DEFAULT_TIMEZONE = "Europe/Paris"
TIMESTAMP_FORMAT = "%d/%m/%Y %H:%M:%S"

STYLE = """
    :root { --bg:#fff; --fg:#111; --muted:#666; --border:#e5e7eb; --best:#e6ffed; --worst:#ffecec; }
    body { font-family: system-ui, -apple-system, Segoe UI, Roboto, sans-serif; background:var(--bg); color:var(--fg); margin:40px auto; max-width:1100px; padding:0 16px; }
    .card { border:1px solid var(--border); border-radius:14px; padding:22px; box-shadow:0 1px 2px rgba(0,0,0,.03); }
    header { display:flex; align-items:center; gap:14px; }
    header img { height:48px; }
    h1 { margin:0 0 6px 0; font-size:28px; }
    small { color:var(--muted); }
    table { width:100%; border-collapse:collapse; margin-top:14px; }
    th, td { padding:10px 12px; border-bottom:1px solid var(--border); text-align:left; white-space:nowrap; }
    thead th { background:#fafafa; position:sticky; top:0; }
    tr:hover td { background:#fafafa; }
    td.best { background:var(--best); font-weight:600; }
    td.worst { background:var(--worst); }
    .legend { margin-top:10px; color:var(--muted); font-size:14px; }
"""

HEADERS = ["#", "Équipe"] + [code.value for code in LEAGUE_COLUMNS] + ["Total", "+/-", "Verts", "Rouges"]

def format_timestamp(generated_at: Optional[datetime] = None, timezone: str = DEFAULT_TIMEZONE) -> str:
    """
    Human readable generation time in the given timezone (naive datetimes are UTC)

    Raises:
        ValueError: the timezone name is unknown
    """
    zone = tz.gettz(timezone)
    if zone is None:
        raise ValueError(f"Unknown timezone: {timezone}")
    if generated_at is None:
        generated_at = datetime.now(tz.UTC)
    elif generated_at.tzinfo is None:
        generated_at = generated_at.replace(tzinfo=tz.UTC)
    return generated_at.astimezone(zone).strftime(TIMESTAMP_FORMAT)

def highlight(value: int, best: int, worst: int) -> str:
    if value == best:
        return "best"
    if value == worst:
        return "worst"
    return ""

def _td(content, css_class: str = "") -> str:
    return f'<td class="{css_class}">{content}</td>'

def _signed(value: int) -> str:
    return f"+{value}" if value > 0 else str(value)

def _render_rows(rows: Sequence[AggregatedTeamRow]) -> str:
    extremes = column_extremes(rows)
    totals = [row.total_points for row in rows] or [0]
    diffs = [row.total_goal_diff for row in rows] or [0]

    lines = []
    for row in rows:
        league_cells = "".join(
            _td(row.points.get(code, 0), highlight(row.points.get(code, 0), *extremes[code]))
            for code in LEAGUE_COLUMNS
        )
        lines.append(
            "<tr>"
            f"{_td(row.rank)}"
            f"{_td(html.escape(row.team_name))}"
            f"{league_cells}"
            f"{_td(f'<strong>{row.total_points}</strong>', highlight(row.total_points, max(totals), min(totals)))}"
            f"{_td(_signed(row.total_goal_diff), highlight(row.total_goal_diff, max(diffs), min(diffs)))}"
            f"{_td(row.green_count)}"
            f"{_td(row.red_count)}"
            "</tr>"
        )
    return "\n        ".join(lines)

def render_html(rows: List[AggregatedTeamRow], generated_at: Optional[datetime] = None,
                logo_url: Optional[str] = None, title: str = DEFAULT_TITLE,
                timezone: str = DEFAULT_TIMEZONE) -> str:
    """
    Render the ranked table as a self-contained HTML document

    The output depends only on its arguments once generated_at is fixed.
    """
    stamp = format_timestamp(generated_at, timezone)
    safe_title = html.escape(title)
    logo = f'<img src="{html.escape(logo_url, quote=True)}" alt="logo" />' if logo_url else ""
    header_cells = "".join(f"<th>{html.escape(label)}</th>" for label in HEADERS)
    body = _render_rows(rows) if rows else f'<tr><td colspan="{len(HEADERS)}">Aucune équipe lue</td></tr>'

    return f"""<!doctype html>
<html lang="fr">
<head>
  <meta charset="utf-8" />
  <title>{safe_title}</title>
  <meta name="viewport" content="width=device-width, initial-scale=1" />
  <style>{STYLE}  </style>
</head>
<body>
  <div class="card">
    <header>{logo}<h1>{safe_title}</h1></header>
    <p><small>Mis à jour automatiquement : {stamp}</small></p>
    <table>
      <thead>
        <tr>{header_cells}</tr>
      </thead>
      <tbody>
        {body}
      </tbody>
    </table>
    <div class="legend">Verts = meilleur score de la ligue ; Rouges = plus petit score de la ligue (sert aux tie-breakers).</div>
  </div>
</body>
</html>
"""

class HtmlExporter:
    """Write the rendered ranking page to disk"""

    def __init__(self, output_path: str = "docs/index.html"):
        self.output_path = Path(output_path)

    def write(self, document: str) -> str:
        """Write the document, creating the output directory; errors propagate"""
        self.output_path.parent.mkdir(parents=True, exist_ok=True)
        self.output_path.write_text(document, encoding='utf-8')
        logger.info(f"Ranking page written to {self.output_path}")
        return str(self.output_path)
