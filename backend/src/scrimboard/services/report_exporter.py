"""Day report rendering: CSV, spreadsheet HTML and printable HTML.

Reports only ever see StandingsRow lists, already ranked.
"""

import csv
import html
from datetime import datetime
from typing import Literal

import pandas as pd

from scrimboard.models.standings import StandingsRow
from scrimboard.utils.text import sanitize_filename

ReportFormat = Literal["csv", "xls", "html"]

REPORT_COLUMNS = ["Rank", "Team", "Kills", "Place Pts", "Kill Pts", "Sanctions", "Total"]

MEDIA_TYPES: dict[str, str] = {
    "csv": "text/csv; charset=utf-8",
    "xls": "application/vnd.ms-excel",
    "html": "text/html; charset=utf-8",
}

SPREADSHEET_HEAD = (
    '<html xmlns:o="urn:schemas-microsoft-com:office:office" '
    'xmlns:x="urn:schemas-microsoft-com:office:excel" '
    'xmlns="http://www.w3.org/TR/REC-html40"><head><meta charset="utf-8">'
    "<!--[if gte mso 9]><xml><x:ExcelWorkbook><x:ExcelWorksheets><x:ExcelWorksheet>"
    "<x:Name>Tournament Report</x:Name><x:WorksheetOptions><x:DisplayGridlines/>"
    "</x:WorksheetOptions></x:ExcelWorksheet></x:ExcelWorksheets></x:ExcelWorkbook>"
    "</xml><![endif]--></head><body>"
)

PRINT_STYLE = """
body { font-family: 'Helvetica Neue', Helvetica, Arial, sans-serif; padding: 40px; }
h1 { color: #333; border-bottom: 2px solid #000; padding-bottom: 10px; margin-bottom: 5px; }
.meta { color: #666; margin-bottom: 30px; font-size: 0.9em; }
table { width: 100%; border-collapse: collapse; margin-top: 20px; font-size: 14px; }
th, td { border: 1px solid #ddd; padding: 10px; text-align: left; }
th { background-color: #f2f2f2; font-weight: bold; text-transform: uppercase; font-size: 12px; }
tr:nth-child(even) { background-color: #f9f9f9; }
"""


def report_filename(tournament_name: str, day_number: int, ext: str) -> str:
    """e.g. "Summer_Cup_Day2_Report.csv"."""
    return f"{sanitize_filename(tournament_name)}_Day{day_number}_Report.{ext}"


def to_frame(rows: list[StandingsRow]) -> pd.DataFrame:
    """Standings rows as a DataFrame with report column headers."""
    return pd.DataFrame(
        [
            [f"#{r.rank}", r.team_name, r.kills, r.place_pts, r.kill_pts, r.sanctions, r.total]
            for r in rows
        ],
        columns=REPORT_COLUMNS,
    )


def render_csv(rows: list[StandingsRow]) -> str:
    """Header line unquoted, every data cell quoted."""
    header = ",".join(REPORT_COLUMNS)
    if not rows:
        return header
    body = to_frame(rows).to_csv(
        index=False, header=False, quoting=csv.QUOTE_ALL, lineterminator="\n"
    )
    return f"{header}\n{body.rstrip()}"


def render_spreadsheet(rows: list[StandingsRow]) -> str:
    """HTML table that spreadsheet applications open as a worksheet (.xls)."""
    table = to_frame(rows).to_html(index=False, border=1)
    return f"{SPREADSHEET_HEAD}{table}</body></html>"


def render_printable(
    tournament_name: str,
    day_number: int,
    rows: list[StandingsRow],
    generated_at: datetime | None = None,
) -> str:
    """Standalone printable page; bonuses are shown with a leading "+"."""
    generated_at = generated_at or datetime.now()
    table = to_frame(rows).to_html(
        index=False,
        formatters={"Sanctions": lambda v: f"{v:+d}" if v else "0"},
    )
    title = html.escape(report_filename(tournament_name, day_number, "html")[:-5])
    return (
        f"<html><head><meta charset=\"utf-8\"><title>{title}</title>"
        f"<style>{PRINT_STYLE}</style></head><body>"
        f"<h1>{html.escape(tournament_name)}</h1>"
        f"<div class=\"meta\">Day {day_number} Report  Generated: "
        f"{generated_at.strftime('%Y-%m-%d %H:%M')}</div>"
        f"{table}</body></html>"
    )


def render_report(
    fmt: ReportFormat, tournament_name: str, day_number: int, rows: list[StandingsRow]
) -> tuple[str, str, str]:
    """Render a report in the requested format.

    Returns:
        (content, media type, download filename)
    """
    if fmt == "csv":
        content = render_csv(rows)
    elif fmt == "xls":
        content = render_spreadsheet(rows)
    elif fmt == "html":
        content = render_printable(tournament_name, day_number, rows)
    else:
        raise ValueError(f"Unknown report format: {fmt}")
    return content, MEDIA_TYPES[fmt], report_filename(tournament_name, day_number, fmt)
