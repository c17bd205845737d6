"""Tests for day report rendering."""

from datetime import datetime

import pytest

from scrimboard.models.standings import StandingsRow
from scrimboard.services.report_exporter import (
    render_csv,
    render_printable,
    render_report,
    render_spreadsheet,
    report_filename,
)


@pytest.fixture
def rows():
    return [
        StandingsRow(rank=1, team_name='Alpha "A"', kills=12, place_pts=36, kill_pts=12, sanctions=2, total=50),
        StandingsRow(rank=2, team_name="<Bravo>", kills=4, place_pts=20, kill_pts=4, sanctions=-5, total=19),
    ]


def test_report_filename():
    assert report_filename("Summer Cup: Finals", 3, "csv") == "Summer_Cup_Finals_Day3_Report.csv"


def test_csv_layout(rows):
    lines = render_csv(rows).split("\n")

    assert lines[0] == "Rank,Team,Kills,Place Pts,Kill Pts,Sanctions,Total"
    assert lines[1] == '"#1","Alpha ""A""","12","36","12","2","50"'
    assert lines[2] == '"#2","<Bravo>","4","20","4","-5","19"'
    assert len(lines) == 3


def test_csv_without_rows_is_header_only():
    assert render_csv([]) == "Rank,Team,Kills,Place Pts,Kill Pts,Sanctions,Total"


def test_spreadsheet_is_escaped_html_table(rows):
    content = render_spreadsheet(rows)

    assert content.startswith("<html")
    assert "<x:Name>Tournament Report</x:Name>" in content
    assert "<th>Place Pts</th>" in content
    assert "&lt;Bravo&gt;" in content
    assert "<td>#1</td>" in content


def test_printable_report(rows):
    content = render_printable("Summer <Cup>", 2, rows, generated_at=datetime(2026, 7, 1, 20, 30))

    assert "<h1>Summer &lt;Cup&gt;</h1>" in content
    assert "Day 2 Report" in content
    assert "2026-07-01 20:30" in content
    assert "<td>+2</td>" in content
    assert "<td>-5</td>" in content


@pytest.mark.parametrize(
    "fmt,media_type",
    [("csv", "text/csv; charset=utf-8"), ("xls", "application/vnd.ms-excel"), ("html", "text/html; charset=utf-8")],
)
def test_render_report_formats(rows, fmt, media_type):
    content, returned_type, filename = render_report(fmt, "Cup", 1, rows)

    assert content
    assert returned_type == media_type
    assert filename == f"Cup_Day1_Report.{fmt}"


def test_render_report_unknown_format(rows):
    with pytest.raises(ValueError):
        render_report("pdf", "Cup", 1, rows)
