"""Tests for lobby state transitions and screenshot analysis."""

import asyncio
import json

import anyio
import pytest

from scrimboard.models.match import Match, MatchResult, MatchState
from scrimboard.models.scoring import ScoringPolicy
from scrimboard.models.team import Team
from scrimboard.models.tournament import Day
from scrimboard.services import match_lifecycle
from scrimboard.services.analysis_logger import AnalysisLogger
from scrimboard.services.errors import (
    ExtractionEmptyError,
    ExtractionUnmatchedError,
    MatchStateError,
)
from scrimboard.services.vision_client import MockVisionClient

pytestmark = pytest.mark.anyio

PNG = "data:image/png;base64,iVBORw0KGgo="
JPEG = "data:image/jpeg;base64,/9j/4AAQ"


@pytest.fixture
def roster():
    return [Team(id="x", name="Xenon"), Team(id="y", name="Yeti"), Team(id="z", name="Zephyr")]


@pytest.fixture
def policy():
    return ScoringPolicy(points_per_kill=1, rank_points=[10, 6, 4])


class FailingExtractor(MockVisionClient):
    """Raises on the first screenshot, then serves canned rows."""

    async def extract_match_data(self, image_base64, mime_type, known_team_names):
        if not self.calls:
            self.calls.append((image_base64, mime_type, list(known_team_names)))
            raise RuntimeError("upstream timeout")
        return await super().extract_match_data(image_base64, mime_type, known_team_names)


class OverlapExtractor(MockVisionClient):
    """Holds every call open until all expected calls have started."""

    def __init__(self, expected: int, **kwargs):
        super().__init__(**kwargs)
        self.expected = expected
        self.in_flight = 0
        self.peak = 0
        self.all_started = asyncio.Event()

    async def extract_match_data(self, image_base64, mime_type, known_team_names):
        self.in_flight += 1
        self.peak = max(self.peak, self.in_flight)
        if self.in_flight == self.expected:
            self.all_started.set()
        await self.all_started.wait()
        self.in_flight -= 1
        return await super().extract_match_data(image_base64, mime_type, known_team_names)


class BrokenDiagnostics(AnalysisLogger):
    def capture(self, *args, **kwargs):
        raise OSError("disk full")


class TestTransitions:
    def test_add_match_numbers_sequentially(self):
        day = Day(id="d1", day_number=1)
        first = match_lifecycle.add_match(day)
        second = match_lifecycle.add_match(day, map_name="Erangel")

        assert (first.match_number, second.match_number) == (1, 2)
        assert second.map_name == "Erangel"
        assert first.state == MatchState.EMPTY

    def test_attach_is_append_only(self):
        match = Match(id="m1", match_number=1, screenshots=[PNG])
        match_lifecycle.attach_screenshots(match, [JPEG])

        assert match.screenshots == [PNG, JPEG]
        assert match.state == MatchState.PENDING

    def test_remove_last_screenshot_returns_to_empty(self):
        match = Match(id="m1", match_number=1, screenshots=[PNG])
        match_lifecycle.remove_screenshot(match, 0)
        assert match.state == MatchState.EMPTY

    def test_remove_screenshot_keeps_completed_results(self):
        result = MatchResult(team_id="x", kills=1, place=1, total_points=11)
        match = Match(id="m1", match_number=1, screenshots=[PNG, JPEG], results=[result], is_completed=True)

        match_lifecycle.remove_screenshot(match, 1)

        assert match.screenshots == [PNG]
        assert match.results == [result]
        assert match.state == MatchState.COMPLETED

    def test_remove_screenshot_out_of_range(self):
        match = Match(id="m1", match_number=1, screenshots=[PNG])
        with pytest.raises(MatchStateError):
            match_lifecycle.remove_screenshot(match, 3)

    def test_reset_preserves_screenshots(self):
        match = Match(
            id="m1",
            match_number=1,
            screenshots=[PNG],
            results=[MatchResult(team_id="x", kills=1, place=1, total_points=11)],
            is_completed=True,
        )

        match_lifecycle.reset(match)

        assert match.results == []
        assert match.is_completed is False
        assert match.screenshots == [PNG]
        assert match.state == MatchState.PENDING


class TestAnalyze:
    async def test_combines_rows_from_every_screenshot(self, roster, policy):
        extractor = MockVisionClient(
            rows_per_image=[
                [{"teamName": "Xenon", "rank": 1, "kills": 4}],
                [{"teamName": "TEAM3", "rank": 2, "kills": 1}, {"teamName": "Xenon", "rank": 5, "kills": 0}],
            ]
        )
        match = Match(id="m1", match_number=1, screenshots=[PNG, JPEG])

        outcome = await match_lifecycle.analyze(match, roster, policy, extractor)

        assert match.state == MatchState.COMPLETED
        assert {r.team_id: r.total_points for r in match.results} == {"x": 14, "z": 7}
        assert outcome.row_count == 3
        assert [call[1] for call in extractor.calls] == ["image/png", "image/jpeg"]
        assert extractor.calls[0][0] == "iVBORw0KGgo="
        assert extractor.calls[0][2] == ["Xenon", "Yeti", "Zephyr"]

    async def test_results_replaced_wholesale(self, roster, policy):
        stale = MatchResult(team_id="y", kills=9, place=1, total_points=19)
        match = Match(id="m1", match_number=1, screenshots=[PNG], results=[stale])
        extractor = MockVisionClient(rows_per_image=[[{"teamName": "Zephyr", "rank": 1, "kills": 0}]])

        await match_lifecycle.analyze(match, roster, policy, extractor)

        assert [r.team_id for r in match.results] == ["z"]

    async def test_requires_screenshots(self, roster, policy):
        match = Match(id="m1", match_number=1)
        with pytest.raises(MatchStateError):
            await match_lifecycle.analyze(match, roster, policy, MockVisionClient())

    async def test_completed_lobby_must_be_reset_first(self, roster, policy):
        match = Match(id="m1", match_number=1, screenshots=[PNG], is_completed=True)
        with pytest.raises(MatchStateError):
            await match_lifecycle.analyze(match, roster, policy, MockVisionClient())

    async def test_no_rows_is_extraction_empty(self, roster, policy):
        match = Match(id="m1", match_number=1, screenshots=[PNG, JPEG])

        with pytest.raises(ExtractionEmptyError):
            await match_lifecycle.analyze(match, roster, policy, MockVisionClient(rows_per_image=[[], []]))

        assert match.state == MatchState.PENDING
        assert match.results == []

    async def test_unmatched_rows_is_distinct_failure(self, roster, policy):
        match = Match(id="m1", match_number=1, screenshots=[PNG])
        extractor = MockVisionClient(rows_per_image=[[{"teamName": "Nobody", "rank": 1, "kills": 2}]])

        with pytest.raises(ExtractionUnmatchedError) as exc_info:
            await match_lifecycle.analyze(match, roster, policy, extractor)

        assert "could not match" in str(exc_info.value)
        assert match.state == MatchState.PENDING

    async def test_failed_screenshot_counts_as_empty(self, roster, policy):
        extractor = FailingExtractor(rows_per_image=[[], [{"teamName": "Yeti", "rank": 1, "kills": 0}]])
        match = Match(id="m1", match_number=1, screenshots=[PNG, PNG])

        await match_lifecycle.analyze(match, roster, policy, extractor)

        assert [r.team_id for r in match.results] == ["y"]

    async def test_writes_diagnostics_when_enabled(self, roster, policy, tmp_path, monkeypatch):
        monkeypatch.delenv("ANALYSIS_DIAGNOSTICS", raising=False)
        diagnostics = AnalysisLogger(output_dir=tmp_path, enabled=True)
        extractor = MockVisionClient(
            rows_per_image=[[{"teamName": "Yeti", "rank": 1, "kills": 0}, {"teamName": "Nobody", "rank": 2}]]
        )
        match = Match(id="m1", match_number=1, screenshots=[PNG])

        await match_lifecycle.analyze(match, roster, policy, extractor, diagnostics=diagnostics)

        files = list(tmp_path.glob("*_completed.json"))
        assert len(files) == 1
        entry = json.loads(files[0].read_text())
        assert entry["summary"]["name"] == 1
        assert entry["summary"]["unmatched"] == 1
        assert entry["rows"][0]["team"] == "Yeti"

    async def test_screenshots_are_extracted_concurrently(self, roster, policy):
        extractor = OverlapExtractor(expected=3, rows_per_image=[[{"teamName": "Yeti", "rank": 1, "kills": 0}]])
        match = Match(id="m1", match_number=1, screenshots=[PNG, JPEG, PNG])

        with anyio.fail_after(2):
            await match_lifecycle.analyze(match, roster, policy, extractor)

        assert extractor.peak == 3
        assert len(extractor.calls) == 3

    async def test_diagnostics_write_failure_keeps_results(self, roster, policy, tmp_path):
        diagnostics = BrokenDiagnostics(output_dir=tmp_path, enabled=True)
        extractor = MockVisionClient(rows_per_image=[[{"teamName": "Zephyr", "rank": 1, "kills": 2}]])
        match = Match(id="m1", match_number=1, screenshots=[PNG])

        await match_lifecycle.analyze(match, roster, policy, extractor, diagnostics=diagnostics)

        assert match.state == MatchState.COMPLETED
        assert [r.team_id for r in match.results] == ["z"]
