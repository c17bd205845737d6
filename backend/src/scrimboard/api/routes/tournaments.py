"""REST endpoints for tournaments, days, lobbies, sanctions and reports.

Mutating endpoints accept an optional ``revision`` query parameter; when
given, the write is rejected with 409 if the tournament changed since
the client last loaded it.
"""

import datetime
from typing import Annotated, Literal, Optional

from fastapi import APIRouter, Depends, Query, Request, Response
from pydantic import BaseModel, Field

from scrimboard.api.dependencies import current_account, get_tournament_service, serialize_standing
from scrimboard.models.account import Account
from scrimboard.models.scoring import ScoringPolicy
from scrimboard.models.tournament import EventType
from scrimboard.services.report_exporter import render_report

router = APIRouter(prefix="/api/tournaments", tags=["tournaments"])

AccountDep = Annotated[Account, Depends(current_account)]
RevisionQuery = Annotated[Optional[int], Query(ge=0)]


class ScoringBody(BaseModel):
    points_per_kill: int = Field(1, ge=0)
    rank_points: list[int] = Field(min_length=1)

    def to_policy(self) -> ScoringPolicy:
        return ScoringPolicy(points_per_kill=self.points_per_kill, rank_points=list(self.rank_points))


class CreateTournamentRequest(BaseModel):
    """Setup wizard payload."""

    name: str = ""
    type: EventType = EventType.TOURNAMENT
    roster: str | list[str] = ""
    scoring: Optional[ScoringBody] = None
    start_date: Optional[datetime.date] = None
    end_date: Optional[datetime.date] = None


class RosterRequest(BaseModel):
    roster: str | list[str] = ""


class DayRosterRequest(BaseModel):
    roster: str | list[str] | None = None  # None or empty clears the override


class RulesRequest(BaseModel):
    rules_text: str


class AddDayRequest(BaseModel):
    date: Optional[datetime.date] = None
    roster: str | list[str] | None = None


class CurrentDayRequest(BaseModel):
    day_number: int


class AddMatchRequest(BaseModel):
    map_name: Optional[str] = None


class ScreenshotsRequest(BaseModel):
    """Screenshots as data URLs (data:image/png;base64,...)."""

    screenshots: list[str] = Field(min_length=1)


class PenaltyRequest(BaseModel):
    team_id: str
    kind: Literal["deduction", "bonus"] = "deduction"
    points: int
    reason: str = ""


@router.get("")
async def list_tournaments(request: Request, account: AccountDep):
    tournaments = get_tournament_service(request).list_tournaments(account)
    return {"tournaments": [t.to_dict() for t in tournaments]}


@router.post("", status_code=201)
async def create_tournament(request: Request, body: CreateTournamentRequest, account: AccountDep):
    tournament = get_tournament_service(request).create_tournament(
        account,
        name=body.name,
        event_type=body.type,
        roster_lines=body.roster,
        scoring=body.scoring.to_policy() if body.scoring else None,
        start_date=body.start_date,
        end_date=body.end_date,
    )
    return tournament.to_dict()


@router.get("/{tournament_id}")
async def get_tournament(request: Request, tournament_id: str, account: AccountDep):
    return get_tournament_service(request).get_tournament(account, tournament_id).to_dict()


@router.delete("/{tournament_id}", status_code=204)
async def delete_tournament(request: Request, tournament_id: str, account: AccountDep):
    get_tournament_service(request).delete_tournament(account, tournament_id)


@router.put("/{tournament_id}/roster")
async def update_roster(
    request: Request, tournament_id: str, body: RosterRequest, account: AccountDep,
    revision: RevisionQuery = None,
):
    service = get_tournament_service(request)
    return service.update_roster(account, tournament_id, body.roster, revision).to_dict()


@router.put("/{tournament_id}/scoring")
async def update_scoring(
    request: Request, tournament_id: str, body: ScoringBody, account: AccountDep,
    revision: RevisionQuery = None,
):
    service = get_tournament_service(request)
    return service.update_scoring(account, tournament_id, body.to_policy(), revision).to_dict()


@router.post("/{tournament_id}/scoring/parse")
async def apply_scoring_rules(
    request: Request, tournament_id: str, body: RulesRequest, account: AccountDep,
    revision: RevisionQuery = None,
):
    """Parse free-text rules and apply them; the old policy stays on failure."""
    service = get_tournament_service(request)
    tournament = await service.apply_scoring_rules(account, tournament_id, body.rules_text, revision)
    return tournament.to_dict()


@router.post("/{tournament_id}/scoring/presets/{preset_id}")
async def apply_preset(
    request: Request, tournament_id: str, preset_id: str, account: AccountDep,
    revision: RevisionQuery = None,
):
    service = get_tournament_service(request)
    return service.apply_preset(account, tournament_id, preset_id, revision).to_dict()


@router.post("/{tournament_id}/days", status_code=201)
async def add_day(
    request: Request, tournament_id: str, body: AddDayRequest, account: AccountDep,
    revision: RevisionQuery = None,
):
    service = get_tournament_service(request)
    return service.add_day(account, tournament_id, body.date, body.roster, revision).to_dict()


@router.put("/{tournament_id}/current-day")
async def set_current_day(
    request: Request, tournament_id: str, body: CurrentDayRequest, account: AccountDep,
    revision: RevisionQuery = None,
):
    service = get_tournament_service(request)
    return service.set_current_day(account, tournament_id, body.day_number, revision).to_dict()


@router.put("/{tournament_id}/days/{day_number}/roster")
async def update_day_roster(
    request: Request, tournament_id: str, day_number: int, body: DayRosterRequest, account: AccountDep,
    revision: RevisionQuery = None,
):
    service = get_tournament_service(request)
    return service.update_day_roster(account, tournament_id, day_number, body.roster, revision).to_dict()


@router.post("/{tournament_id}/days/{day_number}/matches", status_code=201)
async def add_match(
    request: Request, tournament_id: str, day_number: int, account: AccountDep,
    body: Optional[AddMatchRequest] = None, revision: RevisionQuery = None,
):
    service = get_tournament_service(request)
    map_name = body.map_name if body else None
    return service.add_match(account, tournament_id, day_number, map_name, revision).to_dict()


@router.post("/{tournament_id}/days/{day_number}/matches/{match_id}/screenshots")
async def attach_screenshots(
    request: Request, tournament_id: str, day_number: int, match_id: str,
    body: ScreenshotsRequest, account: AccountDep, revision: RevisionQuery = None,
):
    service = get_tournament_service(request)
    tournament = service.attach_screenshots(
        account, tournament_id, day_number, match_id, body.screenshots, revision
    )
    return tournament.to_dict()


@router.delete("/{tournament_id}/days/{day_number}/matches/{match_id}/screenshots/{index}")
async def remove_screenshot(
    request: Request, tournament_id: str, day_number: int, match_id: str, index: int,
    account: AccountDep, revision: RevisionQuery = None,
):
    service = get_tournament_service(request)
    return service.remove_screenshot(account, tournament_id, day_number, match_id, index, revision).to_dict()


@router.post("/{tournament_id}/days/{day_number}/matches/{match_id}/analyze")
async def analyze_match(
    request: Request, tournament_id: str, day_number: int, match_id: str,
    account: AccountDep, revision: RevisionQuery = None,
):
    """Extract results from the lobby's screenshots and record them."""
    service = get_tournament_service(request)
    tournament = await service.analyze_match(account, tournament_id, day_number, match_id, revision)
    return tournament.to_dict()


@router.post("/{tournament_id}/days/{day_number}/matches/{match_id}/reset")
async def reset_match(
    request: Request, tournament_id: str, day_number: int, match_id: str,
    account: AccountDep, revision: RevisionQuery = None,
):
    service = get_tournament_service(request)
    return service.reset_match(account, tournament_id, day_number, match_id, revision).to_dict()


@router.post("/{tournament_id}/days/{day_number}/penalties", status_code=201)
async def add_penalty(
    request: Request, tournament_id: str, day_number: int, body: PenaltyRequest,
    account: AccountDep, revision: RevisionQuery = None,
):
    penalty = get_tournament_service(request).add_penalty(
        account, tournament_id, day_number, body.team_id, body.kind, body.points, body.reason, revision
    )
    return penalty.to_dict()


@router.delete("/{tournament_id}/days/{day_number}/penalties/{penalty_id}")
async def remove_penalty(
    request: Request, tournament_id: str, day_number: int, penalty_id: str,
    account: AccountDep, revision: RevisionQuery = None,
):
    service = get_tournament_service(request)
    return service.remove_penalty(account, tournament_id, day_number, penalty_id, revision).to_dict()


@router.get("/{tournament_id}/days/{day_number}/standings")
async def get_standings(request: Request, tournament_id: str, day_number: int, account: AccountDep):
    standings = get_tournament_service(request).standings(account, tournament_id, day_number)
    return {
        "day_number": day_number,
        "standings": [
            {"rank": position, **serialize_standing(s)}
            for position, s in enumerate(standings, start=1)
        ],
    }


@router.get("/{tournament_id}/days/{day_number}/report")
async def export_report(
    request: Request,
    tournament_id: str,
    day_number: int,
    account: AccountDep,
    format: Literal["csv", "xls", "html"] = "csv",
):
    """Download the day's standings as CSV, spreadsheet or printable HTML."""
    service = get_tournament_service(request)
    tournament = service.get_tournament(account, tournament_id)
    rows = service.export_rows(account, tournament_id, day_number)
    content, media_type, filename = render_report(format, tournament.name, day_number, rows)
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
