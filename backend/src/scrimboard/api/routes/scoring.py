"""REST endpoints for scoring presets and rule parsing previews."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel

from scrimboard.api.dependencies import current_account, get_tournament_service
from scrimboard.api.routes.tournaments import RulesRequest, ScoringBody
from scrimboard.models.account import Account
from scrimboard.models.scoring import default_scoring

router = APIRouter(prefix="/api/scoring", tags=["scoring"])

AccountDep = Annotated[Account, Depends(current_account)]


class SavePresetRequest(BaseModel):
    name: str
    system: ScoringBody


@router.get("/default")
async def get_default_scoring():
    return default_scoring().to_dict()


@router.post("/parse")
async def parse_scoring_rules(request: Request, body: RulesRequest, account: AccountDep):
    """Preview the policy parsed from free-text rules without applying it."""
    policy = await get_tournament_service(request).parse_scoring_rules(body.rules_text)
    return policy.to_dict()


@router.get("/presets")
async def list_presets(request: Request, account: AccountDep):
    presets = get_tournament_service(request).list_presets(account)
    return {"presets": [p.to_dict() for p in presets]}


@router.post("/presets", status_code=201)
async def save_preset(request: Request, body: SavePresetRequest, account: AccountDep):
    preset = get_tournament_service(request).save_preset(account, body.name, body.system.to_policy())
    return preset.to_dict()


@router.delete("/presets/{preset_id}", status_code=204)
async def delete_preset(request: Request, preset_id: str, account: AccountDep):
    get_tournament_service(request).delete_preset(account, preset_id)
