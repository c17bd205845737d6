"""Shared request helpers: services from app state, session lookup, serialization."""

from typing import Annotated, Optional

from fastapi import Header, HTTPException, Request

from scrimboard.models.account import Account, AdminAccount, UserAccount
from scrimboard.models.standings import TeamStanding
from scrimboard.services.errors import (
    AuthError,
    ExtractionEmptyError,
    ExtractionUnmatchedError,
    InvalidInputError,
    LicenseError,
    MatchStateError,
    NotFoundError,
    PermissionDeniedError,
    PolicyParseError,
    ScrimboardError,
    StaleRevisionError,
)
from scrimboard.services.license_service import LicenseService, SessionRegistry
from scrimboard.services.tournament_service import TournamentService

STATUS_CODES: dict[type[ScrimboardError], int] = {
    NotFoundError: 404,
    StaleRevisionError: 409,
    AuthError: 401,
    PermissionDeniedError: 403,
    LicenseError: 403,
    MatchStateError: 422,
    ExtractionEmptyError: 422,
    ExtractionUnmatchedError: 422,
    PolicyParseError: 422,
    InvalidInputError: 422,
}

# Extraction failures also carry a machine-readable code
ERROR_CODES: dict[type[ScrimboardError], str] = {
    ExtractionEmptyError: "extraction_empty",
    ExtractionUnmatchedError: "extraction_unmatched",
}


def to_http_error(error: ScrimboardError) -> HTTPException:
    """Map a domain error to an HTTP error carrying the operator-facing message."""
    status_code = next(
        (code for cls, code in STATUS_CODES.items() if isinstance(error, cls)), 400
    )
    detail: str | dict = str(error)
    if type(error) in ERROR_CODES:
        detail = {"code": ERROR_CODES[type(error)], "message": str(error)}
    return HTTPException(status_code=status_code, detail=detail)


def get_license_service(request: Request) -> LicenseService:
    return request.app.state.license_service


def get_sessions(request: Request) -> SessionRegistry:
    return request.app.state.sessions


def get_tournament_service(request: Request) -> TournamentService:
    return request.app.state.tournament_service


def bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token:
        return None
    return token.strip()


def current_session(
    request: Request,
    authorization: Annotated[Optional[str], Header()] = None,
) -> tuple[str, Account]:
    """Resolve the bearer token to (token, fresh account).

    User accounts are re-read from storage so a key reset by an admin
    takes effect on the next request.
    """
    token = bearer_token(authorization)
    try:
        account = get_sessions(request).resolve(token)
        if isinstance(account, UserAccount):
            account = get_license_service(request).users.get(account.id)
    except NotFoundError:
        raise HTTPException(status_code=401, detail="Account no longer exists")
    except ScrimboardError as e:
        raise to_http_error(e)
    return token, account


def current_account(
    request: Request,
    authorization: Annotated[Optional[str], Header()] = None,
) -> Account:
    return current_session(request, authorization)[1]


def serialize_account(account: Account) -> dict:
    if isinstance(account, AdminAccount):
        return {
            "id": account.id,
            "username": account.username,
            "role": account.role,
            "license_valid": True,
        }
    return {
        "id": account.id,
        "username": account.username,
        "email": account.email,
        "role": account.role,
        "license_key": account.license_key,
        "license_expiry": account.license_expiry,
        "last_active": account.last_active,
        "license_valid": account.has_valid_license(),
    }


def serialize_standing(standing: TeamStanding) -> dict:
    return {
        "team": standing.team.to_dict(),
        "kills": standing.kills,
        "place_pts": standing.place_pts,
        "kill_pts": standing.kill_pts,
        "penalty_pts": standing.penalty_pts,
        "total": standing.total,
    }
