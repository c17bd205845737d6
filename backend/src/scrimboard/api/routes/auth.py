"""REST endpoints for accounts, sessions and license administration."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel

from scrimboard.api.dependencies import (
    current_account,
    current_session,
    get_license_service,
    get_sessions,
    serialize_account,
)
from scrimboard.models.account import Account, LicenseDuration, UserAccount
from scrimboard.services.errors import PermissionDeniedError

router = APIRouter(prefix="/api/auth", tags=["auth"])
admin_router = APIRouter(prefix="/api/admin", tags=["admin"])


class CredentialsRequest(BaseModel):
    """Unique ID plus license key (or the admin password)."""

    username: str
    key: str


class RenewRequest(BaseModel):
    key: str


class GenerateKeyRequest(BaseModel):
    duration: LicenseDuration = LicenseDuration.D7


def _session_response(request: Request, account: Account) -> dict:
    token = get_sessions(request).open(account)
    return {"token": token, "account": serialize_account(account)}


@router.post("/register", status_code=201)
async def register(request: Request, body: CredentialsRequest):
    """Create an account bound to a license key and log it in."""
    account = get_license_service(request).register(body.username.strip(), body.key)
    return _session_response(request, account)


@router.post("/login")
async def login(request: Request, body: CredentialsRequest):
    """Log in with the current key; a new valid key renews the license."""
    account = get_license_service(request).login(body.username.strip(), body.key)
    return _session_response(request, account)


@router.post("/logout", status_code=204)
async def logout(request: Request, session: Annotated[tuple[str, Account], Depends(current_session)]):
    token, _ = session
    get_sessions(request).close(token)


@router.get("/me")
async def me(account: Annotated[Account, Depends(current_account)]):
    return serialize_account(account)


@router.post("/renew")
async def renew(
    request: Request,
    body: RenewRequest,
    session: Annotated[tuple[str, Account], Depends(current_session)],
):
    """Activate a new key for the logged-in account."""
    token, account = session
    if not isinstance(account, UserAccount):
        raise PermissionDeniedError("Only user accounts hold licenses")
    renewed = get_license_service(request).renew(account, body.key)
    get_sessions(request).update(token, renewed)
    return serialize_account(renewed)


@admin_router.post("/keys", status_code=201)
async def generate_key(
    request: Request,
    body: GenerateKeyRequest,
    account: Annotated[Account, Depends(current_account)],
):
    return get_license_service(request).generate_key(account, body.duration).to_dict()


@admin_router.get("/keys")
async def list_keys(request: Request, account: Annotated[Account, Depends(current_account)]):
    keys = get_license_service(request).list_keys(account)
    return {"keys": [k.to_dict() for k in reversed(keys)]}


@admin_router.get("/users")
async def list_users(request: Request, account: Annotated[Account, Depends(current_account)]):
    users = get_license_service(request).list_users(account)
    return {"users": [serialize_account(u) for u in users]}


@admin_router.post("/users/{user_id}/reset-key")
async def reset_user_key(
    request: Request,
    user_id: str,
    account: Annotated[Account, Depends(current_account)],
):
    """Revoke a user's key and expire their license."""
    return serialize_account(get_license_service(request).reset_user_key(account, user_id))
