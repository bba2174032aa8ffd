from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.database import get_session
from app.routes.errors import raise_http
from app.schemas import BalanceResponse, CreditGrant
from app.services.account_service import AccountService, get_account_service
from app.services.errors import BookingError
from app.services.identity import Requester, get_current_requester, require_admin

router = APIRouter(prefix="/credits", tags=["credits"])


@router.get("/balance", response_model=BalanceResponse)
async def get_balance(
    requester: Requester = Depends(get_current_requester),
    db: AsyncSession = Depends(get_session),
    account_service: AccountService = Depends(get_account_service),
) -> BalanceResponse:
    try:
        data = await account_service.get_balance(db, requester)
    except BookingError as exc:
        raise_http(exc)
    return BalanceResponse(**data)


@router.post("/users/{user_id}", response_model=BalanceResponse)
async def grant_user_credits(
    user_id: int,
    payload: CreditGrant,
    requester: Requester = Depends(get_current_requester),
    db: AsyncSession = Depends(get_session),
    account_service: AccountService = Depends(get_account_service),
) -> BalanceResponse:
    require_admin(requester)
    try:
        data = await account_service.grant_to_user(db, user_id, payload.credits)
    except BookingError as exc:
        raise_http(exc)
    return BalanceResponse(**data)


@router.post("/organizations/{organization_id}", response_model=BalanceResponse)
async def grant_organization_credits(
    organization_id: int,
    payload: CreditGrant,
    requester: Requester = Depends(get_current_requester),
    db: AsyncSession = Depends(get_session),
    account_service: AccountService = Depends(get_account_service),
) -> BalanceResponse:
    require_admin(requester)
    try:
        data = await account_service.grant_to_organization(db, organization_id, payload.credits)
    except BookingError as exc:
        raise_http(exc)
    return BalanceResponse(**data)
