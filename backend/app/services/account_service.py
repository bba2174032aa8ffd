from __future__ import annotations

import logging
from typing import Any, Dict

from sqlalchemy.ext.asyncio import AsyncSession

from app.db.transaction import atomic
from app.services.credit_ledger import (
    AccountRef,
    CreditLedger,
    IndividualAccount,
    OrganizationAccount,
    get_credit_ledger,
    resolve_account,
)
from app.services.identity import Requester

logger = logging.getLogger(__name__)


def _describe(account: AccountRef, balance: int) -> Dict[str, Any]:
    if isinstance(account, OrganizationAccount):
        return {"type": "organization", "id": account.organization_id, "balance": balance}
    return {"type": "user", "id": account.user_id, "balance": balance}


class AccountService:
    """Balance lookups and admin top-ups, each in its own transaction."""

    def __init__(self, ledger: CreditLedger | None = None) -> None:
        self.ledger = ledger or get_credit_ledger()

    async def get_balance(self, session: AsyncSession, requester: Requester) -> Dict[str, Any]:
        account = resolve_account(requester)
        balance = await self.ledger.balance(session, account)
        return _describe(account, balance)

    async def _grant(self, session: AsyncSession, account: AccountRef, amount: int) -> Dict[str, Any]:
        async with atomic(session):
            entry = await self.ledger.grant(session, account, amount)
        logger.info("Credits granted", extra={"account": account, "amount": amount, "balance_after": entry.balance_after})
        return _describe(account, entry.balance_after)

    async def grant_to_user(self, session: AsyncSession, user_id: int, amount: int) -> Dict[str, Any]:
        return await self._grant(session, IndividualAccount(user_id=user_id), amount)

    async def grant_to_organization(self, session: AsyncSession, organization_id: int, amount: int) -> Dict[str, Any]:
        return await self._grant(session, OrganizationAccount(organization_id=organization_id), amount)


def get_account_service() -> AccountService:
    return AccountService()
