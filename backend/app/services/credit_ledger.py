from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Union

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models import AccountType, Booking, CreditReason, CreditTransaction, Organization, User, UserRole
from app.services.errors import AccountNotFoundError, InsufficientCreditsError, InvalidAmountError
from app.services.identity import Requester

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IndividualAccount:
    user_id: int

    @property
    def account_type(self) -> AccountType:
        return AccountType.INDIVIDUAL


@dataclass(frozen=True)
class OrganizationAccount:
    organization_id: int

    @property
    def account_type(self) -> AccountType:
        return AccountType.ORGANIZATION


AccountRef = Union[IndividualAccount, OrganizationAccount]

_POOLED_ROLES = frozenset({UserRole.ORG_USER, UserRole.ORG_ADMIN})


def resolve_account(requester: Requester) -> AccountRef:
    """Pick the credit account a requester's bookings are charged to.

    Organization members (ORG_USER, ORG_ADMIN) with an organization draw from
    the shared pool. Everyone else, including an INDIVIDUAL_USER carrying a
    stale organization id, draws from their own balance.
    """

    if requester.role in _POOLED_ROLES and requester.organization_id is not None:
        return OrganizationAccount(organization_id=requester.organization_id)
    return IndividualAccount(user_id=requester.id)


def resolve_account_for_user(user: User) -> AccountRef:
    return resolve_account(Requester(id=user.id, role=user.role, organization_id=user.organization_id))


class CreditLedger:
    """Balance mutations for individual and organization credit accounts.

    Every method runs inside the caller's transaction and locks the account
    row before touching it. Nothing here commits.
    """

    async def _load(self, session: AsyncSession, account: AccountRef, for_update: bool) -> Union[User, Organization]:
        if isinstance(account, OrganizationAccount):
            stmt = select(Organization).where(Organization.id == account.organization_id)
        else:
            stmt = select(User).where(User.id == account.user_id)
        if for_update:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        row = (await session.execute(stmt)).scalar_one_or_none()
        if row is None:
            raise AccountNotFoundError()
        return row

    @staticmethod
    def _get_balance(row: Union[User, Organization]) -> int:
        if isinstance(row, Organization):
            return row.credits_pool
        return row.individual_credits

    @staticmethod
    def _set_balance(row: Union[User, Organization], value: int) -> None:
        if isinstance(row, Organization):
            row.credits_pool = value
        else:
            row.individual_credits = value

    async def balance(self, session: AsyncSession, account: AccountRef, for_update: bool = False) -> int:
        row = await self._load(session, account, for_update=for_update)
        return self._get_balance(row)

    async def _apply(
        self,
        session: AsyncSession,
        account: AccountRef,
        delta: int,
        reason: CreditReason,
        booking: Optional[Booking],
    ) -> CreditTransaction:
        row = await self._load(session, account, for_update=True)
        current = self._get_balance(row)
        if current + delta < 0:
            raise InsufficientCreditsError(balance=current, required=-delta)

        new_balance = current + delta
        self._set_balance(row, new_balance)
        entry = CreditTransaction(
            account_type=account.account_type,
            user_id=account.user_id if isinstance(account, IndividualAccount) else None,
            organization_id=account.organization_id if isinstance(account, OrganizationAccount) else None,
            booking=booking,
            amount=delta,
            balance_after=new_balance,
            reason=reason,
        )
        session.add(entry)
        await session.flush()
        logger.info(
            "credit_event",
            extra={
                "account_type": account.account_type.value,
                "account": account,
                "amount": delta,
                "balance_after": new_balance,
                "reason": reason.value,
                "booking_id": booking.id if booking is not None else None,
            },
        )
        return entry

    async def debit(
        self,
        session: AsyncSession,
        account: AccountRef,
        amount: int,
        booking: Optional[Booking] = None,
    ) -> CreditTransaction:
        if amount < 0:
            raise InvalidAmountError("Debit amount cannot be negative.")
        return await self._apply(session, account, -amount, CreditReason.BOOKING_DEBIT, booking)

    async def credit(
        self,
        session: AsyncSession,
        account: AccountRef,
        amount: int,
        booking: Optional[Booking] = None,
        reason: CreditReason = CreditReason.BOOKING_REFUND,
    ) -> CreditTransaction:
        if amount < 0:
            raise InvalidAmountError("Credit amount cannot be negative.")
        return await self._apply(session, account, amount, reason, booking)

    async def adjust_delta(
        self,
        session: AsyncSession,
        account: AccountRef,
        delta: int,
        booking: Optional[Booking] = None,
    ) -> CreditTransaction:
        """Apply ``old_cost - new_cost`` in one step; negative deltas are debits."""

        return await self._apply(session, account, delta, CreditReason.RESCHEDULE_ADJUSTMENT, booking)

    async def grant(self, session: AsyncSession, account: AccountRef, amount: int) -> CreditTransaction:
        if amount <= 0:
            raise InvalidAmountError()
        return await self._apply(session, account, amount, CreditReason.GRANT, None)


def get_credit_ledger() -> CreditLedger:
    return CreditLedger()
