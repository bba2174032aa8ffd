from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from sqlalchemy import CheckConstraint, Enum as PgEnum, ForeignKey, Index, Integer, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base
from app.db.types import UTCDateTime, utcnow

if TYPE_CHECKING:  # pragma: no cover
    from .account import User
    from .catalog import RoomInstance


class BookingStatus(str, Enum):
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"


class AccountType(str, Enum):
    INDIVIDUAL = "INDIVIDUAL"
    ORGANIZATION = "ORGANIZATION"


class CreditReason(str, Enum):
    BOOKING_DEBIT = "BOOKING_DEBIT"
    BOOKING_REFUND = "BOOKING_REFUND"
    RESCHEDULE_ADJUSTMENT = "RESCHEDULE_ADJUSTMENT"
    GRANT = "GRANT"


class Booking(Base):
    __tablename__ = "bookings"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    room_instance_id: Mapped[int] = mapped_column(ForeignKey("room_instances.id", ondelete="RESTRICT"), nullable=False)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    status: Mapped[BookingStatus] = mapped_column(
        PgEnum(BookingStatus, name="booking_status"), default=BookingStatus.CONFIRMED, nullable=False
    )
    start_time: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    end_time: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    credits_charged: Mapped[int] = mapped_column(Integer, nullable=False)
    cancelled_at: Mapped[datetime | None] = mapped_column(UTCDateTime())
    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), default=utcnow, server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime(), default=utcnow, onupdate=utcnow, server_default=func.now(), nullable=False
    )

    room_instance: Mapped["RoomInstance"] = relationship(lazy="selectin")
    user: Mapped["User"] = relationship(lazy="selectin")
    invitations: Mapped[List["GuestInvitation"]] = relationship(
        back_populates="booking",
        cascade="all, delete-orphan",
        order_by="GuestInvitation.id",
        lazy="selectin",
    )

    __table_args__ = (
        CheckConstraint("start_time < end_time", name="ck_bookings_valid_range"),
        CheckConstraint("credits_charged >= 0", name="ck_bookings_credits_charged_non_negative"),
        Index("ix_bookings_instance_window", "room_instance_id", "start_time", "end_time"),
    )

    def to_dict(self) -> Dict[str, Any]:
        instance = self.room_instance
        return {
            "id": self.id,
            "user_id": self.user_id,
            "status": self.status.value,
            "room_instance": instance.to_dict() if instance else None,
            "room_type": instance.room_type.to_dict(include_location=False) if instance else None,
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat(),
            "credits_charged": self.credits_charged,
            "cancelled_at": self.cancelled_at.isoformat() if self.cancelled_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class GuestInvitation(Base):
    __tablename__ = "guest_invitations"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    booking_id: Mapped[int] = mapped_column(ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False)
    sent_by_user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    guest_name: Mapped[str] = mapped_column(String(255), nullable=False)
    guest_email: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), default=utcnow, server_default=func.now(), nullable=False)

    booking: Mapped[Booking] = relationship(back_populates="invitations")

    __table_args__ = (UniqueConstraint("booking_id", "guest_email", name="uq_guest_invitation_booking_email"),)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "booking_id": self.booking_id,
            "guest_name": self.guest_name,
            "guest_email": self.guest_email,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class CreditTransaction(Base):
    __tablename__ = "credit_transactions"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    account_type: Mapped[AccountType] = mapped_column(PgEnum(AccountType, name="credit_account_type"), nullable=False)
    user_id: Mapped[int | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), index=True)
    organization_id: Mapped[int | None] = mapped_column(ForeignKey("organizations.id", ondelete="SET NULL"), index=True)
    booking_id: Mapped[int | None] = mapped_column(ForeignKey("bookings.id", ondelete="SET NULL"), index=True)
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    balance_after: Mapped[int] = mapped_column(Integer, nullable=False)
    reason: Mapped[CreditReason] = mapped_column(PgEnum(CreditReason, name="credit_reason"), nullable=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), default=utcnow, server_default=func.now(), nullable=False)

    booking: Mapped[Optional[Booking]] = relationship()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "account_type": self.account_type.value,
            "user_id": self.user_id,
            "organization_id": self.organization_id,
            "booking_id": self.booking_id,
            "amount": self.amount,
            "balance_after": self.balance_after,
            "reason": self.reason.value,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
