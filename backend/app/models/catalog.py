from __future__ import annotations

from datetime import datetime, time
from typing import Any, Dict, List, Optional

from sqlalchemy import Boolean, ForeignKey, Integer, String, Time, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base
from app.db.types import JSONType, UTCDateTime, utcnow


class Location(Base):
    __tablename__ = "locations"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    address: Mapped[Optional[str]] = mapped_column(String(255))
    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), default=utcnow, server_default=func.now(), nullable=False)

    room_types: Mapped[List["RoomType"]] = relationship(
        back_populates="location",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "address": self.address,
        }


class RoomType(Base):
    __tablename__ = "room_types"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    location_id: Mapped[int] = mapped_column(ForeignKey("locations.id", ondelete="CASCADE"), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    capacity: Mapped[int] = mapped_column(Integer, nullable=False)
    credits_per_booking: Mapped[int] = mapped_column(Integer, nullable=False)
    amenities: Mapped[List[str]] = mapped_column(JSONType, default=list)
    opens_at: Mapped[time] = mapped_column(Time(), default=time(9, 0), nullable=False)
    closes_at: Mapped[time] = mapped_column(Time(), default=time(18, 0), nullable=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), default=utcnow, server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime(), default=utcnow, onupdate=utcnow, server_default=func.now(), nullable=False
    )

    location: Mapped[Location] = relationship(back_populates="room_types", lazy="selectin")
    instances: Mapped[List["RoomInstance"]] = relationship(
        back_populates="room_type",
        cascade="all, delete-orphan",
        order_by="RoomInstance.id",
        lazy="selectin",
    )

    def to_dict(self, include_location: bool = True) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "location_id": self.location_id,
            "name": self.name,
            "capacity": self.capacity,
            "credits_per_booking": self.credits_per_booking,
            "amenities": self.amenities or [],
            "opens_at": self.opens_at.isoformat(timespec="minutes"),
            "closes_at": self.closes_at.isoformat(timespec="minutes"),
        }
        if include_location:
            data["location"] = self.location.to_dict()
        return data


class RoomInstance(Base):
    __tablename__ = "room_instances"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    room_type_id: Mapped[int] = mapped_column(ForeignKey("room_types.id", ondelete="CASCADE"), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), default=utcnow, server_default=func.now(), nullable=False)

    room_type: Mapped[RoomType] = relationship(back_populates="instances", lazy="selectin")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "room_type_id": self.room_type_id,
            "name": self.name,
            "is_active": self.is_active,
        }
