from __future__ import annotations

from typing import NoReturn

from fastapi import HTTPException, status

from app.services.errors import BookingError

STATUS_BY_CODE = {
    "INVALID_RANGE": status.HTTP_400_BAD_REQUEST,
    "PAST_TIME": status.HTTP_400_BAD_REQUEST,
    "TOO_FAR_AHEAD": status.HTTP_400_BAD_REQUEST,
    "NOT_CONFIRMED": status.HTTP_400_BAD_REQUEST,
    "INVALID_AMOUNT": status.HTTP_400_BAD_REQUEST,
    "INSUFFICIENT_CREDITS": status.HTTP_402_PAYMENT_REQUIRED,
    "TOO_LATE_TO_CANCEL": status.HTTP_403_FORBIDDEN,
    "QUOTA_EXCEEDED": status.HTTP_403_FORBIDDEN,
    "FORBIDDEN": status.HTTP_403_FORBIDDEN,
    "NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "ROOM_TYPE_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "ACCOUNT_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "NO_AVAILABILITY": status.HTTP_409_CONFLICT,
    "COOLDOWN_CONFLICT": status.HTTP_409_CONFLICT,
    "DUPLICATE_INVITATION": status.HTTP_409_CONFLICT,
}


def raise_http(exc: BookingError) -> NoReturn:
    status_code = STATUS_BY_CODE.get(exc.code, status.HTTP_400_BAD_REQUEST)
    raise HTTPException(status_code=status_code, detail={"code": exc.code, "message": exc.message}) from exc
