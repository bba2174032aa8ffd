from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from fastapi import Header, HTTPException, status

from app.models import UserRole


@dataclass(frozen=True)
class Requester:
    """Caller identity as issued by the upstream identity provider."""

    id: int
    role: UserRole
    organization_id: Optional[int] = None

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


def get_current_requester(
    x_user_id: Optional[str] = Header(None),
    x_user_role: Optional[str] = Header(None),
    x_organization_id: Optional[str] = Header(None),
) -> Requester:
    """Read the identity the gateway attaches to every authenticated request."""

    if not x_user_id or not x_user_role:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")

    try:
        user_id = int(x_user_id)
        role = UserRole(x_user_role.strip().upper())
        organization_id = int(x_organization_id) if x_organization_id else None
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid identity headers") from exc

    return Requester(id=user_id, role=role, organization_id=organization_id)


def require_admin(requester: Requester) -> None:
    if not requester.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
