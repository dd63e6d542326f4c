"""
Boundary with the identity and feature-gating collaborators.

Sessions are handled upstream; by the time a request reaches this service the
gateway has stamped it with `X-User-Id` and `X-User-Role`.
"""
import enum
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from fastapi import Depends, Header, HTTPException

from driveschool.config import FeatureConfig, settings


class Role(str, enum.Enum):
    SUPER_ADMIN = "SUPER_ADMIN"
    INSTRUCTOR = "INSTRUCTOR"
    STUDENT = "STUDENT"


@dataclass(frozen=True)
class Principal:
    user_id: str
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role == Role.SUPER_ADMIN


def get_principal(
    x_user_id: Optional[str] = Header(default=None),
    x_user_role: Optional[str] = Header(default=None),
) -> Principal:
    if not x_user_id or not x_user_role:
        raise HTTPException(status_code=401, detail="Unauthorized")
    try:
        role = Role(x_user_role.upper())
    except ValueError:
        raise HTTPException(status_code=401, detail="Unauthorized") from None
    return Principal(user_id=x_user_id, role=role)


def require_roles(*roles: Role):
    """Dependency factory: 403 unless the caller holds one of `roles`."""
    def dependency(principal: Principal = Depends(get_principal)) -> Principal:
        if principal.role not in roles:
            raise HTTPException(status_code=403, detail="Access denied")
        return principal
    return dependency


def get_features() -> FeatureConfig:
    return settings.features


def ensure_vehicle_management(features: FeatureConfig):
    if not features.vehicle_management_enabled:
        raise HTTPException(
            status_code=403,
            detail={
                "code": "FEATURE_DISABLED",
                "message": "Vehicle Management feature is not enabled. "
                           "Please upgrade to unlock this feature.",
                "requires_upgrade": True,
            },
        )


def get_now() -> datetime:
    """Request clock; overridden in tests."""
    return datetime.now()
