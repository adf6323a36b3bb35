"""
Dependencies and guards for FastAPI endpoints
"""
from dataclasses import dataclass
from typing import Generator

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from geoattend.db.session import SessionLocal
from geoattend.core.constants import ROLE_ADMIN, ROLE_EMPLOYEE
from geoattend.core.security import decode_token
from geoattend.services.change_notifier import ChangeNotifier, get_change_notifier


security = HTTPBearer()


@dataclass(frozen=True)
class CurrentUser:
    """Authenticated caller as asserted by the identity service's bearer token."""
    id: str
    role: str = ROLE_EMPLOYEE

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN


def get_db() -> Generator:
    """Dependency for getting database session"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_notifier() -> ChangeNotifier:
    """Dependency for the process-wide change notifier"""
    return get_change_notifier()


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> CurrentUser:
    """
    Get current authenticated user from JWT token
    """
    token = credentials.credentials

    try:
        payload = decode_token(token)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    sub_value = payload.get("sub")
    if sub_value is None or str(sub_value).strip() == "":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    role = str(payload.get("role") or ROLE_EMPLOYEE).upper()
    return CurrentUser(id=str(sub_value), role=role)


def require_roles(*allowed_roles: str):
    """
    Dependency factory for role-based access control

    Usage:
        @router.get("/admin-only")
        async def admin_endpoint(user: CurrentUser = Depends(require_roles(ROLE_ADMIN))):
            ...
    """
    def role_checker(current_user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        # ADMIN is allowed everywhere
        if current_user.is_admin:
            return current_user

        if current_user.role not in allowed_roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access denied. Required roles: {list(allowed_roles)}"
            )
        return current_user
    return role_checker
