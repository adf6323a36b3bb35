"""
Bearer token helpers

Tokens are issued by the external identity service; this service only needs to
verify them. create_access_token exists for local tooling and tests.
"""
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional
from jose import JWTError, jwt
from geoattend.core.config import settings
from geoattend.core.constants import ROLE_EMPLOYEE


def create_access_token(subject: str, role: str = ROLE_EMPLOYEE, expires_minutes: Optional[int] = None) -> str:
    """Create a JWT access token for the given user id and role"""
    if expires_minutes is None:
        expires_minutes = settings.JWT_EXPIRE_MINUTES

    expire = datetime.now(timezone.utc) + timedelta(minutes=expires_minutes)
    to_encode = {"sub": str(subject), "role": role, "exp": expire}

    return jwt.encode(
        to_encode,
        settings.JWT_SECRET_KEY,
        algorithm=settings.JWT_ALGORITHM
    )


def decode_token(token: str) -> Dict:
    """Decode and verify a JWT token"""
    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET_KEY,
            algorithms=[settings.JWT_ALGORITHM]
        )
        return payload
    except JWTError:
        raise ValueError("Invalid token")
