from fastapi import HTTPException, status
from jose import JWTError, jwt

from app.core.config import settings
from app.models.enums import UserRole

_ROLES = {role.value for role in UserRole}


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def decode_token(token: str) -> dict:
    """Decode a bearer token; ``sub`` is the user's email, ``role`` one of ``UserRole``."""
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        raise _unauthorized("Invalid or expired token")

    if not payload.get("sub") or payload.get("role") not in _ROLES:
        raise _unauthorized("Invalid token payload")

    return payload
