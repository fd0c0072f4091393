"""
Bearer-token authentication.

Tokens are issued elsewhere; this module only verifies them. Claims used:
- sub: user UUID
- role: "admin" or "customer" (default customer)
"""

import logging
from typing import Annotated
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from scheduling.models import Principal, Role
from shared.config import get_settings

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


def decode_principal(token: str) -> Principal:
    """
    Verify a JWT and turn its claims into a Principal.

    Raises:
        HTTPException: 401 on bad signature, expiry, or malformed claims
    """
    settings = get_settings()
    try:
        payload = jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except JWTError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Invalid token: {str(e)}",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        user_id = UUID(str(payload.get("sub")))
        role = Role(payload.get("role", Role.CUSTOMER.value))
    except ValueError:
        logger.warning("Token rejected: malformed sub/role claims")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token claims",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return Principal(user_id=user_id, role=role)


async def get_current_principal(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)] = None,
) -> Principal:
    """Dependency resolving the caller from the Authorization header."""
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return decode_principal(credentials.credentials)
