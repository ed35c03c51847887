"""
Authentication Dependencies

Bearer token (JWT) authentication for protected endpoints. Routes declare
``Depends(get_current_user)``; public endpoints simply don't.
"""
import logging
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from genconnect.database import get_db
from genconnect.exceptions import UnauthorizedException
from genconnect.models.user import User
from genconnect.services.auth_service import CurrentUser, decode_access_token

logger = logging.getLogger(__name__)

# Security scheme
security = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> CurrentUser:
    """
    Get current user from the bearer token.

    Raises:
        UnauthorizedException: AUTH_001 when the header is missing,
            AUTH_002 when the token is invalid or expired
    """
    if credentials is None:
        raise UnauthorizedException(
            "Authorization header missing",
            code="AUTH_001",
            details={"hint": "Please provide a valid bearer token"},
        )
    return decode_access_token(credentials.credentials)


async def get_current_user_record(
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> User:
    """The caller's stored account; 401 if it was deleted after the token was issued"""
    record = await db.get(User, user.user_id)
    if record is None:
        raise UnauthorizedException("User no longer exists", code="AUTH_002")
    return record
