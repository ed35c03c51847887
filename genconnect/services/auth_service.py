"""
Authentication Service

Password hashing (bcrypt) and signed bearer tokens (HS256 JWT) carrying the
caller's identity and role.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
import jwt

from genconnect import config
from genconnect.exceptions import UnauthorizedException
from genconnect.models.user import ROLE_TUTOR, ROLE_TUTEE

logger = logging.getLogger(__name__)

# bcrypt only looks at the first 72 bytes of a password
BCRYPT_MAX_BYTES = 72


@dataclass(frozen=True)
class CurrentUser:
    """Authenticated caller, decoded from a bearer token"""
    user_id: int
    email: str
    role: str
    name: Optional[str] = None

    @property
    def is_tutor(self) -> bool:
        return self.role == ROLE_TUTOR

    @property
    def is_tutee(self) -> bool:
        return self.role == ROLE_TUTEE


def hash_password(password: str) -> str:
    password_bytes = password.encode("utf-8")[:BCRYPT_MAX_BYTES]
    return bcrypt.hashpw(password_bytes, bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(
            password.encode("utf-8")[:BCRYPT_MAX_BYTES],
            password_hash.encode("utf-8"),
        )
    except ValueError:
        # Stored hash is not a bcrypt hash
        return False


def create_access_token(
    user_id: int,
    email: str,
    role: str,
    name: Optional[str] = None,
    expires_hours: Optional[int] = None,
) -> str:
    """
    Issue a signed bearer token for a user.

    Args:
        user_id: Subject of the token
        email: User email
        role: "tutor" or "tutee"
        name: Display name, carried for convenience
        expires_hours: Lifetime override, defaults to JWT_EXPIRES_HOURS

    Returns:
        Encoded JWT string
    """
    hours = expires_hours if expires_hours is not None else config.JWT_EXPIRES_HOURS
    payload = {
        "sub": str(user_id),
        "email": email,
        "role": role,
        "name": name,
        "exp": datetime.now(timezone.utc) + timedelta(hours=hours),
    }
    return jwt.encode(payload, config.JWT_SECRET, algorithm=config.JWT_ALGORITHM)


def decode_access_token(token: str) -> CurrentUser:
    """
    Verify a bearer token and return the identity it carries.

    Raises:
        UnauthorizedException: Token is expired, tampered with or malformed
    """
    try:
        payload = jwt.decode(token, config.JWT_SECRET, algorithms=[config.JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise UnauthorizedException("Token expired", code="AUTH_002")
    except jwt.InvalidTokenError:
        logger.warning(f"Invalid token attempt: {token[:10]}...")
        raise UnauthorizedException("Invalid or expired token", code="AUTH_002")

    try:
        return CurrentUser(
            user_id=int(payload["sub"]),
            email=payload["email"],
            role=payload["role"],
            name=payload.get("name"),
        )
    except (KeyError, TypeError, ValueError):
        raise UnauthorizedException("Token is missing required claims", code="AUTH_002")
