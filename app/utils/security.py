"""
Identity resolution from bearer tokens

Token issuance belongs to the account service; create_access_token exists
for tooling and tests.
"""
import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from jose import JWTError, jwt

from app.config import settings
from app.exceptions import Unauthorized
from app.utils.clock import utcnow

logger = logging.getLogger(__name__)

ROLES = ("ADMIN", "INSTRUCTOR", "STUDENT")


@dataclass(frozen=True)
class Identity:
    user_id: str
    role: str


def create_access_token(user_id: str, role: str, expires_delta: Optional[timedelta] = None) -> str:
    expire = utcnow() + (expires_delta or timedelta(days=7))
    to_encode = {"sub": user_id, "role": role, "exp": expire}
    return jwt.encode(to_encode, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def resolve_identity(token: Optional[str]) -> Identity:
    """
    Decode a bearer token into an Identity

    Raises:
        Unauthorized: missing, expired, tampered or role-less token
    """
    if not token:
        raise Unauthorized("Not authenticated")

    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except JWTError as e:
        logger.info(f"Rejected token: {str(e)}")
        raise Unauthorized("Invalid or expired token")

    user_id = payload.get("sub")
    role = payload.get("role")
    if not user_id or role not in ROLES:
        raise Unauthorized("Invalid or expired token")

    return Identity(user_id=str(user_id), role=role)
