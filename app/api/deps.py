"""
Shared request dependencies: identity, role profiles and client context
"""
from typing import Dict, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from app.database import get_db
from app.exceptions import Unauthorized
from app.models import Instructor, Student
from app.services.membership_service import membership_service
from app.utils.security import Identity, resolve_identity

bearer_scheme = HTTPBearer(auto_error=False)


def get_identity(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)
) -> Identity:
    return resolve_identity(credentials.credentials if credentials else None)


def get_current_student(
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db)
) -> Student:
    if identity.role != "STUDENT":
        raise Unauthorized()
    return membership_service.get_student(db, identity.user_id)


def get_current_instructor(
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db)
) -> Instructor:
    if identity.role != "INSTRUCTOR":
        raise Unauthorized()
    return membership_service.get_instructor(db, identity.user_id)


def get_client_context(request: Request) -> Dict[str, str]:
    """Request metadata carried on audit events"""
    return {
        "ip_address": (
            request.headers.get("x-forwarded-for")
            or request.headers.get("x-real-ip")
            or (request.client.host if request.client else "unknown")
        ),
        "user_agent": request.headers.get("user-agent", "unknown"),
    }
