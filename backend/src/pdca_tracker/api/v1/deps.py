"""
FastAPI Dependencies
JWT verification, current user lookup, role checks, error translation
"""
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from motor.motor_asyncio import AsyncIOMotorDatabase
from typing import Optional
import jwt

from pdca_tracker.core.config import settings
from pdca_tracker.core.exceptions import (
    ConflictError, PersistenceError, ValidationError, WorkItemError
)
from pdca_tracker.db.mongo import Collections, get_db
from pdca_tracker.models.user import UserRole, UserStatus


# Security scheme
security = HTTPBearer(auto_error=True)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: AsyncIOMotorDatabase = Depends(get_db)
) -> dict:
    """
    Resolve the current user from the bearer token
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        payload = jwt.decode(
            credentials.credentials,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM]
        )

        user_id: str = payload.get("sub")
        token_type: str = payload.get("type")

        if user_id is None or token_type != "access":
            raise credentials_exception

    except jwt.ExpiredSignatureError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token has expired",
            headers={"WWW-Authenticate": "Bearer"},
        )
    except jwt.InvalidTokenError:
        raise credentials_exception

    user = await db[Collections.USERS].find_one({"id": user_id}, {"_id": 0})
    if user is None:
        raise credentials_exception

    if user.get("status") != UserStatus.ACTIVE.value:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is inactive"
        )

    return user


def is_admin(user: dict) -> bool:
    return user.get("role") == UserRole.ADMIN.value


async def require_admin(
    current_user: dict = Depends(get_current_user)
) -> dict:
    """
    Admin-only dependency

    Usage:
    @router.get("/users")
    async def list_users(_=Depends(require_admin)):
        ...
    """
    if not is_admin(current_user):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="This operation requires the admin role"
        )
    return current_user


def scoped_assignee(current_user: dict, requested: Optional[str] = None) -> Optional[str]:
    """
    Assignee filter for task queries.
    Admins may pick any assignee (or none); regular users only see their own.
    """
    if is_admin(current_user):
        return requested
    return current_user["name"]


def http_error(exc: WorkItemError) -> HTTPException:
    """
    Map engine errors to HTTP responses
    """
    if isinstance(exc, ValidationError):
        return HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"message": exc.message, "fields": exc.fields}
        )
    if isinstance(exc, ConflictError):
        return HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={"message": exc.message, "retryable": True}
        )
    if isinstance(exc, PersistenceError):
        return HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={"message": exc.message, "retryable": True},
            headers={"Retry-After": "5"}
        )
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=exc.message
    )
