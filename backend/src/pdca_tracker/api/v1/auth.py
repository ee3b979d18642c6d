"""
Authentication API
Registration, login, current user, password change
"""
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, status
from motor.motor_asyncio import AsyncIOMotorDatabase
from pydantic import BaseModel, EmailStr
from datetime import datetime, timezone, timedelta
from pymongo.errors import DuplicateKeyError
import logging
import uuid
import jwt
from passlib.context import CryptContext

from pdca_tracker.core.config import settings, validate_password
from pdca_tracker.db.mongo import Collections, get_db
from pdca_tracker.api.v1.deps import get_current_user
from pdca_tracker.models.user import (
    DEFAULT_PROFILE_PICTURE, PasswordChange, UserOut, UserRegister, UserRole, UserStatus
)


router = APIRouter(prefix="/auth", tags=["Auth"])
logger = logging.getLogger(__name__)

# Password hashing
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class LoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserOut


# Helper functions
def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(user_id: str, role: str) -> tuple[str, int]:
    """
    Create an access token
    Returns: (token, expires_in_seconds)
    """
    now = datetime.now(timezone.utc)
    expire = now + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    payload = {
        "sub": user_id,
        "role": role,
        "type": "access",
        "exp": expire,
        "iat": now
    }

    token = jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)
    return token, settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60


def new_user_doc(
    name: str,
    email: str,
    password: str,
    role: UserRole = UserRole.USER,
    status_: UserStatus = UserStatus.ACTIVE,
    profile_picture: Optional[str] = None
) -> dict:
    return {
        "id": str(uuid.uuid4()),
        "name": name,
        "email": email.lower(),
        "password": hash_password(password),
        "role": role.value,
        "status": status_.value,
        "profile_picture": profile_picture or DEFAULT_PROFILE_PICTURE,
        "created_at": datetime.now(timezone.utc),
        "last_login": None
    }


def duplicate_user_error(exc: DuplicateKeyError) -> HTTPException:
    """
    409 for a unique index violation on users
    The up-front checks miss concurrent writers; the index catches them.
    """
    key_pattern = (exc.details or {}).get("keyPattern") or {}
    if "name" in key_pattern or "name_1" in str(exc):
        field = "name"
    elif "email" in key_pattern or "email_1" in str(exc):
        field = "email"
    else:
        field = "email or name"
    logger.warning("Duplicate user %s: %s", field, exc)
    return HTTPException(
        status_code=status.HTTP_409_CONFLICT,
        detail=f"User with this {field} already exists"
    )


async def insert_user(db: AsyncIOMotorDatabase, user_doc: dict) -> UserOut:
    """
    Insert a user, rejecting duplicate emails and names
    """
    users = db[Collections.USERS]
    if await users.find_one({"email": user_doc["email"]}):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="User with this email already exists"
        )
    if await users.find_one({"name": user_doc["name"]}):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="User with this name already exists"
        )

    try:
        await users.insert_one(user_doc)
    except DuplicateKeyError as e:
        raise duplicate_user_error(e)

    logger.info("Created user %s (%s)", user_doc["email"], user_doc["role"])
    return UserOut(**user_doc)


def check_password_policy(password: str) -> None:
    is_valid, error_message = validate_password(password)
    if not is_valid:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=error_message
        )


# Endpoints
@router.post("/register", response_model=UserOut, status_code=status.HTTP_201_CREATED)
async def register(
    user_data: UserRegister,
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    """
    Self registration; always a regular user
    """
    check_password_policy(user_data.password)
    user_doc = new_user_doc(user_data.name, user_data.email, user_data.password)
    return await insert_user(db, user_doc)


@router.post("/login", response_model=LoginResponse)
async def login(
    login_data: LoginRequest,
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    """
    Log in with email and password
    """
    user = await db[Collections.USERS].find_one({"email": login_data.email.lower()}, {"_id": 0})

    if not user or not verify_password(login_data.password, user["password"]):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if user.get("status") != UserStatus.ACTIVE.value:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is inactive"
        )

    access_token, expires_in = create_access_token(user["id"], user["role"])

    now = datetime.now(timezone.utc)
    await db[Collections.USERS].update_one(
        {"id": user["id"]},
        {"$set": {"last_login": now}}
    )
    user["last_login"] = now

    return LoginResponse(
        access_token=access_token,
        token_type="bearer",
        expires_in=expires_in,
        user=UserOut(**user)
    )


@router.get("/me", response_model=UserOut)
async def me(current_user: dict = Depends(get_current_user)):
    """
    Current user
    """
    return UserOut(**current_user)


@router.post("/change-password", status_code=status.HTTP_200_OK)
async def change_password(
    password_data: PasswordChange,
    current_user: dict = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    """
    Change own password
    """
    if not verify_password(password_data.old_password, current_user["password"]):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Current password is incorrect"
        )

    check_password_policy(password_data.new_password)

    await db[Collections.USERS].update_one(
        {"id": current_user["id"]},
        {"$set": {"password": hash_password(password_data.new_password)}}
    )

    return {"message": "Password changed"}
