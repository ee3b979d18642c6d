"""
Backend Configuration
Environment variables and application settings
"""
from pydantic_settings import BaseSettings
from typing import List
from pathlib import Path


class Settings(BaseSettings):
    """Application settings"""

    # Application
    APP_NAME: str = "PDCA Tracker"
    APP_VERSION: str = "1.0.0"

    # MongoDB
    MONGO_URL: str = "mongodb://localhost:27017"
    DB_NAME: str = "pdca_tracker"

    # JWT
    JWT_SECRET: str = "change-me-in-production-use-strong-secret"
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 12

    # CORS
    CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
    ]

    # File uploads
    UPLOAD_DIR: str = "uploads"
    MAX_UPLOAD_SIZE: int = 10 * 1024 * 1024  # 10MB
    ALLOWED_EXTENSIONS: List[str] = [
        ".pdf", ".doc", ".docx", ".xls", ".xlsx",
        ".ppt", ".pptx", ".txt", ".csv",
        ".jpg", ".jpeg", ".png", ".gif",
        ".zip", ".rar"
    ]

    # Passwords
    PASSWORD_MIN_LENGTH: int = 6
    PASSWORD_REQUIRE_UPPERCASE: bool = False
    PASSWORD_REQUIRE_DIGIT: bool = False

    # Logging
    LOG_LEVEL: str = "INFO"

    # Sequence counters
    TASK_COUNTER_KEY: str = "taskNumber"
    ORDER_COUNTER_KEY: str = "orderNumber"
    ORDER_NUMBER_PREFIX: str = "ORD"
    ORDER_NUMBER_WIDTH: int = 4
    SEQUENCE_UPSERT_RETRIES: int = 3

    # Optimistic retries for updates that race on progress or due date
    UPDATE_RETRIES: int = 3

    # Bootstrap admin, created on first start-up
    ADMIN_NAME: str = "admin"
    ADMIN_EMAIL: str = "admin@example.com"
    ADMIN_PASSWORD: str = "admin123"

    class Config:
        env_file = ".env"
        case_sensitive = True


# Global settings instance
settings = Settings()


def is_allowed_file(filename: str) -> bool:
    """Check the file extension against ALLOWED_EXTENSIONS"""
    ext = Path(filename).suffix.lower()
    return ext in settings.ALLOWED_EXTENSIONS


def get_file_size_mb(size_bytes: int) -> float:
    return size_bytes / (1024 * 1024)


def validate_password(password: str) -> tuple[bool, str]:
    """
    Check a password against the password policy
    Returns: (is_valid, error_message)
    """
    if len(password) < settings.PASSWORD_MIN_LENGTH:
        return False, f"Password must be at least {settings.PASSWORD_MIN_LENGTH} characters"

    if settings.PASSWORD_REQUIRE_UPPERCASE and not any(c.isupper() for c in password):
        return False, "Password must contain at least one uppercase letter"

    if settings.PASSWORD_REQUIRE_DIGIT and not any(c.isdigit() for c in password):
        return False, "Password must contain at least one digit"

    return True, ""
