"""
Stored File Models
"""
from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
from enum import Enum
import hashlib


class FileCategory(str, Enum):
    """File categories"""
    DOCUMENT = "document"
    SPREADSHEET = "spreadsheet"
    PRESENTATION = "presentation"
    IMAGE = "image"
    VIDEO = "video"
    AUDIO = "audio"
    ARCHIVE = "archive"
    OTHER = "other"


class FileRefType(str, Enum):
    """What an upload is attached to"""
    TASK = "task"
    ORDER = "order"
    PROFILE = "profile"


class FileOut(BaseModel):
    """Stored file metadata"""
    id: str
    filename: str
    original_filename: str
    mime_type: str
    size: int
    category: FileCategory
    hash_sha256: str
    owner_id: str
    ref_type: Optional[FileRefType] = None
    ref_id: Optional[str] = None
    description: Optional[str] = Field(None, max_length=500)
    uploaded_at: datetime
    url: Optional[str] = None


def calculate_file_hash(content: bytes) -> str:
    """SHA-256 hex digest of the file content"""
    return hashlib.sha256(content).hexdigest()


def get_file_category(mime_type: str) -> FileCategory:
    """Category from the MIME type"""
    mime_type = (mime_type or "").lower()

    if mime_type.startswith("image/"):
        return FileCategory.IMAGE
    if mime_type.startswith("video/"):
        return FileCategory.VIDEO
    if mime_type.startswith("audio/"):
        return FileCategory.AUDIO
    if mime_type in ("application/pdf", "application/msword", "text/plain") or \
            "wordprocessingml" in mime_type:
        return FileCategory.DOCUMENT
    if mime_type in ("application/vnd.ms-excel", "text/csv") or "spreadsheetml" in mime_type:
        return FileCategory.SPREADSHEET
    if mime_type == "application/vnd.ms-powerpoint" or "presentationml" in mime_type:
        return FileCategory.PRESENTATION
    if mime_type in (
        "application/zip",
        "application/x-zip-compressed",
        "application/x-rar-compressed",
        "application/vnd.rar",
    ):
        return FileCategory.ARCHIVE
    return FileCategory.OTHER
