"""
File Service
Disk storage for uploads, metadata in MongoDB
"""
from typing import Any, Dict, List, Optional
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import DESCENDING
from datetime import datetime, timezone
from pathlib import Path
import logging
import uuid
import aiofiles

from pdca_tracker.core.exceptions import ValidationError
from pdca_tracker.db.mongo import Collections
from pdca_tracker.models.file import (
    FileCategory, FileOut, FileRefType,
    calculate_file_hash, get_file_category
)
from pdca_tracker.services.work_item_service import MongoErrorTranslator

logger = logging.getLogger(__name__)


class FileService:
    """Stored file service"""

    def __init__(self, db: AsyncIOMotorDatabase, upload_dir: Path):
        self.db = db
        self.files = db[Collections.FILES]
        self.upload_dir = Path(upload_dir)
        self.upload_dir.mkdir(parents=True, exist_ok=True)

    @staticmethod
    def to_out(doc: Dict[str, Any]) -> FileOut:
        data = {k: v for k, v in doc.items() if k not in ("_id", "file_path")}
        data["url"] = f"/api/v1/files/{doc['id']}"
        return FileOut(**data)

    # ========================================================================
    # UPLOAD
    # ========================================================================

    async def upload_file(
        self,
        file_content: bytes,
        original_filename: str,
        mime_type: str,
        owner_id: str,
        ref_type: Optional[FileRefType] = None,
        ref_id: Optional[str] = None,
        description: Optional[str] = None
    ) -> FileOut:
        """
        Store an upload.
        Uploading identical content for the same owner and reference returns
        the existing record.
        """
        if not file_content:
            raise ValidationError("Uploaded file is empty", ["file"])

        hash_sha256 = calculate_file_hash(file_content)

        async with MongoErrorTranslator("Look up file", logger):
            existing = await self.files.find_one({
                "hash_sha256": hash_sha256,
                "owner_id": owner_id,
                "ref_type": ref_type.value if ref_type else None,
                "ref_id": ref_id
            }, {"_id": 0})
        if existing:
            return self.to_out(existing)

        file_id = str(uuid.uuid4())
        filename = f"{file_id}{Path(original_filename).suffix.lower()}"
        file_path = self.upload_dir / filename

        async with aiofiles.open(file_path, "wb") as f:
            await f.write(file_content)

        file_doc = {
            "id": file_id,
            "filename": filename,
            "original_filename": original_filename,
            "mime_type": mime_type or "application/octet-stream",
            "size": len(file_content),
            "category": get_file_category(mime_type).value,
            "hash_sha256": hash_sha256,
            "owner_id": owner_id,
            "ref_type": ref_type.value if ref_type else None,
            "ref_id": ref_id,
            "description": description,
            "file_path": str(file_path),
            "uploaded_at": datetime.now(timezone.utc)
        }

        try:
            async with MongoErrorTranslator("Save file record", logger):
                await self.files.insert_one(file_doc)
        except Exception:
            file_path.unlink(missing_ok=True)
            raise

        logger.info("Stored file %s (%s, %d bytes)", file_id, original_filename, len(file_content))
        return self.to_out(file_doc)

    # ========================================================================
    # READ / DELETE
    # ========================================================================

    async def get_file(self, file_id: str) -> Optional[Dict[str, Any]]:
        async with MongoErrorTranslator("Fetch file", logger):
            return await self.files.find_one({"id": file_id}, {"_id": 0})

    async def list_files(
        self,
        owner_id: Optional[str] = None,
        category: Optional[FileCategory] = None,
        ref_type: Optional[FileRefType] = None,
        ref_id: Optional[str] = None,
        limit: int = 200
    ) -> List[FileOut]:
        """List files, newest first. owner_id=None lists everything."""
        query: Dict[str, Any] = {}
        if owner_id:
            query["owner_id"] = owner_id
        if category:
            query["category"] = category.value
        if ref_type:
            query["ref_type"] = ref_type.value
        if ref_id:
            query["ref_id"] = ref_id

        async with MongoErrorTranslator("List files", logger):
            docs = await self.files.find(query, {"_id": 0}) \
                .sort("uploaded_at", DESCENDING).limit(limit).to_list(length=limit)
        return [self.to_out(doc) for doc in docs]

    def resolve_path(self, file_doc: Dict[str, Any]) -> Path:
        return self.upload_dir / file_doc["filename"]

    async def delete_file(self, file_id: str) -> bool:
        file_doc = await self.get_file(file_id)
        if not file_doc:
            return False

        async with MongoErrorTranslator("Delete file", logger):
            await self.files.delete_one({"id": file_id})

        self.resolve_path(file_doc).unlink(missing_ok=True)
        logger.info("Deleted file %s", file_id)
        return True
