"""
File API
Upload, list, download, delete
"""
from fastapi import APIRouter, Depends, HTTPException, status, UploadFile, File, Form, Query
from fastapi.responses import FileResponse
from motor.motor_asyncio import AsyncIOMotorDatabase
from typing import List, Optional
from pathlib import Path

from pdca_tracker.core.config import settings, is_allowed_file, get_file_size_mb
from pdca_tracker.core.exceptions import WorkItemError
from pdca_tracker.db.mongo import get_db
from pdca_tracker.api.v1.deps import get_current_user, http_error, is_admin
from pdca_tracker.models.file import FileCategory, FileOut, FileRefType
from pdca_tracker.services.file_service import FileService


router = APIRouter(prefix="/files", tags=["Files"])


def get_file_service(db: AsyncIOMotorDatabase = Depends(get_db)) -> FileService:
    return FileService(db, Path(settings.UPLOAD_DIR))


async def load_file_for_user(service: FileService, file_id: str, current_user: dict) -> dict:
    try:
        file_doc = await service.get_file(file_id)
    except WorkItemError as e:
        raise http_error(e)

    if not file_doc or not (is_admin(current_user) or file_doc["owner_id"] == current_user["id"]):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="File not found"
        )
    return file_doc


@router.post("/", response_model=FileOut, status_code=status.HTTP_201_CREATED)
async def upload_file(
    file: UploadFile = File(...),
    ref_type: Optional[FileRefType] = Form(None),
    ref_id: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    current_user: dict = Depends(get_current_user),
    service: FileService = Depends(get_file_service)
):
    """
    Upload a file
    """
    if not file.filename or not is_allowed_file(file.filename):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"File type not allowed. Allowed: {', '.join(settings.ALLOWED_EXTENSIONS)}"
        )

    content = await file.read()
    if len(content) > settings.MAX_UPLOAD_SIZE:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"File too large. Maximum: {get_file_size_mb(settings.MAX_UPLOAD_SIZE):.0f}MB"
        )

    try:
        return await service.upload_file(
            file_content=content,
            original_filename=file.filename,
            mime_type=file.content_type,
            owner_id=current_user["id"],
            ref_type=ref_type,
            ref_id=ref_id,
            description=description
        )
    except WorkItemError as e:
        raise http_error(e)


@router.get("/", response_model=List[FileOut])
async def list_files(
    category: Optional[FileCategory] = None,
    ref_type: Optional[FileRefType] = None,
    ref_id: Optional[str] = None,
    limit: int = Query(200, ge=1, le=1000),
    current_user: dict = Depends(get_current_user),
    service: FileService = Depends(get_file_service)
):
    """
    List files
    Admins see every file, users their own uploads.
    """
    owner_id = None if is_admin(current_user) else current_user["id"]
    try:
        return await service.list_files(
            owner_id=owner_id,
            category=category,
            ref_type=ref_type,
            ref_id=ref_id,
            limit=limit
        )
    except WorkItemError as e:
        raise http_error(e)


@router.get("/{file_id}")
async def download_file(
    file_id: str,
    current_user: dict = Depends(get_current_user),
    service: FileService = Depends(get_file_service)
):
    """
    Download a file
    """
    file_doc = await load_file_for_user(service, file_id, current_user)

    file_path = service.resolve_path(file_doc)
    if not file_path.exists():
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="File not found on disk"
        )

    return FileResponse(
        path=str(file_path),
        filename=file_doc["original_filename"],
        media_type=file_doc["mime_type"]
    )


@router.delete("/{file_id}")
async def delete_file(
    file_id: str,
    current_user: dict = Depends(get_current_user),
    service: FileService = Depends(get_file_service)
):
    await load_file_for_user(service, file_id, current_user)

    try:
        await service.delete_file(file_id)
    except WorkItemError as e:
        raise http_error(e)

    return {"message": "File deleted successfully"}
