"""
Study materials — upload, list, read, delete, extract.

POST   /v1/materials               — multipart upload (creates the record)
GET    /v1/materials               — caller's materials, newest first
GET    /v1/materials/{id}          — one material, with content
DELETE /v1/materials/{id}          — delete record and stored object
POST   /v1/materials/{id}/extract  — run extraction on the stored object
"""

import logging
import mimetypes
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, File, UploadFile
from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.auth import AuthenticatedUser
from ..core.config import get_settings
from ..core.dependencies import get_db, get_storage_dep, get_user
from ..core.errors import FileTooLargeError, ValidationError
from ..core.storage import StorageBackend
from ..models.material import Material
from ..services import realtime
from ..services.extraction import extract_material, get_owned_material
from ..services.materials import (
    build_storage_path,
    is_allowed_type,
    is_pending_extraction,
    read_text_content,
)

logger = logging.getLogger(__name__)

materials_router = APIRouter(tags=["materials"])


class MaterialResponse(BaseModel):
    id: str
    file_name: str
    file_type: Optional[str] = None
    file_size: Optional[int] = None
    storage_path: Optional[str] = None
    needs_extraction: bool = False
    content_length: int = 0
    created_at: Optional[datetime] = None


class MaterialDetail(MaterialResponse):
    content: Optional[str] = None


class ExtractResult(BaseModel):
    success: bool = True
    material_id: str
    content_length: int
    preview: str
    truncated: bool = False


def _to_response(m: Material, model=MaterialResponse):
    extra = {"content": m.content} if model is MaterialDetail else {}
    return model(
        id=m.id,
        file_name=m.file_name,
        file_type=m.file_type,
        file_size=m.file_size,
        storage_path=m.storage_path,
        needs_extraction=is_pending_extraction(m),
        content_length=len(m.content or ""),
        created_at=m.created_at,
        **extra,
    )


@materials_router.post("/materials", response_model=MaterialResponse)
async def upload_material(
    file: UploadFile = File(...),
    user: AuthenticatedUser = Depends(get_user),
    db: AsyncSession = Depends(get_db),
    storage: StorageBackend = Depends(get_storage_dep),
):
    """
    Upload a study file. Plain-text files get their content right away;
    PDFs, Word files and images come back with needs_extraction=true.
    """
    settings = get_settings()
    filename = file.filename or "file"
    content_type = file.content_type or mimetypes.guess_type(filename)[0] or ""

    if not is_allowed_type(content_type, filename):
        raise ValidationError(f"File type '{content_type or filename}' is not allowed")

    file_bytes = await file.read()
    if not file_bytes:
        raise ValidationError("Empty file")
    if len(file_bytes) > settings.extraction_max_file_bytes:
        raise FileTooLargeError(
            f"File too large (max {settings.extraction_max_file_bytes // (1024 * 1024)}MB)"
        )

    path = build_storage_path(user.user_id, filename)
    await storage.upload(file_bytes, path, content_type)

    material = Material(
        user_id=user.user_id,
        file_name=filename,
        file_type=content_type or None,
        file_size=len(file_bytes),
        storage_path=path,
        content=read_text_content(filename, file_bytes),
    )
    db.add(material)
    await db.flush()

    logger.info(
        "Material uploaded: %s (%d bytes) → %s, needs_extraction=%s",
        filename, len(file_bytes), path,
        is_pending_extraction(material),
    )
    return _to_response(material)


@materials_router.get("/materials", response_model=list[MaterialResponse])
async def list_materials(
    user: AuthenticatedUser = Depends(get_user),
    db: AsyncSession = Depends(get_db),
):
    """List the caller's materials."""
    result = await db.execute(
        select(Material)
        .where(Material.user_id == user.user_id)
        .order_by(Material.created_at.desc())
    )
    return [_to_response(m) for m in result.scalars().all()]


@materials_router.get("/materials/{material_id}", response_model=MaterialDetail)
async def get_material(
    material_id: str,
    user: AuthenticatedUser = Depends(get_user),
    db: AsyncSession = Depends(get_db),
):
    material = await get_owned_material(db, user.user_id, material_id)
    return _to_response(material, MaterialDetail)


@materials_router.delete("/materials/{material_id}")
async def delete_material(
    material_id: str,
    user: AuthenticatedUser = Depends(get_user),
    db: AsyncSession = Depends(get_db),
    storage: StorageBackend = Depends(get_storage_dep),
):
    """Delete a material and its stored file."""
    material = await get_owned_material(db, user.user_id, material_id)

    if material.storage_path:
        try:
            await storage.remove(material.storage_path)
        except Exception as e:
            logger.warning("Could not remove %s from storage: %s", material.storage_path, e)

    await db.delete(material)
    await db.flush()
    await realtime.material_deleted(user.user_id, material_id)
    return {"status": "deleted", "id": material_id}


@materials_router.post("/materials/{material_id}/extract", response_model=ExtractResult)
async def extract_stored_material(
    material_id: str,
    user: AuthenticatedUser = Depends(get_user),
    db: AsyncSession = Depends(get_db),
    storage: StorageBackend = Depends(get_storage_dep),
):
    """Extract text from a material's stored file, using its recorded path and type."""
    material = await get_owned_material(db, user.user_id, material_id)
    if not material.storage_path:
        raise ValidationError("Material has no stored file")

    result = await extract_material(
        db=db,
        storage=storage,
        user_id=user.user_id,
        material_id=material.id,
        storage_path=material.storage_path,
        file_type=material.file_type,
    )
    return ExtractResult(
        material_id=result.material_id,
        content_length=result.content_length,
        preview=result.preview,
        truncated=result.truncated,
    )
