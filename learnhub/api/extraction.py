"""
Document text extraction.

POST /functions/v1/extract-document-text — path the web client invokes
POST /v1/extract-document-text           — same handler
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.auth import AuthenticatedUser
from ..core.dependencies import get_db, get_storage_dep, get_user
from ..core.errors import ValidationError
from ..core.storage import StorageBackend
from ..services.extraction import extract_material

logger = logging.getLogger(__name__)

extraction_router = APIRouter(tags=["extraction"])


class ExtractRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    storage_path: Optional[str] = Field(default=None, alias="storagePath")
    material_id: Optional[str] = Field(default=None, alias="materialId")
    file_type: Optional[str] = Field(default=None, alias="fileType")


class ExtractResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    content_length: int = Field(alias="contentLength")
    preview: str


async def _read_request(http_request: Request) -> ExtractRequest:
    """Parse the JSON body. Runs after auth, so a bad token wins over a bad body."""
    try:
        payload = await http_request.json()
        return ExtractRequest.model_validate(payload)
    except (ValueError, PydanticValidationError) as e:
        logger.info("Rejected extraction body: %s", e)
        raise ValidationError("Invalid request body") from e


@extraction_router.post(
    "/extract-document-text",
    response_model=ExtractResponse,
    response_model_by_alias=True,
    openapi_extra={
        "requestBody": {
            "required": True,
            "content": {"application/json": {"schema": ExtractRequest.model_json_schema(by_alias=True)}},
        }
    },
)
async def extract_document_text(
    http_request: Request,
    user: AuthenticatedUser = Depends(get_user),
    db: AsyncSession = Depends(get_db),
    storage: StorageBackend = Depends(get_storage_dep),
):
    """Extract plain text from a stored material and save it as its content."""
    request = await _read_request(http_request)
    if not request.storage_path or not request.material_id:
        raise ValidationError("Missing storagePath or materialId")

    result = await extract_material(
        db=db,
        storage=storage,
        user_id=user.user_id,
        material_id=request.material_id,
        storage_path=request.storage_path,
        file_type=request.file_type,
    )

    return ExtractResponse(content_length=result.content_length, preview=result.preview)
