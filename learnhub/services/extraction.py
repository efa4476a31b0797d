"""
Material content extraction.

Given a stored file and the material it belongs to, produce plain text for
LLM prompting and save it as the material's content.

  1. Ownership check (caller session, scoped to user_id)
  2. Storage download + size ceiling (before any parse or gateway call)
  3. Dispatch on FileKind: DOCX parse | PDF/image AI OCR | legacy DOC reject | reject
  4. Minimum-length check, truncation
  5. Content overwrite through the service session

Stateless per call. Two concurrent runs for one material are last-writer-wins.
"""

import enum
import logging
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import get_settings
from ..core.database import service_session
from ..core.errors import (
    EmptyResultError,
    FileTooLargeError,
    LegacyDocFormatError,
    MaterialNotFoundError,
    StorageDownloadError,
    UnsupportedFileTypeError,
)
from ..core.storage import StorageBackend
from ..models.material import Material
from . import realtime
from .docx_text import extract_docx_text
from .ocr import ocr_extract

logger = logging.getLogger(__name__)

TRUNCATION_MARKER = "\n\n[Content truncated...]"
GENERIC_MIME_TYPE = "application/octet-stream"
DOCX_MIME_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
LEGACY_DOC_MIME_TYPE = "application/msword"

EXTENSION_MIME_TYPES = {
    ".pdf": "application/pdf",
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".webp": "image/webp",
    ".docx": DOCX_MIME_TYPE,
    ".doc": LEGACY_DOC_MIME_TYPE,
}

VISION_EXTENSIONS = {".pdf", ".png", ".jpg", ".jpeg", ".webp"}
VISION_MIME_PREFIXES = ("application/pdf", "image/png", "image/jpeg", "image/jpg", "image/webp")


class FileKind(enum.Enum):
    DOCX = "docx"
    PDF_OR_IMAGE = "pdf_or_image"
    LEGACY_DOC = "legacy_doc"
    UNSUPPORTED = "unsupported"


@dataclass
class ExtractionResult:
    material_id: str
    kind: FileKind
    content_length: int
    preview: str
    truncated: bool = False


# ── File type detection ──────────────────────────────────────────────

def _extension(storage_path: str) -> str:
    return PurePosixPath(storage_path or "").suffix.lower()


def resolve_mime_type(file_type: Optional[str], storage_path: str) -> str:
    """Declared MIME type, or one derived from the extension when absent/generic."""
    declared = (file_type or "").strip().lower()
    if declared and declared != GENERIC_MIME_TYPE:
        return declared
    return EXTENSION_MIME_TYPES.get(_extension(storage_path), GENERIC_MIME_TYPE)


def detect_file_kind(file_type: Optional[str], storage_path: str) -> FileKind:
    """
    Priority: DOCX, then PDF/image, then legacy DOC, then unsupported.
    application/msword contains "word" but is never treated as DOCX.
    """
    mime = resolve_mime_type(file_type, storage_path)
    ext = _extension(storage_path)

    is_docx = (
        "docx" in mime
        or "wordprocessingml" in mime
        or ("word" in mime and mime != LEGACY_DOC_MIME_TYPE)
        or ext == ".docx"
    )
    if is_docx:
        return FileKind.DOCX

    if mime.startswith(VISION_MIME_PREFIXES) or ext in VISION_EXTENSIONS:
        return FileKind.PDF_OR_IMAGE

    if mime == LEGACY_DOC_MIME_TYPE or ext == ".doc":
        return FileKind.LEGACY_DOC

    return FileKind.UNSUPPORTED


def _vision_mime_type(file_type: Optional[str], storage_path: str) -> str:
    mime = resolve_mime_type(file_type, storage_path)
    if mime.startswith(VISION_MIME_PREFIXES):
        return mime.split(";")[0].replace("image/jpg", "image/jpeg")
    # Declared type was something else; the extension decided the route.
    return EXTENSION_MIME_TYPES[_extension(storage_path)]


# ── Post-processing ──────────────────────────────────────────────────

def finalize_content(
    text: str,
    max_chars: Optional[int] = None,
    min_chars: Optional[int] = None,
) -> tuple[str, bool]:
    """
    Reject unusably short text, cap the rest. Returns (content, truncated).
    """
    settings = get_settings()
    max_chars = max_chars if max_chars is not None else settings.extraction_max_content_chars
    min_chars = min_chars if min_chars is not None else settings.extraction_min_content_chars

    if len((text or "").strip()) < min_chars:
        raise EmptyResultError()

    if len(text) > max_chars:
        return text[:max_chars] + TRUNCATION_MARKER, True
    return text, False


def build_preview(content: str, length: Optional[int] = None) -> str:
    length = length if length is not None else get_settings().extraction_preview_chars
    return content[:length] + "..."


# ── Persistence ──────────────────────────────────────────────────────

async def get_owned_material(db: AsyncSession, user_id: str, material_id: str) -> Material:
    result = await db.execute(
        select(Material).where(
            Material.id == material_id,
            Material.user_id == user_id,
        )
    )
    material = result.scalar_one_or_none()
    if material is None:
        logger.warning("Material %s not found for user %s", material_id, user_id)
        raise MaterialNotFoundError()
    return material


async def save_material_content(material_id: str, content: str) -> None:
    """Overwrite content with the service credential. Call only after an ownership check."""
    async with service_session() as session:
        result = await session.execute(
            update(Material)
            .where(Material.id == material_id)
            .values(content=content)
        )
        if result.rowcount == 0:
            raise MaterialNotFoundError()


# ── Pipeline ─────────────────────────────────────────────────────────

async def _download(storage: StorageBackend, storage_path: str) -> bytes:
    try:
        return await storage.download(storage_path)
    except FileNotFoundError:
        logger.error("Storage object not found: %s", storage_path)
        raise StorageDownloadError()
    except Exception as e:
        logger.error("Storage download failed (%s): %s", storage_path, e)
        raise StorageDownloadError() from e


def _check_storage_path(material: Material, user_id: str, storage_path: str) -> None:
    """The locator must be this material's object, never another user's."""
    if material.storage_path:
        if storage_path != material.storage_path:
            logger.warning(
                "Storage path mismatch for material %s: %s != %s",
                material.id, storage_path, material.storage_path,
            )
            raise MaterialNotFoundError()
    elif not storage_path.startswith(f"{user_id}/"):
        logger.warning("Storage path %s outside user %s prefix", storage_path, user_id)
        raise MaterialNotFoundError()


async def extract_text(data: bytes, kind: FileKind, file_type: Optional[str], storage_path: str) -> str:
    """Run the strategy for kind. Raises for legacy DOC and unsupported types."""
    if kind is FileKind.DOCX:
        logger.info("Extracting DOCX content...")
        return extract_docx_text(data)

    if kind is FileKind.PDF_OR_IMAGE:
        logger.info("Extracting content using AI...")
        return await ocr_extract(data, _vision_mime_type(file_type, storage_path))

    if kind is FileKind.LEGACY_DOC:
        raise LegacyDocFormatError()

    raise UnsupportedFileTypeError()


async def extract_material(
    db: AsyncSession,
    storage: StorageBackend,
    user_id: str,
    material_id: str,
    storage_path: str,
    file_type: Optional[str] = None,
) -> ExtractionResult:
    settings = get_settings()

    material = await get_owned_material(db, user_id, material_id)
    _check_storage_path(material, user_id, storage_path)
    declared_type = file_type or material.file_type

    logger.info(
        "Processing document extraction for material %s, type: %s, path: %s",
        material_id, declared_type, storage_path,
    )
    await realtime.material_extraction(user_id, material_id, "processing")

    try:
        data = await _download(storage, storage_path)
        if len(data) > settings.extraction_max_file_bytes:
            raise FileTooLargeError(
                f"File is too large for extraction "
                f"(max {settings.extraction_max_file_bytes // (1024 * 1024)}MB)"
            )

        kind = detect_file_kind(declared_type, storage_path)
        logger.info("File type detection: %s (%d bytes)", kind.value, len(data))

        text = await extract_text(data, kind, declared_type, storage_path)
        logger.info("Extracted %d characters (%s)", len(text), kind.value)

        content, truncated = finalize_content(text)
        await save_material_content(material_id, content)

    except Exception as e:
        await realtime.material_extraction(
            user_id, material_id, "failed", {"error": getattr(e, "message", "Extraction failed")}
        )
        raise

    logger.info("Successfully saved %d characters for material %s", len(content), material_id)
    await realtime.material_extraction(
        user_id, material_id, "completed", {"content_length": len(content)}
    )

    return ExtractionResult(
        material_id=material_id,
        kind=kind,
        content_length=len(content),
        preview=build_preview(content),
        truncated=truncated,
    )
