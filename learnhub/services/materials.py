"""
Upload-side helpers for materials: storage keys, type checks and direct
text capture for plain-text files.
"""

import re
import time
from pathlib import PurePosixPath
from typing import Optional

from ..core.config import get_settings
from ..models.material import Material
from .extraction import TRUNCATION_MARKER

ALLOWED_MATERIAL_TYPES = {
    "text/plain",
    "text/markdown",
    "text/csv",
    "text/x-markdown",
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "image/jpeg",
    "image/png",
    "image/gif",
    "image/webp",
}

TEXT_EXTENSIONS = {"txt", "md", "csv", "json", "xml", "html", "css", "js", "ts", "py"}
EXTRACTABLE_EXTENSIONS = {"pdf", "docx", "doc", "pptx", "png", "jpg", "jpeg", "webp"}

_NON_ASCII = re.compile(r"[^\x00-\x7F]")
_WHITESPACE = re.compile(r"\s+")
_UNDERSCORES = re.compile(r"_+")


def sanitize_filename(filename: str) -> str:
    """ASCII-only storage name. Keeps the extension, falls back to 'file'."""
    dot = filename.rfind(".")
    ext = filename[dot:] if dot > -1 else ""
    stem = filename[:dot] if dot > -1 else filename

    stem = _NON_ASCII.sub("_", stem)
    stem = _WHITESPACE.sub("_", stem)
    stem = _UNDERSCORES.sub("_", stem)
    stem = stem.strip("_")
    return (stem or "file") + ext


def build_storage_path(user_id: str, filename: str, now_ms: Optional[int] = None) -> str:
    stamp = now_ms if now_ms is not None else int(time.time() * 1000)
    return f"{user_id}/{stamp}_{sanitize_filename(filename)}"


def file_extension(filename: str) -> str:
    return PurePosixPath(filename).suffix.lower().lstrip(".")


def is_allowed_type(content_type: Optional[str], filename: str) -> bool:
    """MIME allow-list, with the extension as tiebreaker for generic uploads."""
    ct = (content_type or "").split(";")[0].strip().lower()
    if ct in ALLOWED_MATERIAL_TYPES:
        return True
    if not ct or ct == "application/octet-stream":
        ext = file_extension(filename)
        return ext in TEXT_EXTENSIONS or ext in EXTRACTABLE_EXTENSIONS
    return False


def read_text_content(filename: str, file_bytes: bytes) -> Optional[str]:
    """
    Decoded, capped text for plain-text uploads. None for everything else.
    """
    if file_extension(filename) not in TEXT_EXTENSIONS:
        return None

    max_chars = get_settings().upload_text_max_chars
    text = file_bytes.decode("utf-8", errors="replace")
    if len(text) > max_chars:
        text = text[:max_chars] + TRUNCATION_MARKER
    return text


def needs_extraction(filename: str) -> bool:
    return file_extension(filename) in EXTRACTABLE_EXTENSIONS


def is_pending_extraction(material: Material) -> bool:
    """Stored, not yet extracted, and in a format extraction accepts."""
    return (
        bool(material.storage_path)
        and material.content is None
        and needs_extraction(material.file_name)
    )
