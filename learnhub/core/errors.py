"""
Typed failures for the material/extraction flow.

Every error carries the HTTP status it maps to and a message that is safe
to show the caller. Anything internal (gateway bodies, tracebacks) stays in
the server log.
"""

from typing import Optional


class ExtractionError(Exception):
    status_code = 500
    default_message = "Extraction failed"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


# ── Auth ─────────────────────────────────────────────────────────────

class AuthError(ExtractionError):
    status_code = 401
    default_message = "Unauthorized"


class MaterialNotFoundError(ExtractionError):
    status_code = 404
    default_message = "Material not found or access denied"


# ── Validation ───────────────────────────────────────────────────────

class ValidationError(ExtractionError):
    status_code = 400
    default_message = "Invalid request"


class FileTooLargeError(ValidationError):
    default_message = "File is too large for extraction"


class LegacyDocFormatError(ValidationError):
    default_message = (
        "Old .doc format is not supported. Please save the file as .docx and re-upload."
    )


class UnsupportedFileTypeError(ValidationError):
    default_message = "Unsupported file type for extraction"


# ── Parsing ──────────────────────────────────────────────────────────

class ParseError(ExtractionError):
    status_code = 400
    default_message = "Failed to extract text from document"


# ── LLM gateway ──────────────────────────────────────────────────────

class GatewayError(ExtractionError):
    status_code = 500
    default_message = "AI service request failed. Please try again later."

    def __init__(self, message: Optional[str] = None, upstream_status: int = 0, body: str = ""):
        super().__init__(message)
        self.upstream_status = upstream_status
        self.body = body[:500]


class RateLimitError(GatewayError):
    status_code = 429
    default_message = "Rate limit exceeded. Please try again in a moment."


class PayloadTooLargeError(GatewayError):
    status_code = 413
    default_message = "File is too large for AI extraction. Try a smaller file."


class UsageLimitError(GatewayError):
    status_code = 402
    default_message = "Usage limit reached. Please add credits."


# ── Result ───────────────────────────────────────────────────────────

class EmptyResultError(ExtractionError):
    status_code = 422
    default_message = (
        "No text could be extracted from the document. "
        "The file may be empty or corrupted."
    )


# ── Storage ──────────────────────────────────────────────────────────

class StorageDownloadError(ExtractionError):
    status_code = 500
    default_message = "Failed to download file"
