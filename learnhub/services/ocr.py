"""
Text extraction from PDFs and images via a vision-capable model.

The file is inlined as a base64 data URI and sent in a single non-streaming
chat completion. Low temperature, large output budget. The reply is taken
verbatim as the document text.
"""

import base64
import logging

from ..core.config import get_settings
from ..core.errors import GatewayError, UsageLimitError
from . import llm

logger = logging.getLogger(__name__)

OCR_SYSTEM_PROMPT = """You are a high-fidelity document OCR engine. Your only job is to transcribe ALL text in the document exactly as it appears.

CRITICAL RULES:
1. Transcribe every word verbatim, in natural reading order (columns, pages, top to bottom)
2. Preserve diacritics, accents and special characters exactly
3. Keep headings, paragraphs and lists; render tables as Markdown tables
4. Do NOT summarize, shorten, paraphrase or skip any content
5. Do NOT translate. Keep every passage in its original language (Arabic stays Arabic)
6. Do NOT add commentary, explanations or notes of your own
7. Return ONLY the transcribed text"""

OCR_USER_PROMPT = (
    "Extract ALL text content from this document. Return the complete text "
    "preserving structure and order. Do not summarize or skip any content."
)


def build_data_uri(data: bytes, mime_type: str) -> str:
    encoded = base64.b64encode(data).decode("ascii")
    return f"data:{mime_type};base64,{encoded}"


async def ocr_extract(data: bytes, mime_type: str) -> str:
    """
    Transcribe a PDF or image. Gateway failures propagate as typed
    GatewayError subclasses.
    """
    settings = get_settings()
    logger.info("AI OCR: %s, %d bytes, model=%s", mime_type, len(data), settings.ocr_model)

    messages = [
        {"role": "system", "content": OCR_SYSTEM_PROMPT},
        {
            "role": "user",
            "content": [
                {"type": "text", "text": OCR_USER_PROMPT},
                {"type": "image_url", "image_url": {"url": build_data_uri(data, mime_type)}},
            ],
        },
    ]

    try:
        response = await llm.chat(
            messages=messages,
            model=settings.ocr_model,
            temperature=settings.ocr_temperature,
            max_tokens=settings.ocr_max_tokens,
        )
    except UsageLimitError as e:
        # extraction only distinguishes 429 and 413
        raise GatewayError(upstream_status=e.upstream_status, body=e.body) from e

    text = llm.message_content(response)
    logger.info("AI OCR returned %d chars", len(text))
    return text
