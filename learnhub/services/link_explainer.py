"""
Link explainer: fetch a web page, reduce it to text, and have the model
explain it at the student's level.

A page that cannot be fetched does not fail the request; the model is told
to work from the URL alone.
"""

import html
import logging
import re
from typing import Optional
from urllib.parse import urlparse

import httpx

from ..core.config import get_settings
from ..core.errors import ValidationError
from . import llm

logger = logging.getLogger(__name__)

LEVEL_GUIDANCE = {
    "elementary": "Simplify greatly for an elementary student.",
    "middle": "Explain clearly for a middle school student.",
    "high": "Explain in detail for a high school student.",
    "university": "Analyze in depth for a university student.",
    "professional": "Provide specialized analysis.",
}

LANGUAGE_NAMES = {"ar": "Arabic", "en": "English"}

_SCRIPT = re.compile(r"<script[^>]*>[\s\S]*?</script>", re.IGNORECASE)
_STYLE = re.compile(r"<style[^>]*>[\s\S]*?</style>", re.IGNORECASE)
_TAG = re.compile(r"<[^>]+>")
_WHITESPACE = re.compile(r"\s+")

# Tests swap in an httpx.MockTransport
_transport: Optional[httpx.AsyncBaseTransport] = None


def validate_url(url: Optional[str]) -> str:
    url = (url or "").strip()
    if not url:
        raise ValidationError("URL is required")
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValidationError("URL must start with http:// or https://")
    return url


def html_to_text(page: str, max_chars: int) -> str:
    """Drop scripts, styles and tags; collapse whitespace; cap the length."""
    text = _SCRIPT.sub("", page)
    text = _STYLE.sub("", text)
    text = _TAG.sub(" ", text)
    text = _WHITESPACE.sub(" ", html.unescape(text)).strip()
    return text[:max_chars]


def unreachable_note(url: str) -> str:
    return f"Unable to fetch content from {url}. Please analyze based on the URL structure."


async def fetch_page_text(url: str) -> str:
    settings = get_settings()
    try:
        async with httpx.AsyncClient(
            transport=_transport,
            timeout=settings.link_fetch_timeout,
            follow_redirects=True,
            headers={"User-Agent": settings.link_user_agent},
        ) as client:
            resp = await client.get(url)
            resp.raise_for_status()
    except httpx.HTTPError as e:
        logger.warning("Could not fetch %s: %s", url, e)
        return unreachable_note(url)

    text = html_to_text(resp.text, settings.link_content_max_chars)
    logger.info("Fetched %s: %d chars of text", url, len(text))
    return text or unreachable_note(url)


def build_system_prompt(education_level: str = "high", language: str = "ar") -> str:
    guidance = LEVEL_GUIDANCE.get(education_level, LEVEL_GUIDANCE["high"])
    language_name = LANGUAGE_NAMES.get(language, "English")
    return f"""You are an intelligent educational assistant specialized in analyzing and explaining website and article content.
{guidance}

Your task:
1. Analyze the provided website content
2. Extract key points
3. Explain complex concepts in a simplified way
4. Connect information to educational context
5. Suggest topics for further research

Provide the explanation in an organized and easy-to-understand manner.
Write your whole answer in {language_name}."""


def build_user_prompt(url: str, page_text: str) -> str:
    return f"""Analyze and explain the content of this website:
URL: {url}

Extracted content:
{page_text}

Provide a comprehensive summary including:
- Main idea
- Important points
- New concepts
- How this content can be used educationally"""


async def explain_link(
    url: str,
    language: str = "ar",
    education_level: str = "high",
    learning_style: str = "visual",
) -> str:
    url = validate_url(url)
    page_text = await fetch_page_text(url)

    system = build_system_prompt(education_level, language)
    if learning_style:
        system += f"\nThe student's preferred learning style is {learning_style}."

    response = await llm.chat(
        messages=[
            {"role": "system", "content": system},
            {"role": "user", "content": build_user_prompt(url, page_text)},
        ],
    )
    return llm.message_content(response)
