"""
Image tutoring: explain or solve what a student photographed.
"""

import logging

from . import llm

logger = logging.getLogger(__name__)

LEVEL_GUIDANCE = {
    "elementary": "Explain very simply for an elementary student.",
    "middle": "Explain clearly for a middle school student.",
    "high": "Explain in detail for a high school student.",
    "university": "Explain with academic depth for a university student.",
    "professional": "Explain in a specialized and advanced way.",
}

LANGUAGE_NAMES = {"ar": "Arabic", "en": "English"}

DEFAULT_PROMPT = (
    "Analyze this image and explain its content in detail. "
    "If it contains a problem, solve it step by step."
)


def build_system_prompt(education_level: str = "high", language: str = "en", subject: str = "general") -> str:
    guidance = LEVEL_GUIDANCE.get(education_level, LEVEL_GUIDANCE["high"])
    language_name = LANGUAGE_NAMES.get(language, "English")
    return f"""You are an intelligent tutor specialized in analyzing educational images and scientific problems.
{guidance}
Subject context: {subject}.

When analyzing an image:
1. Identify the type of problem or content (math, physics, chemistry, etc.)
2. Explain the concepts present in the image
3. If it's a problem, solve it step by step
4. Provide tips for understanding and application
5. Mention any common mistakes to avoid

Use mathematical symbols correctly and make the explanation clear and organized.
Write your whole answer in {language_name}."""


def as_image_url(image_base64: str) -> str:
    """Accept a data URI as-is; wrap raw base64 as JPEG."""
    if image_base64.startswith("data:"):
        return image_base64
    return f"data:image/jpeg;base64,{image_base64}"


async def analyze_image(
    image_base64: str,
    prompt: str = "",
    language: str = "en",
    education_level: str = "high",
    subject: str = "general",
) -> str:
    logger.info("Image analysis: level=%s language=%s subject=%s", education_level, language, subject)
    return await llm.chat_with_vision(
        prompt=prompt or DEFAULT_PROMPT,
        image_urls=[as_image_url(image_base64)],
        system=build_system_prompt(education_level, language, subject),
        max_tokens=4096,
    )
