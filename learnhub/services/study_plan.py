"""
Study plan generation.

The model is asked for a week-by-week plan as a JSON object built from the
student's materials, subject, level, learning style and plan length. The
parsed plan is returned alongside the raw reply; a reply that does not
contain a JSON object yields plan=None rather than an error.
"""

import json
import logging
import re
from typing import Optional

from . import llm

logger = logging.getLogger(__name__)

SUBJECT_NAMES = {
    "physics": {"ar": "الفيزياء", "en": "Physics"},
    "chemistry": {"ar": "الكيمياء", "en": "Chemistry"},
    "math": {"ar": "الرياضيات", "en": "Mathematics"},
    "biology": {"ar": "الأحياء", "en": "Biology"},
    "history": {"ar": "التاريخ", "en": "History"},
    "arabic": {"ar": "اللغة العربية", "en": "Arabic"},
    "english": {"ar": "اللغة الإنجليزية", "en": "English"},
    "general": {"ar": "عام", "en": "General"},
}

LANGUAGE_NAMES = {"ar": "Arabic", "en": "English"}

PLAN_SCHEMA = """{
  "title": "Plan title",
  "overview": "Overview of the plan",
  "weeks": [
    {
      "weekNumber": 1,
      "focus": "Week focus",
      "days": [
        {
          "day": "Saturday",
          "topics": ["Topic 1", "Topic 2"],
          "duration": "1 hour",
          "activities": ["Activity 1", "Activity 2"]
        }
      ]
    }
  ],
  "tips": ["Tip 1", "Tip 2"]
}"""

_FENCE = re.compile(r"```(?:json)?\s*")
_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")


def subject_name(subject: str, language: str = "ar") -> str:
    names = SUBJECT_NAMES.get(subject, SUBJECT_NAMES["general"])
    return names.get(language, names["en"])


def build_system_prompt(language: str = "ar") -> str:
    language_name = LANGUAGE_NAMES.get(language, "English")
    return (
        "You are an intelligent educational planner specialized in creating "
        "personalized study plans.\n"
        "Your task is to create a detailed and organized study plan.\n\n"
        "You must respond in JSON format only as follows:\n"
        f"{PLAN_SCHEMA}\n\n"
        f"Write every text value in {language_name}."
    )


def build_user_prompt(
    materials: list[dict],
    subject: str = "general",
    education_level: str = "high",
    learning_style: str = "visual",
    duration_weeks: int = 2,
    language: str = "ar",
) -> str:
    context = "\n\n".join(f"📄 {m['name']}:\n{m['content']}" for m in materials)
    weeks = f"{duration_weeks} week{'s' if duration_weeks > 1 else ''}"
    return f"""Create a study plan for {weeks} for subject: {subject_name(subject, language)}

Education level: {education_level}
Preferred learning style: {learning_style}

Available study materials:
{context or "No specific materials - create a general plan"}

Create a study plan that includes:
- Realistic daily schedule
- Balanced topic distribution
- Various activities based on learning style
- Rest and review periods
- Tips for success"""


def parse_plan(text: str) -> Optional[dict]:
    """The first {...} span of the reply as a dict, or None."""
    match = _JSON_OBJECT.search(_FENCE.sub("", text))
    if not match:
        return None
    try:
        plan = json.loads(match.group())
    except json.JSONDecodeError as e:
        logger.warning("Study plan reply is not valid JSON: %s", e)
        return None
    return plan if isinstance(plan, dict) else None


async def generate_study_plan(
    materials: list[dict],
    subject: str = "general",
    education_level: str = "high",
    learning_style: str = "visual",
    duration_weeks: int = 2,
    language: str = "ar",
) -> tuple[Optional[dict], str]:
    """Returns (plan, raw reply). Gateway failures propagate as typed errors."""
    logger.info(
        "Study plan: %d materials, subject=%s, weeks=%d, language=%s",
        len(materials), subject, duration_weeks, language,
    )
    response = await llm.chat(
        messages=[
            {"role": "system", "content": build_system_prompt(language)},
            {
                "role": "user",
                "content": build_user_prompt(
                    materials, subject, education_level, learning_style,
                    duration_weeks, language,
                ),
            },
        ],
    )
    content = llm.message_content(response)
    return parse_plan(content), content
