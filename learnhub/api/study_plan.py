"""
Study plans.

POST /v1/generate-study-plan — week-by-week plan from the student's materials
"""

import logging
from typing import Any, Literal, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.auth import AuthenticatedUser
from ..core.dependencies import get_db, get_user
from ..core.errors import ValidationError
from ..services.extraction import get_owned_material
from ..services.study_plan import generate_study_plan

logger = logging.getLogger(__name__)

study_plan_router = APIRouter(tags=["study-plan"])


class PlanMaterial(BaseModel):
    name: str
    content: str = ""


class StudyPlanRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    materials: list[PlanMaterial] = Field(default_factory=list)
    material_ids: list[str] = Field(default_factory=list, alias="materialIds")
    subject: str = "general"
    education_level: str = Field(default="high", alias="educationLevel")
    learning_style: str = Field(default="visual", alias="learningStyle")
    duration_weeks: int = Field(default=2, ge=1, le=52, alias="durationWeeks")
    language: Literal["ar", "en"] = "ar"


class StudyPlanResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    plan: Optional[dict[str, Any]] = None
    raw_content: str = Field(alias="rawContent")


@study_plan_router.post(
    "/generate-study-plan",
    response_model=StudyPlanResponse,
    response_model_by_alias=True,
)
async def generate_study_plan_route(
    request: StudyPlanRequest,
    user: AuthenticatedUser = Depends(get_user),
    db: AsyncSession = Depends(get_db),
):
    """Inline materials are used as given; materialIds are read from the caller's library."""
    materials = [m.model_dump() for m in request.materials]

    for material_id in request.material_ids:
        material = await get_owned_material(db, user.user_id, material_id)
        if material.content is None:
            raise ValidationError(f"Material '{material.file_name}' has no extracted text yet")
        materials.append({"name": material.file_name, "content": material.content})

    plan, raw = await generate_study_plan(
        materials=materials,
        subject=request.subject,
        education_level=request.education_level,
        learning_style=request.learning_style,
        duration_weeks=request.duration_weeks,
        language=request.language,
    )
    return StudyPlanResponse(plan=plan, raw_content=raw)
