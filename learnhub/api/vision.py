"""
Image tutoring API.

POST /v1/analyze-image — explain/solve an uploaded picture
"""

import logging
from typing import Literal, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field

from ..core.auth import AuthenticatedUser
from ..core.dependencies import get_user
from ..core.errors import ValidationError
from ..services.image_tutor import analyze_image

logger = logging.getLogger(__name__)

vision_router = APIRouter(tags=["vision"])


class AnalyzeImageRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    image_base64: Optional[str] = Field(default=None, alias="imageBase64")
    prompt: Optional[str] = None
    language: Literal["ar", "en"] = "ar"
    education_level: str = Field(default="high", alias="educationLevel")
    subject: str = "general"


class AnalyzeImageResponse(BaseModel):
    analysis: str


@vision_router.post("/analyze-image", response_model=AnalyzeImageResponse)
async def analyze_image_route(
    request: AnalyzeImageRequest,
    user: AuthenticatedUser = Depends(get_user),
):
    if not request.image_base64:
        raise ValidationError("Image is required")

    analysis = await analyze_image(
        image_base64=request.image_base64,
        prompt=request.prompt or "",
        language=request.language,
        education_level=request.education_level,
        subject=request.subject,
    )
    return AnalyzeImageResponse(analysis=analysis)
