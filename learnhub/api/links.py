"""
Web link explanations.

POST /v1/explain-link — fetch a page and explain it at the student's level
"""

from typing import Literal, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field

from ..core.auth import AuthenticatedUser
from ..core.dependencies import get_user
from ..services.link_explainer import explain_link

links_router = APIRouter(tags=["links"])


class ExplainLinkRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    url: Optional[str] = None
    language: Literal["ar", "en"] = "ar"
    education_level: str = Field(default="high", alias="educationLevel")
    learning_style: str = Field(default="visual", alias="learningStyle")


class ExplainLinkResponse(BaseModel):
    explanation: str


@links_router.post("/explain-link", response_model=ExplainLinkResponse)
async def explain_link_route(
    request: ExplainLinkRequest,
    user: AuthenticatedUser = Depends(get_user),
):
    explanation = await explain_link(
        url=request.url,
        language=request.language,
        education_level=request.education_level,
        learning_style=request.learning_style,
    )
    return ExplainLinkResponse(explanation=explanation)
