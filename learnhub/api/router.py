"""
Main API router. Mounts all sub-routers.
"""

from fastapi import APIRouter

router = APIRouter()


# ── Health (no auth) ─────────────────────────────────────────────────

@router.get("/health")
async def health():
    return {"status": "ok", "service": "learnhub"}


# ── Routes (auth resolved per endpoint) ─────────────────────────────

from .extraction import extraction_router
from .links import links_router
from .materials import materials_router
from .study_plan import study_plan_router
from .vision import vision_router

# Same path the web client uses for the hosted function
router.include_router(extraction_router, prefix="/functions/v1")
router.include_router(extraction_router, prefix="/v1")
router.include_router(materials_router, prefix="/v1")
router.include_router(vision_router, prefix="/v1")
router.include_router(study_plan_router, prefix="/v1")
router.include_router(links_router, prefix="/v1")
