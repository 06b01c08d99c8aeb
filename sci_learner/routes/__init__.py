"""FastAPI API endpoints under /api.

Endpoint groups: health + settings, the module catalogue and characters,
and per-session lesson control under /api/sessions/{session_id}/.
"""

from fastapi import APIRouter

from .lessons import router as lessons_router
from .settings import router as settings_router

router = APIRouter()
router.include_router(settings_router)
router.include_router(lessons_router)
