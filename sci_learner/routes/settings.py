"""Health check and settings endpoints."""

from fastapi import APIRouter, Request

from sci_learner.config import LessonSettings, update_settings

router = APIRouter()


def _public(settings: LessonSettings) -> dict:
    data = settings.model_dump(mode="json", exclude={"data_dir"})
    data["llm"].pop("api_key", None)
    return data


@router.get("/health")
async def health():
    """Health check."""
    return {"status": "ok"}


@router.get("/settings")
async def get_settings(request: Request):
    """Get the settings new sessions are created with (API key omitted)."""
    return _public(request.app.state.settings)


@router.patch("/settings")
async def patch_settings(body: dict, request: Request):
    """Update settings (partial merge). Applies to sessions created afterwards."""
    settings = update_settings(request.app.state.settings.data_dir, body)
    request.app.state.settings = settings
    return _public(settings)
