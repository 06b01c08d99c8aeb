from __future__ import annotations

import asyncio

from fastapi import FastAPI

from sci_learner.config import LessonSettings, load_settings
from sci_learner.engine import DialogueEngine, Sleep
from sci_learner.llm import TextGenerator, build_llm
from sci_learner.routes import router
from sci_learner.scripts import DEFAULT_REGISTRY
from sci_learner.sessions import SessionRegistry
from sci_learner.storage import ConversationStore, HistoryStore


def create_app(
    settings: LessonSettings | None = None,
    llm: TextGenerator | None = None,
    history: ConversationStore | None = None,
    sleep: Sleep = asyncio.sleep,
) -> FastAPI:
    app = FastAPI(title="SCI-learner")
    app.state.settings = settings or load_settings()
    app.state.registry = DEFAULT_REGISTRY

    def new_engine() -> DialogueEngine:
        # Read settings at creation time so PATCH /api/settings reaches new sessions.
        current: LessonSettings = app.state.settings
        return DialogueEngine(
            llm or build_llm(current.llm),
            history=history or HistoryStore(current.data_dir),
            registry=app.state.registry,
            settings=current,
            sleep=sleep,
        )

    app.state.sessions = SessionRegistry(new_engine)
    app.include_router(router, prefix="/api")
    return app


# Default app instance for uvicorn (uses DATA_DIR env var or default)
app = create_app()
