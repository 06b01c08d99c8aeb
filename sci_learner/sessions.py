"""Per-session dialogue engines for the HTTP surface.

Each browser session gets its own DialogueEngine, kept until the session
is removed. Engine work started by a request (module start, answers) runs
as a background task so pacing delays never hold the request open; the
client polls /state or subscribes.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Coroutine
from typing import Any

from sci_learner.engine import DialogueEngine

logger = logging.getLogger(__name__)

EngineFactory = Callable[[], DialogueEngine]


class SessionRegistry:
    def __init__(self, factory: EngineFactory) -> None:
        self._factory = factory
        self._engines: dict[str, DialogueEngine] = {}
        self._tasks: set[asyncio.Task] = set()

    def get(self, session_id: str) -> DialogueEngine | None:
        return self._engines.get(session_id)

    def get_or_create(self, session_id: str) -> DialogueEngine:
        engine = self._engines.get(session_id)
        if engine is None:
            engine = self._factory()
            self._engines[session_id] = engine
            logger.debug("created engine for session %s", session_id)
        return engine

    def remove(self, session_id: str) -> bool:
        """Abandon and forget a session. Its in-flight work becomes a no-op."""
        engine = self._engines.pop(session_id, None)
        if engine is None:
            return False
        engine.reset()
        logger.debug("removed engine for session %s", session_id)
        return True

    def spawn(self, session_id: str, coro: Coroutine[Any, Any, None]) -> asyncio.Task:
        """Run engine work in the background; failures are logged, not lost."""
        task = asyncio.create_task(coro, name=f"session-{session_id}")
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("background task %s failed", task.get_name(), exc_info=exc)

    async def drain(self) -> None:
        """Wait for every outstanding background task."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
