"""JSON file storage for conversation history.

There is no database; every conversation is one flat JSON file holding an
append-only list of interaction messages.

Directory layout:

    {base}/
      conversations/
        {slug}.json     ← messages for one scenario key

A scenario key names who the student talked to and where:
scenario_key("herophilus", "lesson/lesson_circ_1/module_circ_fascinate").
"""

from __future__ import annotations

import json
import logging
import re
import unicodedata
from pathlib import Path
from typing import Any, Protocol

from sci_learner.models import InteractionMessage

logger = logging.getLogger(__name__)


class ConversationStore(Protocol):
    def get_messages(self, key: str) -> list[InteractionMessage]: ...

    def append_messages(self, key: str, messages: list[InteractionMessage]) -> None: ...

    def has_history(self, key: str) -> bool: ...


def slugify(text: str) -> str:
    """Convert a scenario key to a filesystem-safe slug.

    "herophilus::lesson/lesson_circ_1/module_circ_goal"
      → "herophilus-lesson-lesson_circ_1-module_circ_goal"
    """
    text = unicodedata.normalize("NFKD", text)
    text = text.encode("ascii", "ignore").decode("ascii")
    text = text.lower()
    text = re.sub(r"['\"]", "", text)
    text = re.sub(r"[^a-z0-9_]+", "-", text)
    text = text.strip("-")
    return text or "untitled"


def scenario_key(character_id: str, location: str) -> str:
    return f"{character_id}::{location}"


def lesson_location(lesson_id: str, module_id: str) -> str:
    return f"lesson/{lesson_id}/{module_id}"


class HistoryStore:
    def __init__(self, base_path: Path) -> None:
        self._base = base_path
        self._root = base_path / "conversations"

    # ------------------------------------------------------------------
    # Internal path helpers
    # ------------------------------------------------------------------

    def _file(self, key: str) -> Path:
        return self._root / f"{slugify(key)}.json"

    def _read_json(self, path: Path) -> Any:
        return json.loads(path.read_text())

    def _write_json(self, path: Path, data: Any) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(data, indent=2))

    # ------------------------------------------------------------------
    # Messages (append-only)
    # ------------------------------------------------------------------

    def get_messages(self, key: str) -> list[InteractionMessage]:
        path = self._file(key)
        if not path.exists():
            return []
        return [InteractionMessage.model_validate(m) for m in self._read_json(path)]

    def append_messages(self, key: str, messages: list[InteractionMessage]) -> None:
        if not messages:
            return
        existing = self.get_messages(key)
        existing.extend(messages)
        self._write_json(self._file(key), [m.model_dump(mode="json") for m in existing])
        logger.debug("stored %d message(s) under %s", len(messages), key)

    def has_history(self, key: str) -> bool:
        return self._file(key).exists()

    def clear(self, key: str) -> bool:
        """Delete a conversation. Returns False if there was nothing to delete."""
        path = self._file(key)
        if not path.exists():
            return False
        path.unlink()
        return True
