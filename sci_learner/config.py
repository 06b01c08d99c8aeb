"""Application settings (LLM connection, pacing delays, evaluation policy).

Resolution order, later wins:
  1. Built-in defaults (_SETTINGS_DEFAULTS).
  2. config.json under the data directory, merged group by group.
  3. Environment variables, after loading .env from the repo root.

update_settings() applies partial updates: nested groups are merged
key by key, scalars overwritten, and the result is persisted.
"""

from __future__ import annotations

import copy
import json
import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Literal

from dotenv import load_dotenv
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

ROOT_DIR = Path(__file__).parent.parent
DEFAULT_DATA_DIR = ROOT_DIR / "data"
CONFIG_FILENAME = "config.json"


class LLMSettings(BaseModel):
    provider_url: str = "https://api.openai.com"
    provider_format: Literal["openai", "koboldcpp"] = "openai"
    api_key: str = ""
    model: str = "gpt-4-turbo-preview"
    temperature: float = 0.7
    max_tokens: int = 500
    timeout: float = 60.0


class PacingSettings(BaseModel):
    narration_max_length: int = 100
    interaction_gap_ms: int = 600  # between consecutive interaction messages
    acknowledgment_delay_ms: int = 500  # after a narration acknowledgment
    answer_settle_ms: int = 800  # after a reply, before the next step
    verdict_settle_ms: int = 1500  # between verdict bubble and explanation
    module_start_settle_ms: int = 300


class EvaluationSettings(BaseModel):
    max_attempts: int = 3
    verdict_max_tokens: int = 10
    explanation_max_tokens: int = 300
    acknowledge_max_tokens: int = 150
    generation_timeout: float = 30.0
    history_window: int = 12


class LessonSettings(BaseModel):
    llm: LLMSettings = Field(default_factory=LLMSettings)
    pacing: PacingSettings = Field(default_factory=PacingSettings)
    evaluation: EvaluationSettings = Field(default_factory=EvaluationSettings)
    data_dir: Path = DEFAULT_DATA_DIR


_SETTINGS_DEFAULTS: dict[str, Any] = LessonSettings().model_dump(mode="json")

_GROUPS = ("llm", "pacing", "evaluation")

# env var → (group, key, type)
_ENV_OVERRIDES: dict[str, tuple[str | None, str, type]] = {
    "LLM_PROVIDER_URL": ("llm", "provider_url", str),
    "LLM_PROVIDER_FORMAT": ("llm", "provider_format", str),
    "OPENAI_API_KEY": ("llm", "api_key", str),
    "OPENAI_MODEL": ("llm", "model", str),
    "OPENAI_TEMPERATURE": ("llm", "temperature", float),
    "OPENAI_MAX_TOKENS": ("llm", "max_tokens", int),
    "DATA_DIR": (None, "data_dir", str),
}


def _merge(target: dict[str, Any], fields: Mapping[str, Any]) -> None:
    for key, value in fields.items():
        if key in _GROUPS and isinstance(value, Mapping):
            target[key].update(value)
        elif key in _GROUPS:
            logger.warning("ignoring non-object value for settings group %r", key)
        else:
            target[key] = value


def _apply_env(target: dict[str, Any], environ: Mapping[str, str]) -> None:
    for var, (group, key, cast) in _ENV_OVERRIDES.items():
        raw = environ.get(var)
        if raw is None or raw == "":
            continue
        try:
            value = cast(raw)
        except ValueError:
            logger.warning("ignoring invalid %s=%r", var, raw)
            continue
        if group is None:
            target[key] = value
        else:
            target[group][key] = value


def config_path(data_dir: Path) -> Path:
    return data_dir / CONFIG_FILENAME


def load_settings(
    data_dir: Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> LessonSettings:
    """Read settings: defaults, then config.json, then the environment."""
    if environ is None:
        load_dotenv(ROOT_DIR / ".env")
        environ = os.environ

    raw = copy.deepcopy(_SETTINGS_DEFAULTS)
    resolved_dir = data_dir or Path(environ.get("DATA_DIR") or DEFAULT_DATA_DIR)
    raw["data_dir"] = str(resolved_dir)

    path = config_path(resolved_dir)
    if path.is_file():
        _merge(raw, json.loads(path.read_text()))
    _apply_env(raw, environ)
    if data_dir is not None:
        raw["data_dir"] = str(data_dir)
    return LessonSettings.model_validate(raw)


def update_settings(data_dir: Path, fields: Mapping[str, Any]) -> LessonSettings:
    """Merge fields into the stored config.json and persist. Returns the stored settings."""
    path = config_path(data_dir)
    stored = copy.deepcopy(_SETTINGS_DEFAULTS)
    if path.is_file():
        _merge(stored, json.loads(path.read_text()))
    _merge(stored, fields)
    stored.pop("data_dir", None)
    settings = LessonSettings.model_validate({**stored, "data_dir": str(data_dir)})

    data_dir.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(settings.model_dump(mode="json", exclude={"data_dir"}), indent=2))
    return settings
