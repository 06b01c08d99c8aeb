"""Core domain models.

Scripts, messages and the two observable states all use these types.
Pydantic is used for validation and serialisation at every data boundary;
state snapshots are frozen and replaced wholesale with model_copy().
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from sci_learner import pacing

Channel = Literal["narration", "interaction"]
PacingHint = Literal["fast", "normal", "slow"]
Role = Literal["user", "assistant"]


# ---------------------------------------------------------------------------
# Scripts
# ---------------------------------------------------------------------------

class ScriptStep(BaseModel):
    """One scripted unit of lesson dialogue."""

    model_config = ConfigDict(frozen=True)

    messages: tuple[str, ...] = ()
    channel: Channel
    wait_for_user: bool = False
    evaluation_context: str | None = None  # present only on graded steps
    is_module_complete: bool = False
    pacing_hint: PacingHint = "normal"

    @property
    def is_graded(self) -> bool:
        return self.evaluation_context is not None


class Script(BaseModel):
    """The full step list for one lesson module."""

    model_config = ConfigDict(frozen=True)

    module_id: str
    title: str
    module_type: str = "generic"
    lesson_id: str = ""
    lesson_title: str = ""
    topic_id: str = ""
    steps: tuple[ScriptStep, ...]


class Character(BaseModel):
    """An AI tutor persona."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    expertise: str
    topic: str = ""


# ---------------------------------------------------------------------------
# Messages
# ---------------------------------------------------------------------------

class NarrationMessage(BaseModel):
    """A single bubble shown by the floating character avatar."""

    model_config = ConfigDict(frozen=True)

    content: str
    character_id: str
    pacing_hint: PacingHint = "normal"

    @property
    def display_ms(self) -> int:
        return pacing.display_ms(self.content)

    @property
    def gap_ms(self) -> int:
        return pacing.gap_ms(self.content, self.pacing_hint)

    @property
    def total_ms(self) -> int:
        return self.display_ms + self.gap_ms


def _new_id() -> str:
    return uuid.uuid4().hex


def _now() -> datetime:
    return datetime.now(timezone.utc)


class InteractionMessage(BaseModel):
    """An entry in the persistent interaction log."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=_new_id)
    role: Role
    content: str
    channel: Channel = "interaction"
    is_streaming: bool = False
    timestamp: datetime = Field(default_factory=_now)

    @model_validator(mode="after")
    def _user_messages_are_interactive(self) -> InteractionMessage:
        if self.role == "user" and self.channel != "interaction":
            raise ValueError("user messages must use the interaction channel")
        return self


# ---------------------------------------------------------------------------
# Evaluation
# ---------------------------------------------------------------------------

class HintLevel(int, Enum):
    """How much the explanation may give away."""

    GENTLE = 1
    SPECIFIC = 2
    REVEAL = 3


class EvaluationOutcome(BaseModel):
    """Result of applying the retry policy to one graded answer."""

    model_config = ConfigDict(frozen=True)

    attempt: int
    hint_level: HintLevel | None = None  # None for Q&A loops
    is_correct: bool | None = None  # None when correctness no longer matters
    can_proceed: bool
    forced: bool = False
    is_qa_loop: bool = False


# ---------------------------------------------------------------------------
# Observable states
# ---------------------------------------------------------------------------

class EngineStatus(str, Enum):
    IDLE = "idle"
    EXECUTING_STEP = "executing_step"
    AWAITING_INPUT = "awaiting_input"
    EVALUATING_ANSWER = "evaluating_answer"
    ADVANCING = "advancing"
    COMPLETED = "completed"


class DialogueState(BaseModel):
    """Interaction log and step position. Owned by the dialogue engine."""

    model_config = ConfigDict(frozen=True)

    messages: tuple[InteractionMessage, ...] = ()
    is_streaming: bool = False
    is_checking: bool = False
    current_step_index: int = 0
    status: EngineStatus = EngineStatus.IDLE
    module_id: str | None = None
    lesson_id: str | None = None
    is_resumed: bool = False
    last_evaluation: EvaluationOutcome | None = None

    @property
    def is_complete(self) -> bool:
        return self.status == EngineStatus.COMPLETED

    @property
    def is_waiting_for_user(self) -> bool:
        return self.status == EngineStatus.AWAITING_INPUT


class NarrativeBubbleState(BaseModel):
    """Narration overlay. Owned by the channel router."""

    model_config = ConfigDict(frozen=True)

    messages: tuple[NarrationMessage, ...] = ()
    current_index: int = 0
    is_active: bool = False
    is_paused: bool = False
    is_thinking: bool = False
    lesson_id: str | None = None

    @property
    def current_message(self) -> NarrationMessage | None:
        if not self.is_active or not self.messages:
            return None
        return self.messages[self.current_index]


class BubbleMode(str, Enum):
    """What the ambient chat affordance should show."""

    GREETING = "greeting"
    WAITING_FOR_NARRATIVE = "waiting_for_narrative"
    NARRATIVE = "narrative"
