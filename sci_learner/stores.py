"""Observable state stores.

Each store holds one frozen snapshot and publishes every replacement to its
subscribers. The presentation layer only reads: it subscribes and renders.
Mutators are called by the dialogue engine (DialogueStore) and the channel
router (NarrativeBubbleStore, BubbleModeSignal).
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from typing import Generic, TypeVar

from sci_learner.models import (
    BubbleMode,
    DialogueState,
    EngineStatus,
    EvaluationOutcome,
    InteractionMessage,
    NarrationMessage,
    NarrativeBubbleState,
)

logger = logging.getLogger(__name__)

S = TypeVar("S")
Listener = Callable[[S], None]


class Store(Generic[S]):
    def __init__(self, initial: S) -> None:
        self._state = initial
        self._listeners: list[Listener] = []

    @property
    def state(self) -> S:
        return self._state

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener; returns a function that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _set(self, state: S) -> None:
        if state == self._state:
            return
        self._state = state
        for listener in list(self._listeners):
            listener(state)


# ---------------------------------------------------------------------------
# Dialogue (interaction log + step position)
# ---------------------------------------------------------------------------

class DialogueStore(Store[DialogueState]):
    def __init__(self) -> None:
        super().__init__(DialogueState())

    def reset(self, module_id: str | None = None, lesson_id: str | None = None) -> None:
        self._set(DialogueState(module_id=module_id, lesson_id=lesson_id))

    def update(self, **fields) -> None:
        self._set(self._state.model_copy(update=fields))

    def set_step(self, index: int) -> None:
        if index < self._state.current_step_index:
            raise ValueError(
                f"step index may not move backwards ({self._state.current_step_index} -> {index})"
            )
        self.update(current_step_index=index, status=EngineStatus.EXECUTING_STEP)

    def set_status(self, status: EngineStatus) -> None:
        self.update(status=status)

    def set_evaluation(self, outcome: EvaluationOutcome) -> None:
        self.update(last_evaluation=outcome)

    def append(self, message: InteractionMessage) -> InteractionMessage:
        self.update(messages=self._state.messages + (message,))
        return message

    def update_message(self, message_id: str, content: str, is_streaming: bool) -> None:
        messages = tuple(
            m.model_copy(update={"content": content, "is_streaming": is_streaming})
            if m.id == message_id else m
            for m in self._state.messages
        )
        self.update(messages=messages)

    def remove_message(self, message_id: str) -> None:
        """Drop a message by id. Publishes nothing if it is already gone."""
        remaining = tuple(m for m in self._state.messages if m.id != message_id)
        if len(remaining) != len(self._state.messages):
            self.update(messages=remaining)

    def get_message(self, message_id: str) -> InteractionMessage | None:
        for m in self._state.messages:
            if m.id == message_id:
                return m
        return None


# ---------------------------------------------------------------------------
# Narration bubbles
# ---------------------------------------------------------------------------

class NarrativeBubbleStore(Store[NarrativeBubbleState]):
    def __init__(self) -> None:
        super().__init__(NarrativeBubbleState())

    def show_narrative(self, messages: Iterable[NarrationMessage], lesson_id: str | None) -> None:
        """Replace the bubble sequence and start at its first message."""
        batch = tuple(messages)
        logger.debug("showing %d narration message(s) for lesson %s", len(batch), lesson_id)
        self._set(NarrativeBubbleState(
            messages=batch,
            current_index=0,
            is_active=True,
            is_paused=self._state.is_paused,
            lesson_id=lesson_id,
        ))

    def next_message(self) -> None:
        state = self._state
        if not state.is_active or state.current_index >= len(state.messages) - 1:
            return
        self._set(state.model_copy(update={"current_index": state.current_index + 1}))

    def restart(self) -> None:
        self._set(self._state.model_copy(update={"current_index": 0, "is_active": True}))

    def hide_narrative(self) -> None:
        """Clear the bubble so the ambient greeting can take over again."""
        self._set(NarrativeBubbleState(is_paused=self._state.is_paused))

    def set_thinking(self, thinking: bool) -> None:
        self._set(self._state.model_copy(update={"is_thinking": thinking}))

    def set_paused(self, paused: bool) -> None:
        self._set(self._state.model_copy(update={"is_paused": paused}))

    def clear(self) -> None:
        self._set(NarrativeBubbleState())


class BubbleModeSignal(Store[BubbleMode]):
    def __init__(self) -> None:
        super().__init__(BubbleMode.GREETING)

    def set(self, mode: BubbleMode) -> None:
        self._set(mode)
