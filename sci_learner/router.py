"""Channel router: sends each script step to the right surface.

  narration    → semantic split → NarrativeBubbleStore (one batch)
  interaction  → DialogueStore, one message at a time with a short gap

Narration text never reaches the interaction log, but the tutor still needs
to know what was said, so both channels also feed the evaluation transcript:
a plain chat history that only the AI evaluator reads.

The bubble mode signal changes here and only at step boundaries, module
start and reset. Feedback pushed into the bubble mid-step (verdicts,
encouragement) leaves the mode alone.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Sequence

from sci_learner import pacing
from sci_learner.config import PacingSettings
from sci_learner.guard import RequestGuard
from sci_learner.llm import ChatMessage
from sci_learner.models import (
    BubbleMode,
    InteractionMessage,
    NarrationMessage,
    ScriptStep,
)
from sci_learner.stores import BubbleModeSignal, DialogueStore, NarrativeBubbleStore

logger = logging.getLogger(__name__)

Delay = Callable[[int], Awaitable[None]]


class ChannelRouter:
    """Dispatches step content to the narration bubble or the interaction log.

    Args:
        dialogue:    Store for the interaction log.
        bubbles:     Store for the narration overlay.
        bubble_mode: Tri-state signal for the ambient chat affordance.
        guard:       Request guard shared with the engine.
        delay:       Awaitable taking milliseconds; the engine passes its
                     pause-aware sleep.
        settings:    Pacing settings (split length, inter-message gap).
    """

    def __init__(
        self,
        dialogue: DialogueStore,
        bubbles: NarrativeBubbleStore,
        bubble_mode: BubbleModeSignal,
        guard: RequestGuard,
        delay: Delay,
        settings: PacingSettings | None = None,
    ) -> None:
        self.dialogue = dialogue
        self.bubbles = bubbles
        self.bubble_mode = bubble_mode
        self._guard = guard
        self._delay = delay
        self._settings = settings or PacingSettings()
        self.transcript: list[ChatMessage] = []

    # ------------------------------------------------------------------
    # Step routing
    # ------------------------------------------------------------------

    async def route(
        self,
        step: ScriptStep,
        character_id: str,
        lesson_id: str | None,
        epoch: int,
        lead: Sequence[str] = (),
    ) -> list[NarrationMessage] | list[InteractionMessage] | None:
        """Route one step's messages. Returns what was shown, or None if stale.

        `lead` holds extra narration (e.g. a return greeting) shown before
        the step's own messages. It is not added to the transcript.
        """
        if self._guard.is_stale(epoch):
            return None
        if step.channel == "narration":
            return self._route_narration(step, character_id, lesson_id, lead)
        return await self._route_interaction(step, epoch)

    def _route_narration(
        self,
        step: ScriptStep,
        character_id: str,
        lesson_id: str | None,
        lead: Sequence[str],
    ) -> list[NarrationMessage]:
        chunks = pacing.semantic_split([*lead, *step.messages], self._settings.narration_max_length)
        batch = [
            NarrationMessage(content=c, character_id=character_id, pacing_hint=step.pacing_hint)
            for c in chunks
        ]
        self.bubble_mode.set(BubbleMode.NARRATIVE)
        self.bubbles.show_narrative(batch, lesson_id)
        self.transcript.extend({"role": "assistant", "content": m} for m in step.messages)
        return batch

    async def _route_interaction(self, step: ScriptStep, epoch: int) -> list[InteractionMessage] | None:
        shown: list[InteractionMessage] = []
        for i, text in enumerate(step.messages):
            if i > 0:
                await self._delay(self._settings.interaction_gap_ms)
                if self._guard.is_stale(epoch):
                    logger.debug("dropping interaction message %d, epoch %d is stale", i, epoch)
                    return None
            shown.append(self.dialogue.append(InteractionMessage(role="assistant", content=text)))
            self.transcript.append({"role": "assistant", "content": text})
        return shown

    # ------------------------------------------------------------------
    # Feedback and the thinking bubble
    # ------------------------------------------------------------------

    def push_feedback(self, text: str, character_id: str, lesson_id: str | None) -> NarrationMessage:
        """Show a one-off line (verdict, encouragement) in the bubble."""
        message = NarrationMessage(content=text, character_id=character_id, pacing_hint="fast")
        self.bubbles.show_narrative([message], lesson_id)
        return message

    def begin_thinking(self) -> None:
        self.bubbles.set_thinking(True)

    def end_thinking(self) -> None:
        self.bubbles.set_thinking(False)

    def hide(self) -> None:
        self.bubbles.hide_narrative()

    # ------------------------------------------------------------------
    # Evaluation transcript
    # ------------------------------------------------------------------

    def record_user(self, text: str) -> None:
        self.transcript.append({"role": "user", "content": text})

    def record_assistant(self, text: str) -> None:
        self.transcript.append({"role": "assistant", "content": text})

    def history(self, window: int) -> list[ChatMessage]:
        return list(self.transcript[-window:]) if window > 0 else []

    # ------------------------------------------------------------------
    # Module boundaries
    # ------------------------------------------------------------------

    def enter_module(self) -> None:
        """Clear the overlay and hold ambient small talk until narration starts."""
        self.transcript.clear()
        self.bubbles.hide_narrative()
        self.bubble_mode.set(BubbleMode.WAITING_FOR_NARRATIVE)

    def reset(self) -> None:
        self.transcript.clear()
        self.bubbles.clear()
        self.bubble_mode.set(BubbleMode.GREETING)
