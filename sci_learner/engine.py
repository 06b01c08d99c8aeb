"""Dialogue engine: drives one lesson module's script end to end.

Module flow:
  1. start_module() advances the request epoch, clears every per-module
     state, waits a short settle delay, then loads the script (unknown ids
     get the fallback script).
  2. Steps run in order. Each one is routed to the narration bubble or the
     interaction log, then either stops to wait for the student or sleeps
     for its pacing delay and moves on.
  3. send_student_message() answers a wait point:
       narration wait   → acknowledgment only, never shown in the log
       graded step      → AI evaluation + retry policy
       ungraded step    → one streamed acknowledgment
     The engine advances only when the answer may proceed.
  4. A completion step shows its closing lines and marks the module done.

Cancellation is by epoch: every continuation captures the epoch it was
started under and becomes a no-op once start_module() or reset() moves it
on. pause() holds every pacing delay until resume().
"""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable

from sci_learner import narration, retry
from sci_learner.config import LessonSettings
from sci_learner.evaluator import AIEvaluator
from sci_learner.guard import RequestGuard
from sci_learner.llm import TextGenerator
from sci_learner.models import (
    Character,
    EngineStatus,
    InteractionMessage,
    NarrationMessage,
    Script,
    ScriptStep,
)
from sci_learner.router import ChannelRouter
from sci_learner.scripts import DEFAULT_REGISTRY, ScriptRegistry
from sci_learner.storage import ConversationStore, lesson_location, scenario_key
from sci_learner.stores import BubbleModeSignal, DialogueStore, NarrativeBubbleStore

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


class DialogueEngine:
    """Guided-lesson state machine.

    Args:
        llm:      Text-generation client used for evaluation and replies.
        history:  Conversation store; finalized log messages are appended
                  to it and its contents decide fresh start vs. resume.
        registry: Script registry to load modules from.
        settings: Lesson settings (pacing, evaluation policy).
        sleep:    Delay function taking seconds. Tests inject an instant one.
        rng:      Random source for narration variations.
    """

    def __init__(
        self,
        llm: TextGenerator,
        history: ConversationStore | None = None,
        registry: ScriptRegistry = DEFAULT_REGISTRY,
        settings: LessonSettings | None = None,
        sleep: Sleep = asyncio.sleep,
        rng: random.Random | None = None,
    ) -> None:
        self.settings = settings or LessonSettings()
        self.registry = registry
        self.history = history
        self._sleep = sleep
        self._rng = rng

        self.dialogue = DialogueStore()
        self.bubbles = NarrativeBubbleStore()
        self.bubble_mode = BubbleModeSignal()
        self.guard = RequestGuard()
        self.attempts = retry.AttemptTracker(self.settings.evaluation.max_attempts)
        self.router = ChannelRouter(
            self.dialogue, self.bubbles, self.bubble_mode, self.guard,
            delay=self._wait, settings=self.settings.pacing,
        )
        self.evaluator = AIEvaluator(
            llm, self.dialogue, self.router, self.guard,
            delay=self._wait,
            settings=self.settings.evaluation,
            pacing=self.settings.pacing,
        )

        self._unpaused = asyncio.Event()
        self._unpaused.set()
        self._starting_epoch: int | None = None
        self._script: Script | None = None
        self._character: Character | None = None
        self._lesson_id: str | None = None
        self._conversation_key: str | None = None
        self._pending_greeting: str | None = None

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def script(self) -> Script | None:
        return self._script

    @property
    def character(self) -> Character | None:
        return self._character

    @property
    def is_paused(self) -> bool:
        return not self._unpaused.is_set()

    @property
    def current_step(self) -> ScriptStep | None:
        if self._script is None:
            return None
        index = self.dialogue.state.current_step_index
        if index >= len(self._script.steps):
            return None
        return self._script.steps[index]

    # ------------------------------------------------------------------
    # Presentation surface
    # ------------------------------------------------------------------

    async def start_module(self, module_id: str, lesson_id: str, character: Character) -> None:
        """Load a module's script and run it up to the first wait point."""
        # A start abandoned by reset() no longer blocks: its epoch is stale.
        if self._starting_epoch is not None and self.guard.is_current(self._starting_epoch):
            logger.debug("start_module(%s) ignored, a start is already in progress", module_id)
            return

        epoch = self.guard.advance()
        self._starting_epoch = epoch
        try:
            self.router.enter_module()
            self.dialogue.reset(module_id, lesson_id)
            self.attempts.clear()
            self._script = None
            self._character = character
            self._lesson_id = lesson_id
            self._conversation_key = None
            self._pending_greeting = None

            await self._wait(self.settings.pacing.module_start_settle_ms)
            if self.guard.is_stale(epoch):
                return

            self._script = self.registry.get(module_id)
            self._conversation_key = scenario_key(character.id, lesson_location(lesson_id, module_id))
            if self.history is not None and self.history.has_history(self._conversation_key):
                self._pending_greeting = narration.return_greeting(character.id, self._rng)
                self.dialogue.update(is_resumed=True)
            logger.info(
                "starting module %s (lesson %s) with %s, epoch %d%s",
                module_id, lesson_id, character.id, epoch,
                ", resuming" if self._pending_greeting else "",
            )
        finally:
            if self._starting_epoch == epoch:
                self._starting_epoch = None

        await self._run_from(0, epoch)

    async def send_student_message(self, text: str) -> None:
        """Answer the current wait point."""
        state = self.dialogue.state
        if state.is_streaming or state.is_checking:
            logger.debug("ignoring student message while a reply is in flight")
            return
        text = text.strip()
        if not text or state.status != EngineStatus.AWAITING_INPUT:
            return
        step = self.current_step
        if step is None or self._character is None:
            return

        index = state.current_step_index
        epoch = self.guard.capture()

        if step.channel == "narration":
            # Acknowledgment of narration: tutor context only, never the log.
            self.router.record_user(text)
            self.router.hide()
            self.dialogue.set_status(EngineStatus.ADVANCING)
            await self._wait(self.settings.pacing.acknowledgment_delay_ms)
            if self.guard.is_stale(epoch):
                return
            await self._run_from(index + 1, epoch)
            return

        user_message = self.dialogue.append(InteractionMessage(role="user", content=text))
        self._persist([user_message])
        self.router.record_user(text)

        try:
            if step.is_graded:
                can_proceed = await self._evaluate(index, step, text, epoch)
            else:
                can_proceed = await self._general_acknowledge(epoch)
        except Exception:
            # Reopen the wait point so the student can try again.
            if not self.guard.is_stale(epoch):
                self.dialogue.set_status(EngineStatus.AWAITING_INPUT)
            raise

        if can_proceed is None:
            return
        if not can_proceed:
            self.dialogue.set_status(EngineStatus.AWAITING_INPUT)
            return

        self.attempts.clear_step(index)
        self.dialogue.set_status(EngineStatus.ADVANCING)
        await self._wait(self.settings.pacing.answer_settle_ms)
        if self.guard.is_stale(epoch):
            return
        await self._run_from(index + 1, epoch)

    def reset(self) -> None:
        """Abandon the current module. In-flight continuations become no-ops."""
        epoch = self.guard.advance()
        self.router.reset()
        self.dialogue.reset()
        self.attempts.clear()
        self._script = None
        self._character = None
        self._lesson_id = None
        self._conversation_key = None
        self._pending_greeting = None
        self._unpaused.set()
        logger.debug("engine reset, epoch %d", epoch)

    def pause(self) -> None:
        self._unpaused.clear()
        self.bubbles.set_paused(True)

    def resume(self) -> None:
        self._unpaused.set()
        self.bubbles.set_paused(False)

    # ------------------------------------------------------------------
    # Step execution
    # ------------------------------------------------------------------

    async def _run_from(self, index: int, epoch: int) -> None:
        script = self._script
        if script is None or self._character is None:
            return

        while not self.guard.is_stale(epoch):
            if index >= len(script.steps):
                self._mark_complete()
                return

            step = script.steps[index]
            self.dialogue.set_step(index)
            logger.debug("executing %s step %d (%s)", script.module_id, index, step.channel)

            if step.is_module_complete:
                await self._complete(step, epoch)
                return

            if not step.messages:
                if step.wait_for_user:
                    self.dialogue.set_status(EngineStatus.AWAITING_INPUT)
                    return
                self.dialogue.set_status(EngineStatus.ADVANCING)
                index += 1
                continue

            shown = await self._route(step, epoch)
            if shown is None:
                return
            if step.wait_for_user:
                self.dialogue.set_status(EngineStatus.AWAITING_INPUT)
                return

            self.dialogue.set_status(EngineStatus.ADVANCING)
            await self._wait(self._step_delay(step, shown))
            index += 1

    async def _route(
        self, step: ScriptStep, epoch: int,
    ) -> list[NarrationMessage] | list[InteractionMessage] | None:
        lead: list[str] = []
        if step.channel == "narration" and self._pending_greeting:
            lead.append(self._pending_greeting)
            self._pending_greeting = None
        shown = await self.router.route(step, self._character.id, self._lesson_id, epoch, lead)
        if shown and step.channel == "interaction":
            self._persist(shown)
        return shown

    def _step_delay(self, step: ScriptStep, shown: list) -> int:
        if step.channel == "narration":
            return sum(m.total_ms for m in shown)
        return self.settings.pacing.interaction_gap_ms

    async def _complete(self, step: ScriptStep, epoch: int) -> None:
        if not step.messages:
            phrase = narration.module_completion(self._script.module_type, self._rng)
            step = step.model_copy(update={"messages": (phrase,)})
        if await self._route(step, epoch) is None:
            return
        self._mark_complete()

    def _mark_complete(self) -> None:
        self.dialogue.set_status(EngineStatus.COMPLETED)
        logger.info("module %s complete", self._script.module_id if self._script else None)

    # ------------------------------------------------------------------
    # Answers
    # ------------------------------------------------------------------

    async def _evaluate(self, index: int, step: ScriptStep, answer: str, epoch: int) -> bool | None:
        """Evaluate a graded answer. Returns can_proceed, or None if stale."""
        max_attempts = self.attempts.max_attempts
        qa_loop = retry.is_qa_loop(step.evaluation_context)
        if qa_loop:
            attempt = self.attempts.count(index)
            hint_level = None
        else:
            attempt = self.attempts.record(index)
            hint_level = retry.hint_level_for(attempt, max_attempts)

        self.dialogue.set_status(EngineStatus.EVALUATING_ANSWER)
        reply = await self.evaluator.evaluate(
            answer=answer,
            character=self._character,
            script=self._script,
            evaluation_context=step.evaluation_context,
            epoch=epoch,
            lesson_id=self._lesson_id,
            hint_level=hint_level,
            qa_loop=qa_loop,
        )
        if reply is None:
            return None
        self._persist([reply])

        outcome = retry.decide(reply.content, attempt, step.evaluation_context, max_attempts)
        self.dialogue.set_evaluation(outcome)
        logger.debug(
            "step %d attempt %d: correct=%s proceed=%s forced=%s",
            index, attempt, outcome.is_correct, outcome.can_proceed, outcome.forced,
        )
        if outcome.forced:
            self.router.push_feedback(
                narration.max_attempts_encouragement(self._rng),
                self._character.id,
                self._lesson_id,
            )
        return outcome.can_proceed

    async def _general_acknowledge(self, epoch: int) -> bool | None:
        self.dialogue.set_status(EngineStatus.ADVANCING)
        reply = await self.evaluator.acknowledge(
            character=self._character, script=self._script, epoch=epoch,
        )
        if reply is None:
            return None
        self._persist([reply])
        return True

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _wait(self, ms: int) -> None:
        """Sleep for a pacing delay, then hold while paused."""
        if ms > 0:
            await self._sleep(ms / 1000)
        await self._unpaused.wait()

    def _persist(self, messages: list[InteractionMessage]) -> None:
        if self.history is None or self._conversation_key is None:
            return
        finalized = [m for m in messages if not m.is_streaming]
        self.history.append_messages(self._conversation_key, finalized)
