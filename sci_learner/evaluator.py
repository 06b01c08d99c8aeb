"""AI evaluator: the two-call feedback protocol for student answers.

Graded answer:
  1. Verdict: one short complete() call (1-5 words), shown in the narration
     bubble while the "thinking" indicator clears.
  2. Explanation: a stream() call whose chunks fill a placeholder entry in
     the interaction log. The entry is finalized when the stream ends.

Ungraded input gets a single streamed acknowledgment that sees the recent
evaluation transcript as conversation history.

Every await re-checks the request epoch. A stale call touches nothing: it
drops the placeholder it inserted (already gone if the engine reset the
log) and returns None. Generation failures never surface; they turn into
short static lines so the lesson keeps moving.
"""

from __future__ import annotations

import asyncio
import logging

from sci_learner import prompts
from sci_learner.config import EvaluationSettings, PacingSettings
from sci_learner.guard import RequestGuard
from sci_learner.llm import ChatMessage, LLMError, TextGenerator
from sci_learner.models import Character, HintLevel, InteractionMessage, Script
from sci_learner.router import ChannelRouter, Delay
from sci_learner.stores import DialogueStore

logger = logging.getLogger(__name__)

VERDICT_FALLBACK = "Great effort!"
EXPLANATION_FALLBACK = "Let's keep exploring this topic together!"
ACKNOWLEDGE_FALLBACK = "Sige! Let's continue."
MAX_VERDICT_WORDS = 5


def trim_verdict(text: str) -> str:
    """Keep at most five words of a verdict, without wrapping quotes."""
    words = text.strip().strip("\"'").split()
    return " ".join(words[:MAX_VERDICT_WORDS])


class AIEvaluator:
    def __init__(
        self,
        llm: TextGenerator,
        dialogue: DialogueStore,
        router: ChannelRouter,
        guard: RequestGuard,
        delay: Delay,
        settings: EvaluationSettings | None = None,
        pacing: PacingSettings | None = None,
    ) -> None:
        self._llm = llm
        self._dialogue = dialogue
        self._router = router
        self._guard = guard
        self._delay = delay
        self._settings = settings or EvaluationSettings()
        self._pacing = pacing or PacingSettings()

    async def evaluate(
        self,
        *,
        answer: str,
        character: Character,
        script: Script | None,
        evaluation_context: str,
        epoch: int,
        lesson_id: str | None = None,
        hint_level: HintLevel | None = None,
        qa_loop: bool = False,
    ) -> InteractionMessage | None:
        """Run verdict + explanation for one answer.

        Returns the finalized explanation message, or None if the epoch moved
        on while the calls were in flight.
        """
        ctx = prompts.build_context(
            character, script, answer, evaluation_context, hint_level, qa_loop,
        )

        self._dialogue.update(is_checking=True)
        self._router.begin_thinking()
        try:
            verdict = await self._verdict(_chat(prompts.render_prompt(prompts.VERDICT_TEMPLATE, ctx), answer))
        finally:
            if not self._guard.is_stale(epoch):
                self._router.end_thinking()
                self._dialogue.update(is_checking=False)
        if self._guard.is_stale(epoch):
            logger.warning("discarding verdict for stale epoch %d", epoch)
            return None

        self._router.push_feedback(verdict, character.id, lesson_id)

        await self._delay(self._pacing.verdict_settle_ms)
        if self._guard.is_stale(epoch):
            logger.warning("discarding explanation for stale epoch %d", epoch)
            return None

        return await self._stream_reply(
            _chat(prompts.render_prompt(prompts.EXPLANATION_TEMPLATE, ctx), answer),
            max_tokens=self._settings.explanation_max_tokens,
            fallback=EXPLANATION_FALLBACK,
            epoch=epoch,
        )

    async def acknowledge(
        self,
        *,
        character: Character,
        script: Script | None,
        epoch: int,
    ) -> InteractionMessage | None:
        """Reply to ungraded input. The student's text must already be in the transcript."""
        system = prompts.render_prompt(
            prompts.ACKNOWLEDGE_TEMPLATE, prompts.build_context(character, script),
        )
        messages = [
            {"role": "system", "content": system},
            *self._router.history(self._settings.history_window),
        ]
        return await self._stream_reply(
            messages,
            max_tokens=self._settings.acknowledge_max_tokens,
            fallback=ACKNOWLEDGE_FALLBACK,
            epoch=epoch,
        )

    # ------------------------------------------------------------------
    # Model calls
    # ------------------------------------------------------------------

    async def _verdict(self, messages: list[ChatMessage]) -> str:
        try:
            text = await asyncio.wait_for(
                self._llm.complete(messages, max_tokens=self._settings.verdict_max_tokens),
                timeout=self._settings.generation_timeout,
            )
        except (LLMError, asyncio.TimeoutError) as e:
            logger.warning("verdict generation failed, using fallback: %s", e)
            return VERDICT_FALLBACK
        return trim_verdict(text) or VERDICT_FALLBACK

    async def _stream_reply(
        self,
        messages: list[ChatMessage],
        *,
        max_tokens: int,
        fallback: str,
        epoch: int,
    ) -> InteractionMessage | None:
        self._dialogue.update(is_streaming=True)
        placeholder = self._dialogue.append(
            InteractionMessage(role="assistant", content="", is_streaming=True)
        )

        text = ""
        try:
            async with asyncio.timeout(self._settings.generation_timeout):
                async for chunk in self._llm.stream(messages, max_tokens=max_tokens):
                    if self._guard.is_stale(epoch):
                        break
                    text += chunk
                    self._dialogue.update_message(placeholder.id, text, is_streaming=True)
        except (LLMError, TimeoutError) as e:
            logger.warning("reply generation failed, using fallback: %s", e)
            text = fallback
        finally:
            # The placeholder never outlives the call, whatever ended it.
            if self._guard.is_stale(epoch):
                self._dialogue.remove_message(placeholder.id)
            else:
                text = text.strip() or fallback
                self._dialogue.update_message(placeholder.id, text, is_streaming=False)
                self._dialogue.update(is_streaming=False)

        if self._guard.is_stale(epoch):
            logger.warning("discarding reply for stale epoch %d", epoch)
            return None

        self._router.record_assistant(text)
        return self._dialogue.get_message(placeholder.id)


def _chat(system: str, answer: str) -> list[ChatMessage]:
    return [
        {"role": "system", "content": system},
        {"role": "user", "content": answer},
    ]
