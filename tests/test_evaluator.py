"""Tests for the two-call AI evaluator and general acknowledgments."""

import asyncio

import pytest

from sci_learner.characters import HEROPHILUS
from sci_learner.config import EvaluationSettings, PacingSettings
from sci_learner.evaluator import (
    ACKNOWLEDGE_FALLBACK,
    EXPLANATION_FALLBACK,
    VERDICT_FALLBACK,
    AIEvaluator,
    trim_verdict,
)
from sci_learner.guard import RequestGuard
from sci_learner.models import HintLevel
from sci_learner.router import ChannelRouter
from sci_learner.scripts import get_script
from sci_learner.stores import BubbleModeSignal, DialogueStore, NarrativeBubbleStore

SCRIPT = get_script("module_circ_fascinate")
CTX = "Correct answer: blood."


@pytest.fixture
def parts(make_llm):
    guard = RequestGuard()
    dialogue = DialogueStore()
    delays = []

    async def delay(ms):
        delays.append(ms)
        await asyncio.sleep(0)

    router = ChannelRouter(dialogue, NarrativeBubbleStore(), BubbleModeSignal(), guard, delay=delay)

    def build(llm, **settings):
        return AIEvaluator(
            llm, dialogue, router, guard, delay=delay,
            settings=EvaluationSettings(**settings), pacing=PacingSettings(),
        )

    return guard, dialogue, router, delays, build


async def _evaluate(evaluator, guard, **kwargs):
    return await evaluator.evaluate(
        answer="blood",
        character=HEROPHILUS,
        script=SCRIPT,
        evaluation_context=CTX,
        epoch=guard.capture(),
        lesson_id="lesson_circ_1",
        hint_level=HintLevel.GENTLE,
        **kwargs,
    )


def test_trim_verdict():
    assert trim_verdict('"Ang galing mo talaga, SCI-learner, ang husay!"') == "Ang galing mo talaga, SCI-learner,"
    assert trim_verdict("  Tama!\n") == "Tama!"
    assert trim_verdict("   ") == ""


async def test_verdict_in_bubble_then_explanation_in_log(parts, make_llm):
    guard, dialogue, router, delays, build = parts
    llm = make_llm(verdicts=["Tama!"], replies=["Correct! Blood carries oxygen."])
    reply = await _evaluate(build(llm, verdict_max_tokens=10), guard)

    assert reply.content == "Correct! Blood carries oxygen."
    assert not reply.is_streaming
    assert [m.content for m in dialogue.state.messages] == ["Correct! Blood carries oxygen."]
    assert router.bubbles.state.current_message.content == "Tama!"
    assert not router.bubbles.state.is_thinking
    assert not dialogue.state.is_checking
    assert not dialogue.state.is_streaming
    assert delays == [1500]
    assert llm.complete_calls[0]["max_tokens"] == 10
    assert llm.stream_calls[0]["max_tokens"] == 300
    assert router.transcript[-1] == {"role": "assistant", "content": "Correct! Blood carries oxygen."}


async def test_checking_and_thinking_while_verdict_pending(parts, make_llm):
    guard, dialogue, router, _, build = parts
    llm = make_llm(verdicts=["Tama!"])
    llm.complete_gate = asyncio.Event()
    task = asyncio.create_task(_evaluate(build(llm), guard))
    await asyncio.sleep(0)

    assert dialogue.state.is_checking
    assert router.bubbles.state.is_thinking

    llm.complete_gate.set()
    await task
    assert not dialogue.state.is_checking


async def test_prompts_carry_answer_and_context(parts, make_llm):
    guard, _, _, _, build = parts
    llm = make_llm()
    await _evaluate(build(llm), guard)
    verdict_messages = llm.complete_calls[0]["messages"]
    assert verdict_messages[0]["role"] == "system"
    assert CTX in verdict_messages[0]["content"]
    assert verdict_messages[1] == {"role": "user", "content": "blood"}
    assert "gentle hint" in llm.stream_calls[0]["messages"][0]["content"]


async def test_failures_fall_back_to_static_text(parts, make_llm):
    guard, dialogue, router, _, build = parts
    reply = await _evaluate(build(make_llm(fail=True)), guard)

    assert reply.content == EXPLANATION_FALLBACK
    assert router.bubbles.state.current_message.content == VERDICT_FALLBACK
    assert not dialogue.state.is_streaming


async def test_verdict_timeout_falls_back(parts, make_llm):
    guard, _, router, _, build = parts
    llm = make_llm(replies=["Not quite."])
    llm.complete_gate = asyncio.Event()  # never set
    reply = await _evaluate(build(llm, generation_timeout=0.01), guard)

    assert router.bubbles.state.current_message.content == VERDICT_FALLBACK
    assert reply.content == "Not quite."


async def test_epoch_change_during_verdict_discards_everything(parts, make_llm):
    guard, dialogue, router, _, build = parts
    llm = make_llm()
    llm.complete_gate = asyncio.Event()
    task = asyncio.create_task(_evaluate(build(llm), guard))
    await asyncio.sleep(0)

    guard.advance()
    dialogue.reset()
    router.reset()
    llm.complete_gate.set()

    assert await task is None
    assert dialogue.state.messages == ()
    assert llm.stream_calls == []
    assert router.bubbles.state.messages == ()


async def test_epoch_change_mid_stream_removes_placeholder(parts, make_llm):
    guard, dialogue, _, _, build = parts
    llm = make_llm(replies=["Correct! Blood carries oxygen."])
    llm.stream_gate = asyncio.Event()
    task = asyncio.create_task(_evaluate(build(llm), guard))
    for _ in range(50):
        if dialogue.state.messages and dialogue.state.messages[0].content:
            break
        await asyncio.sleep(0)

    assert dialogue.state.messages[0].content == "Correct!"
    assert dialogue.state.messages[0].is_streaming
    guard.advance()
    llm.stream_gate.set()

    assert await task is None
    assert dialogue.state.messages == ()


async def test_acknowledge_uses_transcript_history(parts, make_llm):
    guard, dialogue, router, _, build = parts
    router.record_assistant("Ready to dive in?")
    router.record_user("yes!")
    llm = make_llm(replies=["Sige, let's go!"])
    reply = await build(llm, history_window=12).acknowledge(
        character=HEROPHILUS, script=SCRIPT, epoch=guard.capture(),
    )

    assert reply.content == "Sige, let's go!"
    messages = llm.stream_calls[0]["messages"]
    assert messages[0]["role"] == "system"
    assert messages[1:] == [
        {"role": "assistant", "content": "Ready to dive in?"},
        {"role": "user", "content": "yes!"},
    ]
    assert llm.complete_calls == []
    assert llm.stream_calls[0]["max_tokens"] == 150


async def test_acknowledge_failure_fallback(parts, make_llm):
    guard, _, _, _, build = parts
    reply = await build(make_llm(fail=True)).acknowledge(
        character=HEROPHILUS, script=SCRIPT, epoch=guard.capture(),
    )
    assert reply.content == ACKNOWLEDGE_FALLBACK


class _Exploding:
    """Client that fails with an error the evaluator does not translate."""

    def __init__(self, during: str):
        self.during = during

    async def complete(self, messages, *, temperature=None, max_tokens=None):
        if self.during == "verdict":
            raise RuntimeError("decoder blew up")
        return "Hmm."

    async def stream(self, messages, *, temperature=None, max_tokens=None):
        yield "Part"
        raise RuntimeError("decoder blew up")


async def test_unexpected_verdict_error_clears_checking(parts):
    guard, dialogue, router, _, build = parts
    with pytest.raises(RuntimeError):
        await _evaluate(build(_Exploding("verdict")), guard)

    assert not dialogue.state.is_checking
    assert not router.bubbles.state.is_thinking


async def test_unexpected_stream_error_finalizes_placeholder(parts):
    guard, dialogue, _, _, build = parts
    with pytest.raises(RuntimeError):
        await _evaluate(build(_Exploding("stream")), guard)

    assert not dialogue.state.is_streaming
    last = dialogue.state.messages[-1]
    assert (last.content, last.is_streaming) == ("Part", False)
