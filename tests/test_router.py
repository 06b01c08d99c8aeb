"""Tests for the channel router."""

import pytest

from sci_learner.config import PacingSettings
from sci_learner.guard import RequestGuard
from sci_learner.models import BubbleMode, NarrationMessage, ScriptStep
from sci_learner.router import ChannelRouter
from sci_learner.stores import BubbleModeSignal, DialogueStore, NarrativeBubbleStore


@pytest.fixture
def guard():
    return RequestGuard()


@pytest.fixture
def delays():
    return []


@pytest.fixture
def router(guard, delays):
    async def delay(ms):
        delays.append(ms)

    return ChannelRouter(
        DialogueStore(), NarrativeBubbleStore(), BubbleModeSignal(), guard,
        delay=delay, settings=PacingSettings(narration_max_length=60),
    )


async def test_narration_goes_to_bubble_not_log(router, guard):
    step = ScriptStep(messages=("Kumusta!", "Welcome to the lesson."), channel="narration")
    shown = await router.route(step, "herophilus", "lesson_circ_1", guard.capture())

    assert [m.content for m in shown] == ["Kumusta!", "Welcome to the lesson."]
    assert all(isinstance(m, NarrationMessage) for m in shown)
    assert router.bubbles.state.messages == tuple(shown)
    assert router.dialogue.state.messages == ()
    assert router.bubble_mode.state == BubbleMode.NARRATIVE
    assert router.transcript == [
        {"role": "assistant", "content": "Kumusta!"},
        {"role": "assistant", "content": "Welcome to the lesson."},
    ]


async def test_long_narration_is_split_but_transcript_keeps_raw_text(router, guard):
    raw = "The heart is a pump. It has four chambers. Two atria sit on top of two ventricles."
    step = ScriptStep(messages=(raw,), channel="narration", pacing_hint="slow")
    shown = await router.route(step, "herophilus", None, guard.capture())

    assert len(shown) > 1
    assert all(m.pacing_hint == "slow" for m in shown)
    assert router.transcript == [{"role": "assistant", "content": raw}]


async def test_lead_is_shown_first_and_not_recorded(router, guard):
    step = ScriptStep(messages=("Today: circulation.",), channel="narration")
    shown = await router.route(step, "herophilus", None, guard.capture(), lead=["Welcome back!"])
    assert [m.content for m in shown] == ["Welcome back!", "Today: circulation."]
    assert router.transcript == [{"role": "assistant", "content": "Today: circulation."}]


async def test_interaction_messages_appended_with_gap(router, guard, delays):
    step = ScriptStep(messages=("First.", "Second.", "Third."), channel="interaction")
    shown = await router.route(step, "herophilus", None, guard.capture())

    assert [m.content for m in router.dialogue.state.messages] == ["First.", "Second.", "Third."]
    assert [m.id for m in shown] == [m.id for m in router.dialogue.state.messages]
    assert delays == [600, 600]
    assert router.bubbles.state.messages == ()


async def test_stale_epoch_appends_nothing(router, guard):
    captured = guard.capture()
    guard.advance()
    step = ScriptStep(messages=("Hello.",), channel="interaction")
    assert await router.route(step, "herophilus", None, captured) is None
    assert router.dialogue.state.messages == ()


async def test_epoch_change_between_interaction_messages_stops_routing(guard, delays):
    async def delay(ms):
        guard.advance()

    router = ChannelRouter(
        DialogueStore(), NarrativeBubbleStore(), BubbleModeSignal(), guard, delay=delay,
    )
    step = ScriptStep(messages=("One.", "Two."), channel="interaction")
    assert await router.route(step, "herophilus", None, guard.capture()) is None
    assert [m.content for m in router.dialogue.state.messages] == ["One."]


def test_feedback_does_not_touch_bubble_mode(router):
    router.enter_module()
    assert router.bubble_mode.state == BubbleMode.WAITING_FOR_NARRATIVE
    router.push_feedback("Tama!", "herophilus", None)
    assert router.bubbles.state.current_message.content == "Tama!"
    assert router.bubble_mode.state == BubbleMode.WAITING_FOR_NARRATIVE


def test_thinking_toggle(router):
    router.begin_thinking()
    assert router.bubbles.state.is_thinking
    router.end_thinking()
    assert not router.bubbles.state.is_thinking


def test_history_window(router):
    for i in range(5):
        router.record_user(f"answer {i}")
    assert [m["content"] for m in router.history(2)] == ["answer 3", "answer 4"]
    assert router.history(0) == []


def test_reset_returns_to_greeting(router):
    router.record_user("hi")
    router.push_feedback("Tama!", "herophilus", None)
    router.bubble_mode.set(BubbleMode.NARRATIVE)
    router.reset()
    assert router.transcript == []
    assert router.bubbles.state.messages == ()
    assert router.bubble_mode.state == BubbleMode.GREETING
