import asyncio
import random

import pytest

from sci_learner.characters import HEROPHILUS
from sci_learner.engine import DialogueEngine
from sci_learner.llm import LLMError
from sci_learner.storage import HistoryStore


class StubLLM:
    """Scripted text generator.

    complete() pops from `verdicts`, stream() pops from `replies` and yields
    it word by word. Optional gates hold a call open until the test sets
    them: `complete_gate` before the verdict returns, `stream_gate` after
    the first chunk.
    """

    def __init__(self, verdicts=None, replies=None, fail=False):
        self.verdicts = list(verdicts or [])
        self.replies = list(replies or [])
        self.fail = fail
        self.complete_gate: asyncio.Event | None = None
        self.stream_gate: asyncio.Event | None = None
        self.complete_calls: list[dict] = []
        self.stream_calls: list[dict] = []

    async def complete(self, messages, *, temperature=None, max_tokens=None):
        self.complete_calls.append({"messages": messages, "max_tokens": max_tokens})
        if self.complete_gate is not None:
            await self.complete_gate.wait()
        if self.fail:
            raise LLMError("backend down")
        return self.verdicts.pop(0) if self.verdicts else "Good try!"

    async def stream(self, messages, *, temperature=None, max_tokens=None):
        self.stream_calls.append({"messages": messages, "max_tokens": max_tokens})
        if self.fail:
            raise LLMError("backend down")
        text = self.replies.pop(0) if self.replies else "Sige!"
        for i, word in enumerate(text.split(" ")):
            yield word if i == 0 else f" {word}"
            if i == 0 and self.stream_gate is not None:
                await self.stream_gate.wait()


class RecordingSleep:
    """Instant sleep that records each requested delay in milliseconds."""

    def __init__(self):
        self.calls: list[int] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(round(seconds * 1000))
        await asyncio.sleep(0)


@pytest.fixture
def sleep():
    return RecordingSleep()


@pytest.fixture
def make_llm():
    return StubLLM


@pytest.fixture
def history(tmp_path):
    return HistoryStore(tmp_path)


@pytest.fixture
def character():
    return HEROPHILUS


@pytest.fixture
def make_engine(sleep, history):
    """Build a DialogueEngine with an instant sleep and a tmp_path history."""

    def _make(llm=None, **kwargs):
        kwargs.setdefault("history", history)
        kwargs.setdefault("rng", random.Random(0))
        return DialogueEngine(llm or StubLLM(), sleep=sleep, **kwargs)

    return _make
