"""Tests for Handlebars prompt rendering: template compilation, context building,
the three tutor templates, and error handling."""

import pytest

from sci_learner.characters import HEROPHILUS
from sci_learner.models import HintLevel
from sci_learner.prompts import (
    ACKNOWLEDGE_TEMPLATE,
    EXPLANATION_TEMPLATE,
    VERDICT_TEMPLATE,
    PromptError,
    build_context,
    module_context,
    render_prompt,
)
from sci_learner.scripts import FALLBACK_SCRIPT, get_script

SCRIPT = get_script("module_circ_fascinate")
CTX = "Correct answer: blood."


# ── render_prompt ────────────────────────────────────────────


def test_render_simple_variable():
    assert render_prompt("Hello {{name}}!", {"name": "World"}) == "Hello World!"


def test_render_returns_plain_str():
    assert type(render_prompt("x", {})) is str


def test_triple_stash_skips_escaping():
    assert render_prompt('{{{answer}}}', {"answer": 'a "quoted" <b>'}) == 'a "quoted" <b>'


def test_render_invalid_template():
    with pytest.raises(PromptError):
        render_prompt("{{> missing_partial}}", {})


# ── build_context ────────────────────────────────────────────


def test_build_context_basic():
    ctx = build_context(HEROPHILUS, SCRIPT, "blood", CTX, HintLevel.SPECIFIC)
    assert ctx["char"]["name"] == "Herophilus"
    assert ctx["module"]["title"] == "Fa-SCI-nate"
    assert ctx["answer"] == "blood"
    assert ctx["evaluation_context"] == CTX
    assert ctx["hint"] == {"level": 2, "gentle": False, "specific": True, "reveal": False}
    assert ctx["qa_loop"] is False


def test_build_context_without_hint():
    ctx = build_context(HEROPHILUS, None)
    assert "hint" not in ctx
    assert ctx["evaluation_context"] == ""
    assert ctx["module"]["context"] == "Current topic: Circulation and Gas Exchange"


def test_module_context_names_lesson_and_module():
    text = module_context(SCRIPT)
    assert "Current Lesson: Circulation and Gas Exchange" in text
    assert "Current Module: Fa-SCI-nate" in text
    assert module_context(FALLBACK_SCRIPT) == "Current topic: Circulation and Gas Exchange"


# ── Templates ────────────────────────────────────────────────


def test_verdict_prompt():
    out = render_prompt(VERDICT_TEMPLATE, build_context(HEROPHILUS, SCRIPT, "blood", CTX))
    assert "You are Herophilus" in out
    assert 'Student\'s answer: "blood"' in out
    assert "1-5 words" in out
    assert CTX in out


def test_explanation_gentle_hint_keeps_answer_hidden():
    out = render_prompt(EXPLANATION_TEMPLATE, build_context(HEROPHILUS, SCRIPT, "x", CTX, HintLevel.GENTLE))
    assert '"Correct!", "Partially correct!" or "Not quite."' in out
    assert "do NOT reveal the answer" in out
    assert "gentle hint" in out
    assert "last try" not in out


def test_explanation_specific_hint():
    out = render_prompt(EXPLANATION_TEMPLATE, build_context(HEROPHILUS, SCRIPT, "x", CTX, HintLevel.SPECIFIC))
    assert "specific hint" in out
    assert "gentle hint" not in out


def test_explanation_reveal_on_last_attempt():
    out = render_prompt(EXPLANATION_TEMPLATE, build_context(HEROPHILUS, SCRIPT, "x", CTX, HintLevel.REVEAL))
    assert "last try" in out
    assert "do NOT reveal" not in out


def test_explanation_qa_loop_skips_verdict_wording():
    qa_ctx = "Answer questions. End with exactly: Let's proceed!"
    out = render_prompt(EXPLANATION_TEMPLATE, build_context(HEROPHILUS, SCRIPT, "What is plasma?", qa_ctx, qa_loop=True))
    assert "Let's proceed!" in out
    assert "Begin your reply" not in out


def test_acknowledge_prompt():
    out = render_prompt(ACKNOWLEDGE_TEMPLATE, build_context(HEROPHILUS, SCRIPT))
    assert "You are Herophilus" in out
    assert "another module" in out
    assert "Current Module: Fa-SCI-nate" in out
