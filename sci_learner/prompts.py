"""Handlebars prompt rendering for the lesson tutor.

Three templates, one per model call:

  VERDICT_TEMPLATE      short 1-5 word reaction shown in the narration bubble
  EXPLANATION_TEMPLATE  graded answer feedback streamed into the interaction log
  ACKNOWLEDGE_TEMPLATE  reply to ungraded input (acknowledgments, side questions)

Variables are raw text, so templates use triple-stash {{{ }}} to skip HTML
escaping.
"""

from collections.abc import Callable
from typing import Any

import pybars

from sci_learner.models import Character, HintLevel, Script

_compiler = pybars.Compiler()
_cache: dict[str, Callable] = {}


class PromptError(Exception):
    """Raised when a Handlebars template fails to compile or render."""


VERDICT_TEMPLATE = """\
You are {{{char.name}}}, evaluating a Grade 9 student's answer.

{{{module.context}}}

EVALUATION CONTEXT:
{{{evaluation_context}}}

Student's answer: "{{{answer}}}"

Respond with ONLY 1-5 words of encouragement:
- If correct: "Excellent!" or "Perfect!" or "Ang galing!" or "Tama!"
- If partially correct: "Almost!" or "Close!"
- If wrong: "Not quite..." or "Good try!"

NO explanations, ONLY the short encouragement."""

EXPLANATION_TEMPLATE = """\
You are {{{char.name}}}, a friendly science tutor for Grade 9 Filipino students in Roxas City. \
Your expertise is {{{char.expertise}}}.

{{{module.context}}}

EVALUATION CONTEXT:
{{{evaluation_context}}}

Student's answer: "{{{answer}}}"

{{#if qa_loop}}
Reply to the student in 2-4 sentences, following the evaluation context.
{{else}}
Begin your reply with exactly one of: "Correct!", "Partially correct!" or "Not quite."
Then explain in 2-3 sentences:
- If correct: confirm why it's right and add an interesting detail.
- If partially correct: explain what's right, then what's missing.
{{#if hint.reveal}}
- If wrong: this was the student's last try. Explain the correct answer and why, kindly.
{{else}}
- If wrong: do NOT reveal the answer. {{#if hint.specific}}Give a specific hint that points \
to the key idea.{{else}}Give a gentle hint that gets them thinking.{{/if}} \
Encourage them to try again.
{{/if}}
{{/if}}

If the student is clearly off-topic, politely bring them back to the lesson.
Use simple language for 14-15 year olds. You may use Filipino expressions naturally.
THIS MESSAGE WILL APPEAR IN THE MAIN CHAT AREA."""

ACKNOWLEDGE_TEMPLATE = """\
You are {{{char.name}}}, a friendly science tutor for Grade 9 Filipino students in Roxas City.

{{{module.context}}}

The student just sent a message during the lesson. It is not an answer to a graded question. It is:
- an acknowledgment (e.g. "ok", "ready", "yes", "let's go"),
- a question about the current topic,
- or a question about a different topic.

If the question is about a different topic, redirect them:
"We can learn about that in another module. Let's continue with our current topic for now!"
If it is about the current topic, answer warmly in 2-3 sentences.
If it is just an acknowledgment, give one brief encouraging sentence.

Be warm and use simple language. You may use Filipino expressions naturally (e.g. "Tama!", "Sige!")."""


def render_prompt(template_str: str, context: dict[str, Any]) -> str:
    """Compile and render a Handlebars template with the given context.

    Templates are cached by source string to avoid recompilation.
    """
    try:
        compiled = _cache.get(template_str)
        if compiled is None:
            compiled = _compiler.compile(template_str)
            _cache[template_str] = compiled
        return str(compiled(context))
    except Exception as e:
        raise PromptError(f"Template error: {e}") from e


def module_context(script: Script | None) -> str:
    if script is None or not script.lesson_title:
        return "Current topic: Circulation and Gas Exchange"
    return f"Current Lesson: {script.lesson_title}\nCurrent Module: {script.title}"


def build_context(
    character: Character,
    script: Script | None,
    answer: str = "",
    evaluation_context: str | None = None,
    hint_level: HintLevel | None = None,
    qa_loop: bool = False,
) -> dict[str, Any]:
    """Assemble template variables for one tutor call."""
    ctx: dict[str, Any] = {
        "char": {
            "id": character.id,
            "name": character.name,
            "expertise": character.expertise,
        },
        "module": {
            "id": script.module_id if script else "",
            "title": script.title if script else "",
            "context": module_context(script),
        },
        "answer": answer,
        "evaluation_context": evaluation_context or "",
        "qa_loop": qa_loop,
    }
    if hint_level is not None:
        ctx["hint"] = {
            "level": int(hint_level),
            "gentle": hint_level == HintLevel.GENTLE,
            "specific": hint_level == HintLevel.SPECIFIC,
            "reveal": hint_level == HintLevel.REVEAL,
        }
    return ctx
