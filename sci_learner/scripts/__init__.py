"""Script registry: module id → Script.

The set of scripts is closed. Every lesson module with hand-written dialogue
is registered here at import time; any other id resolves to the generic
fallback script, which shows one narration line and completes immediately.

Scripts are checked once, when the registry is built (validate_script):
narration steps must never carry an answer-entry instruction, since the
narration bubble has no input, and graded steps must wait for the student.
"""

import logging
import re

from sci_learner.models import Script, ScriptStep

from .circulation import LESSON_1_SCRIPTS

logger = logging.getLogger(__name__)

FALLBACK_MODULE_ID = "__fallback__"

FALLBACK_SCRIPT = Script(
    module_id=FALLBACK_MODULE_ID,
    title="Module",
    steps=(
        ScriptStep(
            messages=(
                "Let's explore this module together! Read through the content, "
                "and tap **Next** when you're ready to continue.",
            ),
            channel="narration",
            is_module_complete=True,
        ),
    ),
)

# Phrases that ask the student to type something. They belong in the
# interaction log, where the input box is.
ANSWER_ENTRY_PATTERNS = (
    re.compile(r"\btype (?:your|an?|the)\b.*\b(?:answer|response|reply)\b", re.IGNORECASE),
    re.compile(r"\b(?:enter|write) your (?:answer|response)\b", re.IGNORECASE),
    re.compile(r"\b(?:answer|reply|type) (?:below|in the chat)\b", re.IGNORECASE),
)


class ScriptError(ValueError):
    """Raised when a registered script breaks a content rule."""


def contains_answer_entry(text: str) -> bool:
    return any(p.search(text) for p in ANSWER_ENTRY_PATTERNS)


def validate_script(script: Script) -> list[str]:
    """Return a list of content problems; empty when the script is valid."""
    problems: list[str] = []
    if not script.steps:
        problems.append(f"{script.module_id}: script has no steps")
    for i, step in enumerate(script.steps):
        where = f"{script.module_id} step {i}"
        if step.channel == "narration":
            for text in step.messages:
                if contains_answer_entry(text):
                    problems.append(f"{where}: narration contains an answer-entry instruction")
        if step.is_graded and not step.wait_for_user:
            problems.append(f"{where}: graded step does not wait for the student")
        if step.is_module_complete and i != len(script.steps) - 1:
            problems.append(f"{where}: completion step is not the last step")
    return problems


class ScriptRegistry:
    def __init__(self, scripts: list[Script], fallback: Script = FALLBACK_SCRIPT) -> None:
        problems: list[str] = []
        for script in [*scripts, fallback]:
            problems.extend(validate_script(script))
        if problems:
            raise ScriptError("; ".join(problems))

        self._scripts: dict[str, Script] = {}
        for script in scripts:
            if script.module_id in self._scripts:
                raise ScriptError(f"duplicate module id {script.module_id!r}")
            self._scripts[script.module_id] = script
        self.fallback = fallback

    def get(self, module_id: str) -> Script:
        """Return the script for a module, or the fallback for unknown ids."""
        script = self._scripts.get(module_id)
        if script is None:
            logger.info("no script for module %r, using fallback", module_id)
            return self.fallback
        return script

    def __contains__(self, module_id: str) -> bool:
        return module_id in self._scripts

    def list_scripts(self) -> list[Script]:
        return list(self._scripts.values())


DEFAULT_REGISTRY = ScriptRegistry(LESSON_1_SCRIPTS)


def get_script(module_id: str) -> Script:
    return DEFAULT_REGISTRY.get(module_id)
