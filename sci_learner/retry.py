"""Attempt tracking and the graduated-hint retry policy.

  attempt 1  gentle hint, answer not revealed
  attempt 2  more specific hint
  attempt 3  answer revealed; the step advances whatever the answer was,
             with one encouragement line in the narration bubble

Below the cap, whether the student may proceed is read off the tutor's own
explanation: it must contain one of the correctness markers. End-of-module
Q&A loops are different: their evaluation context mentions the proceed cue,
they never consume attempts, and they proceed only once the tutor's reply
contains the cue itself.
"""

from sci_learner.models import EvaluationOutcome, HintLevel

DEFAULT_MAX_ATTEMPTS = 3

CORRECTNESS_MARKERS = ("correct!", "tama!", "partially correct")
PROCEED_CUE = "let's proceed"


class AttemptTracker:
    """Per-step answer attempt counter."""

    def __init__(self, max_attempts: int = DEFAULT_MAX_ATTEMPTS) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self._counts: dict[int, int] = {}

    def record(self, step_index: int) -> int:
        """Count one more attempt for a step. Never exceeds max_attempts."""
        count = min(self._counts.get(step_index, 0) + 1, self.max_attempts)
        self._counts[step_index] = count
        return count

    def count(self, step_index: int) -> int:
        return self._counts.get(step_index, 0)

    def clear_step(self, step_index: int) -> None:
        self._counts.pop(step_index, None)

    def clear(self) -> None:
        self._counts.clear()


def _normalize(text: str) -> str:
    return text.lower().replace("’", "'")


def has_correctness_marker(text: str) -> bool:
    lowered = _normalize(text)
    return any(marker in lowered for marker in CORRECTNESS_MARKERS)


def has_proceed_cue(text: str) -> bool:
    return PROCEED_CUE in _normalize(text)


def is_qa_loop(evaluation_context: str | None) -> bool:
    return bool(evaluation_context) and has_proceed_cue(evaluation_context)


def hint_level_for(attempt: int, max_attempts: int = DEFAULT_MAX_ATTEMPTS) -> HintLevel:
    if attempt >= max_attempts:
        return HintLevel.REVEAL
    if attempt >= 2:
        return HintLevel.SPECIFIC
    return HintLevel.GENTLE


def decide(
    explanation: str,
    attempt: int,
    evaluation_context: str | None,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
) -> EvaluationOutcome:
    """Turn the tutor's explanation into a proceed/retry decision."""
    if is_qa_loop(evaluation_context):
        return EvaluationOutcome(
            attempt=attempt,
            can_proceed=has_proceed_cue(explanation),
            is_qa_loop=True,
        )

    level = hint_level_for(attempt, max_attempts)
    if attempt >= max_attempts:
        return EvaluationOutcome(
            attempt=attempt,
            hint_level=level,
            is_correct=None,
            can_proceed=True,
            forced=True,
        )
    correct = has_correctness_marker(explanation)
    return EvaluationOutcome(
        attempt=attempt,
        hint_level=level,
        is_correct=correct,
        can_proceed=correct,
    )
