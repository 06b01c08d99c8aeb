"""Hard-coded narration variations.

Random selection gives the tutor some variety without a model call, which
also keeps these lines available offline. Every picker takes an optional
random.Random so callers (and tests) can make the choice deterministic.
"""

import random

# ── Module completions, keyed by module type ─────────────

_COMPLETIONS: dict[str, tuple[str, ...]] = {
    "fascinate": (
        "Wow! You've completed Fa-SCI-nate! Isn't science amazing?",
        "That was fascinating, right? Fa-SCI-nate complete!",
        "Your curiosity is amazing! Fa-SCI-nate finished!",
        "Fa-SCI-nated yet? Module complete!",
        "Excellent work! You've finished Fa-SCI-nate!",
    ),
    "goal": (
        "Perfect! You've set your learning goals!",
        "Great! You know where you're headed now!",
        "Goal SCI-tting complete! Let's achieve those goals!",
        "Wonderful! Your learning path is clear!",
    ),
    "presentation": (
        "Great! You've completed Pre-SCI-ntation!",
        "Excellent! Pre-SCI-ntation is done!",
        "Well done! You've finished Pre-SCI-ntation!",
    ),
    "investigation": (
        "Amazing work, investigator! Inve-SCI-tigation complete!",
        "You've uncovered the science! Investigation done!",
        "You explored like a true scientist! Well done!",
    ),
    "assessment": (
        "You're SCI-mazing! Assessment complete!",
        "Well done! You've shown your understanding!",
        "You did it! Self-A-SCI-ssment complete!",
    ),
    "supplementary": (
        "Great! You've completed SCI-pplementary!",
        "Wonderful! You've completed SCI-pplementary!",
        "Great job! SCI-pplementary finished!",
    ),
}
_DEFAULT_COMPLETION = ("Great work! Module complete!",)

_MODULE_ALIASES: dict[str, tuple[str, ...]] = {
    "fascinate": ("fascinate",),
    "goal": ("goal",),
    "presentation": ("presentation", "prescintation"),
    "investigation": ("investigation", "invescitigation"),
    "assessment": ("assessment", "ascissment"),
    "supplementary": ("supplementary", "scipplementary"),
}

# ── Forced advance after the last attempt ────────────────

MAX_ATTEMPTS_ENCOURAGEMENT = (
    "That was a tough question! Let's move forward, you're doing great!",
    "This one was tricky! Don't worry, let's continue!",
    "That was challenging! You're learning so much!",
    "Good effort! Let's keep going, every attempt helps you learn!",
    "Tough question! Let's proceed, you're making progress!",
)

# ── Return greetings (never persisted, shown when history exists) ──

_RETURN_GREETINGS: dict[str, tuple[str, ...]] = {
    "aristotle": (
        "Welcome back, scholar! Ready to pick up where we left off?",
        "Good to have you back! What shall we explore today?",
    ),
    "herophilus": (
        "Welcome back! The heart never stops, and neither does learning.",
        "You've returned! Shall we continue our journey through circulation?",
    ),
    "mendel": (
        "Welcome back! Heredity holds many more secrets to discover.",
        "Good to see you again! Ready to unravel more patterns of inheritance?",
    ),
    "odum": (
        "Welcome back! The ecosystem kept thriving while you were away.",
        "You've returned! Nature's web of life has much more to reveal.",
    ),
}
_DEFAULT_RETURN_GREETING = ("Welcome back! Let's continue where we left off.",)


def _pick(options: tuple[str, ...], rng: random.Random | None) -> str:
    return (rng or random).choice(options)


def module_key(module_type: str) -> str | None:
    """Map a module type or title ("Inve-SCI-tigation", "goal") to its family."""
    lowered = module_type.lower().replace("-", "")
    for key, names in _MODULE_ALIASES.items():
        if any(name in lowered for name in names):
            return key
    return None


def module_completion(module_type: str, rng: random.Random | None = None) -> str:
    options = _COMPLETIONS.get(module_key(module_type) or "", _DEFAULT_COMPLETION)
    return _pick(options, rng)


def max_attempts_encouragement(rng: random.Random | None = None) -> str:
    return _pick(MAX_ATTEMPTS_ENCOURAGEMENT, rng)


def return_greeting(character_id: str, rng: random.Random | None = None) -> str:
    return _pick(_RETURN_GREETINGS.get(character_id, _DEFAULT_RETURN_GREETING), rng)
