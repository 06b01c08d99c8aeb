"""Reading-time pacing and semantic splitting for narration bubbles.

Timing is derived from the text itself:

  display_ms  how long a bubble stays on screen: ~300ms per word, clamped
              to [2000, 8000] (about 200 wpm for 14-15 year old readers).
  gap_ms      pause after a bubble before the next one. Questions get a
              thinking pause; otherwise the pacing hint decides, and the
              "normal" hint falls back to a three-tier length bucket.

semantic_split() breaks long narration into bubble-sized chunks at paragraph
or sentence boundaries, never inside a sentence.
"""

import re

MS_PER_WORD = 300
MIN_DISPLAY_MS = 2000
MAX_DISPLAY_MS = 8000

QUESTION_GAP_MS = 1500
SHORT_GAP_MS = 800
MEDIUM_GAP_MS = 1200
LONG_GAP_MS = 1800

SHORT_TEXT_CHARS = 50
MEDIUM_TEXT_CHARS = 120

DEFAULT_MAX_LENGTH = 100

_PARAGRAPH_BREAK = re.compile(r"\n\s*\n")
_SENTENCE_END = re.compile(r"(?<=[.!?])\s+")


def word_count(text: str) -> int:
    return len(text.split())


def display_ms(text: str) -> int:
    """Milliseconds a bubble should stay visible for reading."""
    return max(MIN_DISPLAY_MS, min(word_count(text) * MS_PER_WORD, MAX_DISPLAY_MS))


def gap_ms(text: str, hint: str = "normal") -> int:
    """Milliseconds to pause after a bubble before the next one appears."""
    if text.rstrip().endswith("?"):
        return QUESTION_GAP_MS
    if hint == "fast":
        return SHORT_GAP_MS
    if hint == "slow":
        return LONG_GAP_MS
    if len(text) < SHORT_TEXT_CHARS:
        return SHORT_GAP_MS
    if len(text) < MEDIUM_TEXT_CHARS:
        return MEDIUM_GAP_MS
    return LONG_GAP_MS


def total_ms(text: str, hint: str = "normal") -> int:
    return display_ms(text) + gap_ms(text, hint)


def semantic_split(messages: list[str], max_length: int = DEFAULT_MAX_LENGTH) -> list[str]:
    """Split long messages into bubble-sized chunks.

    Messages at or under max_length pass through unchanged. Longer ones are
    split on blank-line paragraph breaks first; paragraphs that are still too
    long are split on sentence endings, greedily regrouping short sentences
    up to max_length. A message with no usable boundary is kept whole.
    """
    chunks: list[str] = []
    for message in messages:
        if len(message) <= max_length:
            chunks.append(message)
            continue
        chunks.extend(_split_long(message, max_length))
    return chunks


def _split_long(text: str, max_length: int) -> list[str]:
    paragraphs = [p.strip() for p in _PARAGRAPH_BREAK.split(text) if p.strip()]
    if len(paragraphs) <= 1:
        return _split_sentences(text.strip(), max_length)

    chunks: list[str] = []
    for paragraph in paragraphs:
        if len(paragraph) <= max_length:
            chunks.append(paragraph)
        else:
            chunks.extend(_split_sentences(paragraph, max_length))
    return chunks


def _split_sentences(text: str, max_length: int) -> list[str]:
    sentences = [s for s in _SENTENCE_END.split(text) if s]
    if len(sentences) <= 1:
        return [text]

    chunks: list[str] = []
    current = ""
    for sentence in sentences:
        if not current:
            current = sentence
        elif len(current) + 1 + len(sentence) <= max_length:
            current = f"{current} {sentence}"
        else:
            chunks.append(current)
            current = sentence
    if current:
        chunks.append(current)
    return chunks
