"""Tutor character roster.

Aristotle is the general guide; each expert owns one Grade 9 science topic.
"""

from sci_learner.models import Character

ARISTOTLE = Character(
    id="aristotle",
    name="Aristotle",
    expertise="general science and study guidance",
)
HEROPHILUS = Character(
    id="herophilus",
    name="Herophilus",
    expertise="circulation and gas exchange",
    topic="body_systems",
)
MENDEL = Character(
    id="mendel",
    name="Gregor Mendel",
    expertise="heredity and variation",
    topic="heredity",
)
ODUM = Character(
    id="odum",
    name="Eugene Odum",
    expertise="energy and ecosystems",
    topic="energy",
)

CHARACTERS: dict[str, Character] = {
    c.id: c for c in (ARISTOTLE, HEROPHILUS, MENDEL, ODUM)
}


def get_character(character_id: str) -> Character | None:
    return CHARACTERS.get(character_id)


def list_characters() -> list[Character]:
    return list(CHARACTERS.values())
