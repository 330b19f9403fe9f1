"""Prompt templates for remote classification of low-confidence candidates."""

from __future__ import annotations

from novelmap.models.extraction import ClassifiedEntity

_MAX_CONTEXTS_PER_CANDIDATE = 3

_SYSTEM_PROMPT = """\
You are a literary entity classifier. Classify entity candidates extracted from a novel.

For each candidate, determine:
- type: one of "character", "location", "organization", "artifact", "concept", "event"
- isNoise: true if this is a common word, not a real entity
- confidence: 0-100 how certain you are
- reasoning: brief explanation (10 words max)

Respond with a JSON array. Example:
[{"name":"Knox","type":"character","isNoise":false,"confidence":95,"reasoning":"protagonist name, appears with dialogue verbs"}]"""


def build_classification_prompt(
    entities: list[ClassifiedEntity],
    book_title: str,
    genre: str,
) -> tuple[str, str]:
    """Build system + user prompt for one batch.

    Returns (system_prompt, user_prompt).
    """
    blocks: list[str] = []
    for i, entity in enumerate(entities, start=1):
        lines = [
            f'{i}. "{entity.name}" (appears {entity.frequency}x '
            f"across {entity.chapter_spread} chapters)"
        ]
        lines.extend(f'  "{ctx}"' for ctx in entity.contexts[:_MAX_CONTEXTS_PER_CANDIDATE])
        blocks.append("\n".join(lines))

    user_prompt = (
        f'Book: "{book_title}" ({genre})\n\n'
        "Classify these entity candidates:\n\n"
        + "\n\n".join(blocks)
        + "\n\nRespond ONLY with a JSON array. No other text."
    )
    return _SYSTEM_PROMPT, user_prompt
