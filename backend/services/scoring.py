"""Relevance scoring for search matches.

Pure functions over plain strings so the weights can be tested without a
database. A candidate matches when the lowercased query is a substring of
one of its fields; the score then adds fixed weights per matched field plus
prefix and starred bonuses.
"""

from dataclasses import dataclass
from enum import Enum

# Deck weights
DECK_TITLE_WEIGHT = 10
DECK_TITLE_PREFIX_BONUS = 5
DECK_DESCRIPTION_WEIGHT = 5

# Flashcard weights
CARD_FRONT_WEIGHT = 8
CARD_FRONT_PREFIX_BONUS = 4
CARD_BACK_WEIGHT = 6
STARRED_BONUS = 2


class MatchType(Enum):
    """Which field produced the primary match."""

    TITLE = "title"
    DESCRIPTION = "description"
    FRONT = "front"
    BACK = "back"


@dataclass(frozen=True)
class Match:
    """A scored match for a single deck or flashcard."""

    match_type: MatchType
    relevance_score: int


def score_deck(query: str, title: str, description: str | None = None) -> Match | None:
    """Score a deck against ``query``; return None when nothing matches."""
    term = query.lower()
    title_lower = title.lower()
    title_match = term in title_lower
    description_match = description is not None and term in description.lower()

    if not title_match and not description_match:
        return None

    score = 0
    if title_match:
        score += DECK_TITLE_WEIGHT
        if title_lower.startswith(term):
            score += DECK_TITLE_PREFIX_BONUS
    if description_match:
        score += DECK_DESCRIPTION_WEIGHT

    return Match(
        match_type=MatchType.TITLE if title_match else MatchType.DESCRIPTION,
        relevance_score=score,
    )


def score_flashcard(query: str, front: str, back: str, is_starred: bool = False) -> Match | None:
    """Score a flashcard against ``query``; return None when nothing matches.

    The starred bonus applies regardless of which side matched.
    """
    term = query.lower()
    front_lower = front.lower()
    front_match = term in front_lower
    back_match = term in back.lower()

    if not front_match and not back_match:
        return None

    score = 0
    if front_match:
        score += CARD_FRONT_WEIGHT
        if front_lower.startswith(term):
            score += CARD_FRONT_PREFIX_BONUS
    if back_match:
        score += CARD_BACK_WEIGHT
    if is_starred:
        score += STARRED_BONUS

    return Match(
        match_type=MatchType.FRONT if front_match else MatchType.BACK,
        relevance_score=score,
    )
