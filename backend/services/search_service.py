"""Search across a user's decks and flashcards.

Candidates are fetched per query with the cheap filters (ownership, ids,
dates, starred) applied in SQL, then matched and scored in memory with
``backend.services.scoring``. Sorting and pagination happen after scoring
so ``total`` always reflects every match.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from backend.auth import require_user
from backend.config import settings, to_naive_utc
from backend.exceptions import SearchError
from backend.models.deck import Deck
from backend.models.flashcard import Flashcard
from backend.services.scoring import score_deck, score_flashcard

logger = logging.getLogger(__name__)


class SortBy(Enum):
    RELEVANCE = "relevance"
    DATE = "date"
    ALPHABETICAL = "alphabetical"


class SortOrder(Enum):
    ASC = "asc"
    DESC = "desc"


@dataclass
class SearchFilters:
    """Filters applied while fetching candidates."""

    type: str = "all"  # deck, flashcard, all
    deck_ids: list[str] | None = None
    include_starred: bool | None = None  # True: starred flashcards only
    date_from: datetime | None = None
    date_to: datetime | None = None


@dataclass
class SearchOptions:
    limit: int = settings.search_default_limit
    offset: int = 0
    filters: SearchFilters = field(default_factory=SearchFilters)
    sort_by: SortBy = SortBy.RELEVANCE
    sort_order: SortOrder = SortOrder.DESC


@dataclass
class SearchResult:
    """A single deck or flashcard hit."""

    type: str  # deck, flashcard
    id: str
    title: str
    match_type: str
    relevance_score: int
    description: str | None = None
    deck_id: str | None = None
    deck_title: str | None = None


@dataclass
class SearchPage:
    results: list[SearchResult] = field(default_factory=list)
    total: int = 0
    has_more: bool = False


async def search(
    db: AsyncSession,
    user_id: str | None,
    query: str,
    options: SearchOptions | None = None,
) -> SearchPage:
    """Search the user's decks and flashcards.

    Args:
        db: Database session.
        user_id: The authenticated user, or None.
        query: Free-text query; matched case-insensitively as a substring.
        options: Filters, sorting and pagination.

    Returns:
        The requested page plus the total number of matches.

    Raises:
        AuthenticationRequired: If ``user_id`` is empty and the query is not.
        SearchError: If the datastore fails.
    """
    if not query.strip():
        return SearchPage()

    user_id = require_user(user_id)
    options = options or SearchOptions()
    filters = options.filters

    try:
        results: list[SearchResult] = []
        if filters.type != "flashcard":
            results.extend(await _search_decks(db, query, user_id, filters))
        if filters.type != "deck":
            results.extend(await _search_flashcards(db, query, user_id, filters))
    except SQLAlchemyError as exc:
        logger.exception("Search failed for user %s", user_id)
        raise SearchError() from exc

    ordered = sort_results(results, options.sort_by, options.sort_order)
    start = options.offset
    end = options.offset + options.limit

    logger.debug("Search %r for user %s: %d matches", query, user_id, len(ordered))
    return SearchPage(
        results=ordered[start:end],
        total=len(ordered),
        has_more=len(ordered) > end,
    )


def sort_results(
    results: list[SearchResult],
    sort_by: SortBy = SortBy.RELEVANCE,
    sort_order: SortOrder = SortOrder.DESC,
) -> list[SearchResult]:
    """Return ``results`` sorted; the sort is stable.

    ``DESC`` keeps each comparator's natural direction (highest score first,
    titles A to Z) and ``ASC`` reverses it. ``DATE`` currently orders by
    relevance, the same as ``RELEVANCE``.
    """
    reverse = sort_order == SortOrder.ASC
    if sort_by == SortBy.ALPHABETICAL:
        return sorted(results, key=lambda r: (r.title.casefold(), r.title), reverse=reverse)
    return sorted(results, key=lambda r: r.relevance_score, reverse=not reverse)


async def _search_decks(
    db: AsyncSession,
    query: str,
    user_id: str,
    filters: SearchFilters,
) -> list[SearchResult]:
    stmt = select(Deck).where(Deck.user_id == user_id)
    if filters.date_from:
        stmt = stmt.where(Deck.created_at >= to_naive_utc(filters.date_from))
    if filters.date_to:
        stmt = stmt.where(Deck.created_at <= to_naive_utc(filters.date_to))
    if filters.deck_ids:
        stmt = stmt.where(Deck.id.in_(filters.deck_ids))

    decks = (await db.execute(stmt)).scalars().all()

    results = []
    for deck in decks:
        match = score_deck(query, deck.title, deck.description)
        if match is None:
            continue
        results.append(
            SearchResult(
                type="deck",
                id=deck.id,
                title=deck.title,
                description=deck.description,
                match_type=match.match_type.value,
                relevance_score=match.relevance_score,
            )
        )
    return results


async def _search_flashcards(
    db: AsyncSession,
    query: str,
    user_id: str,
    filters: SearchFilters,
) -> list[SearchResult]:
    deck_stmt = select(Deck.id, Deck.title).where(Deck.user_id == user_id)
    if filters.deck_ids:
        deck_stmt = deck_stmt.where(Deck.id.in_(filters.deck_ids))
    deck_titles = {row.id: row.title for row in (await db.execute(deck_stmt)).all()}
    if not deck_titles:
        return []

    stmt = select(Flashcard).where(Flashcard.deck_id.in_(list(deck_titles)))
    if filters.date_from:
        stmt = stmt.where(Flashcard.created_at >= to_naive_utc(filters.date_from))
    if filters.date_to:
        stmt = stmt.where(Flashcard.created_at <= to_naive_utc(filters.date_to))
    if filters.include_starred is True:
        stmt = stmt.where(Flashcard.is_starred.is_(True))

    flashcards = (await db.execute(stmt)).scalars().all()

    results = []
    for card in flashcards:
        match = score_flashcard(query, card.front, card.back, card.is_starred)
        if match is None:
            continue
        results.append(
            SearchResult(
                type="flashcard",
                id=card.id,
                title=card.front,
                description=card.back,
                deck_id=card.deck_id,
                deck_title=deck_titles.get(card.deck_id),
                match_type=match.match_type.value,
                relevance_score=match.relevance_score,
            )
        )
    return results


async def get_search_suggestions(
    db: AsyncSession,
    user_id: str | None,
    query: str,
    limit: int = settings.suggestion_limit,
) -> list[str]:
    """Suggest deck titles and flashcard fronts containing ``query``.

    Best-effort: anonymous callers and datastore failures get an empty list.
    """
    if not query.strip() or len(query) < 2 or not user_id:
        return []

    term = query.lower()
    suggestions: dict[str, None] = {}  # insertion-ordered set

    try:
        deck_stmt = (
            select(Deck.title)
            .where(Deck.user_id == user_id, Deck.title.icontains(query, autoescape=True))
            .limit(limit)
        )
        for title in (await db.execute(deck_stmt)).scalars():
            if term in title.lower():
                suggestions[title] = None

        deck_ids = list((await db.execute(select(Deck.id).where(Deck.user_id == user_id))).scalars())
        if deck_ids:
            card_stmt = (
                select(Flashcard.front)
                .where(
                    Flashcard.deck_id.in_(deck_ids),
                    Flashcard.front.icontains(query, autoescape=True),
                )
                .limit(limit)
            )
            for front in (await db.execute(card_stmt)).scalars():
                if term in front.lower():
                    suggestions[front] = None
    except SQLAlchemyError:
        logger.exception("Failed to load search suggestions for user %s", user_id)
        return []

    return list(suggestions)[:limit]
