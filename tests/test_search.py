"""Tests for search: scoring weights, sorting, filtering, pagination, suggestions."""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from backend.exceptions import AuthenticationRequired, SearchError
from backend.models.deck import Deck
from backend.models.flashcard import Flashcard
from backend.services.scoring import MatchType, score_deck, score_flashcard
from backend.services.search_service import (
    SearchFilters,
    SearchOptions,
    SearchResult,
    SortBy,
    SortOrder,
    get_search_suggestions,
    search,
    sort_results,
)

# --- Helpers ---


async def _make_deck(
    db: AsyncSession,
    title: str,
    description: str | None = None,
    user_id: str = "user-1",
    created_at: datetime | None = None,
) -> Deck:
    deck = Deck(title=title, description=description, user_id=user_id)
    if created_at is not None:
        deck.created_at = created_at
    db.add(deck)
    await db.commit()
    return deck


async def _make_card(
    db: AsyncSession,
    deck: Deck | None,
    front: str,
    back: str,
    is_starred: bool = False,
    user_id: str = "user-1",
    created_at: datetime | None = None,
) -> Flashcard:
    card = Flashcard(
        front=front,
        back=back,
        deck_id=deck.id if deck else None,
        user_id=user_id,
        is_starred=is_starred,
    )
    if created_at is not None:
        card.created_at = created_at
    db.add(card)
    await db.commit()
    return card


def _result(title: str, score: int) -> SearchResult:
    return SearchResult(type="deck", id=title, title=title, match_type="title", relevance_score=score)


# --- Scoring ---


class TestScoring:
    def test_deck_title_prefix_match(self) -> None:
        match = score_deck("span", "Spanish Vocab")
        assert match is not None
        assert match.match_type == MatchType.TITLE
        assert match.relevance_score == 15

    def test_deck_no_match(self) -> None:
        assert score_deck("span", "French Vocab") is None

    def test_prefix_scores_higher_than_contains(self) -> None:
        prefix = score_deck("vocab", "Vocab for travel")
        contains = score_deck("vocab", "Travel vocab")
        assert prefix.relevance_score > contains.relevance_score
        assert contains.relevance_score == 10

    def test_deck_description_only(self) -> None:
        match = score_deck("verbs", "Spanish", "Irregular verbs")
        assert match.match_type == MatchType.DESCRIPTION
        assert match.relevance_score == 5

    def test_deck_title_and_description(self) -> None:
        match = score_deck("span", "Spanish", "Spanish verbs")
        assert match.match_type == MatchType.TITLE
        assert match.relevance_score == 20

    def test_case_insensitive(self) -> None:
        assert score_deck("SPAN", "spanish").relevance_score == 15

    def test_flashcard_back_match_starred(self) -> None:
        match = score_flashcard("hello", "Hola", "Hello", is_starred=True)
        assert match.match_type == MatchType.BACK
        assert match.relevance_score == 8

    def test_starred_adds_exactly_two(self) -> None:
        plain = score_flashcard("ho", "Hola", "Hello")
        starred = score_flashcard("ho", "Hola", "Hello", is_starred=True)
        assert starred.relevance_score - plain.relevance_score == 2

    def test_flashcard_front_prefix(self) -> None:
        match = score_flashcard("ho", "Hola", "Hi")
        assert match.match_type == MatchType.FRONT
        assert match.relevance_score == 12

    def test_flashcard_front_and_back(self) -> None:
        match = score_flashcard("la", "Hola", "Hola (informal)")
        assert match.match_type == MatchType.FRONT
        assert match.relevance_score == 8 + 6

    def test_flashcard_no_match(self) -> None:
        assert score_flashcard("bye", "Hola", "Hello", is_starred=True) is None


# --- Sorting ---


class TestSortResults:
    def test_relevance_desc(self) -> None:
        results = [_result("a", 10), _result("b", 15), _result("c", 5)]
        assert [r.title for r in sort_results(results)] == ["b", "a", "c"]

    def test_relevance_asc(self) -> None:
        results = [_result("a", 10), _result("b", 15), _result("c", 5)]
        ordered = sort_results(results, SortBy.RELEVANCE, SortOrder.ASC)
        assert [r.title for r in ordered] == ["c", "a", "b"]

    def test_ties_keep_input_order(self) -> None:
        results = [_result("a", 10), _result("b", 10), _result("c", 15)]
        assert [r.title for r in sort_results(results)] == ["c", "a", "b"]

    def test_date_falls_back_to_relevance(self) -> None:
        results = [_result("a", 5), _result("b", 15)]
        assert sort_results(results, SortBy.DATE) == sort_results(results, SortBy.RELEVANCE)

    def test_alphabetical_default_order_is_a_to_z(self) -> None:
        results = [_result("banana", 1), _result("Apple", 1), _result("cherry", 1)]
        ordered = sort_results(results, SortBy.ALPHABETICAL, SortOrder.DESC)
        assert [r.title for r in ordered] == ["Apple", "banana", "cherry"]

    def test_alphabetical_asc_reverses(self) -> None:
        results = [_result("banana", 1), _result("Apple", 1), _result("cherry", 1)]
        ordered = sort_results(results, SortBy.ALPHABETICAL, SortOrder.ASC)
        assert [r.title for r in ordered] == ["cherry", "banana", "Apple"]


# --- Search ---


class TestSearch:
    @pytest.mark.asyncio
    async def test_empty_query_skips_datastore(self) -> None:
        db = AsyncMock(spec=AsyncSession)
        for query in ("", "   "):
            page = await search(db, None, query)
            assert page.results == []
            assert page.total == 0
            assert page.has_more is False
        db.execute.assert_not_called()

    @pytest.mark.asyncio
    async def test_requires_user(self, db: AsyncSession) -> None:
        with pytest.raises(AuthenticationRequired):
            await search(db, None, "span")

    @pytest.mark.asyncio
    async def test_deck_title_scenario(self, db: AsyncSession) -> None:
        await _make_deck(db, "Spanish Vocab")
        await _make_deck(db, "French Vocab")

        page = await search(db, "user-1", "span")

        assert page.total == 1
        result = page.results[0]
        assert result.type == "deck"
        assert result.title == "Spanish Vocab"
        assert result.match_type == "title"
        assert result.relevance_score == 15

    @pytest.mark.asyncio
    async def test_never_returns_other_users_rows(self, db: AsyncSession) -> None:
        mine = await _make_deck(db, "Spanish Mine")
        theirs = await _make_deck(db, "Spanish Theirs", user_id="user-2")
        await _make_card(db, theirs, "Spanish word", "palabra", user_id="user-2")
        await _make_card(db, mine, "Spanish greeting", "hola")

        page = await search(db, "user-1", "spanish")

        ids = {r.id for r in page.results}
        assert theirs.id not in ids
        assert page.total == 2
        assert {r.type for r in page.results} == {"deck", "flashcard"}

    @pytest.mark.asyncio
    async def test_flashcard_result_carries_deck(self, db: AsyncSession) -> None:
        deck = await _make_deck(db, "Greetings")
        await _make_card(db, deck, "Hola", "Hello", is_starred=True)

        page = await search(db, "user-1", "hello")

        assert page.total == 1
        result = page.results[0]
        assert result.type == "flashcard"
        assert result.match_type == "back"
        assert result.relevance_score == 8
        assert result.deck_id == deck.id
        assert result.deck_title == "Greetings"
        assert result.description == "Hello"

    @pytest.mark.asyncio
    async def test_unattached_flashcards_not_searched(self, db: AsyncSession) -> None:
        await _make_card(db, None, "Hola", "Hello")
        page = await search(db, "user-1", "hola")
        assert page.total == 0

    @pytest.mark.asyncio
    async def test_type_filter(self, db: AsyncSession) -> None:
        deck = await _make_deck(db, "Hola deck")
        await _make_card(db, deck, "Hola", "Hello")

        decks_only = await search(
            db, "user-1", "hola", SearchOptions(filters=SearchFilters(type="deck"))
        )
        cards_only = await search(
            db, "user-1", "hola", SearchOptions(filters=SearchFilters(type="flashcard"))
        )

        assert [r.type for r in decks_only.results] == ["deck"]
        assert [r.type for r in cards_only.results] == ["flashcard"]

    @pytest.mark.asyncio
    async def test_include_starred_restricts_flashcards(self, db: AsyncSession) -> None:
        deck = await _make_deck(db, "Words")
        starred = await _make_card(db, deck, "gato", "cat", is_starred=True)
        await _make_card(db, deck, "gata", "cat (f)")

        page = await search(
            db,
            "user-1",
            "gat",
            SearchOptions(filters=SearchFilters(type="flashcard", include_starred=True)),
        )

        assert [r.id for r in page.results] == [starred.id]

    @pytest.mark.asyncio
    async def test_deck_ids_filter(self, db: AsyncSession) -> None:
        first = await _make_deck(db, "Verbs one")
        second = await _make_deck(db, "Verbs two")
        await _make_card(db, first, "comer", "to eat (verbs)")
        await _make_card(db, second, "beber", "to drink (verbs)")

        page = await search(
            db, "user-1", "verbs", SearchOptions(filters=SearchFilters(deck_ids=[second.id]))
        )

        assert {r.id for r in page.results if r.type == "deck"} == {second.id}
        assert {r.deck_id for r in page.results if r.type == "flashcard"} == {second.id}

    @pytest.mark.asyncio
    async def test_date_range_filter(self, db: AsyncSession) -> None:
        await _make_deck(db, "Old vocab", created_at=datetime(2024, 1, 1))
        new = await _make_deck(db, "New vocab", created_at=datetime(2024, 6, 1))

        page = await search(
            db,
            "user-1",
            "vocab",
            SearchOptions(filters=SearchFilters(date_from=datetime(2024, 3, 1))),
        )

        assert [r.id for r in page.results] == [new.id]

    @pytest.mark.asyncio
    async def test_date_range_with_offset(self, db: AsyncSession) -> None:
        deck = await _make_deck(db, "Vocab", created_at=datetime(2024, 1, 1, 2, 0))
        plus_five = timezone(timedelta(hours=5))

        # 03:00+05:00 is 22:00 UTC the day before
        after = await search(
            db,
            "user-1",
            "vocab",
            SearchOptions(
                filters=SearchFilters(date_from=datetime(2024, 1, 1, 3, 0, tzinfo=plus_five))
            ),
        )
        before = await search(
            db,
            "user-1",
            "vocab",
            SearchOptions(
                filters=SearchFilters(date_to=datetime(2024, 1, 1, 3, 0, tzinfo=plus_five))
            ),
        )

        assert [r.id for r in after.results] == [deck.id]
        assert before.total == 0

    @pytest.mark.asyncio
    async def test_pagination(self, db: AsyncSession) -> None:
        for i in range(5):
            await _make_deck(db, f"Vocab {i}")

        full = await search(db, "user-1", "vocab", SearchOptions(limit=5))
        pages = [
            await search(db, "user-1", "vocab", SearchOptions(limit=2, offset=offset))
            for offset in (0, 2, 4)
        ]

        assert full.total == 5
        assert [p.total for p in pages] == [5, 5, 5]
        assert [p.has_more for p in pages] == [True, True, False]
        assert [len(p.results) for p in pages] == [2, 2, 1]
        assert [r.id for p in pages for r in p.results] == [r.id for r in full.results]

    @pytest.mark.asyncio
    async def test_results_ordered_by_score(self, db: AsyncSession) -> None:
        await _make_deck(db, "Travel vocab")
        await _make_deck(db, "Vocab basics")

        page = await search(db, "user-1", "vocab")

        assert [r.title for r in page.results] == ["Vocab basics", "Travel vocab"]

    @pytest.mark.asyncio
    async def test_datastore_failure_becomes_search_error(self) -> None:
        db = AsyncMock(spec=AsyncSession)
        db.execute.side_effect = SQLAlchemyError("connection lost")

        with pytest.raises(SearchError, match="Failed to search"):
            await search(db, "user-1", "span")


# --- Suggestions ---


class TestSuggestions:
    @pytest.mark.asyncio
    async def test_short_query(self, db: AsyncSession) -> None:
        await _make_deck(db, "Spanish")
        assert await get_search_suggestions(db, "user-1", "s") == []
        assert await get_search_suggestions(db, "user-1", "  ") == []

    @pytest.mark.asyncio
    async def test_anonymous(self, db: AsyncSession) -> None:
        await _make_deck(db, "Spanish")
        assert await get_search_suggestions(db, None, "spa") == []

    @pytest.mark.asyncio
    async def test_titles_then_fronts_deduplicated(self, db: AsyncSession) -> None:
        deck = await _make_deck(db, "Spanish Basics")
        await _make_card(db, deck, "Spanish Basics", "duplicate of the title")
        await _make_card(db, deck, "spanish omelette", "tortilla")

        suggestions = await get_search_suggestions(db, "user-1", "SPANISH")

        assert suggestions[0] == "Spanish Basics"
        assert sorted(suggestions) == ["Spanish Basics", "spanish omelette"]

    @pytest.mark.asyncio
    async def test_limit(self, db: AsyncSession) -> None:
        for i in range(4):
            await _make_deck(db, f"Spanish {i}")
        assert len(await get_search_suggestions(db, "user-1", "spanish", limit=2)) == 2

    @pytest.mark.asyncio
    async def test_wildcards_are_literal(self, db: AsyncSession) -> None:
        await _make_deck(db, "Spanish")
        await _make_deck(db, "100% French")

        assert await get_search_suggestions(db, "user-1", "0%") == ["100% French"]

    @pytest.mark.asyncio
    async def test_other_users_excluded(self, db: AsyncSession) -> None:
        await _make_deck(db, "Spanish", user_id="user-2")
        assert await get_search_suggestions(db, "user-1", "spa") == []

    @pytest.mark.asyncio
    async def test_datastore_failure_gives_empty_list(self) -> None:
        db = AsyncMock(spec=AsyncSession)
        db.execute.side_effect = SQLAlchemyError("connection lost")
        assert await get_search_suggestions(db, "user-1", "spanish") == []
