"""CLI interface for Flashdeck.

Usage:
    python -m flashdeck search "span"            Search decks and flashcards
    python -m flashdeck suggest "sp"             Suggest titles and fronts
    python -m flashdeck recent [--clear]         Show or clear recent searches
    python -m flashdeck decks                    List your decks
    python -m flashdeck import DECK_ID FILE      Import tab-separated cards
    python -m flashdeck streak                   Show your study streak
    python -m flashdeck stats --period month     Show study statistics

The user id comes from ``--user`` or ``FLASHDECK_USER_ID``.
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from backend.config import settings
from backend.database import async_session, init_db
from backend.exceptions import FlashdeckError
from backend.services import deck_service, study_service
from backend.services.recent_searches import JsonFileStore, RecentSearches
from backend.services.search_service import (
    SearchFilters,
    SearchOptions,
    SortBy,
    SortOrder,
    get_search_suggestions,
    search,
)


async def ensure_db() -> None:
    """Create tables if they don't exist."""
    await init_db()


def recent_searches() -> RecentSearches:
    """Return the recent-search list persisted next to the database."""
    return RecentSearches(JsonFileStore(settings.recent_searches_path))


async def cmd_search(args: argparse.Namespace) -> None:
    """Run a search and remember the query."""
    await ensure_db()
    options = SearchOptions(
        limit=args.limit,
        offset=args.offset,
        filters=SearchFilters(type=args.type, include_starred=args.starred or None),
        sort_by=SortBy(args.sort),
        sort_order=SortOrder(args.order),
    )
    async with async_session() as db:
        page = await search(db, args.user, args.query, options)

    if args.query.strip():
        recent_searches().save(args.query)

    if not page.results:
        print(f"\n  No results for '{args.query}'.\n")
        return

    print(f"\n  {page.total} result(s) for '{args.query}'\n")
    for result in page.results:
        label = f"[{result.type}]"
        where = f"  ({result.deck_title})" if result.deck_title else ""
        print(f"  {label:<12} {result.title}{where}")
        print(f"  {'':<12} match={result.match_type} score={result.relevance_score}")
    if page.has_more:
        print(f"\n  ... more results, use --offset {args.offset + args.limit}")
    print()


async def cmd_suggest(args: argparse.Namespace) -> None:
    await ensure_db()
    async with async_session() as db:
        suggestions = await get_search_suggestions(db, args.user, args.query, limit=args.limit)
    for suggestion in suggestions:
        print(f"  {suggestion}")


def cmd_recent(args: argparse.Namespace) -> None:
    """Show or clear recent searches (no DB needed)."""
    recent = recent_searches()
    if args.clear:
        recent.clear()
        print("  Recent searches cleared.")
        return
    queries = recent.get()
    if not queries:
        print("  No recent searches.")
        return
    for i, query in enumerate(queries, 1):
        print(f"  {i:>2}. {query}")


async def cmd_decks(args: argparse.Namespace) -> None:
    await ensure_db()
    async with async_session() as db:
        decks = await deck_service.get_user_decks(db, args.user)
    if not decks:
        print("  No decks yet.")
        return
    print()
    for item in decks:
        visibility = "public" if item.deck.is_public else "private"
        print(f"  {item.deck.title:<30} {item.flashcard_count:>4} cards  {visibility}  {item.deck.id}")
    print()


async def cmd_import(args: argparse.Namespace) -> None:
    """Import tab-separated cards from a file into a deck."""
    await ensure_db()
    cards = deck_service.parse_flashcard_import(Path(args.file).read_text(encoding="utf-8"))
    if not cards:
        print("  No flashcards found in file.")
        return
    async with async_session() as db:
        created = await deck_service.import_flashcards(db, args.user, args.deck_id, cards)
    print(f"  Imported {len(created)} flashcard(s).")


async def cmd_streak(args: argparse.Namespace) -> None:
    await ensure_db()
    async with async_session() as db:
        streak = await study_service.calculate_study_streak(db, args.user)
    print(f"  Study streak: {streak} day(s)")


async def cmd_stats(args: argparse.Namespace) -> None:
    """Print statistics for a trailing period."""
    await ensure_db()
    async with async_session() as db:
        stats = await study_service.get_study_stats(db, args.user, period=args.period)

    print(f"\n  Study statistics (last {args.period})")
    print(f"  {'Sessions:':<20} {stats.sessions}")
    print(f"  {'Study time:':<20} {stats.study_time // 60} min")
    print(f"  {'Accuracy:':<20} {stats.accuracy}%")
    print(f"  {'Cards studied:':<20} {stats.cards_studied}")
    print(f"  {'Improvement:':<20} {stats.improvement:+d}%")
    print()


def main(argv: list[str] | None = None) -> None:
    """Entry point for the Flashdeck CLI application."""
    parser = argparse.ArgumentParser(
        prog="flashdeck",
        description="Flashdeck flashcard search and study statistics",
    )
    parser.add_argument("-v", "--verbose", action="store_true")
    parser.add_argument("-u", "--user", default=settings.user_id, help="User id to act as")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # search
    search_parser = subparsers.add_parser("search", help="Search decks and flashcards")
    search_parser.add_argument("query", help="Text to look for")
    search_parser.add_argument("--type", choices=["all", "deck", "flashcard"], default="all")
    search_parser.add_argument(
        "--sort", choices=["relevance", "date", "alphabetical"], default="relevance"
    )
    search_parser.add_argument("--order", choices=["asc", "desc"], default="desc")
    search_parser.add_argument("--starred", action="store_true", help="Starred flashcards only")
    search_parser.add_argument("--limit", type=int, default=settings.search_default_limit)
    search_parser.add_argument("--offset", type=int, default=0)

    # suggest
    suggest_parser = subparsers.add_parser("suggest", help="Suggest completions for a query")
    suggest_parser.add_argument("query")
    suggest_parser.add_argument("--limit", type=int, default=settings.suggestion_limit)

    # recent
    recent_parser = subparsers.add_parser("recent", help="Show recent searches")
    recent_parser.add_argument("--clear", action="store_true", help="Forget recent searches")

    # decks
    subparsers.add_parser("decks", help="List your decks")

    # import
    import_parser = subparsers.add_parser("import", help="Import tab-separated flashcards")
    import_parser.add_argument("deck_id")
    import_parser.add_argument("file", help="File with one 'front<TAB>back' per line")

    # streak
    subparsers.add_parser("streak", help="Show your study streak")

    # stats
    stats_parser = subparsers.add_parser("stats", help="Show study statistics")
    stats_parser.add_argument("--period", choices=["week", "month", "year"], default="week")

    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)

    if not args.command:
        parser.print_help()
        return

    # recent is synchronous, all others are async.
    if args.command == "recent":
        cmd_recent(args)
        return

    cmd_map = {
        "search": cmd_search,
        "suggest": cmd_suggest,
        "decks": cmd_decks,
        "import": cmd_import,
        "streak": cmd_streak,
        "stats": cmd_stats,
    }

    try:
        asyncio.run(cmd_map[args.command](args))
    except FlashdeckError as exc:
        print(f"  Error: {exc}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
