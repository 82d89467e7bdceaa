"""Deck and flashcard repository.

Every write is scoped to the owning user. Reads of a single deck also admit
public decks, which is the only way rows cross user boundaries.
"""

import logging
from dataclasses import dataclass
from typing import Any

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.auth import require_user
from backend.exceptions import NotFoundError
from backend.models.deck import Deck
from backend.models.flashcard import Flashcard

logger = logging.getLogger(__name__)

DECK_FIELDS = frozenset({"title", "description", "is_public", "color"})
FLASHCARD_FIELDS = frozenset({"front", "back", "is_starred", "difficulty"})


@dataclass
class DeckWithCount:
    """A deck plus its read-time flashcard count."""

    deck: Deck
    flashcard_count: int = 0


def parse_flashcard_import(text: str) -> list[dict[str, str]]:
    """Parse pasted cards: one per line, front and back separated by a tab.

    Lines without a tab, or with an empty side, are skipped.
    """
    cards = []
    for line in text.splitlines():
        if "\t" not in line:
            continue
        front, back = line.split("\t", 1)
        front, back = front.strip(), back.strip()
        if front and back:
            cards.append({"front": front, "back": back})
    return cards


def _with_counts():
    count = (
        select(Flashcard.deck_id, func.count(Flashcard.id).label("flashcard_count"))
        .group_by(Flashcard.deck_id)
        .subquery()
    )
    stmt = select(Deck, func.coalesce(count.c.flashcard_count, 0)).outerjoin(
        count, count.c.deck_id == Deck.id
    )
    return stmt


async def _get_owned_deck(db: AsyncSession, user_id: str, deck_id: str) -> Deck:
    stmt = select(Deck).where(Deck.id == deck_id, Deck.user_id == user_id)
    deck = (await db.execute(stmt)).scalar_one_or_none()
    if deck is None:
        raise NotFoundError(f"Deck {deck_id} not found")
    return deck


async def _get_owned_flashcard(db: AsyncSession, user_id: str, flashcard_id: str) -> Flashcard:
    stmt = select(Flashcard).where(Flashcard.id == flashcard_id, Flashcard.user_id == user_id)
    card = (await db.execute(stmt)).scalar_one_or_none()
    if card is None:
        raise NotFoundError(f"Flashcard {flashcard_id} not found")
    return card


async def get_user_decks(
    db: AsyncSession,
    user_id: str | None,
    owner_id: str | None = None,
) -> list[DeckWithCount]:
    """Return the decks of ``owner_id`` (default: the caller), newest first.

    Only public decks are returned when ``owner_id`` is someone other than
    the caller.
    """
    owner_id = owner_id or require_user(user_id)
    stmt = _with_counts().where(Deck.user_id == owner_id)
    if owner_id != user_id:
        stmt = stmt.where(Deck.is_public.is_(True))
    stmt = stmt.order_by(Deck.updated_at.desc())
    rows = (await db.execute(stmt)).all()
    return [DeckWithCount(deck=deck, flashcard_count=count) for deck, count in rows]


async def get_deck_by_id(
    db: AsyncSession,
    user_id: str | None,
    deck_id: str,
) -> DeckWithCount | None:
    """Return a deck the caller owns or a public deck, or None.

    Anonymous callers only see public decks.
    """
    stmt = _with_counts().where(Deck.id == deck_id)
    if user_id:
        stmt = stmt.where(or_(Deck.user_id == user_id, Deck.is_public.is_(True)))
    else:
        stmt = stmt.where(Deck.is_public.is_(True))

    row = (await db.execute(stmt)).first()
    if row is None:
        return None
    return DeckWithCount(deck=row[0], flashcard_count=row[1])


async def get_deck_flashcards(
    db: AsyncSession,
    user_id: str | None,
    deck_id: str,
) -> list[Flashcard]:
    """Return a visible deck's flashcards, newest first; [] if not visible."""
    if await get_deck_by_id(db, user_id, deck_id) is None:
        return []
    stmt = (
        select(Flashcard)
        .where(Flashcard.deck_id == deck_id)
        .order_by(Flashcard.created_at.desc())
    )
    return list((await db.execute(stmt)).scalars().all())


async def create_deck(
    db: AsyncSession,
    user_id: str | None,
    title: str,
    description: str | None = None,
    is_public: bool = False,
    color: str | None = None,
) -> Deck:
    user_id = require_user(user_id)
    deck = Deck(
        title=title,
        description=description,
        is_public=is_public,
        color=color,
        user_id=user_id,
    )
    db.add(deck)
    await db.commit()
    await db.refresh(deck)
    logger.info("Created deck %s for user %s", deck.id, user_id)
    return deck


async def update_deck(
    db: AsyncSession,
    user_id: str | None,
    deck_id: str,
    updates: dict[str, Any],
) -> Deck:
    user_id = require_user(user_id)
    unknown = set(updates) - DECK_FIELDS
    if unknown:
        raise ValueError(f"Cannot update deck fields: {', '.join(sorted(unknown))}")

    deck = await _get_owned_deck(db, user_id, deck_id)
    for key, value in updates.items():
        setattr(deck, key, value)
    await db.commit()
    await db.refresh(deck)
    return deck


async def delete_deck(db: AsyncSession, user_id: str | None, deck_id: str) -> None:
    """Delete a deck with its flashcards and study sessions."""
    user_id = require_user(user_id)
    deck = await _get_owned_deck(db, user_id, deck_id)
    await db.delete(deck)
    await db.commit()
    logger.info("Deleted deck %s for user %s", deck_id, user_id)


async def add_flashcard_to_deck(
    db: AsyncSession,
    user_id: str | None,
    deck_id: str,
    front: str,
    back: str,
) -> Flashcard:
    user_id = require_user(user_id)
    await _get_owned_deck(db, user_id, deck_id)

    card = Flashcard(front=front, back=back, deck_id=deck_id, user_id=user_id, is_starred=False)
    db.add(card)
    await db.commit()
    await db.refresh(card)
    return card


async def import_flashcards(
    db: AsyncSession,
    user_id: str | None,
    deck_id: str,
    cards: list[dict[str, str]],
) -> list[Flashcard]:
    """Bulk-insert ``{"front", "back"}`` pairs into an owned deck."""
    user_id = require_user(user_id)
    await _get_owned_deck(db, user_id, deck_id)

    created = [
        Flashcard(
            front=card["front"],
            back=card["back"],
            deck_id=deck_id,
            user_id=user_id,
            is_starred=False,
        )
        for card in cards
    ]
    db.add_all(created)
    await db.commit()
    for card in created:
        await db.refresh(card)

    logger.info("Imported %d flashcards into deck %s", len(created), deck_id)
    return created


async def create_flashcard(
    db: AsyncSession,
    user_id: str | None,
    front: str,
    back: str,
    deck_id: str | None = None,
) -> Flashcard:
    """Create a flashcard, unattached unless ``deck_id`` names an owned deck."""
    user_id = require_user(user_id)
    if deck_id is not None:
        return await add_flashcard_to_deck(db, user_id, deck_id, front, back)

    card = Flashcard(front=front, back=back, deck_id=None, user_id=user_id, is_starred=False)
    db.add(card)
    await db.commit()
    await db.refresh(card)
    return card


async def update_flashcard(
    db: AsyncSession,
    user_id: str | None,
    flashcard_id: str,
    updates: dict[str, Any],
) -> Flashcard:
    user_id = require_user(user_id)
    unknown = set(updates) - FLASHCARD_FIELDS
    if unknown:
        raise ValueError(f"Cannot update flashcard fields: {', '.join(sorted(unknown))}")

    card = await _get_owned_flashcard(db, user_id, flashcard_id)
    for key, value in updates.items():
        setattr(card, key, value)
    await db.commit()
    await db.refresh(card)
    return card


async def delete_flashcard(db: AsyncSession, user_id: str | None, flashcard_id: str) -> None:
    user_id = require_user(user_id)
    card = await _get_owned_flashcard(db, user_id, flashcard_id)
    await db.delete(card)
    await db.commit()


async def get_unattached_flashcards(db: AsyncSession, user_id: str | None) -> list[Flashcard]:
    user_id = require_user(user_id)
    stmt = (
        select(Flashcard)
        .where(Flashcard.user_id == user_id, Flashcard.deck_id.is_(None))
        .order_by(Flashcard.created_at.desc())
    )
    return list((await db.execute(stmt)).scalars().all())
