"""Dashboard summary for the signed-in user."""

import logging
from dataclasses import dataclass, field

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.auth import require_user
from backend.models.deck import Deck
from backend.models.flashcard import Flashcard
from backend.models.study_session import StudySession
from backend.services.deck_service import DeckWithCount, get_unattached_flashcards, get_user_decks
from backend.services.study_service import calculate_study_streak, round_half_up

logger = logging.getLogger(__name__)

RECENT_ACTIVITY_LIMIT = 5


@dataclass
class DashboardStats:
    total_decks: int = 0
    total_flashcards: int = 0
    study_streak: int = 0
    total_study_time: int = 0  # minutes


@dataclass
class DashboardData:
    decks: list[DeckWithCount] = field(default_factory=list)
    unattached_flashcards: list[Flashcard] = field(default_factory=list)
    recent_activity: list[StudySession] = field(default_factory=list)
    stats: DashboardStats = field(default_factory=DashboardStats)


async def get_dashboard_stats(db: AsyncSession, user_id: str | None) -> DashboardStats:
    user_id = require_user(user_id)

    total_decks = (
        await db.execute(select(func.count(Deck.id)).where(Deck.user_id == user_id))
    ).scalar() or 0
    total_flashcards = (
        await db.execute(select(func.count(Flashcard.id)).where(Flashcard.user_id == user_id))
    ).scalar() or 0
    total_seconds = (
        await db.execute(
            select(func.coalesce(func.sum(StudySession.duration_seconds), 0)).where(
                StudySession.user_id == user_id
            )
        )
    ).scalar() or 0

    return DashboardStats(
        total_decks=total_decks,
        total_flashcards=total_flashcards,
        study_streak=await calculate_study_streak(db, user_id),
        total_study_time=round_half_up(total_seconds / 60),
    )


async def get_dashboard_data(db: AsyncSession, user_id: str | None) -> DashboardData:
    """Collect decks, unattached cards, recent sessions and stats."""
    user_id = require_user(user_id)

    recent_stmt = (
        select(StudySession)
        .where(StudySession.user_id == user_id, StudySession.completed_at.is_not(None))
        .order_by(StudySession.completed_at.desc())
        .limit(RECENT_ACTIVITY_LIMIT)
    )

    return DashboardData(
        decks=await get_user_decks(db, user_id),
        unattached_flashcards=await get_unattached_flashcards(db, user_id),
        recent_activity=list((await db.execute(recent_stmt)).scalars().all()),
        stats=await get_dashboard_stats(db, user_id),
    )
