"""Study session tracking and analytics.

A session row is created when a run starts, patched with the client's
running tally while answers arrive, and stamped with ``completed_at`` at the
end. Every answer event is appended to ``study_session_answers``; the log is
never merged or de-duplicated. Analytics are computed in memory from the
completed sessions.
"""

import calendar
import logging
import math
from dataclasses import dataclass, field
from datetime import UTC, date, datetime, timedelta
from enum import Enum
from typing import Any
from zoneinfo import ZoneInfo

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from backend.auth import require_user
from backend.config import settings, to_naive_utc, utcnow
from backend.exceptions import NotFoundError
from backend.models.deck import Deck
from backend.models.study_session import StudySession
from backend.models.study_session_answer import StudySessionAnswer

logger = logging.getLogger(__name__)

UNKNOWN_DECK = "Unknown Deck"
FAVORITE_DECKS_LIMIT = 5
RECENT_SESSIONS_LIMIT = 10

# Fields a caller may patch through update_study_session; a supplied
# accuracy is discarded and recomputed from the counters
UPDATABLE_FIELDS = frozenset(
    {
        "total_cards",
        "cards_studied",
        "correct_answers",
        "incorrect_answers",
        "accuracy",
        "duration_seconds",
        "completed_at",
        "study_mode",
        "settings",
    }
)


class AnswerResult(Enum):
    CORRECT = "correct"
    INCORRECT = "incorrect"
    SKIPPED = "skipped"


class StatsPeriod(Enum):
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"


@dataclass
class DeckSessionCount:
    deck_id: str
    deck_title: str
    session_count: int


@dataclass
class DeckPerformance:
    deck_id: str
    deck_title: str
    accuracy: int
    sessions: int
    total_cards: int


@dataclass
class StudyAnalytics:
    """Aggregates over a user's completed sessions."""

    total_sessions: int = 0
    total_study_time: int = 0  # seconds
    average_accuracy: int = 0
    cards_studied: int = 0
    favorite_decks: list[DeckSessionCount] = field(default_factory=list)
    study_streak: int = 0
    recent_sessions: list[StudySession] = field(default_factory=list)
    performance_by_deck: list[DeckPerformance] = field(default_factory=list)


@dataclass
class StudyStats:
    """Aggregates for a trailing window, compared with the window before it."""

    sessions: int = 0
    study_time: int = 0  # seconds
    accuracy: int = 0
    cards_studied: int = 0
    improvement: int = 0


def round_half_up(value: float) -> int:
    """Round to the nearest integer, with .5 going up (toward +inf)."""
    return int(math.floor(value + 0.5))


def compute_accuracy(correct: int, incorrect: int) -> int:
    """Return the percentage of correct answers, or 0 when there are none."""
    total = correct + incorrect
    return round_half_up(correct / total * 100) if total > 0 else 0


def local_date(moment: datetime, tz: ZoneInfo | None = None) -> date:
    """Return the calendar day of a naive UTC ``moment`` in ``tz``."""
    tz = tz or ZoneInfo(settings.timezone)
    return moment.replace(tzinfo=UTC).astimezone(tz).date()


def streak_from_days(days: list[date], today: date) -> int:
    """Count consecutive study days ending today or yesterday.

    Args:
        days: Unique study days, newest first.
        today: The current local day.
    """
    yesterday = today - timedelta(days=1)
    if today not in days and yesterday not in days:
        return 0

    streak = 1
    for previous, current in zip(days, days[1:]):
        if (previous - current).days == 1:
            streak += 1
        else:
            break
    return streak


async def _get_owned_session(db: AsyncSession, user_id: str, session_id: str) -> StudySession:
    stmt = select(StudySession).where(
        StudySession.id == session_id,
        StudySession.user_id == user_id,
    )
    session = (await db.execute(stmt)).scalar_one_or_none()
    if session is None:
        raise NotFoundError(f"Study session {session_id} not found")
    return session


async def start_study_session(
    db: AsyncSession,
    user_id: str | None,
    deck_id: str,
    total_cards: int,
    study_mode: str = "flashcards",
    session_settings: dict[str, Any] | None = None,
) -> StudySession:
    """Create a session with zeroed counters for a deck the user can see."""
    user_id = require_user(user_id)

    deck_stmt = select(Deck.id).where(
        Deck.id == deck_id,
        or_(Deck.user_id == user_id, Deck.is_public.is_(True)),
    )
    if (await db.execute(deck_stmt)).scalar_one_or_none() is None:
        raise NotFoundError(f"Deck {deck_id} not found")

    session = StudySession(
        user_id=user_id,
        deck_id=deck_id,
        total_cards=total_cards,
        cards_studied=0,
        correct_answers=0,
        incorrect_answers=0,
        accuracy=0,
        study_mode=study_mode or "flashcards",
        settings=session_settings or {},
        started_at=utcnow(),
    )
    db.add(session)
    await db.commit()
    await db.refresh(session)

    logger.info("Started study session %s for user %s on deck %s", session.id, user_id, deck_id)
    return session


async def record_answer(
    db: AsyncSession,
    user_id: str | None,
    session_id: str,
    flashcard_id: str,
    answer: str,
    response_time_ms: int | None = None,
    attempt_number: int | None = None,
) -> StudySessionAnswer:
    """Append one answer to the session's log.

    The session counters are left alone; the caller pushes its running
    tally with ``update_study_session``.
    """
    user_id = require_user(user_id)
    result = AnswerResult(answer)
    await _get_owned_session(db, user_id, session_id)

    entry = StudySessionAnswer(
        session_id=session_id,
        flashcard_id=flashcard_id,
        answer=result.value,
        response_time_ms=response_time_ms,
        attempt_number=attempt_number,
        answered_at=utcnow(),
    )
    db.add(entry)
    await db.commit()
    await db.refresh(entry)
    return entry


async def update_study_session(
    db: AsyncSession,
    user_id: str | None,
    session_id: str,
    updates: dict[str, Any],
) -> StudySession:
    """Patch a session owned by the user.

    Any supplied ``accuracy`` is ignored. When either counter is patched the
    accuracy is recomputed from the patched value and the stored value of
    the other counter. Concurrent updates are last-write-wins.

    Raises:
        AuthenticationRequired: If ``user_id`` is empty.
        ValueError: If ``updates`` names a field that cannot be patched.
        NotFoundError: If the user has no such session.
    """
    user_id = require_user(user_id)

    unknown = set(updates) - UPDATABLE_FIELDS
    if unknown:
        raise ValueError(f"Cannot update study session fields: {', '.join(sorted(unknown))}")

    data = {k: v for k, v in updates.items() if k != "accuracy"}
    if "completed_at" in data:
        data["completed_at"] = to_naive_utc(data["completed_at"])

    session = await _get_owned_session(db, user_id, session_id)
    for key, value in data.items():
        setattr(session, key, value)
    if "correct_answers" in data or "incorrect_answers" in data:
        session.accuracy = compute_accuracy(
            session.correct_answers or 0, session.incorrect_answers or 0
        )
    session.updated_at = utcnow()

    await db.commit()
    await db.refresh(session)
    return session


async def complete_study_session(
    db: AsyncSession,
    user_id: str | None,
    session_id: str,
    cards_studied: int,
    correct_answers: int,
    incorrect_answers: int,
    duration_seconds: int | None = None,
) -> StudySession:
    """Store the final tally and stamp ``completed_at``."""
    updates: dict[str, Any] = {
        "cards_studied": cards_studied,
        "correct_answers": correct_answers,
        "incorrect_answers": incorrect_answers,
        "completed_at": utcnow(),
    }
    if duration_seconds is not None:
        updates["duration_seconds"] = duration_seconds

    session = await update_study_session(db, user_id, session_id, updates)
    logger.info(
        "Completed study session %s: %d/%d correct",
        session_id,
        correct_answers,
        correct_answers + incorrect_answers,
    )
    return session


async def get_study_session(
    db: AsyncSession,
    user_id: str | None,
    session_id: str,
) -> StudySession | None:
    """Return a session with its answers loaded, or None."""
    user_id = require_user(user_id)
    stmt = (
        select(StudySession)
        .where(StudySession.id == session_id, StudySession.user_id == user_id)
        .options(selectinload(StudySession.answers))
    )
    return (await db.execute(stmt)).scalar_one_or_none()


async def get_user_study_sessions(
    db: AsyncSession,
    user_id: str | None,
    limit: int = 50,
    offset: int = 0,
) -> list[StudySession]:
    """Return the user's sessions newest first, with their decks loaded."""
    user_id = require_user(user_id)
    stmt = (
        select(StudySession)
        .join(Deck, StudySession.deck_id == Deck.id)
        .where(StudySession.user_id == user_id)
        .order_by(StudySession.started_at.desc())
        .offset(offset)
        .limit(limit)
        .options(selectinload(StudySession.deck))
    )
    return list((await db.execute(stmt)).scalars().all())


async def get_deck_study_sessions(
    db: AsyncSession,
    user_id: str | None,
    deck_id: str,
) -> list[StudySession]:
    user_id = require_user(user_id)
    stmt = (
        select(StudySession)
        .where(StudySession.user_id == user_id, StudySession.deck_id == deck_id)
        .order_by(StudySession.started_at.desc())
    )
    return list((await db.execute(stmt)).scalars().all())


async def calculate_study_streak(
    db: AsyncSession,
    user_id: str | None,
    today: date | None = None,
) -> int:
    """Return the number of consecutive days with a completed session.

    Days follow ``settings.timezone``. The streak is 0 unless the user
    studied today or yesterday.
    """
    user_id = require_user(user_id)
    stmt = (
        select(StudySession.started_at)
        .where(StudySession.user_id == user_id, StudySession.completed_at.is_not(None))
        .order_by(StudySession.started_at.desc())
    )
    started = (await db.execute(stmt)).scalars().all()
    if not started:
        return 0

    tz = ZoneInfo(settings.timezone)
    days = list(dict.fromkeys(local_date(moment, tz) for moment in started))
    today = today or local_date(utcnow(), tz)
    return streak_from_days(days, today)


def _mean_accuracy(sessions: list[StudySession]) -> float:
    if not sessions:
        return 0.0
    return sum(s.accuracy or 0 for s in sessions) / len(sessions)


async def get_study_analytics(
    db: AsyncSession,
    user_id: str | None,
    start: datetime | None = None,
    end: datetime | None = None,
    today: date | None = None,
) -> StudyAnalytics:
    """Aggregate the user's completed sessions, optionally within a range.

    Args:
        db: Database session.
        user_id: The authenticated user.
        start: Inclusive lower bound on ``started_at``.
        end: Inclusive upper bound on ``started_at``.
        today: Override for the streak's current day.
    """
    user_id = require_user(user_id)
    stmt = (
        select(StudySession, Deck.title)
        .join(Deck, StudySession.deck_id == Deck.id)
        .where(StudySession.user_id == user_id, StudySession.completed_at.is_not(None))
    )
    if start is not None:
        stmt = stmt.where(StudySession.started_at >= to_naive_utc(start))
    if end is not None:
        stmt = stmt.where(StudySession.started_at <= to_naive_utc(end))
    stmt = stmt.order_by(StudySession.started_at.desc())

    rows = (await db.execute(stmt)).all()
    sessions = [row[0] for row in rows]
    titles = {row[0].deck_id: row[1] or UNKNOWN_DECK for row in rows}

    # Per-deck tallies, in first-seen (newest session) order
    per_deck: dict[str, dict[str, int]] = {}
    for s in sessions:
        tally = per_deck.setdefault(s.deck_id, {"sessions": 0, "accuracy": 0, "cards": 0})
        tally["sessions"] += 1
        tally["accuracy"] += s.accuracy or 0
        tally["cards"] += s.cards_studied

    favorites = sorted(
        (
            DeckSessionCount(deck_id=deck_id, deck_title=titles[deck_id], session_count=t["sessions"])
            for deck_id, t in per_deck.items()
        ),
        key=lambda d: d.session_count,
        reverse=True,
    )[:FAVORITE_DECKS_LIMIT]

    performance = sorted(
        (
            DeckPerformance(
                deck_id=deck_id,
                deck_title=titles[deck_id],
                accuracy=round_half_up(t["accuracy"] / t["sessions"]),
                sessions=t["sessions"],
                total_cards=t["cards"],
            )
            for deck_id, t in per_deck.items()
        ),
        key=lambda d: d.sessions,
        reverse=True,
    )

    return StudyAnalytics(
        total_sessions=len(sessions),
        total_study_time=sum(s.duration_seconds or 0 for s in sessions),
        average_accuracy=round_half_up(_mean_accuracy(sessions)),
        cards_studied=sum(s.cards_studied for s in sessions),
        favorite_decks=favorites,
        study_streak=await calculate_study_streak(db, user_id, today=today),
        recent_sessions=sessions[:RECENT_SESSIONS_LIMIT],
        performance_by_deck=performance,
    )


def _shift_months(moment: datetime, months: int) -> datetime:
    """Move ``moment`` by whole calendar months, clamping the day."""
    index = moment.year * 12 + moment.month - 1 + months
    year, month = divmod(index, 12)
    month += 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def window_start(now: datetime, period: StatsPeriod) -> datetime:
    """Return the start of the trailing window ending at ``now``."""
    if period == StatsPeriod.WEEK:
        return now - timedelta(days=7)
    if period == StatsPeriod.MONTH:
        return _shift_months(now, -1)
    return _shift_months(now, -12)


async def get_study_stats(
    db: AsyncSession,
    user_id: str | None,
    period: str = "week",
    now: datetime | None = None,
) -> StudyStats:
    """Summarize a trailing week, month or year.

    ``improvement`` is the change in mean accuracy against the equally long
    window just before; it is 0 when that window has no sessions.
    """
    user_id = require_user(user_id)
    window = StatsPeriod(period)
    now = to_naive_utc(now) or utcnow()
    start = window_start(now, window)
    previous_start = start - (now - start)

    completed = select(StudySession).where(
        StudySession.user_id == user_id,
        StudySession.completed_at.is_not(None),
    )
    current = list(
        (await db.execute(completed.where(StudySession.started_at >= start))).scalars().all()
    )
    previous = list(
        (
            await db.execute(
                completed.where(
                    StudySession.started_at >= previous_start,
                    StudySession.started_at < start,
                )
            )
        )
        .scalars()
        .all()
    )

    accuracy = _mean_accuracy(current)
    improvement = round_half_up(accuracy - _mean_accuracy(previous)) if previous else 0

    return StudyStats(
        sessions=len(current),
        study_time=sum(s.duration_seconds or 0 for s in current),
        accuracy=round_half_up(accuracy),
        cards_studied=sum(s.cards_studied for s in current),
        improvement=improvement,
    )
