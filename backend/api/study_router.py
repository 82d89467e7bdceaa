"""API routes for study sessions and study statistics."""

import logging
from datetime import datetime
from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from backend.api.schemas import (
    AnswerRequest,
    AnswerResponse,
    DeckPerformanceResponse,
    DeckSessionCountResponse,
    StreakResponse,
    StudyAnalyticsResponse,
    StudySessionCompleteRequest,
    StudySessionDetailResponse,
    StudySessionResponse,
    StudySessionStartRequest,
    StudySessionUpdateRequest,
    StudyStatsResponse,
)
from backend.auth import get_current_user_id
from backend.database import get_session
from backend.exceptions import NotFoundError
from backend.services import study_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/study", tags=["study"])


@router.post("/sessions", response_model=StudySessionResponse, status_code=201)
async def start_session(
    request: StudySessionStartRequest,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session),
) -> StudySessionResponse:
    """Start a study session on a deck."""
    session_settings = (
        request.settings.model_dump(by_alias=True, exclude_none=True) if request.settings else None
    )
    try:
        session = await study_service.start_study_session(
            db,
            user_id,
            deck_id=request.deck_id,
            total_cards=request.total_cards,
            study_mode=request.study_mode,
            session_settings=session_settings,
        )
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail="Deck not found") from exc
    return StudySessionResponse.model_validate(session)


@router.get("/sessions", response_model=list[StudySessionResponse])
async def list_sessions(
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session),
) -> list[StudySessionResponse]:
    sessions = await study_service.get_user_study_sessions(db, user_id, limit=limit, offset=offset)
    return [StudySessionResponse.model_validate(s) for s in sessions]


@router.get("/sessions/{session_id}", response_model=StudySessionDetailResponse)
async def get_session_detail(
    session_id: str,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session),
) -> StudySessionDetailResponse:
    """Get a session together with its answer log."""
    session = await study_service.get_study_session(db, user_id, session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return StudySessionDetailResponse.model_validate(session)


@router.patch("/sessions/{session_id}", response_model=StudySessionResponse)
async def update_session(
    session_id: str,
    request: StudySessionUpdateRequest,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session),
) -> StudySessionResponse:
    """Push the client's running tally; accuracy is recomputed from the counters."""
    updates = request.model_dump(exclude_unset=True, exclude_none=True)
    if request.settings is not None:
        updates["settings"] = request.settings.model_dump(by_alias=True, exclude_none=True)
    try:
        session = await study_service.update_study_session(db, user_id, session_id, updates)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail="Session not found") from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return StudySessionResponse.model_validate(session)


@router.post("/sessions/{session_id}/answers", response_model=AnswerResponse, status_code=201)
async def record_answer(
    session_id: str,
    request: AnswerRequest,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session),
) -> AnswerResponse:
    try:
        answer = await study_service.record_answer(
            db,
            user_id,
            session_id,
            flashcard_id=request.flashcard_id,
            answer=request.answer,
            response_time_ms=request.response_time_ms,
            attempt_number=request.attempt_number,
        )
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail="Session not found") from exc
    return AnswerResponse.model_validate(answer)


@router.post("/sessions/{session_id}/complete", response_model=StudySessionResponse)
async def complete_session(
    session_id: str,
    request: StudySessionCompleteRequest,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session),
) -> StudySessionResponse:
    try:
        session = await study_service.complete_study_session(
            db, user_id, session_id, **request.model_dump()
        )
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail="Session not found") from exc
    return StudySessionResponse.model_validate(session)


@router.get("/decks/{deck_id}/sessions", response_model=list[StudySessionResponse])
async def list_deck_sessions(
    deck_id: str,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session),
) -> list[StudySessionResponse]:
    sessions = await study_service.get_deck_study_sessions(db, user_id, deck_id)
    return [StudySessionResponse.model_validate(s) for s in sessions]


@router.get("/streak", response_model=StreakResponse)
async def get_streak(
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session),
) -> StreakResponse:
    return StreakResponse(streak_days=await study_service.calculate_study_streak(db, user_id))


@router.get("/analytics", response_model=StudyAnalyticsResponse)
async def get_analytics(
    start: datetime | None = None,
    end: datetime | None = None,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session),
) -> StudyAnalyticsResponse:
    """Aggregate completed sessions, optionally bounded on start time."""
    a = await study_service.get_study_analytics(db, user_id, start=start, end=end)
    return StudyAnalyticsResponse(
        total_sessions=a.total_sessions,
        total_study_time=a.total_study_time,
        average_accuracy=a.average_accuracy,
        cards_studied=a.cards_studied,
        favorite_decks=[DeckSessionCountResponse.model_validate(d) for d in a.favorite_decks],
        study_streak=a.study_streak,
        recent_sessions=[StudySessionResponse.model_validate(s) for s in a.recent_sessions],
        performance_by_deck=[DeckPerformanceResponse.model_validate(d) for d in a.performance_by_deck],
    )


@router.get("/stats", response_model=StudyStatsResponse)
async def get_stats(
    period: Literal["week", "month", "year"] = "week",
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session),
) -> StudyStatsResponse:
    stats = await study_service.get_study_stats(db, user_id, period=period)
    return StudyStatsResponse.model_validate(stats)
