"""API route for the dashboard summary."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from backend.api.deck_router import deck_response
from backend.api.schemas import (
    DashboardResponse,
    DashboardStatsResponse,
    FlashcardResponse,
    StudySessionResponse,
)
from backend.auth import get_current_user_id
from backend.database import get_session
from backend.services.dashboard_service import get_dashboard_data

router = APIRouter(prefix="/api/dashboard", tags=["dashboard"])


@router.get("", response_model=DashboardResponse)
async def get_dashboard(
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session),
) -> DashboardResponse:
    data = await get_dashboard_data(db, user_id)
    return DashboardResponse(
        decks=[deck_response(d) for d in data.decks],
        unattached_flashcards=[FlashcardResponse.model_validate(c) for c in data.unattached_flashcards],
        recent_activity=[StudySessionResponse.model_validate(s) for s in data.recent_activity],
        stats=DashboardStatsResponse.model_validate(data.stats),
    )
