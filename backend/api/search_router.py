"""API routes for searching decks and flashcards."""

import logging
from datetime import datetime
from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from backend.api.schemas import SearchResponse, SearchResultResponse
from backend.auth import get_optional_user_id
from backend.config import settings
from backend.database import get_session
from backend.exceptions import AuthenticationRequired, SearchError
from backend.services.search_service import (
    SearchFilters,
    SearchOptions,
    SortBy,
    SortOrder,
    get_search_suggestions,
    search,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/search", tags=["search"])


@router.get("", response_model=SearchResponse)
async def search_all(
    q: str = "",
    type: Literal["deck", "flashcard", "all"] = "all",
    deck_ids: list[str] | None = Query(default=None),
    include_starred: bool | None = None,
    date_from: datetime | None = None,
    date_to: datetime | None = None,
    sort_by: Literal["relevance", "date", "alphabetical"] = "relevance",
    sort_order: Literal["asc", "desc"] = "desc",
    limit: int = Query(default=settings.search_default_limit, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    user_id: str | None = Depends(get_optional_user_id),
    db: AsyncSession = Depends(get_session),
) -> SearchResponse:
    """Search the caller's decks and flashcards."""
    options = SearchOptions(
        limit=limit,
        offset=offset,
        filters=SearchFilters(
            type=type,
            deck_ids=deck_ids,
            include_starred=include_starred,
            date_from=date_from,
            date_to=date_to,
        ),
        sort_by=SortBy(sort_by),
        sort_order=SortOrder(sort_order),
    )
    try:
        page = await search(db, user_id, q, options)
    except AuthenticationRequired as exc:
        raise HTTPException(status_code=401, detail=str(exc)) from exc
    except SearchError as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc

    return SearchResponse(
        results=[SearchResultResponse.model_validate(r) for r in page.results],
        total=page.total,
        has_more=page.has_more,
    )


@router.get("/suggestions", response_model=list[str])
async def search_suggestions(
    q: str = "",
    limit: int = Query(default=settings.suggestion_limit, ge=1, le=20),
    user_id: str | None = Depends(get_optional_user_id),
    db: AsyncSession = Depends(get_session),
) -> list[str]:
    """Suggest deck titles and flashcard fronts for a partial query."""
    return await get_search_suggestions(db, user_id, q, limit=limit)
