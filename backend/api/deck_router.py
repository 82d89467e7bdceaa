"""API routes for decks and flashcards."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Response
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from backend.api.schemas import (
    DeckCreateRequest,
    DeckResponse,
    DeckUpdateRequest,
    FlashcardCreateRequest,
    FlashcardImportRequest,
    FlashcardResponse,
    FlashcardUpdateRequest,
)
from backend.auth import get_current_user_id, get_optional_user_id
from backend.database import get_session
from backend.exceptions import NotFoundError
from backend.services import deck_service
from backend.services.deck_service import DeckWithCount

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/decks", tags=["decks"])
flashcard_router = APIRouter(prefix="/api/flashcards", tags=["flashcards"])


def _patch(request: BaseModel, nullable: set[str]) -> dict:
    """Return the fields the client sent, dropping nulls for required columns."""
    data = request.model_dump(exclude_unset=True)
    return {k: v for k, v in data.items() if v is not None or k in nullable}


def deck_response(item: DeckWithCount) -> DeckResponse:
    """Build a DeckResponse from a deck and its count."""
    return DeckResponse.model_validate(item.deck).model_copy(
        update={"flashcard_count": item.flashcard_count}
    )


@router.get("", response_model=list[DeckResponse])
async def list_decks(
    owner_id: str | None = None,
    user_id: str | None = Depends(get_optional_user_id),
    db: AsyncSession = Depends(get_session),
) -> list[DeckResponse]:
    """List the caller's decks, or another user's when ``owner_id`` is given."""
    if owner_id is None and user_id is None:
        raise HTTPException(status_code=401, detail="User not authenticated")
    decks = await deck_service.get_user_decks(db, user_id, owner_id=owner_id)
    return [deck_response(d) for d in decks]


@router.post("", response_model=DeckResponse, status_code=201)
async def create_deck(
    request: DeckCreateRequest,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session),
) -> DeckResponse:
    deck = await deck_service.create_deck(db, user_id, **request.model_dump())
    return deck_response(DeckWithCount(deck=deck, flashcard_count=0))


@router.get("/{deck_id}", response_model=DeckResponse)
async def get_deck(
    deck_id: str,
    user_id: str | None = Depends(get_optional_user_id),
    db: AsyncSession = Depends(get_session),
) -> DeckResponse:
    """Get an owned or public deck."""
    item = await deck_service.get_deck_by_id(db, user_id, deck_id)
    if item is None:
        raise HTTPException(status_code=404, detail="Deck not found")
    return deck_response(item)


@router.patch("/{deck_id}", response_model=DeckResponse)
async def update_deck(
    deck_id: str,
    request: DeckUpdateRequest,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session),
) -> DeckResponse:
    try:
        await deck_service.update_deck(
            db, user_id, deck_id, _patch(request, nullable={"description", "color"})
        )
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail="Deck not found") from exc

    item = await deck_service.get_deck_by_id(db, user_id, deck_id)
    return deck_response(item)


@router.delete("/{deck_id}", status_code=204)
async def delete_deck(
    deck_id: str,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session),
) -> Response:
    try:
        await deck_service.delete_deck(db, user_id, deck_id)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail="Deck not found") from exc
    return Response(status_code=204)


@router.get("/{deck_id}/flashcards", response_model=list[FlashcardResponse])
async def list_deck_flashcards(
    deck_id: str,
    user_id: str | None = Depends(get_optional_user_id),
    db: AsyncSession = Depends(get_session),
) -> list[FlashcardResponse]:
    cards = await deck_service.get_deck_flashcards(db, user_id, deck_id)
    return [FlashcardResponse.model_validate(c) for c in cards]


@router.post("/{deck_id}/flashcards", response_model=FlashcardResponse, status_code=201)
async def add_flashcard(
    deck_id: str,
    request: FlashcardCreateRequest,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session),
) -> FlashcardResponse:
    try:
        card = await deck_service.add_flashcard_to_deck(
            db, user_id, deck_id, request.front, request.back
        )
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail="Deck not found") from exc
    return FlashcardResponse.model_validate(card)


@router.post("/{deck_id}/import", response_model=list[FlashcardResponse], status_code=201)
async def import_flashcards(
    deck_id: str,
    request: FlashcardImportRequest,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session),
) -> list[FlashcardResponse]:
    """Import tab-separated cards into a deck."""
    cards = deck_service.parse_flashcard_import(request.text)
    if not cards:
        raise HTTPException(status_code=400, detail="No flashcards found in import text")
    try:
        created = await deck_service.import_flashcards(db, user_id, deck_id, cards)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail="Deck not found") from exc
    return [FlashcardResponse.model_validate(c) for c in created]


# --- Flashcards ---


@flashcard_router.post("", response_model=FlashcardResponse, status_code=201)
async def create_flashcard(
    request: FlashcardCreateRequest,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session),
) -> FlashcardResponse:
    """Create a flashcard, attached to a deck only if ``deck_id`` is set."""
    try:
        card = await deck_service.create_flashcard(
            db, user_id, request.front, request.back, deck_id=request.deck_id
        )
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail="Deck not found") from exc
    return FlashcardResponse.model_validate(card)


@flashcard_router.get("/unattached", response_model=list[FlashcardResponse])
async def list_unattached_flashcards(
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session),
) -> list[FlashcardResponse]:
    cards = await deck_service.get_unattached_flashcards(db, user_id)
    return [FlashcardResponse.model_validate(c) for c in cards]


@flashcard_router.patch("/{flashcard_id}", response_model=FlashcardResponse)
async def update_flashcard(
    flashcard_id: str,
    request: FlashcardUpdateRequest,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session),
) -> FlashcardResponse:
    try:
        card = await deck_service.update_flashcard(
            db, user_id, flashcard_id, _patch(request, nullable={"difficulty"})
        )
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail="Flashcard not found") from exc
    return FlashcardResponse.model_validate(card)


@flashcard_router.delete("/{flashcard_id}", status_code=204)
async def delete_flashcard(
    flashcard_id: str,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session),
) -> Response:
    try:
        await deck_service.delete_flashcard(db, user_id, flashcard_id)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail="Flashcard not found") from exc
    return Response(status_code=204)
