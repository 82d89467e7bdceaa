"""Pydantic schemas for API request/response models."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

# --- Decks & flashcards ---


class DeckCreateRequest(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    description: str | None = None
    is_public: bool = False
    color: str | None = None


class DeckUpdateRequest(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    is_public: bool | None = None
    color: str | None = None


class DeckResponse(BaseModel):
    """A deck with its read-time flashcard count."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    description: str | None
    user_id: str
    is_public: bool
    color: str | None
    created_at: datetime
    updated_at: datetime
    flashcard_count: int = 0


class FlashcardCreateRequest(BaseModel):
    front: str = Field(min_length=1)
    back: str = Field(min_length=1)
    deck_id: str | None = None


class FlashcardUpdateRequest(BaseModel):
    front: str | None = Field(default=None, min_length=1)
    back: str | None = Field(default=None, min_length=1)
    is_starred: bool | None = None
    difficulty: Literal["easy", "medium", "hard"] | None = None


class FlashcardImportRequest(BaseModel):
    """Tab-separated ``front<TAB>back`` lines."""

    text: str


class FlashcardResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    front: str
    back: str
    deck_id: str | None
    user_id: str
    is_starred: bool
    difficulty: str | None
    created_at: datetime
    updated_at: datetime
    last_reviewed_at: datetime | None


# --- Search ---


class SearchResultResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    type: Literal["deck", "flashcard"]
    id: str
    title: str
    description: str | None = None
    deck_id: str | None = None
    deck_title: str | None = None
    match_type: Literal["title", "description", "front", "back"]
    relevance_score: int


class SearchResponse(BaseModel):
    results: list[SearchResultResponse]
    total: int
    has_more: bool


# --- Study sessions ---


class StudySettings(BaseModel):
    """Known study options; unknown keys are kept as-is."""

    model_config = ConfigDict(extra="allow", alias_generator=to_camel, populate_by_name=True)

    show_progress: bool | None = None
    auto_flip: bool | None = None
    shuffle_cards: bool | None = None
    study_starred_only: bool | None = None
    study_mode: Literal["flashcards", "quiz", "match"] | None = None
    time_limit: int | None = None  # seconds


class StudySessionStartRequest(BaseModel):
    deck_id: str
    total_cards: int = Field(ge=0)
    study_mode: str = "flashcards"
    settings: StudySettings | None = None


class AnswerRequest(BaseModel):
    flashcard_id: str
    answer: Literal["correct", "incorrect", "skipped"]
    response_time_ms: int | None = Field(default=None, ge=0)
    attempt_number: int | None = Field(default=None, ge=1)


class AnswerResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    session_id: str
    flashcard_id: str
    answer: str
    response_time_ms: int | None
    attempt_number: int | None
    answered_at: datetime


class StudySessionUpdateRequest(BaseModel):
    total_cards: int | None = Field(default=None, ge=0)
    cards_studied: int | None = Field(default=None, ge=0)
    correct_answers: int | None = Field(default=None, ge=0)
    incorrect_answers: int | None = Field(default=None, ge=0)
    accuracy: int | None = Field(default=None, ge=0, le=100)
    duration_seconds: int | None = Field(default=None, ge=0)
    completed_at: datetime | None = None
    study_mode: str | None = None
    settings: StudySettings | None = None


class StudySessionCompleteRequest(BaseModel):
    cards_studied: int = Field(ge=0)
    correct_answers: int = Field(ge=0)
    incorrect_answers: int = Field(ge=0)
    duration_seconds: int | None = Field(default=None, ge=0)


class StudySessionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    deck_id: str
    started_at: datetime
    completed_at: datetime | None
    total_cards: int
    cards_studied: int
    correct_answers: int
    incorrect_answers: int
    accuracy: int
    duration_seconds: int | None
    study_mode: str
    settings: dict


class StudySessionDetailResponse(StudySessionResponse):
    answers: list[AnswerResponse] = []


# --- Stats ---


class DeckSessionCountResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    deck_id: str
    deck_title: str
    session_count: int


class DeckPerformanceResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    deck_id: str
    deck_title: str
    accuracy: int
    sessions: int
    total_cards: int


class StudyAnalyticsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_sessions: int
    total_study_time: int
    average_accuracy: int
    cards_studied: int
    favorite_decks: list[DeckSessionCountResponse]
    study_streak: int
    recent_sessions: list[StudySessionResponse]
    performance_by_deck: list[DeckPerformanceResponse]


class StudyStatsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    sessions: int
    study_time: int
    accuracy: int
    cards_studied: int
    improvement: int


class StreakResponse(BaseModel):
    streak_days: int


class DashboardStatsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_decks: int
    total_flashcards: int
    study_streak: int
    total_study_time: int  # minutes


class DashboardResponse(BaseModel):
    decks: list[DeckResponse]
    unattached_flashcards: list[FlashcardResponse]
    recent_activity: list[StudySessionResponse]
    stats: DashboardStatsResponse
