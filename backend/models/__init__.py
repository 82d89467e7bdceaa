"""SQLAlchemy ORM models for the Flashdeck database."""

from backend.models.base import Base
from backend.models.deck import Deck
from backend.models.flashcard import Flashcard
from backend.models.study_session import StudySession
from backend.models.study_session_answer import StudySessionAnswer

__all__ = ["Base", "Deck", "Flashcard", "StudySession", "StudySessionAnswer"]
