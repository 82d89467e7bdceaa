from datetime import datetime

from sqlalchemy import JSON, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backend.config import utcnow
from backend.models.base import Base, new_id


class StudySession(Base):
    """One timed run through a deck with running correct/incorrect counts."""

    __tablename__ = "study_sessions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    deck_id: Mapped[str] = mapped_column(ForeignKey("decks.id", ondelete="CASCADE"), nullable=False)
    started_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    total_cards: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    cards_studied: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    correct_answers: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    incorrect_answers: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    accuracy: Mapped[int] = mapped_column(Integer, nullable=False, default=0)  # percent, 0-100
    duration_seconds: Mapped[int | None] = mapped_column(Integer, nullable=True)
    study_mode: Mapped[str] = mapped_column(
        String(20), nullable=False, default="flashcards"
    )  # flashcards, quiz, match
    settings: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)

    deck: Mapped["Deck"] = relationship(back_populates="study_sessions")  # type: ignore[name-defined] # noqa: F821
    answers: Mapped[list["StudySessionAnswer"]] = relationship(  # type: ignore[name-defined] # noqa: F821
        back_populates="session",
        cascade="all, delete-orphan",
        order_by="StudySessionAnswer.answered_at",
    )
