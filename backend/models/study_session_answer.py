from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backend.config import utcnow
from backend.models.base import Base, new_id


class StudySessionAnswer(Base):
    __tablename__ = "study_session_answers"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    session_id: Mapped[str] = mapped_column(
        ForeignKey("study_sessions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    flashcard_id: Mapped[str] = mapped_column(String(36), nullable=False)
    answer: Mapped[str] = mapped_column(String(10), nullable=False)  # correct, incorrect, skipped
    response_time_ms: Mapped[int | None] = mapped_column(Integer, nullable=True)
    attempt_number: Mapped[int | None] = mapped_column(Integer, nullable=True)
    answered_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)

    session: Mapped["StudySession"] = relationship(back_populates="answers")  # type: ignore[name-defined] # noqa: F821
