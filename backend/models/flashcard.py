from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backend.models.base import Base, TimestampMixin, new_id


class Flashcard(Base, TimestampMixin):
    """A front/back pair, optionally attached to one deck."""

    __tablename__ = "flashcards"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    front: Mapped[str] = mapped_column(Text, nullable=False)
    back: Mapped[str] = mapped_column(Text, nullable=False)
    deck_id: Mapped[str | None] = mapped_column(
        ForeignKey("decks.id", ondelete="CASCADE"), nullable=True, index=True
    )  # None for unattached cards
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    is_starred: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    difficulty: Mapped[str | None] = mapped_column(String(10), nullable=True)  # easy, medium, hard
    last_reviewed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    deck: Mapped["Deck"] = relationship(back_populates="flashcards")  # type: ignore[name-defined] # noqa: F821
