"""Game participant model."""
from sqlalchemy import (
    Column,
    Integer,
    Numeric,
    Float,
    Boolean,
    DateTime,
    ForeignKey,
    JSON,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from datetime import datetime, UTC
from decimal import Decimal
import uuid

from backend.database import Base
from backend.models.base import get_uuid_column


class Participant(Base):
    """One player's membership and result in a game.

    ``completed_at`` is the idempotency guard: once set, the participant is never
    graded again. ``payout_credited_at`` marks the ledger credit as applied so an
    interrupted settlement can be resumed without paying twice.
    """
    __tablename__ = "quiz_participants"

    participant_id = get_uuid_column(primary_key=True, default=uuid.uuid4)
    game_id = get_uuid_column(
        ForeignKey("quiz_games.game_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id = get_uuid_column(
        ForeignKey("users.user_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    seat = Column(Integer, nullable=False)  # 1-based join order; seat 1 is the creator

    # Result
    score = Column(Integer, nullable=False, default=0)
    total_time_seconds = Column(Float, nullable=False, default=0.0)
    answers = Column(JSON, nullable=True)  # Graded answers, immutable once written
    completed_at = Column(DateTime(timezone=True), nullable=True)

    # Settlement
    rank = Column(Integer, nullable=True)
    is_winner = Column(Boolean, nullable=False, default=False)
    payout = Column(Numeric(14, 2), nullable=False, default=Decimal("0.00"))
    payout_credited_at = Column(DateTime(timezone=True), nullable=True)

    joined_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(UTC))

    __table_args__ = (
        UniqueConstraint("game_id", "user_id", name="uq_quiz_participants_game_user"),
        UniqueConstraint("game_id", "seat", name="uq_quiz_participants_game_seat"),
    )

    # Relationships
    game = relationship("Game", back_populates="participants")
    user = relationship("User", back_populates="participations")

    @property
    def is_completed(self) -> bool:
        return self.completed_at is not None

    def __repr__(self):
        return (f"<Participant(id={self.participant_id}, user_id={self.user_id}, game_id={self.game_id}, "
                f"seat={self.seat}, completed={self.is_completed})>")
