"""Wagered quiz game model."""
from sqlalchemy import (
    Column,
    String,
    Integer,
    Numeric,
    DateTime,
    ForeignKey,
    JSON,
    Index,
)
from sqlalchemy.orm import relationship
from datetime import datetime, UTC
from decimal import Decimal
import uuid

from backend.database import Base
from backend.models.base import get_uuid_column, GameStatus, SettlementStatus


class Game(Base):
    """One wagering session.

    Rows are never deleted; a COMPLETED game is the audit record of its settlement.
    Every UPDATE increments ``version`` and is conditioned on the version that was
    read, so two writers racing on the same game cannot both commit.
    """
    __tablename__ = "quiz_games"

    game_id = get_uuid_column(primary_key=True, default=uuid.uuid4)
    mode = Column(String(10), nullable=False, index=True)
    level_id = get_uuid_column(ForeignKey("quiz_levels.level_id"), nullable=False, index=True)
    entry_amount = Column(Numeric(14, 2), nullable=False)
    status = Column(String(20), nullable=False, default=GameStatus.WAITING.value)
    # Possible values: 'WAITING', 'IN_PROGRESS', 'COMPLETED'

    match_code = Column(String(6), unique=True, nullable=True)  # None for SOLO
    max_players = Column(Integer, nullable=False)
    question_ids = Column(JSON, nullable=False)  # Frozen ordered list of question id strings

    # Settlement audit fields
    platform_fee_taken = Column(Numeric(14, 2), nullable=True)
    prize_pool_distributed = Column(Numeric(14, 2), nullable=True)
    house_contribution = Column(Numeric(14, 2), nullable=False, default=Decimal("0.00"))
    settlement_status = Column(String(20), nullable=False, default=SettlementStatus.NONE.value)

    version = Column(Integer, nullable=False, default=1)

    # Timestamps
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(UTC))
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
    )
    started_at = Column(DateTime(timezone=True), nullable=True)
    ended_at = Column(DateTime(timezone=True), nullable=True)

    # Relationships
    level = relationship("QuizLevel")
    participants = relationship(
        "Participant",
        back_populates="game",
        order_by="Participant.seat",
    )

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        Index("ix_quiz_games_settlement_status", "settlement_status"),
    )

    @property
    def total_questions(self) -> int:
        return len(self.question_ids or [])

    def __repr__(self):
        return (f"<Game(id={self.game_id}, mode={self.mode}, status={self.status}, "
                f"settlement={self.settlement_status}, version={self.version})>")
