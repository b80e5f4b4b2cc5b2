"""Ledger transaction model."""
from sqlalchemy import (
    Column,
    String,
    Numeric,
    DateTime,
    ForeignKey,
    Index,
    JSON,
)
from sqlalchemy.orm import relationship
import uuid
from datetime import datetime, UTC

from backend.database import Base
from backend.models.base import get_uuid_column


class LedgerTransaction(Base):
    """Append-only ledger record for stakes and winnings."""
    __tablename__ = "ledger_transactions"

    transaction_id = get_uuid_column(primary_key=True, default=uuid.uuid4)
    user_id = get_uuid_column(ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False, index=True)
    kind = Column(String(30), nullable=False, index=True)
    amount = Column(Numeric(14, 2), nullable=False)  # Magnitude; direction follows from kind
    status = Column(String(20), nullable=False, default="SUCCESS")
    description = Column(String(255), nullable=False)
    reference_id = get_uuid_column(nullable=True, index=True)  # game_id
    details = Column(JSON, nullable=True)  # Validated per kind by backend.schemas.ledger
    balance_after = Column(Numeric(14, 2), nullable=True)  # For audit trail
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False, index=True)

    # Relationships
    user = relationship("User", back_populates="transactions")

    __table_args__ = (
        Index("ix_ledger_transactions_user_created", "user_id", "created_at"),
    )

    def __repr__(self):
        return (f"<LedgerTransaction(transaction_id={self.transaction_id}, amount={self.amount}, "
                f"kind={self.kind})>")
