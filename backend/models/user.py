"""User account model holding the wagering balance."""
from sqlalchemy import (
    Column,
    String,
    Numeric,
    DateTime,
    Boolean,
)
from sqlalchemy.orm import relationship
import uuid
from datetime import datetime, UTC
from decimal import Decimal

from backend.database import Base
from backend.models.base import get_uuid_column


class User(Base):
    """User account with balance and transaction PIN."""
    __tablename__ = "users"

    user_id = get_uuid_column(primary_key=True, default=uuid.uuid4)
    username = Column(String(80), unique=True, nullable=False)
    email = Column(String(255), unique=True, nullable=False)
    balance = Column(Numeric(14, 2), default=Decimal("0.00"), nullable=False)
    is_suspended = Column(Boolean, default=False, nullable=False)
    transaction_pin_hash = Column(String(255), nullable=True)  # bcrypt hash, None until the user sets a PIN
    created_at = Column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False
    )

    # Relationships
    transactions = relationship("LedgerTransaction", back_populates="user")
    participations = relationship("Participant", back_populates="user")

    def __repr__(self):
        return f"<User(user_id={self.user_id}, username={self.username}, balance={self.balance})>"
