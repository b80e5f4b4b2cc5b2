"""Base utilities and enumerations for SQLAlchemy models."""
from enum import Enum
import uuid
from sqlalchemy import Column, String
from sqlalchemy.dialects.postgresql import UUID as PGUUID
from sqlalchemy.sql import sqltypes


class GameMode(str, Enum):
    """Participation topology of a wagered game."""
    SOLO = "SOLO"
    DUEL = "DUEL"
    LEAGUE = "LEAGUE"


class GameStatus(str, Enum):
    """Game status enumeration. Transitions are monotonic."""
    WAITING = "WAITING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"


class SettlementStatus(str, Enum):
    """Settlement marker recorded on the game row."""
    NONE = "NONE"
    PENDING = "PENDING"
    SETTLED = "SETTLED"


class TransactionKind(str, Enum):
    """Ledger transaction kinds produced by the wagering engine."""
    QUIZ_ENTRY = "QUIZ_ENTRY"
    QUIZ_WINNING = "QUIZ_WINNING"


class NotificationSeverity(str, Enum):
    INFO = "INFO"
    SUCCESS = "SUCCESS"
    WARNING = "WARNING"
    ERROR = "ERROR"


class AdaptiveUUID(sqltypes.TypeDecorator):
    """UUID stored natively on PostgreSQL and as a 36-char string elsewhere."""

    impl = sqltypes.String
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "postgresql":
            return dialect.type_descriptor(PGUUID(as_uuid=True))
        return dialect.type_descriptor(String(36))

    @staticmethod
    def _coerce_uuid(value):
        if value is None or isinstance(value, uuid.UUID):
            return value
        return uuid.UUID(str(value))

    def process_bind_param(self, value, dialect):
        value = self._coerce_uuid(value)
        if value is None or dialect.name == "postgresql":
            return value
        return str(value)

    def process_result_value(self, value, dialect):
        return self._coerce_uuid(value)


def get_uuid_column(*args, **kwargs):
    """Get a UUID column that adapts to the database dialect.

    Args:
        *args: Positional arguments to pass to Column (e.g., ForeignKey)
        **kwargs: Keyword arguments to pass to Column (e.g., primary_key=True)

    Example:
        game_id = get_uuid_column(primary_key=True, default=uuid.uuid4)
        user_id = get_uuid_column(ForeignKey("users.user_id"), nullable=False)
    """
    return Column(AdaptiveUUID(), *args, **kwargs)
