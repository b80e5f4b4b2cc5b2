"""User notification model."""
import uuid
from datetime import datetime, UTC

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, String, Text

from backend.database import Base
from backend.models.base import get_uuid_column, NotificationSeverity


class Notification(Base):
    """In-app notification created for game outcomes."""
    __tablename__ = "notifications"

    notification_id = get_uuid_column(primary_key=True, default=uuid.uuid4)
    user_id = get_uuid_column(ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False)
    title = Column(String(120), nullable=False)
    message = Column(Text, nullable=False)
    severity = Column(String(10), nullable=False, default=NotificationSeverity.INFO.value)
    is_read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False)

    __table_args__ = (
        Index("ix_notifications_user_created", "user_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Notification(id={self.notification_id}, severity={self.severity}, user={self.user_id})>"
