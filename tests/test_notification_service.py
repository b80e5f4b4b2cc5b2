"""Tests for NotificationService and PIN helpers."""
import pytest
from sqlalchemy import select

from backend.models.base import NotificationSeverity
from backend.models.notification import Notification
from backend.services.notification_service import NotificationService
from backend.utils.pins import PinValidationError, hash_pin, verify_pin


class TestNotificationService:

    @pytest.mark.asyncio
    async def test_notify_and_notify_many(self, db_session, user_factory):
        user_id = (await user_factory()).user_id
        service = NotificationService(db_session)

        await service.notify(user_id, "First", "one")
        await service.notify_many([
            (user_id, "Second", "two", NotificationSeverity.SUCCESS),
            (user_id, "Third", "three", NotificationSeverity.WARNING),
        ])

        result = await db_session.execute(select(Notification).where(Notification.user_id == user_id))
        recent = result.scalars().all()
        assert {n.title for n in recent} == {"First", "Second", "Third"}
        assert {n.title: n.severity for n in recent}["Second"] == "SUCCESS"
        assert all(not n.is_read for n in recent)

    @pytest.mark.asyncio
    async def test_long_titles_are_truncated(self, db_session, user_factory):
        user_id = (await user_factory()).user_id

        notification = await NotificationService(db_session).notify(user_id, "x" * 300, "body")

        assert len(notification.title) == 120

    @pytest.mark.asyncio
    async def test_storage_failure_is_swallowed(self, db_session, user_factory):
        """A failed insert is rolled back and never raises."""
        user_id = (await user_factory()).user_id
        service = NotificationService(db_session)

        assert await service.notify_many([(user_id, "Broken", None, NotificationSeverity.INFO)]) == []
        assert await service.notify(user_id, "Fine", "still works") is not None

    @pytest.mark.asyncio
    async def test_nothing_to_send(self, db_session):
        assert await NotificationService(db_session).notify_many([]) == []


class TestPins:

    def test_hash_and_verify(self):
        pin_hash = hash_pin("4821", rounds=4)

        assert verify_pin("4821", pin_hash)
        assert not verify_pin("4822", pin_hash)
        assert not verify_pin(None, pin_hash)
        assert not verify_pin("", pin_hash)

    def test_malformed_hash_never_verifies(self):
        assert not verify_pin("4821", "not-a-bcrypt-hash")

    @pytest.mark.parametrize("pin", ["123", "1234567", "12a4", ""])
    def test_pin_format(self, pin):
        with pytest.raises(PinValidationError):
            hash_pin(pin, rounds=4)
