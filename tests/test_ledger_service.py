"""
Tests for LedgerService - atomic balance updates and transaction records.
"""

import asyncio
from decimal import Decimal
import uuid

import pytest
from sqlalchemy import select

from backend.models.base import TransactionKind
from backend.models.transaction import LedgerTransaction
from backend.schemas.ledger import StakeDetails, WinningDetails
from backend.services.ledger_service import LedgerService
from backend.utils.exceptions import InsufficientBalanceError, UserNotFoundError


class TestBalanceUpdates:
    """Debits and credits."""

    @pytest.mark.asyncio
    async def test_debit_decreases_balance(self, db_session, user_factory):
        """Should decrement the balance and return the new value."""
        user = await user_factory(balance="500.00")
        ledger = LedgerService(db_session)

        new_balance = await ledger.debit(user.user_id, Decimal("120.50"))
        await db_session.commit()

        assert new_balance == Decimal("379.50")
        assert await ledger.get_balance(user.user_id) == Decimal("379.50")

    @pytest.mark.asyncio
    async def test_debit_of_whole_balance_is_allowed(self, db_session, user_factory):
        """Should allow a debit that leaves exactly zero."""
        user = await user_factory(balance="75.00")
        ledger = LedgerService(db_session)

        assert await ledger.debit(user.user_id, Decimal("75.00")) == Decimal("0.00")
        await db_session.commit()

    @pytest.mark.asyncio
    async def test_overdraft_is_refused(self, db_session, user_factory):
        """Should refuse a debit above the balance and leave it unchanged."""
        user = await user_factory(balance="50.00")
        user_id = user.user_id
        ledger = LedgerService(db_session)

        with pytest.raises(InsufficientBalanceError):
            await ledger.debit(user_id, Decimal("50.01"))
        await db_session.rollback()

        assert await ledger.get_balance(user_id) == Decimal("50.00")

    @pytest.mark.asyncio
    async def test_credit_increases_balance(self, db_session, user_factory):
        """Should increment the balance."""
        user = await user_factory(balance="10.00")
        ledger = LedgerService(db_session)

        assert await ledger.credit(user.user_id, Decimal("0.05")) == Decimal("10.05")
        await db_session.commit()

    @pytest.mark.asyncio
    async def test_non_positive_amounts_rejected(self, db_session, user_factory):
        """Should reject zero and negative movements."""
        user = await user_factory()
        ledger = LedgerService(db_session)

        with pytest.raises(ValueError):
            await ledger.debit(user.user_id, Decimal("0"))
        with pytest.raises(ValueError):
            await ledger.credit(user.user_id, Decimal("-1"))

    @pytest.mark.asyncio
    async def test_unknown_user(self, db_session):
        """Should raise UserNotFoundError for a missing user."""
        ledger = LedgerService(db_session)

        with pytest.raises(UserNotFoundError):
            await ledger.get_balance(uuid.uuid4())
        with pytest.raises(UserNotFoundError):
            await ledger.credit(uuid.uuid4(), Decimal("1.00"))
        await db_session.rollback()

    @pytest.mark.asyncio
    async def test_concurrent_debits_never_overdraw(self, session_factory, user_factory):
        """Racing debits against one balance should succeed only while it covers them."""
        user = await user_factory(balance="300.00")

        async def attempt():
            async with session_factory() as session:
                try:
                    await LedgerService(session).debit(user.user_id, Decimal("100.00"))
                    await session.commit()
                    return True
                except InsufficientBalanceError:
                    await session.rollback()
                    return False

        results = await asyncio.gather(*(attempt() for _ in range(5)))

        assert list(results).count(True) == 3
        async with session_factory() as session:
            assert await LedgerService(session).get_balance(user.user_id) == Decimal("0.00")


class TestTransactionRecords:
    """Append-only transaction records."""

    @pytest.mark.asyncio
    async def test_record_transaction_with_details(self, db_session, user_factory):
        """Should store kind, amount, reference and JSON details."""
        user = await user_factory()
        ledger = LedgerService(db_session)
        game_id = uuid.uuid4()

        await ledger.record_transaction(
            user_id=user.user_id,
            kind=TransactionKind.QUIZ_ENTRY,
            amount=Decimal("25"),
            description="Solo Challenge Entry - Basics",
            reference_id=game_id,
            details=StakeDetails(game_id=game_id, mode="SOLO", level_id=uuid.uuid4(), level_name="Basics"),
            balance_after=Decimal("975.00"),
        )
        await db_session.commit()

        result = await db_session.execute(
            select(LedgerTransaction).where(LedgerTransaction.user_id == user.user_id)
        )
        record = result.scalar_one()
        assert record.kind == "QUIZ_ENTRY"
        assert record.amount == Decimal("25.00")
        assert record.reference_id == game_id
        assert record.details["level_name"] == "Basics"
        assert record.details["game_id"] == str(game_id)
        assert record.balance_after == Decimal("975.00")

    @pytest.mark.asyncio
    async def test_mismatched_details_rejected(self, db_session, user_factory):
        """Should refuse winning details on an entry record."""
        user = await user_factory()
        ledger = LedgerService(db_session)

        with pytest.raises(ValueError):
            await ledger.record_transaction(
                user_id=user.user_id,
                kind=TransactionKind.QUIZ_ENTRY,
                amount=Decimal("1"),
                description="bad",
                details=WinningDetails(game_id=uuid.uuid4(), mode="SOLO", rank=1, score=1, total_questions=1),
            )
