"""Ledger service for atomic balance updates and transaction records."""
from decimal import Decimal
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update
from uuid import UUID
import uuid
import logging

from backend.models.base import TransactionKind
from backend.models.transaction import LedgerTransaction
from backend.models.user import User
from backend.schemas.ledger import TransactionDetails
from backend.utils.exceptions import InsufficientBalanceError, UserNotFoundError
from backend.utils.money import quantize, ZERO

logger = logging.getLogger(__name__)


class LedgerService:
    """Balance store operations.

    Each call is atomic on its own: the debit is a single conditional UPDATE and the
    credit a single relative UPDATE, so concurrent stakes and settlements touching the
    same user can never lose an update or overdraw. Nothing here commits unless asked;
    the caller owns the transaction so a debit and the rows that depend on it commit
    together.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_balance(self, user_id: UUID) -> Decimal:
        result = await self.db.execute(
            select(User.balance)
            .where(User.user_id == user_id)
            .execution_options(populate_existing=True)
        )
        balance = result.scalar_one_or_none()
        if balance is None:
            raise UserNotFoundError(f"User not found: {user_id}")
        return quantize(balance)

    async def debit(self, user_id: UUID, amount: Decimal) -> Decimal:
        """Decrement a balance only if it covers ``amount``.

        Returns:
            The balance after the debit

        Raises:
            InsufficientBalanceError: If the balance at write time is below amount
        """
        amount = quantize(amount)
        if amount <= ZERO:
            raise ValueError(f"Debit amount must be positive, got {amount}")

        result = await self.db.execute(
            update(User)
            .where(User.user_id == user_id, User.balance >= amount)
            .values(balance=User.balance - amount)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            # Distinguish a missing user from an overdraft
            balance = await self.get_balance(user_id)
            raise InsufficientBalanceError(
                f"Insufficient balance: {balance} < {amount}"
            )

        new_balance = await self.get_balance(user_id)
        logger.info(f"Ledger debit: user={user_id}, amount={amount}, new_balance={new_balance}")
        return new_balance

    async def credit(self, user_id: UUID, amount: Decimal) -> Decimal:
        """Increment a balance. Returns the balance after the credit."""
        amount = quantize(amount)
        if amount <= ZERO:
            raise ValueError(f"Credit amount must be positive, got {amount}")

        result = await self.db.execute(
            update(User)
            .where(User.user_id == user_id)
            .values(balance=User.balance + amount)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise UserNotFoundError(f"User not found: {user_id}")

        new_balance = await self.get_balance(user_id)
        logger.info(f"Ledger credit: user={user_id}, amount={amount}, new_balance={new_balance}")
        return new_balance

    async def record_transaction(
        self,
        user_id: UUID,
        kind: TransactionKind,
        amount: Decimal,
        description: str,
        reference_id: UUID | None = None,
        details: TransactionDetails | None = None,
        balance_after: Decimal | None = None,
    ) -> LedgerTransaction:
        """Append a transaction record.

        Args:
            user_id: Owner of the record
            kind: Transaction kind
            amount: Positive magnitude of the movement
            description: Human readable description shown in statements
            reference_id: Game the movement belongs to
            details: Typed audit context matching ``kind``
            balance_after: Balance after the movement, for the audit trail

        The record is only added to the session; the caller commits.
        """
        if details is not None and details.kind != kind.value:
            raise ValueError(f"Audit details of kind {details.kind} cannot be attached to {kind.value}")

        transaction = LedgerTransaction(
            transaction_id=uuid.uuid4(),
            user_id=user_id,
            kind=kind.value,
            amount=quantize(amount),
            status="SUCCESS",
            description=description,
            reference_id=reference_id,
            details=details.model_dump(mode="json") if details is not None else None,
            balance_after=balance_after,
        )
        self.db.add(transaction)

        logger.info(
            f"Ledger transaction recorded: user={user_id}, kind={kind.value}, amount={amount}, "
            f"reference={reference_id}"
        )
        return transaction
