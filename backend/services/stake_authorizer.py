"""Stake authorization: eligibility checks, then debit and stake record as one unit."""
from decimal import Decimal
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from uuid import UUID
import logging

from backend.models.base import GameMode, TransactionKind
from backend.models.user import User
from backend.schemas.ledger import StakeDetails
from backend.services.ledger_service import LedgerService
from backend.utils.exceptions import (
    AccountSuspendedError,
    InsufficientBalanceError,
    InvalidEntryAmountError,
    InvalidSecretError,
    SecretNotSetError,
    UserNotFoundError,
)
from backend.utils.money import quantize, ZERO
from backend.utils.pins import verify_pin

logger = logging.getLogger(__name__)

ENTRY_DESCRIPTIONS = {
    GameMode.SOLO: "Solo Challenge Entry - {level_name}",
    GameMode.DUEL: "Duel Match Entry - {level_name}",
    GameMode.LEAGUE: "League Arena Entry - {level_name}",
}


class PinVerifier:
    """Checks a candidate transaction PIN against the user's stored bcrypt hash."""

    def is_set(self, user: User) -> bool:
        return bool(user.transaction_pin_hash)

    def verify(self, user: User, candidate: str | None) -> bool:
        return verify_pin(candidate, user.transaction_pin_hash)


class StakeAuthorizer:
    """Admits a user into a game by taking their stake.

    Checks run in a fixed order so the reported error is deterministic:
    user exists, not suspended, balance covers the stake, PIN set, PIN correct.
    The debit and the QUIZ_ENTRY record are added to the caller's session and
    only become durable when the caller commits together with the participant row.
    """

    def __init__(self, db: AsyncSession, pin_verifier: PinVerifier | None = None):
        self.db = db
        self.ledger = LedgerService(db)
        self.pin_verifier = pin_verifier or PinVerifier()

    async def authorize(
        self,
        user_id: UUID,
        entry_amount: Decimal,
        secret: str | None,
        mode: GameMode,
        game_id: UUID,
        level_id: UUID,
        level_name: str,
    ) -> Decimal:
        """Check eligibility and take the stake.

        Returns:
            The user's balance after the debit

        Raises:
            InvalidEntryAmountError, UserNotFoundError, AccountSuspendedError,
            InsufficientBalanceError, SecretNotSetError, InvalidSecretError
        """
        amount = quantize(entry_amount)
        if amount <= ZERO:
            raise InvalidEntryAmountError("Entry amount must be positive")

        result = await self.db.execute(
            select(User)
            .where(User.user_id == user_id)
            .execution_options(populate_existing=True)
        )
        user = result.scalar_one_or_none()
        if not user:
            raise UserNotFoundError(f"User not found: {user_id}")

        if user.is_suspended:
            raise AccountSuspendedError("Your account is suspended")

        if quantize(user.balance) < amount:
            raise InsufficientBalanceError(f"Insufficient balance: {quantize(user.balance)} < {amount}")

        if not self.pin_verifier.is_set(user):
            raise SecretNotSetError("Please set your transaction PIN first")

        if not self.pin_verifier.verify(user, secret):
            raise InvalidSecretError("Invalid transaction PIN")

        # Conditional decrement: re-checks the balance at write time
        new_balance = await self.ledger.debit(user_id, amount)

        mode = GameMode(mode)
        await self.ledger.record_transaction(
            user_id=user_id,
            kind=TransactionKind.QUIZ_ENTRY,
            amount=amount,
            description=ENTRY_DESCRIPTIONS[mode].format(level_name=level_name),
            reference_id=game_id,
            details=StakeDetails(
                game_id=game_id,
                mode=mode.value,
                level_id=level_id,
                level_name=level_name,
            ),
            balance_after=new_balance,
        )

        logger.info(f"Stake authorized: user={user_id}, game={game_id}, mode={mode.value}, amount={amount}")
        return new_balance
