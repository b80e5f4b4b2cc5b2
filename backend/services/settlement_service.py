"""Settlement coordinator: serialized submissions and exactly-once payouts.

A submission is graded outside the game's critical section and recorded inside it.
The submission that completes the last pending participant settles the game in two
durable steps:

1. Results: ranks, winner flags, payouts, fee and pool are committed together with
   ``settlement_status = PENDING``.
2. Credits: each participant's ledger credit, its QUIZ_WINNING record and
   ``payout_credited_at`` are committed together, one participant at a time. When
   all are applied the game becomes COMPLETED / SETTLED.

A crash between or during the steps leaves the game PENDING;
``resume_pending_settlements`` finishes it without paying anyone twice.
"""
from dataclasses import dataclass, field
from datetime import datetime, UTC
from decimal import Decimal
from typing import Optional, Sequence
from uuid import UUID
import logging

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from backend.config import get_settings
from backend.models.base import (
    GameMode,
    GameStatus,
    NotificationSeverity,
    SettlementStatus,
    TransactionKind,
)
from backend.models.game import Game
from backend.models.participant import Participant
from backend.schemas.ledger import WinningDetails
from backend.services.game_guard import run_serialized
from backend.services.grader import GradeResult, SubmittedAnswer, grade
from backend.services.ledger_service import LedgerService
from backend.services.notification_service import NotificationService
from backend.services.payout_engine import ParticipantResult, PayoutEngine, PayoutPlan
from backend.services.question_pool import QuestionPool
from backend.utils.exceptions import (
    AlreadySubmittedError,
    GameModeMismatchError,
    GameNotFoundError,
    GameNotInProgressError,
    NotAParticipantError,
    SettlementBusyError,
)
from backend.utils.money import quantize, ZERO

logger = logging.getLogger(__name__)


@dataclass
class SubmissionOutcome:
    game_id: UUID
    score: int
    total_questions: int
    game_complete: bool
    submitted: bool = True
    is_perfect: Optional[bool] = None
    payout: Optional[Decimal] = None
    rank: Optional[int] = None
    is_winner: Optional[bool] = None
    entry_amount: Optional[Decimal] = None
    graded_answers: Optional[list[dict]] = None
    message: str = ""


@dataclass
class _RecordResult:
    game_complete: bool
    plan: Optional[PayoutPlan] = None
    entry_amount: Decimal = ZERO
    total_questions: int = 0
    mode: str = GameMode.SOLO.value


@dataclass
class SettlementReport:
    """Summary of one settlement run, used for notifications and logging."""
    game_id: UUID
    mode: str
    credited: list[tuple[UUID, Decimal, int]] = field(default_factory=list)  # (user_id, payout, rank)
    already_settled: bool = False


def _format_amount(amount: Decimal) -> str:
    settings = get_settings()
    return f"{settings.currency_symbol}{quantize(amount):,.2f}"


def _winning_description(mode: str, rank: int, score: int, total_questions: int, tied: bool) -> str:
    if mode == GameMode.SOLO.value:
        return f"Solo Challenge Win - {score}/{total_questions}"
    if mode == GameMode.DUEL.value:
        return "Duel Match Tie - Split Payout" if tied else f"Duel Match Win - Score: {score}"
    suffix = " (Tie)" if tied else ""
    return f"League Arena - Rank #{rank}{suffix}"


def _completion_message(mode: str, game_complete: bool, is_perfect: bool) -> str:
    if mode == GameMode.SOLO.value:
        if is_perfect:
            return "Congratulations! Your skill paid off. Your earnings have been credited to your wallet."
        return "Good effort! Keep practicing and try again."
    if mode == GameMode.DUEL.value:
        return "Match complete! Check your results." if game_complete else "Answers submitted. Waiting for opponent."
    return "League complete! Check results." if game_complete else "Submitted! Waiting for other players."


class SettlementCoordinator:
    """Records submissions and settles games exactly once."""

    def __init__(
        self,
        db: AsyncSession,
        payout_engine: PayoutEngine | None = None,
        notification_service: NotificationService | None = None,
    ):
        self.db = db
        self.settings = get_settings()
        self.question_pool = QuestionPool(db)
        self.ledger = LedgerService(db)
        self.payout_engine = payout_engine or PayoutEngine.from_settings(self.settings)
        self.notification_service = notification_service or NotificationService(db)

    async def _load_game(self, game_id: UUID, lock_row: bool = False) -> Optional[Game]:
        stmt = (
            select(Game)
            .where(Game.game_id == game_id)
            .options(selectinload(Game.participants))
            .execution_options(populate_existing=True)
        )
        if lock_row:
            stmt = stmt.with_for_update()
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    def _check_submittable(
        game: Optional[Game],
        game_id: UUID,
        user_id: UUID,
        expected_mode: GameMode,
    ) -> Participant:
        if not game:
            raise GameNotFoundError(f"Game {game_id} not found")
        if game.mode != expected_mode.value:
            raise GameModeMismatchError(f"Not a {expected_mode.value.lower()} game")
        participant = next((p for p in game.participants if p.user_id == user_id), None)
        # A repeat of a recorded submit stays a duplicate after the game closes
        if participant and participant.is_completed:
            raise AlreadySubmittedError("Already submitted")
        if game.status != GameStatus.IN_PROGRESS.value:
            raise GameNotInProgressError("Game is not in progress")
        if not participant:
            raise NotAParticipantError("You are not in this game")
        return participant

    async def submit(
        self,
        game_id: UUID,
        user_id: UUID,
        answers: Sequence[SubmittedAnswer],
        total_time: float | None,
        expected_mode: GameMode,
    ) -> SubmissionOutcome:
        """Grade and record a participant's answers, settling the game if they were last.

        Raises:
            GameNotFoundError, GameModeMismatchError, GameNotInProgressError,
            NotAParticipantError, AlreadySubmittedError, SettlementBusyError
        """
        expected_mode = GameMode(expected_mode)

        # Cheap rejection before grading and before queueing on the lock
        game = await self._load_game(game_id)
        self._check_submittable(game, game_id, user_id, expected_mode)

        questions = await self.question_pool.get_questions(game.question_ids)
        result = grade(questions, answers)
        total_time_seconds = max(0.0, float(total_time or 0.0))

        async def _record() -> _RecordResult:
            locked_game = await self._load_game(game_id, lock_row=True)
            participant = self._check_submittable(locked_game, game_id, user_id, expected_mode)
            return await self._record_submission(locked_game, participant, result, total_time_seconds)

        recorded = await run_serialized(self.db, game_id, "submit", _record)

        if recorded.game_complete:
            try:
                report = await self._settle(game_id)
            except SettlementBusyError as e:
                # Results are final; the maintenance sweep applies the remaining credits
                logger.warning(f"Credits for game {game_id} deferred to maintenance: {e}")
            except Exception as e:
                logger.error(f"Credits for game {game_id} failed, deferred to maintenance: {e}", exc_info=True)
            else:
                if not report.already_settled:
                    await self._notify_outcome(game_id)

        return self._build_outcome(game_id, user_id, recorded, result)

    async def _record_submission(
        self,
        game: Game,
        participant: Participant,
        result: GradeResult,
        total_time_seconds: float,
    ) -> _RecordResult:
        """Persist the result and, if nobody is pending, commit the settlement plan."""
        now = datetime.now(UTC)
        participant.score = result.score
        participant.total_time_seconds = total_time_seconds
        participant.answers = [a.to_dict() for a in result.graded_answers]
        participant.completed_at = now
        # Touch the game row so the version check fences concurrent submitters
        game.updated_at = now

        pending = [p for p in game.participants if not p.is_completed]
        recorded = _RecordResult(
            game_complete=not pending,
            entry_amount=quantize(game.entry_amount),
            total_questions=game.total_questions,
            mode=game.mode,
        )

        if pending:
            await self.db.commit()
            logger.info(
                f"Recorded submission for user {participant.user_id} in game {game.game_id}: "
                f"score={result.score}/{game.total_questions}, {len(pending)} still pending"
            )
            return recorded

        plan = self.payout_engine.compute(
            mode=GameMode(game.mode),
            entry_amount=game.entry_amount,
            results=[
                ParticipantResult(
                    user_id=p.user_id,
                    score=p.score,
                    total_time_seconds=p.total_time_seconds,
                    seat=p.seat,
                )
                for p in game.participants
            ],
            total_questions=game.total_questions,
        )
        for p in game.participants:
            allocation = plan.allocation_for(p.user_id)
            p.rank = allocation.rank
            p.is_winner = allocation.is_winner
            p.payout = allocation.payout

        game.platform_fee_taken = plan.platform_fee
        game.prize_pool_distributed = plan.prize_pool
        game.house_contribution = plan.house_contribution
        game.settlement_status = SettlementStatus.PENDING.value
        await self.db.commit()

        logger.info(
            f"Settlement plan committed for game {game.game_id} ({game.mode}): "
            f"collected={plan.total_collected}, fee={plan.platform_fee}, pool={plan.prize_pool}, "
            f"house={plan.house_contribution}"
        )
        recorded.plan = plan
        return recorded

    async def _settle(self, game_id: UUID) -> SettlementReport:
        """Apply outstanding credits of a PENDING game and close it. Idempotent."""

        async def _apply() -> SettlementReport:
            game = await self._load_game(game_id, lock_row=True)
            if not game:
                raise GameNotFoundError(f"Game {game_id} not found")

            report = SettlementReport(game_id=game_id, mode=game.mode)
            if game.settlement_status != SettlementStatus.PENDING.value:
                report.already_settled = True
                return report

            ranked = sorted(game.participants, key=lambda p: (p.rank or 0, p.seat))
            tie_sizes: dict[int, int] = {}
            for p in ranked:
                tie_sizes[p.rank] = tie_sizes.get(p.rank, 0) + 1

            for p in ranked:
                if p.payout_credited_at is not None:
                    continue
                credited = await self._credit_participant(game, p, tie_sizes.get(p.rank, 1))
                if credited is not None:
                    report.credited.append((p.user_id, credited, p.rank))

            now = datetime.now(UTC)
            game.status = GameStatus.COMPLETED.value
            game.settlement_status = SettlementStatus.SETTLED.value
            game.ended_at = now
            await self.db.commit()

            logger.info(
                f"Game {game_id} settled: {len(report.credited)} credit(s) applied, "
                f"total={sum((c[1] for c in report.credited), ZERO)}"
            )
            return report

        return await run_serialized(self.db, game_id, "settle", _apply)

    async def _credit_participant(self, game: Game, p: Participant, group_size: int) -> Optional[Decimal]:
        """Claim and pay one participant's payout in a single commit.

        The claim is a conditional UPDATE on ``payout_credited_at``, so a participant
        already paid by another settler is skipped even when this session's row is stale.

        Returns:
            The amount credited, or None if nothing was paid by this call
        """
        claimed = await self.db.execute(
            update(Participant)
            .where(
                Participant.participant_id == p.participant_id,
                Participant.payout_credited_at.is_(None),
            )
            .values(payout_credited_at=datetime.now(UTC))
        )
        if claimed.rowcount != 1:
            logger.warning(
                f"Payout for user {p.user_id} in game {game.game_id} already claimed by another settler"
            )
            return None

        payout = quantize(p.payout)
        if payout > ZERO:
            balance_after = await self.ledger.credit(p.user_id, payout)
            await self.ledger.record_transaction(
                user_id=p.user_id,
                kind=TransactionKind.QUIZ_WINNING,
                amount=payout,
                description=_winning_description(
                    game.mode, p.rank, p.score, game.total_questions, group_size > 1
                ),
                reference_id=game.game_id,
                details=WinningDetails(
                    game_id=game.game_id,
                    mode=game.mode,
                    rank=p.rank,
                    score=p.score,
                    total_questions=game.total_questions,
                    tied=group_size > 1,
                    tie_group_size=group_size if group_size > 1 else None,
                ),
                balance_after=balance_after,
            )
        await self.db.commit()
        return payout if payout > ZERO else None

    async def resume_pending_settlements(self, limit: int = 100) -> int:
        """Finish settlements left PENDING by an interrupted run.

        Returns:
            Number of games closed by this call
        """
        result = await self.db.execute(
            select(Game.game_id)
            .where(Game.settlement_status == SettlementStatus.PENDING.value)
            .order_by(Game.updated_at)
            .limit(limit)
        )
        game_ids = list(result.scalars().all())
        if not game_ids:
            return 0

        logger.info(f"Resuming {len(game_ids)} pending settlement(s)")
        resumed = 0
        for game_id in game_ids:
            try:
                report = await self._settle(game_id)
            except SettlementBusyError as e:
                logger.warning(f"Pending settlement for game {game_id} still busy, will retry: {e}")
                continue
            if not report.already_settled:
                resumed += 1
                await self._notify_outcome(game_id)
        return resumed

    async def _notify_outcome(self, game_id: UUID) -> None:
        """Send result notifications for a settled game. Never raises."""
        try:
            game = await self._load_game(game_id)
            items = [self._notification_for(game, p) for p in game.participants]
        except Exception as e:
            logger.error(f"Failed to prepare notifications for game {game_id}: {e}", exc_info=True)
            return
        await self.notification_service.notify_many(items)

    @staticmethod
    def _notification_for(game: Game, p: Participant) -> tuple[UUID, str, str, NotificationSeverity]:
        payout = quantize(p.payout)
        tied = sum(1 for other in game.participants if other.rank == p.rank) > 1

        if game.mode == GameMode.SOLO.value:
            if payout > ZERO:
                return (p.user_id, "Quiz Win! 🎉",
                        f"Congratulations! Your skill paid off. {_format_amount(payout)} has been credited to your wallet.",
                        NotificationSeverity.SUCCESS)
            return (p.user_id, "Quiz Complete",
                    f"Good effort! You scored {p.score}/{game.total_questions}. Keep practicing and try again.",
                    NotificationSeverity.INFO)

        if game.mode == GameMode.DUEL.value:
            if tied:
                return (p.user_id, "Duel Draw! 🤝",
                        f"It's a tie! {_format_amount(payout)} credited to your wallet.",
                        NotificationSeverity.SUCCESS)
            if payout > ZERO:
                return (p.user_id, "Duel Win! 🎉",
                        f"You won! {_format_amount(payout)} credited to your wallet.",
                        NotificationSeverity.SUCCESS)
            return (p.user_id, "Duel Complete",
                    f"Good effort! Score: {p.score}. Keep practicing!",
                    NotificationSeverity.INFO)

        if payout > ZERO:
            placed = f"tied for rank #{p.rank}" if tied else f"placed #{p.rank}"
            return (p.user_id, f"League Rank #{p.rank}! 🏆",
                    f"You {placed}! {_format_amount(payout)} credited.",
                    NotificationSeverity.SUCCESS)
        return (p.user_id, "League Complete",
                f"You placed #{p.rank}. Better luck next time!",
                NotificationSeverity.INFO)

    def _build_outcome(
        self,
        game_id: UUID,
        user_id: UUID,
        recorded: _RecordResult,
        result: GradeResult,
    ) -> SubmissionOutcome:
        is_solo = recorded.mode == GameMode.SOLO.value
        outcome = SubmissionOutcome(
            game_id=game_id,
            score=result.score,
            total_questions=recorded.total_questions,
            game_complete=recorded.game_complete,
            entry_amount=recorded.entry_amount,
            message=_completion_message(recorded.mode, recorded.game_complete, result.is_perfect),
        )
        if is_solo:
            outcome.is_perfect = result.score == recorded.total_questions and recorded.total_questions > 0
            outcome.graded_answers = [a.to_dict() for a in result.graded_answers]

        if recorded.plan is not None:
            allocation = recorded.plan.allocation_for(user_id)
            outcome.payout = allocation.payout
            outcome.rank = allocation.rank
            outcome.is_winner = allocation.is_winner
        return outcome
