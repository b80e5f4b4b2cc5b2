"""Prize distribution for completed games.

Pure computation: given the mode, the stake and every participant's result, return
who gets what. All amounts are computed in integer cents so the distributable pool
is always paid out exactly.
"""
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional, Sequence
from uuid import UUID
import logging

from backend.models.base import GameMode
from backend.utils.money import from_cents, percent_of_cents, split_cents, to_cents

logger = logging.getLogger(__name__)

DEFAULT_BRACKET_PERCENTS = (45, 25, 15, 15)


@dataclass(frozen=True)
class ParticipantResult:
    user_id: UUID
    score: int
    total_time_seconds: float
    seat: int = 0


@dataclass(frozen=True)
class PayoutAllocation:
    user_id: UUID
    rank: int
    payout: Decimal
    is_winner: bool
    tie_group_size: int = 1

    @property
    def tied(self) -> bool:
        return self.tie_group_size > 1


@dataclass(frozen=True)
class PayoutPlan:
    mode: GameMode
    total_collected: Decimal
    platform_fee: Decimal
    prize_pool: Decimal  # Amount actually paid out to participants
    house_contribution: Decimal
    allocations: list[PayoutAllocation] = field(default_factory=list)

    def allocation_for(self, user_id: UUID) -> Optional[PayoutAllocation]:
        return next((a for a in self.allocations if a.user_id == user_id), None)

    @property
    def total_paid(self) -> Decimal:
        return sum((a.payout for a in self.allocations), Decimal("0.00"))


def rank_results(results: Sequence[ParticipantResult]) -> list[ParticipantResult]:
    """Order by score desc, time asc; join order breaks exact ties deterministically."""
    return sorted(results, key=lambda r: (-r.score, r.total_time_seconds, r.seat))


def _is_tied(anchor: ParticipantResult, other: ParticipantResult, tolerance: float) -> bool:
    return (
        anchor.score == other.score
        and abs(other.total_time_seconds - anchor.total_time_seconds) < tolerance
    )


def _tie_runs(ranked: list[ParticipantResult], tolerance: float) -> list[tuple[int, int]]:
    """Split ranked results into runs [start, end) tied with the run's first member."""
    runs = []
    start = 0
    while start < len(ranked):
        end = start + 1
        while end < len(ranked) and _is_tied(ranked[start], ranked[end], tolerance):
            end += 1
        runs.append((start, end))
        start = end
    return runs


class PayoutEngine:
    """Mode-specific payout algorithms."""

    def __init__(
        self,
        platform_fee_percent: int = 10,
        bracket_percents: Sequence[int] = DEFAULT_BRACKET_PERCENTS,
        tie_time_tolerance_seconds: float = 0.5,
    ):
        self.platform_fee_percent = platform_fee_percent
        self.bracket_percents = list(bracket_percents)
        self.tie_time_tolerance_seconds = tie_time_tolerance_seconds

    @classmethod
    def from_settings(cls, settings) -> "PayoutEngine":
        return cls(
            platform_fee_percent=settings.platform_fee_percent,
            bracket_percents=settings.league_bracket_percents,
            tie_time_tolerance_seconds=settings.tie_time_tolerance_seconds,
        )

    def compute(
        self,
        mode: GameMode,
        entry_amount: Decimal,
        results: Sequence[ParticipantResult],
        total_questions: int,
    ) -> PayoutPlan:
        """Compute the payout plan for a completed game.

        Args:
            mode: Game mode
            entry_amount: Stake paid by every participant
            results: One result per participant, all completed
            total_questions: Size of the game's frozen question set

        Raises:
            ValueError: If the participant count does not fit the mode
        """
        mode = GameMode(mode)
        if mode == GameMode.SOLO:
            return self._compute_solo(entry_amount, results, total_questions)
        if mode == GameMode.DUEL:
            return self._compute_duel(entry_amount, results)
        return self._compute_league(entry_amount, results)

    def _compute_solo(
        self,
        entry_amount: Decimal,
        results: Sequence[ParticipantResult],
        total_questions: int,
    ) -> PayoutPlan:
        """Threshold check, not a ranking: a perfect score doubles the stake minus the fee.

        On a win the house matches the stake and keeps the fee on its match; on a loss
        the house keeps the whole stake, which is recorded as the fee taken.
        """
        if len(results) != 1:
            raise ValueError(f"SOLO games settle exactly one participant, got {len(results)}")

        result = results[0]
        entry_cents = to_cents(entry_amount)
        is_perfect = total_questions > 0 and result.score == total_questions

        if is_perfect:
            fee_cents = percent_of_cents(entry_cents, self.platform_fee_percent)
            payout_cents = entry_cents + (entry_cents - fee_cents)
            house_cents = entry_cents
        else:
            fee_cents = entry_cents
            payout_cents = 0
            house_cents = 0

        return PayoutPlan(
            mode=GameMode.SOLO,
            total_collected=from_cents(entry_cents),
            platform_fee=from_cents(fee_cents),
            prize_pool=from_cents(payout_cents),
            house_contribution=from_cents(house_cents),
            allocations=[PayoutAllocation(
                user_id=result.user_id,
                rank=1,
                payout=from_cents(payout_cents),
                is_winner=is_perfect,
            )],
        )

    def _pool_cents(self, entry_amount: Decimal, participant_count: int) -> tuple[int, int, int]:
        total_cents = to_cents(entry_amount) * participant_count
        fee_cents = percent_of_cents(total_cents, self.platform_fee_percent)
        return total_cents, fee_cents, total_cents - fee_cents

    def _compute_duel(self, entry_amount: Decimal, results: Sequence[ParticipantResult]) -> PayoutPlan:
        if len(results) != 2:
            raise ValueError(f"DUEL games settle exactly two participants, got {len(results)}")

        total_cents, fee_cents, pool_cents = self._pool_cents(entry_amount, 2)
        first, second = rank_results(results)

        if _is_tied(first, second, self.tie_time_tolerance_seconds):
            shares = split_cents(pool_cents, [1, 1])
            allocations = [
                PayoutAllocation(user_id=first.user_id, rank=1, payout=from_cents(shares[0]),
                                 is_winner=shares[0] > 0, tie_group_size=2),
                PayoutAllocation(user_id=second.user_id, rank=1, payout=from_cents(shares[1]),
                                 is_winner=shares[1] > 0, tie_group_size=2),
            ]
        else:
            allocations = [
                PayoutAllocation(user_id=first.user_id, rank=1, payout=from_cents(pool_cents),
                                 is_winner=pool_cents > 0),
                PayoutAllocation(user_id=second.user_id, rank=2, payout=from_cents(0), is_winner=False),
            ]

        return PayoutPlan(
            mode=GameMode.DUEL,
            total_collected=from_cents(total_cents),
            platform_fee=from_cents(fee_cents),
            prize_pool=from_cents(pool_cents),
            house_contribution=from_cents(0),
            allocations=allocations,
        )

    def _compute_league(self, entry_amount: Decimal, results: Sequence[ParticipantResult]) -> PayoutPlan:
        """Bracket payout with tie merging, in a single left-to-right pass.

        Bracket slots are the first ``len(bracket_percents)`` ranks. Each occupied slot
        gets its percentage of the distributable pool (rescaled when fewer players than
        slots took part). A tie run splits the combined amount of the slots it covers
        evenly; slots past the bracket contribute nothing.
        """
        if not results:
            raise ValueError("LEAGUE games need at least one participant to settle")

        participant_count = len(results)
        total_cents, fee_cents, pool_cents = self._pool_cents(entry_amount, participant_count)
        ranked = rank_results(results)

        occupied_slots = min(len(self.bracket_percents), participant_count)
        slot_cents = split_cents(pool_cents, self.bracket_percents[:occupied_slots])

        allocations: list[PayoutAllocation] = []
        for start, end in _tie_runs(ranked, self.tie_time_tolerance_seconds):
            group_size = end - start
            group_cents = sum(slot_cents[start:min(end, occupied_slots)])
            member_shares = split_cents(group_cents, [1] * group_size)
            for offset, result in enumerate(ranked[start:end]):
                share = member_shares[offset]
                allocations.append(PayoutAllocation(
                    user_id=result.user_id,
                    rank=start + 1,
                    payout=from_cents(share),
                    is_winner=share > 0,
                    tie_group_size=group_size,
                ))
            if group_size > 1:
                logger.debug(
                    f"League tie group at rank {start + 1}: {group_size} members share {group_cents} cents"
                )

        return PayoutPlan(
            mode=GameMode.LEAGUE,
            total_collected=from_cents(total_cents),
            platform_fee=from_cents(fee_cents),
            prize_pool=from_cents(pool_cents),
            house_contribution=from_cents(0),
            allocations=allocations,
        )
