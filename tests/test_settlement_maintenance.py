"""Tests for the settlement maintenance task."""
import asyncio
from decimal import Decimal

import pytest

from backend.models.base import GameMode, SettlementStatus
from backend.models.game import Game
from backend.services.game_lifecycle_service import GameLifecycleService
from backend.services.ledger_service import LedgerService
from backend.services.settlement_service import SettlementCoordinator
from backend.tasks import settlement_maintenance
from backend.tasks.settlement_maintenance import run_settlement_maintenance, schedule_periodic_maintenance
from backend.utils.exceptions import SettlementBusyError

TEST_PIN = "1234"


async def _pending_solo_win(db_session, user_factory, level_factory, build_answers):
    """A perfect solo run whose credit was deferred."""
    level_id = (await level_factory(question_count=10)).level_id
    user_id = (await user_factory(balance="200.00")).user_id
    ticket = await GameLifecycleService(db_session).create_game(
        GameMode.SOLO, level_id, Decimal("50"), user_id, TEST_PIN
    )
    game_id, question_ids = ticket.game.game_id, list(ticket.game.question_ids)

    coordinator = SettlementCoordinator(db_session)

    async def busy(game_id):
        raise SettlementBusyError("simulated contention")

    coordinator._settle = busy
    outcome = await coordinator.submit(game_id, user_id, await build_answers(question_ids), 12.0, GameMode.SOLO)
    assert outcome.payout == Decimal("95.00")
    return game_id, user_id


@pytest.mark.asyncio
async def test_maintenance_finishes_pending_settlement(
    db_session, session_factory, user_factory, level_factory, build_answers
):
    """Should credit deferred winnings exactly once across repeated runs."""
    game_id, user_id = await _pending_solo_win(db_session, user_factory, level_factory, build_answers)
    assert await LedgerService(db_session).get_balance(user_id) == Decimal("150.00")

    assert await run_settlement_maintenance(session_factory) >= 1
    await run_settlement_maintenance(session_factory)

    async with session_factory() as session:
        assert await LedgerService(session).get_balance(user_id) == Decimal("245.00")
        game = await session.get(Game, game_id)
        assert game.settlement_status == SettlementStatus.SETTLED.value


@pytest.mark.asyncio
async def test_maintenance_skips_when_already_running(session_factory, monkeypatch):
    monkeypatch.setattr(settlement_maintenance, "_maintenance_task_running", True)

    assert await run_settlement_maintenance(session_factory) == 0


@pytest.mark.asyncio
async def test_maintenance_swallows_errors():
    """A failing run is logged and reported as zero games settled."""

    def broken_factory():
        raise RuntimeError("database unavailable")

    assert await run_settlement_maintenance(broken_factory) == 0
    assert settlement_maintenance._maintenance_task_running is False


@pytest.mark.asyncio
async def test_scheduler_runs_until_cancelled(monkeypatch):
    ran = asyncio.Event()

    async def fake_run():
        ran.set()
        return 0

    monkeypatch.setattr(settlement_maintenance, "run_settlement_maintenance", fake_run)

    task = asyncio.create_task(schedule_periodic_maintenance(interval_minutes=1))
    await asyncio.wait_for(ran.wait(), timeout=5)
    task.cancel()
    await asyncio.wait_for(task, timeout=5)

    assert task.done()
    assert not task.cancelled()
