"""Per-game critical section shared by join, start and submit."""
from typing import Awaitable, Callable, TypeVar
from uuid import UUID
import logging

from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from backend.config import get_settings
from backend.utils import lock_client
from backend.utils.exceptions import SettlementBusyError
from backend.utils.lock_client import LockTimeoutError
from backend.utils.retry import retry_with_backoff

logger = logging.getLogger(__name__)

T = TypeVar('T')


def game_lock_name(game_id: UUID) -> str:
    return f"quiz_game:{game_id}"


async def run_serialized(
    db: AsyncSession,
    game_id: UUID,
    operation_name: str,
    func: Callable[[], Awaitable[T]],
) -> T:
    """Run ``func`` while holding the game's lock.

    ``func`` must re-read the game inside the section and commit its own work.
    Anything it raises rolls the session back before the lock is released. Lock
    timeouts and optimistic version conflicts are retried with backoff; once the
    retry budget is spent they surface as ``SettlementBusyError``.
    """
    settings = get_settings()
    lock_name = game_lock_name(game_id)

    async def attempt() -> T:
        async with lock_client.lock(lock_name, timeout=settings.settlement_lock_timeout_seconds):
            try:
                return await func()
            except Exception:
                await db.rollback()
                raise

    try:
        return await retry_with_backoff(
            attempt,
            max_retries=settings.settlement_max_retries,
            base_delay=settings.settlement_retry_base_delay_seconds,
            operation_name=f"{operation_name} game={game_id}",
        )
    except (LockTimeoutError, StaleDataError, OperationalError) as e:
        logger.warning(f"{operation_name} for game {game_id} gave up under contention: {e}")
        raise SettlementBusyError("The game is busy, please retry shortly") from e
