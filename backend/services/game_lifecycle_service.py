"""Game lifecycle: create, join, start, status and history for wagered games."""
from dataclasses import dataclass, field
from datetime import datetime, UTC
from decimal import Decimal, InvalidOperation
from typing import Optional
from uuid import UUID
import logging
import math
import secrets
import uuid

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from backend.config import get_settings
from backend.models.base import GameMode, GameStatus
from backend.models.game import Game
from backend.models.participant import Participant
from backend.models.quiz_content import QuizLevel, QuizModule
from backend.services.game_guard import run_serialized
from backend.services.question_pool import QuestionPool, public_question
from backend.services.stake_authorizer import StakeAuthorizer
from backend.utils.exceptions import (
    AlreadyJoinedError,
    GameFullError,
    GameModeMismatchError,
    GameNotFoundError,
    GameNotJoinableError,
    InsufficientQuestionsError,
    InvalidEntryAmountError,
    InvalidPlayerCountError,
    LevelNotFoundError,
    MatchCodeGenerationError,
    NotAParticipantError,
    NotCreatorError,
    NotEnoughPlayersError,
)
from backend.utils.money import quantize, ZERO

logger = logging.getLogger(__name__)

MATCH_CODE_BYTES = 3  # 6 hex characters


@dataclass
class GameTicket:
    """What a player receives on entering or starting a game."""
    game: Game
    participant: Optional[Participant] = None
    questions: list[dict] = field(default_factory=list)
    balance_after: Optional[Decimal] = None

    @property
    def player_count(self) -> int:
        return len(self.game.participants)


class GameLifecycleService:
    """Creates games, admits players and moves games from WAITING to IN_PROGRESS.

    Every admission goes through ``StakeAuthorizer``; the stake debit, its ledger
    record and the participant row are committed together or not at all.
    """

    def __init__(self, db: AsyncSession, authorizer: StakeAuthorizer | None = None):
        self.db = db
        self.settings = get_settings()
        self.question_pool = QuestionPool(db)
        self.authorizer = authorizer or StakeAuthorizer(db)

    def _validate_entry_amount(self, entry_amount) -> Decimal:
        try:
            amount = quantize(entry_amount)
        except (InvalidOperation, TypeError, ValueError) as e:
            raise InvalidEntryAmountError("Entry amount must be a number") from e
        if amount <= ZERO:
            raise InvalidEntryAmountError("Entry amount must be positive")
        if amount > self.settings.max_entry_amount:
            raise InvalidEntryAmountError(
                f"Entry amount cannot exceed {self.settings.max_entry_amount}"
            )
        return amount

    def _resolve_max_players(self, mode: GameMode, max_players: Optional[int]) -> int:
        if mode == GameMode.SOLO:
            return 1
        if mode == GameMode.DUEL:
            return 2
        if max_players is None:
            raise InvalidPlayerCountError("Max players is required for a league")
        low, high = self.settings.league_min_players, self.settings.league_max_players
        if not low <= max_players <= high:
            raise InvalidPlayerCountError(f"Players must be between {low} and {high}")
        return max_players

    def _question_cap(self, mode: GameMode) -> int:
        return {
            GameMode.SOLO: self.settings.solo_question_cap,
            GameMode.DUEL: self.settings.duel_question_cap,
            GameMode.LEAGUE: self.settings.league_question_cap,
        }[mode]

    async def _generate_unique_match_code(self, max_attempts: int = 5) -> str:
        """Generate a 6-character uppercase hex match code not used by any game.

        Raises:
            MatchCodeGenerationError: If unable to generate a unique code after max_attempts
        """
        for _ in range(max_attempts):
            match_code = secrets.token_hex(MATCH_CODE_BYTES).upper()
            result = await self.db.execute(
                select(Game.game_id).where(Game.match_code == match_code)
            )
            if result.scalar_one_or_none() is None:
                return match_code

        raise MatchCodeGenerationError("Failed to generate unique match code after maximum attempts")

    async def _load_game(self, game_id: UUID, lock_row: bool = False) -> Optional[Game]:
        """Load a game with its participants, bypassing the identity map.

        With ``lock_row`` the row is read ``FOR UPDATE`` on databases that support it.
        """
        stmt = (
            select(Game)
            .where(Game.game_id == game_id)
            .options(
                selectinload(Game.participants).selectinload(Participant.user),
                selectinload(Game.level),
            )
            .execution_options(populate_existing=True)
        )
        if lock_row:
            stmt = stmt.with_for_update()
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_game(self, game_id: UUID) -> Game:
        game = await self._load_game(game_id)
        if not game:
            raise GameNotFoundError(f"Game {game_id} not found")
        return game

    async def get_game_by_code(self, match_code: str) -> Game:
        code = (match_code or "").strip().upper()
        result = await self.db.execute(
            select(Game.game_id).where(Game.match_code == code)
        )
        game_id = result.scalar_one_or_none()
        if game_id is None:
            raise GameNotFoundError(f"No game with match code {code}")
        return await self.get_game(game_id)

    async def _public_questions(self, game: Game) -> list[dict]:
        questions = await self.question_pool.get_questions(game.question_ids)
        return [public_question(q) for q in questions]

    async def create_game(
        self,
        mode: GameMode,
        level_id: UUID,
        entry_amount: Decimal,
        creator_id: UUID,
        secret: str | None,
        max_players: Optional[int] = None,
    ) -> GameTicket:
        """Create a game, stake the creator and seat them first.

        SOLO games start immediately; DUEL and LEAGUE games wait for players and get
        a shareable match code.
        """
        mode = GameMode(mode)
        amount = self._validate_entry_amount(entry_amount)
        max_players = self._resolve_max_players(mode, max_players)

        level = await self.question_pool.get_level(level_id)
        if not level:
            raise LevelNotFoundError(f"Level {level_id} not found")

        available = await self.question_pool.count_questions(level_id)
        if available < self.settings.min_level_questions:
            raise InsufficientQuestionsError(
                f"Level has {available} questions; at least {self.settings.min_level_questions} are required"
            )

        questions = await self.question_pool.select_for_game(level_id, self._question_cap(mode))
        if len(questions) < self.settings.min_level_questions:
            raise InsufficientQuestionsError("Not enough questions available")

        match_code = None if mode == GameMode.SOLO else await self._generate_unique_match_code()
        level_name = level.name
        now = datetime.now(UTC)
        game_id = uuid.uuid4()

        try:
            balance_after = await self.authorizer.authorize(
                user_id=creator_id,
                entry_amount=amount,
                secret=secret,
                mode=mode,
                game_id=game_id,
                level_id=level_id,
                level_name=level_name,
            )

            game = Game(
                game_id=game_id,
                mode=mode.value,
                level_id=level_id,
                entry_amount=amount,
                status=(GameStatus.IN_PROGRESS if mode == GameMode.SOLO else GameStatus.WAITING).value,
                match_code=match_code,
                max_players=max_players,
                question_ids=[str(q.question_id) for q in questions],
                started_at=now if mode == GameMode.SOLO else None,
            )
            participant = Participant(game_id=game_id, user_id=creator_id, seat=1, joined_at=now)
            self.db.add(game)
            self.db.add(participant)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        game = await self.get_game(game_id)
        logger.info(
            f"Created {mode.value} game {game_id} (level={level_id}, entry={amount}, "
            f"max_players={max_players}, code={match_code}, questions={len(questions)})"
        )
        return GameTicket(
            game=game,
            participant=game.participants[0],
            questions=[public_question(q) for q in questions],
            balance_after=balance_after,
        )

    async def join_game(
        self,
        match_code: str,
        joiner_id: UUID,
        secret: str | None,
        expected_mode: GameMode,
    ) -> GameTicket:
        """Stake the joiner and seat them in a waiting game.

        A DUEL starts as soon as its second player is seated; a LEAGUE waits for its
        creator to start it.
        """
        expected_mode = GameMode(expected_mode)
        game_id = (await self.get_game_by_code(match_code)).game_id

        async def _join() -> tuple[UUID, Decimal]:
            game = await self._load_game(game_id, lock_row=True)
            if not game:
                raise GameNotFoundError(f"Game {game_id} not found")
            if game.mode != expected_mode.value:
                raise GameModeMismatchError(f"Not a {expected_mode.value.lower()} game")
            if game.status != GameStatus.WAITING.value:
                raise GameNotJoinableError("Game is no longer accepting players")
            if len(game.participants) >= game.max_players:
                raise GameFullError(f"Game is full (max {game.max_players} players)")
            if any(p.user_id == joiner_id for p in game.participants):
                raise AlreadyJoinedError("You are already in this game")

            balance_after = await self.authorizer.authorize(
                user_id=joiner_id,
                entry_amount=game.entry_amount,
                secret=secret,
                mode=expected_mode,
                game_id=game.game_id,
                level_id=game.level_id,
                level_name=game.level.name,
            )

            now = datetime.now(UTC)
            self.db.add(Participant(
                game_id=game.game_id,
                user_id=joiner_id,
                seat=max(p.seat for p in game.participants) + 1,
                joined_at=now,
            ))
            if expected_mode == GameMode.DUEL and len(game.participants) + 1 >= game.max_players:
                game.status = GameStatus.IN_PROGRESS.value
                game.started_at = now
            await self.db.commit()
            return game.game_id, balance_after

        joined_game_id, balance_after = await run_serialized(self.db, game_id, "join", _join)

        game = await self.get_game(joined_game_id)
        participant = next(p for p in game.participants if p.user_id == joiner_id)
        logger.info(
            f"User {joiner_id} joined {game.mode} game {game.game_id} "
            f"({len(game.participants)}/{game.max_players}, status={game.status})"
        )
        return GameTicket(
            game=game,
            participant=participant,
            questions=await self._public_questions(game),
            balance_after=balance_after,
        )

    async def start_game(self, game_id: UUID, requester_id: UUID) -> GameTicket:
        """Start a waiting LEAGUE. Only its creator may start it."""
        await self.get_game(game_id)

        async def _start() -> None:
            game = await self._load_game(game_id, lock_row=True)
            if not game:
                raise GameNotFoundError(f"Game {game_id} not found")
            if game.mode != GameMode.LEAGUE.value:
                raise GameModeMismatchError("Only leagues can be started manually")
            if game.status != GameStatus.WAITING.value:
                raise GameNotJoinableError("Game already started")

            creator = min(game.participants, key=lambda p: p.seat)
            if creator.user_id != requester_id:
                raise NotCreatorError("Only the creator can start the league")

            if len(game.participants) < self.settings.league_min_players:
                raise NotEnoughPlayersError(
                    f"Need at least {self.settings.league_min_players} players to start"
                )

            game.status = GameStatus.IN_PROGRESS.value
            game.started_at = datetime.now(UTC)
            await self.db.commit()

        await run_serialized(self.db, game_id, "start", _start)

        game = await self.get_game(game_id)
        logger.info(f"League {game_id} started by {requester_id} with {len(game.participants)} players")
        return GameTicket(game=game, questions=await self._public_questions(game))

    async def get_status(
        self,
        game_id: UUID,
        user_id: UUID,
        expected_mode: Optional[GameMode] = None,
    ) -> dict:
        """Game status for polling.

        Results of other players stay hidden until the game is COMPLETED; the caller
        always sees their own score once they have submitted.
        """
        game = await self.get_game(game_id)
        if expected_mode is not None and game.mode != GameMode(expected_mode).value:
            raise GameModeMismatchError(f"Not a {GameMode(expected_mode).value.lower()} game")
        if not any(p.user_id == user_id for p in game.participants):
            raise NotAParticipantError("You are not in this game")

        completed = game.status == GameStatus.COMPLETED.value
        if completed:
            ordered = sorted(game.participants, key=lambda p: (p.rank or math.inf, p.seat))
        else:
            ordered = list(game.participants)

        participants = []
        for p in ordered:
            show_own_score = p.user_id == user_id and p.is_completed
            participants.append({
                'user_id': p.user_id,
                'username': p.user.username if p.user else None,
                'completed': p.is_completed,
                'rank': p.rank if completed else None,
                'score': p.score if completed or show_own_score else None,
                'is_winner': p.is_winner if completed else None,
                'payout': quantize(p.payout) if completed else None,
            })

        return {
            'game_id': game.game_id,
            'mode': game.mode,
            'status': game.status,
            'match_code': game.match_code,
            'entry_amount': quantize(game.entry_amount),
            'player_count': len(game.participants),
            'max_players': game.max_players,
            'total_questions': game.total_questions,
            'platform_fee': quantize(game.platform_fee_taken) if completed and game.platform_fee_taken is not None else None,
            'prize_pool': quantize(game.prize_pool_distributed) if completed and game.prize_pool_distributed is not None else None,
            'participants': participants,
        }

    async def get_history(self, user_id: UUID, page: int = 1, limit: Optional[int] = None) -> dict:
        """Paginated list of the games a user has entered, newest first."""
        page = max(1, page)
        limit = limit or self.settings.history_default_page_size
        limit = max(1, min(limit, self.settings.history_max_page_size))

        total_result = await self.db.execute(
            select(func.count(Participant.participant_id)).where(Participant.user_id == user_id)
        )
        total = total_result.scalar() or 0

        result = await self.db.execute(
            select(Participant)
            .where(Participant.user_id == user_id)
            .options(
                selectinload(Participant.game)
                .selectinload(Game.level)
                .selectinload(QuizLevel.module)
                .selectinload(QuizModule.course)
            )
            .order_by(Participant.joined_at.desc())
            .limit(limit)
            .offset((page - 1) * limit)
        )

        data = []
        for p in result.scalars().all():
            level = p.game.level
            data.append({
                'participant_id': p.participant_id,
                'game_id': p.game_id,
                'mode': p.game.mode,
                'course': level.module.course.name,
                'module': level.module.name,
                'level': level.name,
                'entry_amount': quantize(p.game.entry_amount),
                'score': p.score,
                'is_winner': p.is_winner,
                'payout': quantize(p.payout),
                'status': p.game.status,
                'played_at': p.joined_at,
            })

        return {
            'data': data,
            'meta': {
                'total': total,
                'page': page,
                'limit': limit,
                'total_pages': math.ceil(total / limit) if total else 0,
            },
        }
