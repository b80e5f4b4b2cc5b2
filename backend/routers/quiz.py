"""Quiz wagering API router."""
from typing import NoReturn
from uuid import UUID
import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from backend.database import get_db
from backend.dependencies import get_current_user
from backend.models.base import GameMode
from backend.models.user import User
from backend.schemas.game import (
    CoursesResponse,
    CreateDuelGameRequest,
    CreateLeagueGameRequest,
    CreateMatchResponse,
    CreateSoloGameRequest,
    GameStatusResponse,
    HistoryResponse,
    JoinGameRequest,
    JoinMatchResponse,
    StartLeagueRequest,
    StartLeagueResponse,
    StartSoloGameResponse,
    SubmitAnswersRequest,
    SubmitAnswersResponse,
)
from backend.services.game_lifecycle_service import GameLifecycleService, GameTicket
from backend.services.grader import SubmittedAnswer
from backend.services.question_pool import QuestionPool
from backend.services.settlement_service import SettlementCoordinator, SubmissionOutcome
from backend.utils.exceptions import QuizArenaException

logger = logging.getLogger(__name__)

router = APIRouter()

RETRY_AFTER_SECONDS = 1


def _raise_http(error: QuizArenaException) -> NoReturn:
    """Translate a domain error into the HTTP error the API reports."""
    headers = {"Retry-After": str(RETRY_AFTER_SECONDS)} if error.retryable else None
    raise HTTPException(status_code=error.status_code, detail=error.error_code, headers=headers) from error


def _match_response(ticket: GameTicket, message: str) -> CreateMatchResponse:
    return CreateMatchResponse(
        game_id=ticket.game.game_id,
        match_code=ticket.game.match_code,
        entry_amount=ticket.game.entry_amount,
        max_players=ticket.game.max_players,
        current_players=ticket.player_count,
        balance=ticket.balance_after,
        questions=ticket.questions,
        message=message,
    )


def _join_response(ticket: GameTicket) -> JoinMatchResponse:
    game = ticket.game
    if game.mode == GameMode.DUEL.value:
        message = "Match started!"
    else:
        message = f"Joined league! {ticket.player_count}/{game.max_players} players"
    return JoinMatchResponse(
        game_id=game.game_id,
        mode=game.mode,
        status=game.status,
        entry_amount=game.entry_amount,
        current_players=ticket.player_count,
        max_players=game.max_players,
        balance=ticket.balance_after,
        questions=ticket.questions,
        message=message,
    )


def _submit_response(outcome: SubmissionOutcome) -> SubmitAnswersResponse:
    return SubmitAnswersResponse(
        game_id=outcome.game_id,
        score=outcome.score,
        total_questions=outcome.total_questions,
        submitted=outcome.submitted,
        game_complete=outcome.game_complete,
        is_perfect=outcome.is_perfect,
        payout=outcome.payout,
        rank=outcome.rank,
        is_winner=outcome.is_winner,
        entry_amount=outcome.entry_amount,
        answers=outcome.graded_answers,
        message=outcome.message,
    )


async def _submit(
    request: SubmitAnswersRequest,
    user_id: UUID,
    mode: GameMode,
    db: AsyncSession,
) -> SubmitAnswersResponse:
    answers = [
        SubmittedAnswer(
            question_id=a.question_id,
            submitted_option=a.answer,
            time_taken_seconds=a.time_taken or 0.0,
        )
        for a in request.answers
    ]
    try:
        coordinator = SettlementCoordinator(db)
        outcome = await coordinator.submit(
            game_id=request.game_id,
            user_id=user_id,
            answers=answers,
            total_time=request.total_time,
            expected_mode=mode,
        )
    except QuizArenaException as e:
        logger.info(f"{mode.value} submit rejected for user {user_id}: {e.error_code}")
        _raise_http(e)
    return _submit_response(outcome)


async def _status(game_id: UUID, user_id: UUID, mode: GameMode, db: AsyncSession) -> GameStatusResponse:
    try:
        status_data = await GameLifecycleService(db).get_status(game_id, user_id, expected_mode=mode)
    except QuizArenaException as e:
        _raise_http(e)
    return GameStatusResponse(**status_data)


@router.get("/courses", response_model=CoursesResponse)
async def list_courses(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Active courses with their modules, levels and question counts."""
    courses = await QuestionPool(db).list_courses()
    return CoursesResponse(courses=courses)


# Solo challenge

@router.post("/solo/start", response_model=StartSoloGameResponse)
async def start_solo_game(
    request: CreateSoloGameRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Stake the entry and receive the questions. Only a perfect score wins."""
    user_id = user.user_id
    try:
        ticket = await GameLifecycleService(db).create_game(
            mode=GameMode.SOLO,
            level_id=request.level_id,
            entry_amount=request.entry_amount,
            creator_id=user_id,
            secret=request.pin,
        )
    except QuizArenaException as e:
        logger.info(f"Solo start rejected for user {user_id}: {e.error_code}")
        _raise_http(e)

    return StartSoloGameResponse(
        game_id=ticket.game.game_id,
        questions=ticket.questions,
        entry_amount=ticket.game.entry_amount,
        balance=ticket.balance_after,
    )


@router.post("/solo/submit", response_model=SubmitAnswersResponse)
async def submit_solo_game(
    request: SubmitAnswersRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await _submit(request, user.user_id, GameMode.SOLO, db)


# Duel match

@router.post("/duel/create", response_model=CreateMatchResponse)
async def create_duel(
    request: CreateDuelGameRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Create a duel and get a match code to share with the opponent."""
    user_id = user.user_id
    try:
        ticket = await GameLifecycleService(db).create_game(
            mode=GameMode.DUEL,
            level_id=request.level_id,
            entry_amount=request.entry_amount,
            creator_id=user_id,
            secret=request.pin,
        )
    except QuizArenaException as e:
        logger.info(f"Duel create rejected for user {user_id}: {e.error_code}")
        _raise_http(e)
    return _match_response(ticket, "Share the match code with your opponent")


@router.post("/duel/join", response_model=JoinMatchResponse)
async def join_duel(
    request: JoinGameRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Join a duel by match code. The match starts immediately."""
    user_id = user.user_id
    try:
        ticket = await GameLifecycleService(db).join_game(
            match_code=request.match_code,
            joiner_id=user_id,
            secret=request.pin,
            expected_mode=GameMode.DUEL,
        )
    except QuizArenaException as e:
        logger.info(f"Duel join rejected for user {user_id}: {e.error_code}")
        _raise_http(e)
    return _join_response(ticket)


@router.post("/duel/submit", response_model=SubmitAnswersResponse)
async def submit_duel(
    request: SubmitAnswersRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await _submit(request, user.user_id, GameMode.DUEL, db)


@router.get("/duel/{game_id}/status", response_model=GameStatusResponse)
async def get_duel_status(
    game_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await _status(game_id, user.user_id, GameMode.DUEL, db)


# League arena

@router.post("/league/create", response_model=CreateMatchResponse)
async def create_league(
    request: CreateLeagueGameRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Create a league. The creator starts it once enough players have joined."""
    user_id = user.user_id
    try:
        ticket = await GameLifecycleService(db).create_game(
            mode=GameMode.LEAGUE,
            level_id=request.level_id,
            entry_amount=request.entry_amount,
            creator_id=user_id,
            secret=request.pin,
            max_players=request.max_players,
        )
    except QuizArenaException as e:
        logger.info(f"League create rejected for user {user_id}: {e.error_code}")
        _raise_http(e)
    return _match_response(ticket, "League created! Share the code for others to join.")


@router.post("/league/join", response_model=JoinMatchResponse)
async def join_league(
    request: JoinGameRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    user_id = user.user_id
    try:
        ticket = await GameLifecycleService(db).join_game(
            match_code=request.match_code,
            joiner_id=user_id,
            secret=request.pin,
            expected_mode=GameMode.LEAGUE,
        )
    except QuizArenaException as e:
        logger.info(f"League join rejected for user {user_id}: {e.error_code}")
        _raise_http(e)
    return _join_response(ticket)


@router.post("/league/start", response_model=StartLeagueResponse)
async def start_league(
    request: StartLeagueRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Start a league (creator only, when enough players)."""
    user_id = user.user_id
    try:
        ticket = await GameLifecycleService(db).start_game(request.game_id, user_id)
    except QuizArenaException as e:
        logger.info(f"League start rejected for user {user_id}: {e.error_code}")
        _raise_http(e)
    return StartLeagueResponse(
        game_id=ticket.game.game_id,
        status=ticket.game.status,
        player_count=ticket.player_count,
        questions=ticket.questions,
    )


@router.post("/league/submit", response_model=SubmitAnswersResponse)
async def submit_league(
    request: SubmitAnswersRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await _submit(request, user.user_id, GameMode.LEAGUE, db)


@router.get("/league/{game_id}/status", response_model=GameStatusResponse)
async def get_league_status(
    game_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await _status(game_id, user.user_id, GameMode.LEAGUE, db)


# History

@router.get("/history", response_model=HistoryResponse)
async def get_history(
    page: int = Query(default=1, ge=1),
    limit: int | None = Query(default=None, ge=1),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Games the current user has entered, newest first."""
    history = await GameLifecycleService(db).get_history(user.user_id, page=page, limit=limit)
    return HistoryResponse(**history)
