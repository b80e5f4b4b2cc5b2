"""Quiz wagering Pydantic schemas."""
from pydantic import BaseModel, Field, field_validator
from datetime import datetime
from decimal import Decimal
from typing import Optional, List, Literal
from uuid import UUID

from backend.schemas.base import BaseSchema, Money


# Request schemas
class CreateSoloGameRequest(BaseModel):
    """Request to start a solo challenge."""
    level_id: UUID
    entry_amount: Decimal = Field(..., gt=0, decimal_places=2, description="Stake in currency units")
    pin: str = Field(..., min_length=1, max_length=12, description="Transaction PIN")


class CreateDuelGameRequest(CreateSoloGameRequest):
    """Request to create a duel match."""


class CreateLeagueGameRequest(CreateSoloGameRequest):
    """Request to create a league arena."""
    max_players: int = Field(..., description="League capacity, validated against configured bounds")


class JoinGameRequest(BaseModel):
    """Request to join a duel or league by match code."""
    match_code: str = Field(..., min_length=6, max_length=6, description="6-character match code")
    pin: str = Field(..., min_length=1, max_length=12, description="Transaction PIN")

    @field_validator("match_code")
    @classmethod
    def normalize_match_code(cls, value: str) -> str:
        return value.strip().upper()


class StartLeagueRequest(BaseModel):
    game_id: UUID


class AnswerSubmission(BaseModel):
    question_id: str
    answer: Optional[Literal["A", "B", "a", "b"]] = None
    time_taken: Optional[float] = Field(default=None, ge=0)


class SubmitAnswersRequest(BaseModel):
    """Answers for one game, in the order the player gave them."""
    game_id: UUID
    answers: List[AnswerSubmission] = Field(..., max_length=100)
    total_time: Optional[float] = Field(default=None, ge=0, description="Total seconds spent")


# Response schemas
class QuestionResponse(BaseSchema):
    """Question without its correct option."""
    question_id: str
    question: str
    option_a: str
    option_b: str
    time_limit: int


class StartSoloGameResponse(BaseSchema):
    game_id: UUID
    questions: List[QuestionResponse]
    entry_amount: Money
    balance: Money
    win_condition: str = "100% correct answers to win"


class CreateMatchResponse(BaseSchema):
    """Response after creating a duel or league."""
    game_id: UUID
    match_code: str
    entry_amount: Money
    max_players: int
    current_players: int
    balance: Money
    questions: List[QuestionResponse]
    message: str


class JoinMatchResponse(BaseSchema):
    game_id: UUID
    mode: str
    status: str
    entry_amount: Money
    current_players: int
    max_players: int
    balance: Money
    questions: List[QuestionResponse]
    message: str


class StartLeagueResponse(BaseSchema):
    game_id: UUID
    status: str
    player_count: int
    questions: List[QuestionResponse]
    message: str = "League started!"


class GradedAnswerResponse(BaseSchema):
    question_id: str
    submitted_option: Optional[str]
    is_correct: bool
    time_taken_seconds: float


class SubmitAnswersResponse(BaseSchema):
    game_id: UUID
    score: int
    total_questions: int
    submitted: bool
    game_complete: bool
    is_perfect: Optional[bool] = None
    payout: Optional[Money] = None
    rank: Optional[int] = None
    is_winner: Optional[bool] = None
    entry_amount: Optional[Money] = None
    answers: Optional[List[GradedAnswerResponse]] = None
    message: str


class GameParticipantStatus(BaseSchema):
    user_id: UUID
    username: Optional[str]
    completed: bool
    rank: Optional[int] = None
    score: Optional[int] = None
    is_winner: Optional[bool] = None
    payout: Optional[Money] = None


class GameStatusResponse(BaseSchema):
    game_id: UUID
    mode: str
    status: str
    match_code: Optional[str]
    entry_amount: Money
    player_count: int
    max_players: int
    total_questions: int
    platform_fee: Optional[Money] = None
    prize_pool: Optional[Money] = None
    participants: List[GameParticipantStatus]


class HistoryEntry(BaseSchema):
    participant_id: UUID
    game_id: UUID
    mode: str
    course: str
    module: str
    level: str
    entry_amount: Money
    score: int
    is_winner: bool
    payout: Money
    status: str
    played_at: datetime


class HistoryMeta(BaseSchema):
    total: int
    page: int
    limit: int
    total_pages: int


class HistoryResponse(BaseSchema):
    data: List[HistoryEntry]
    meta: HistoryMeta


class LevelSummary(BaseSchema):
    level_id: str
    level: int
    name: str
    question_count: int


class ModuleSummary(BaseSchema):
    module_id: str
    name: str
    description: Optional[str]
    levels: List[LevelSummary]


class CourseSummary(BaseSchema):
    course_id: str
    name: str
    description: Optional[str]
    icon: Optional[str]
    modules: List[ModuleSummary]


class CoursesResponse(BaseSchema):
    courses: List[CourseSummary]
