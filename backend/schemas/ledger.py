"""Typed audit details attached to ledger transactions, one model per kind."""
from typing import Literal, Optional, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class StakeDetails(BaseModel):
    """Audit context for a QUIZ_ENTRY debit."""
    model_config = ConfigDict(extra="forbid")

    kind: Literal["QUIZ_ENTRY"] = "QUIZ_ENTRY"
    game_id: UUID
    mode: str
    level_id: UUID
    level_name: str


class WinningDetails(BaseModel):
    """Audit context for a QUIZ_WINNING credit."""
    model_config = ConfigDict(extra="forbid")

    kind: Literal["QUIZ_WINNING"] = "QUIZ_WINNING"
    game_id: UUID
    mode: str
    rank: int = Field(ge=1)
    score: int = Field(ge=0)
    total_questions: int = Field(ge=0)
    tied: bool = False
    tie_group_size: Optional[int] = Field(default=None, ge=2)


TransactionDetails = Union[StakeDetails, WinningDetails]
