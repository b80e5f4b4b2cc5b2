"""Database models."""
from backend.models.user import User
from backend.models.transaction import LedgerTransaction
from backend.models.quiz_content import QuizCourse, QuizModule, QuizLevel, QuizQuestion
from backend.models.game import Game
from backend.models.participant import Participant
from backend.models.notification import Notification

__all__ = [
    "User",
    "LedgerTransaction",
    "QuizCourse",
    "QuizModule",
    "QuizLevel",
    "QuizQuestion",
    "Game",
    "Participant",
    "Notification",
]
