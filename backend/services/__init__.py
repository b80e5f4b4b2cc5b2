"""Business logic services."""
from backend.services.ledger_service import LedgerService
from backend.services.question_pool import QuestionPool
from backend.services.stake_authorizer import StakeAuthorizer, PinVerifier
from backend.services.grader import grade, SubmittedAnswer, GradedAnswer, GradeResult
from backend.services.payout_engine import PayoutEngine, PayoutPlan, ParticipantResult
from backend.services.notification_service import NotificationService
from backend.services.game_lifecycle_service import GameLifecycleService, GameTicket
from backend.services.settlement_service import SettlementCoordinator, SubmissionOutcome

__all__ = [
    "LedgerService",
    "QuestionPool",
    "StakeAuthorizer",
    "PinVerifier",
    "grade",
    "SubmittedAnswer",
    "GradedAnswer",
    "GradeResult",
    "PayoutEngine",
    "PayoutPlan",
    "ParticipantResult",
    "NotificationService",
    "GameLifecycleService",
    "GameTicket",
    "SettlementCoordinator",
    "SubmissionOutcome",
]
