"""Domain exceptions for the wagering engine.

Every error carries the HTTP status and stable error code the API reports, and
whether the caller may retry the same request.
"""


class QuizArenaException(Exception):
    """Base exception for all wagering engine errors."""

    status_code: int = 400
    error_code: str = "quiz_arena_error"
    retryable: bool = False

    def __init__(self, message: str | None = None):
        super().__init__(message or self.error_code)
        self.message = message or self.error_code


# Input errors
class InvalidEntryAmountError(QuizArenaException):
    error_code = "invalid_entry_amount"


class InvalidPlayerCountError(QuizArenaException):
    error_code = "invalid_player_count"


# Lookup errors
class UserNotFoundError(QuizArenaException):
    status_code = 404
    error_code = "user_not_found"


class LevelNotFoundError(QuizArenaException):
    status_code = 404
    error_code = "level_not_found"


class GameNotFoundError(QuizArenaException):
    status_code = 404
    error_code = "game_not_found"


class InsufficientQuestionsError(QuizArenaException):
    error_code = "insufficient_questions"


# Authorization errors
class AccountSuspendedError(QuizArenaException):
    status_code = 403
    error_code = "account_suspended"


class InsufficientBalanceError(QuizArenaException):
    error_code = "insufficient_balance"


class SecretNotSetError(QuizArenaException):
    error_code = "transaction_pin_not_set"


class InvalidSecretError(QuizArenaException):
    status_code = 401
    error_code = "invalid_transaction_pin"


class NotAParticipantError(QuizArenaException):
    status_code = 403
    error_code = "not_a_participant"


class NotCreatorError(QuizArenaException):
    status_code = 403
    error_code = "not_creator"


# State errors
class GameModeMismatchError(QuizArenaException):
    error_code = "game_mode_mismatch"


class GameNotJoinableError(QuizArenaException):
    error_code = "game_not_joinable"


class GameFullError(QuizArenaException):
    error_code = "game_full"


class AlreadyJoinedError(QuizArenaException):
    status_code = 409
    error_code = "already_joined"


class NotEnoughPlayersError(QuizArenaException):
    error_code = "not_enough_players"


class GameNotInProgressError(QuizArenaException):
    error_code = "game_not_in_progress"


# Concurrency errors
class AlreadySubmittedError(QuizArenaException):
    """Duplicate submission. Terminal: retrying can never succeed."""
    status_code = 409
    error_code = "already_submitted"


class SettlementBusyError(QuizArenaException):
    """Lock contention or optimistic-version conflicts outlasted the retry budget."""
    status_code = 503
    error_code = "settlement_busy"
    retryable = True


class MatchCodeGenerationError(QuizArenaException):
    status_code = 503
    error_code = "match_code_unavailable"
    retryable = True
