"""Transaction PIN hashing utilities using bcrypt."""
from __future__ import annotations

import bcrypt


class PinValidationError(ValueError):
    """Raised when a transaction PIN has the wrong shape."""


def validate_pin_format(pin: str) -> None:
    """Transaction PINs are 4 to 6 digits.

    Raises:
        PinValidationError: If the PIN is not 4-6 digits.
    """
    if not pin or not pin.isdigit() or not 4 <= len(pin) <= 6:
        raise PinValidationError("Transaction PIN must be 4 to 6 digits.")


def hash_pin(pin: str, rounds: int = 12) -> str:
    """Hash a transaction PIN using bcrypt."""
    validate_pin_format(pin)
    hashed = bcrypt.hashpw(pin.encode('utf-8'), bcrypt.gensalt(rounds=rounds))
    return hashed.decode('utf-8')


def verify_pin(pin: str | None, pin_hash: str) -> bool:
    """Verify a candidate PIN against a stored hash."""
    if not pin:
        return False
    try:
        return bcrypt.checkpw(pin.encode('utf-8'), pin_hash.encode('utf-8'))
    except (ValueError, TypeError, AttributeError):
        return False
