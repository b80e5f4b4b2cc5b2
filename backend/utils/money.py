"""Money helpers. Amounts are Decimals with two places; arithmetic that must
conserve value is done in integer cents."""
from decimal import Decimal, ROUND_HALF_UP

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def quantize(amount) -> Decimal:
    """Round an amount to whole cents."""
    return Decimal(str(amount)).quantize(CENT, rounding=ROUND_HALF_UP)


def to_cents(amount) -> int:
    """Convert an amount to an integer number of cents."""
    return int(quantize(amount) * 100)


def from_cents(cents: int) -> Decimal:
    return (Decimal(cents) / Decimal(100)).quantize(CENT)


def percent_of_cents(cents: int, percent: int) -> int:
    """Percentage of a cent amount, rounded half up to the cent."""
    return int((Decimal(cents) * Decimal(percent) / Decimal(100)).quantize(Decimal(1), rounding=ROUND_HALF_UP))


def split_cents(total_cents: int, weights: list[int]) -> list[int]:
    """Split ``total_cents`` proportionally to ``weights`` without losing a cent.

    Each share is floored; leftover cents go one at a time to the earliest
    entries, so the first entries are never worse off than the later ones.

    Example:
        >>> split_cents(1000, [1, 1, 1])
        [334, 333, 333]
    """
    weight_total = sum(weights)
    if weight_total <= 0 or total_cents <= 0:
        return [0 for _ in weights]

    shares = [total_cents * weight // weight_total for weight in weights]
    remainder = total_cents - sum(shares)
    index = 0
    while remainder > 0:
        if weights[index] > 0:
            shares[index] += 1
            remainder -= 1
        index = (index + 1) % len(weights)
    return shares
