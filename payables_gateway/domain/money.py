"""
Exact money arithmetic on integer minor units.

Amounts enter and leave as ``Decimal`` with two places; everything in between
is done in cents so that apportioned values always add back to the total.
"""

from decimal import Decimal, InvalidOperation
from typing import Iterable, List, Union

from payables_gateway.domain.exceptions import InvalidScheduleInput

TWO_PLACES = Decimal("0.01")
CENTS_PER_UNIT = 100

Amount = Union[Decimal, int, str]


def to_cents(amount: Amount) -> int:
    """
    Convert an exact amount to integer cents.

    Floats are refused: they cannot represent most currency values exactly.

    Raises:
        InvalidScheduleInput: On floats, unparsable strings or sub-cent precision
    """
    if isinstance(amount, bool) or isinstance(amount, float):
        raise InvalidScheduleInput(f"Amount must be an exact decimal, got {amount!r}")

    try:
        value = Decimal(amount)
    except (InvalidOperation, TypeError, ValueError) as e:
        raise InvalidScheduleInput(f"Invalid amount: {amount!r}") from e

    if not value.is_finite():
        raise InvalidScheduleInput(f"Invalid amount: {amount!r}")

    cents = value * CENTS_PER_UNIT
    if cents != cents.to_integral_value():
        raise InvalidScheduleInput(f"Amount {amount} has more than two decimal places")

    return int(cents)


def from_cents(cents: int) -> Decimal:
    """Convert integer cents back to a two-place Decimal"""
    return (Decimal(cents) / CENTS_PER_UNIT).quantize(TWO_PLACES)


def apportion_cents(total_cents: int, n: int) -> List[int]:
    """
    Split total_cents into n integer shares.

    First n-1 shares are floor(total / n); the last share takes the exact
    remainder, so the shares always sum to total_cents.
    """
    if n < 1:
        raise InvalidScheduleInput("Installment count must be at least 1")

    base = total_cents // n
    return [base] * (n - 1) + [total_cents - base * (n - 1)]


def apportion(total: Amount, n: int) -> List[Decimal]:
    """
    Split total into n exact values.

    Example:
        apportion(Decimal("100.00"), 3) → [33.33, 33.33, 33.34]
    """
    return [from_cents(c) for c in apportion_cents(to_cents(total), n)]


def sum_cents(values: Iterable[Amount]) -> int:
    return sum(to_cents(v) for v in values)


def sum_drift(values: Iterable[Amount], total: Amount) -> Decimal:
    """Signed difference between the sum of values and total"""
    return from_cents(sum_cents(values) - to_cents(total))


def sum_equals(values: Iterable[Amount], total: Amount, epsilon_cents: int = 0) -> bool:
    """
    True when the values add up to total within epsilon_cents.

    A non-zero epsilon is only meant for the advisory check while a schedule
    is being edited. Commits always use epsilon_cents=0.
    """
    return abs(sum_cents(values) - to_cents(total)) <= epsilon_cents
