"""Money values as the database stores them: Decimals in whole cents."""

from decimal import Decimal, InvalidOperation
from typing import Any

from visadesk.domain.errors import ValidationError

CENT = Decimal("0.01")


def to_money(value: Any, label: str = "Amount") -> Decimal:
    """Convert ``value`` to a Decimal, refusing fractions of a cent.

    Amounts are never rounded here: a stored amount that differs from the
    one the status was computed from would contradict its bill.

    Raises:
        ValidationError: If the value is not a finite number or has more
            than two decimal places
    """
    try:
        amount = Decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError(f"{label} is not a valid number: {value!r}")
    if not amount.is_finite():
        raise ValidationError(f"{label} is not a valid number: {value!r}")
    if amount != amount.quantize(CENT):
        raise ValidationError(f"{label} {amount} has more than two decimal places")
    return amount
