"""Decimal helpers for currency amounts."""

from __future__ import annotations

from decimal import ROUND_DOWN, ROUND_HALF_UP, Decimal, InvalidOperation

from validatex.errors import ValidationFailure

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def to_money(value: object, rounding: str = ROUND_HALF_UP) -> Decimal:
    """Coerce a DB aggregate, float or string into a 2-place Decimal.

    ``None`` (e.g. SUM over no rows) becomes 0.00.
    """
    if value is None:
        return ZERO
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=rounding)


def floor_money(value: object) -> Decimal:
    """Round towards zero, so derived payouts never exceed their source."""
    return to_money(value, rounding=ROUND_DOWN)


def parse_amount(value: object) -> Decimal:
    """Read a caller-supplied amount exactly, refusing fractions of a cent.

    Unlike ``to_money`` this never rounds: ``99.995`` is an error, not 100.00.
    Trailing zeros are fine (``100.000`` is 100.00).
    """
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
        if not amount.is_finite():
            raise InvalidOperation
        cents = amount.quantize(CENT, rounding=ROUND_DOWN)
    except (InvalidOperation, ValueError) as exc:
        msg = "Amount must be a number"
        raise ValidationFailure(msg) from exc
    if amount != cents:
        msg = "Amounts cannot have more than 2 decimal places"
        raise ValidationFailure(msg)
    return cents
