"""
Money helpers for the Agent Books engine

All monetary values use Decimal with ROUND_HALF_UP rounding to cents.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation, localcontext

ZERO = Decimal('0')
HUNDRED = Decimal('100')
CENT = Decimal('0.01')

# Inputs at or beyond this magnitude are treated as garbage, not money.
MAX_AMOUNT = Decimal('1e100')


def safe_number(value) -> Decimal:
    """
    Coerce a raw input (number, numeric string, None, ...) to Decimal.

    Anything that is not a finite number below MAX_AMOUNT becomes 0.
    Never raises.
    """
    if value is None or isinstance(value, bool):
        return ZERO

    if isinstance(value, Decimal):
        number = value
    elif isinstance(value, (int, float)):
        number = Decimal(str(value))
    elif isinstance(value, str):
        try:
            number = Decimal(value.strip())
        except InvalidOperation:
            return ZERO
    else:
        return ZERO

    if not number.is_finite() or number.copy_abs() >= MAX_AMOUNT:
        return ZERO
    return number


def quantize_money(value: Decimal) -> Decimal:
    """Round to 2 decimal places, half up."""
    with localcontext() as ctx:
        # Whole digits plus cents must fit in the working precision
        ctx.prec = max(ctx.prec, value.adjusted() + 3)
        return value.quantize(CENT, rounding=ROUND_HALF_UP)


def to_money(value: Decimal) -> float:
    """Convert Decimal to float with 2 decimal places."""
    return round(float(value), 2)
