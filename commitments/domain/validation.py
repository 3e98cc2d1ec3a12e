"""
Input rules checked before any storage access.

Both helpers either return a normalized value or raise a domain exception,
so a rejected request never reaches a transaction.
"""

from decimal import Decimal, InvalidOperation

from commitments.domain.exceptions import InvalidAmount, InvalidDiscountPercentage

ALLOWED_DISCOUNT_PERCENTAGES = range(0, 7)

# Amounts are stored with two fractional digits.
AMOUNT_EXPONENT = -2


def validate_discount_percent(discount_percent):
    if isinstance(discount_percent, bool) or not isinstance(discount_percent, int):
        raise InvalidDiscountPercentage(discount_percent)
    if discount_percent not in ALLOWED_DISCOUNT_PERCENTAGES:
        raise InvalidDiscountPercentage(discount_percent)
    return discount_percent


def parse_amount(amount, *, allow_zero=False):
    """
    Coerce ``amount`` to a Decimal with at most two fractional digits.

    Purchase amounts must be strictly positive; target amounts pass
    ``allow_zero=True`` and only need to be non-negative.
    """
    if isinstance(amount, bool) or amount is None:
        raise InvalidAmount(amount, "not a number")
    try:
        value = amount if isinstance(amount, Decimal) else Decimal(str(amount))
    except (InvalidOperation, ValueError):
        raise InvalidAmount(amount, "not a number")

    if not value.is_finite():
        raise InvalidAmount(amount, "not a finite number")
    if value.normalize().as_tuple().exponent < AMOUNT_EXPONENT:
        raise InvalidAmount(amount, "more than two decimal places")
    if value < 0 or (value == 0 and not allow_zero):
        raise InvalidAmount(amount, "must be positive" if not allow_zero else "must not be negative")
    return value
