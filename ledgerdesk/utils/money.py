from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from ledgerdesk.errors import ValidationError

CENT = Decimal('0.01')
ZERO = Decimal('0.00')


def to_decimal(value, field='amount'):
    if value is None or value == '':
        raise ValidationError(f"Missing required field: {field}", field=field)
    if isinstance(value, bool):
        raise ValidationError(f"Invalid {field}", field=field)
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError(f"Invalid {field}: {value!r} is not a number", field=field)
    if not amount.is_finite():
        raise ValidationError(f"Invalid {field}", field=field)
    return amount


def positive_number(value, field='quantity'):
    """Strictly positive, kept at the precision it was given (quantities, unit rates)."""
    number = to_decimal(value, field)
    if number <= 0:
        raise ValidationError(f"{field} must be greater than zero", field=field)
    return number


def positive_amount(value, field='amount'):
    """
    Strictly positive money value, rounded to the cent before the check so
    what is validated is exactly what gets stored.
    """
    amount = round2(to_decimal(value, field))
    if amount <= 0:
        raise ValidationError(f"{field} must be at least 0.01", field=field)
    return amount


def round2(value):
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def money_str(value):
    """Persisted form of a money value, e.g. '500.00'."""
    return str(round2(value))


def money_float(value):
    return float(round2(value))
