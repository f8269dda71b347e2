"""
Small conversion helpers shared by services and schemas
"""

from datetime import date, datetime
from decimal import Decimal, InvalidOperation

from .errors import ValidationError

# Quantities are stored as Numeric(14, 3)
QUANTITY_PLACES = 3
QUANTITY_STEP = Decimal(1).scaleb(-QUANTITY_PLACES)

MAX_NEAR_EXPIRY_DAYS = 3650


def to_decimal(value, field='quantity'):
    """Convert numbers and numeric strings to Decimal without float noise"""
    if isinstance(value, Decimal):
        return value
    if value is None:
        raise ValidationError(f'{field} is required', details={field: ['Missing value.']})
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError(f'{field} must be numeric', details={field: ['Not a valid number.']})


def to_date(value):
    """Accept date, datetime or ISO string"""
    if value is None or isinstance(value, date) and not isinstance(value, datetime):
        return value
    if isinstance(value, datetime):
        return value.date()
    return date.fromisoformat(value)


def require_user_id(user_id):
    """The acting user is mandatory for every stock-affecting call"""
    if user_id is None:
        raise ValidationError('Acting user is required', details={'user_id': ['Missing data for required field.']})
    try:
        user_id = int(user_id)
    except (TypeError, ValueError):
        raise ValidationError('Acting user id must be an integer', details={'user_id': ['Not a valid integer.']})
    if user_id < 1:
        raise ValidationError('Acting user id must be positive', details={'user_id': ['Must be greater than or equal to 1.']})
    return user_id


def has_quantity_scale(value) -> bool:
    """True when value fits the stored precision without rounding"""
    try:
        value = Decimal(str(value)) if not isinstance(value, Decimal) else value
        return value == value.quantize(QUANTITY_STEP)
    except (InvalidOperation, ValueError):
        return False


def check_quantity_scale(value, field='quantity'):
    """Reject quantities finer than the stored precision instead of rounding them"""
    value = to_decimal(value, field)
    if not has_quantity_scale(value):
        raise ValidationError(
            f'{field} has more than {QUANTITY_PLACES} decimal places: {value}',
            details={field: [f'At most {QUANTITY_PLACES} decimal places.']}
        )
    return value
