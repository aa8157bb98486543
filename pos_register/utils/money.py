"""Money and percentage helpers."""
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

TWOPLACES = Decimal('0.01')
HUNDRED = Decimal('100')


def money(value) -> Decimal:
    """Quantize a value to cents (half up). ``None``/empty count as zero."""
    if value is None or value == '':
        return Decimal('0.00')
    return Decimal(str(value)).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def to_decimal(value, field_name: str = 'value') -> Decimal:
    """
    Parse operator input (str, int, float or Decimal) into a Decimal.

    Raises:
        ValueError: if the value is empty, not numeric, or not finite.
    """
    if value is None or isinstance(value, bool):
        raise ValueError(f'Invalid {field_name}')
    if isinstance(value, str):
        value = value.strip().replace(',', '.')
        if not value:
            raise ValueError(f'Invalid {field_name}')
    try:
        result = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValueError(f'Invalid {field_name}')
    if not result.is_finite():
        raise ValueError(f'Invalid {field_name}')
    return result


def clamp_percent(value) -> Decimal:
    """Clamp a percentage to the [0, 100] range."""
    percent = to_decimal(value, 'percentage')
    if percent < 0:
        return Decimal('0')
    if percent > HUNDRED:
        return HUNDRED
    return percent


def to_paise(amount: Decimal) -> int:
    """Convert a currency amount to its minor unit (paise/cents)."""
    return int((money(amount) * HUNDRED).quantize(Decimal('1'), rounding=ROUND_HALF_UP))
