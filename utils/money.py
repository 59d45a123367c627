"""
Helpers de montos y fechas compartidos por los servicios de folio
"""

from datetime import date, datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

CENTS = Decimal("0.01")
ZERO = Decimal("0.00")


def to_decimal(value, fallback: Decimal = ZERO) -> Decimal:
    """Convierte a Decimal de forma segura (None -> fallback)"""
    if value is None:
        return fallback
    try:
        if isinstance(value, Decimal):
            return value
        return Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        return fallback


def quantize_money(value) -> Decimal:
    """Redondea a centavos"""
    return to_decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP)


def format_quantity(quantity) -> str:
    """2.00 -> '2', 1.50 -> '1.5'"""
    qty = to_decimal(quantity)
    if qty == qty.to_integral_value():
        return str(int(qty))
    return format(qty.normalize(), "f")


def parse_to_date(value) -> date:
    """Convierte string/datetime/date a date"""
    if value is None:
        raise ValueError("Date value is None")

    if isinstance(value, datetime):
        return value.date()

    if isinstance(value, date):
        return value

    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.replace('Z', '+00:00')).date()
        except ValueError:
            try:
                return datetime.strptime(value, '%Y-%m-%d').date()
            except ValueError:
                raise ValueError(f"Invalid date format: {value}")

    raise TypeError(f"Unsupported date type: {type(value)}")
