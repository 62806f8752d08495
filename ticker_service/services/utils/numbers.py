"""Numeric parsing and display formatting for ticker fields."""
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation, localcontext
from typing import Any


def normalize_numeric(value: Any) -> Decimal:
    """Converte valores que chegam como número ou string para ``Decimal``.

    - ``None``, strings vazias e valores não numéricos retornam ``Decimal(0)``
      (tratado como "sem dado" pelo merge).
    - Floats passam por ``str`` para manter a representação curta do upstream.
    """
    if value is None or isinstance(value, bool):
        return Decimal(0)
    if isinstance(value, Decimal):
        return value if value.is_finite() else Decimal(0)
    if isinstance(value, (int, float)):
        value = str(value)
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            return Decimal(0)
        try:
            parsed = Decimal(stripped.replace(",", "."))
        except InvalidOperation:
            return Decimal(0)
        return parsed if parsed.is_finite() else Decimal(0)
    return Decimal(0)


def ratio(numerator: Any, denominator: Any) -> Decimal:
    num = normalize_numeric(numerator)
    den = normalize_numeric(denominator)
    if not num or not den:
        return Decimal(0)
    return num / den


def round_fixed(value: Any, places: int) -> str:
    """Half-up rounding to ``places`` decimals in fixed notation; zero renders as ``""``."""
    quantum = Decimal(1).scaleb(-places)
    with localcontext() as ctx:
        ctx.prec = 60
        try:
            rounded = normalize_numeric(value).quantize(quantum, rounding=ROUND_HALF_UP)
        except InvalidOperation:
            # too many digits for the context: no usable data
            return ""
    if rounded.is_zero():
        return ""
    return f"{rounded:f}"


def round_usd(value: Any) -> str:
    # 6 decimals, trailing zeros dropped: 0.05 stays "0.05"
    text = round_fixed(value, 6)
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def round_btc(value: Any) -> str:
    return round_fixed(value, 8)


def round_whole(value: Any) -> str:
    return round_fixed(value, 0)


def format_supply(value: Any) -> str:
    amount = normalize_numeric(value)
    if amount.is_zero():
        return ""
    return f"{amount.normalize():f}"
