"""
Decimal-place arithmetic for venue-native prices and sizes.

Venues describe precision either as a number of decimals or as a tick size
("0.001"); everything here works in decimals. Rounding goes through
``Decimal`` so half-way values round away from zero instead of to even.
"""

from decimal import ROUND_CEILING, ROUND_FLOOR, ROUND_HALF_UP, Decimal, InvalidOperation

AGG_DECIMALS = 8


def _quantize(value: float, prec: int, rounding: str) -> float:
    if prec < 0:
        prec = 0
    exp = Decimal(1).scaleb(-prec)
    return float(Decimal(repr(value)).quantize(exp, rounding=rounding))


def round_to(value: float, prec: int) -> float:
    """Round to ``prec`` decimals, half away from zero."""
    return _quantize(value, prec, ROUND_HALF_UP)


def floor_to(value: float, prec: int) -> float:
    """Round down to ``prec`` decimals."""
    return _quantize(value, prec, ROUND_FLOOR)


def ceil_to(value: float, prec: int) -> float:
    """Round up to ``prec`` decimals."""
    return _quantize(value, prec, ROUND_CEILING)


def parse_precision(tick: str) -> int:
    """
    Convert a tick size into a number of decimals.

    ``"0.001"`` -> 3, ``"1"`` -> 0, ``"0.00010000"`` -> 4, ``"1e-05"`` -> 5.
    """
    try:
        exponent = Decimal(str(tick).strip()).normalize().as_tuple().exponent
    except InvalidOperation as e:
        raise ValueError(f"invalid tick size: {tick!r}") from e
    if not isinstance(exponent, int):
        raise ValueError(f"invalid tick size: {tick!r}")
    return max(0, -exponent)


def multiply(price: float, mult: float, prec: int) -> float:
    """
    Multiply ``price`` by ``mult`` and round to ``prec`` decimals.

    The result is guaranteed to move in the direction of ``mult``: when
    rounding swallows the change it is nudged by 1% steps until it is
    strictly above (mult > 1) or strictly below (mult < 1) ``price``.
    """
    out = round_to(price * mult, prec)
    if price <= 0:
        return out
    if mult > 1:
        while out <= price:
            out = round_to(out * 1.01, prec)
            if out <= price:
                out = round_to(out + 10 ** -prec, prec)
    elif mult < 1:
        while out >= price and out > 0:
            out = round_to(out * 0.99, prec)
            if out >= price:
                out = round_to(out - 10 ** -prec, prec)
    return out


def round_to_agg(value: float, agg: float) -> float:
    """Snap ``value`` to the nearest multiple of the bucket width ``agg``."""
    if agg <= 0:
        return value
    return round_to(int(value / agg + 0.5) * agg, AGG_DECIMALS)
