# -*- coding: utf-8 -*-
"""
Decimal handling for payroll figures.

Money is kept in cents (ROUND_HALF_UP), CSAT scores in hundredths and
rates in ten-thousandths, matching the column scales. Conversion to plain
numbers happens only at the service boundary (`as_number`).
"""
from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP, InvalidOperation

from sqlalchemy.types import Numeric, TypeDecorator

CENT = Decimal("0.01")
SCORE_STEP = Decimal("0.01")
RATE_STEP = Decimal("0.0001")
ZERO = Decimal("0")
# largest value a Money column (Numeric(10, 2)) holds
MAX_AMOUNT = Decimal("99999999.99")


def D(v) -> Decimal:
    """Any value -> Decimal (None -> 0), going through str() for floats."""
    if v is None or v == "":
        return ZERO
    if isinstance(v, Decimal):
        d = v
    else:
        try:
            d = Decimal(str(v))
        except InvalidOperation:
            raise ValueError(f"not a number: {v!r}")
    if not d.is_finite():
        raise ValueError(f"not a finite number: {v!r}")
    return d


def _quantize(v, step: Decimal) -> Decimal | None:
    if v is None:
        return None
    try:
        return D(v).quantize(step, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise ValueError(f"number out of range: {v!r}")


def money(v) -> Decimal | None:
    return _quantize(v, CENT)


def score(v) -> Decimal | None:
    return _quantize(v, SCORE_STEP)


def rate(v) -> Decimal | None:
    return _quantize(v, RATE_STEP)


def as_number(v):
    """Decimal -> float (int stays int, None stays None)."""
    if v is None:
        return None
    if isinstance(v, bool):
        return v
    if isinstance(v, int):
        return v
    return float(v)


class _Quantized(TypeDecorator):
    impl = Numeric
    cache_ok = True
    step = CENT

    def process_bind_param(self, value, dialect):
        return _quantize(value, self.step)

    def process_result_value(self, value, dialect):
        return _quantize(value, self.step)


class Money(_Quantized):
    step = CENT

    def __init__(self):
        super().__init__(precision=10, scale=2, asdecimal=True)


class Score(_Quantized):
    step = SCORE_STEP

    def __init__(self):
        super().__init__(precision=3, scale=2, asdecimal=True)


class Rate(_Quantized):
    step = RATE_STEP

    def __init__(self):
        super().__init__(precision=5, scale=4, asdecimal=True)
