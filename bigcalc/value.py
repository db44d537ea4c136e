import decimal
import logging
from decimal import Decimal
from typing import Optional

logger = logging.getLogger(__name__)

NAN = Decimal("NaN")
ONE = Decimal(1)

FIXED_EXPONENT_MIN = -3
FIXED_EXPONENT_MAX = 6
FRACTION_DIGITS = 10


class ValuePool:
    """Index-addressed scratch slots for intermediate results of one statement.

    The pool doubles when it runs out of slots, up to `limit`, and is rewound by
    `reset` before every statement. It never shrinks.
    """

    def __init__(self, size: int, limit: int) -> None:
        self.slots: list[Decimal] = [Decimal(0)] * size
        self.count = 0
        self.limit = limit

    @property
    def size(self) -> int:
        return len(self.slots)

    def reset(self) -> None:
        self.count = 0

    def acquire(self) -> Optional[int]:
        if self.count >= self.size:
            if self.size >= self.limit:
                return None
            new_size = min(self.size * 2, self.limit)
            self.slots.extend([Decimal(0)] * (new_size - self.size))
            logger.debug("Value pool resized to %d", new_size)
        idx = self.count
        self.slots[idx] = Decimal(0)
        self.count += 1
        return idx

    def __getitem__(self, idx: int) -> Decimal:
        return self.slots[idx]

    def __setitem__(self, idx: int, value: Decimal) -> None:
        self.slots[idx] = value


def parse_numeral(ctx: decimal.Context, text: str) -> Optional[Decimal]:
    """Base-10 numeral rounded to the context precision; ',' is accepted as the decimal separator.

    Returns None for a malformed numeral.
    """
    value = ctx.create_decimal(text.replace(",", "."))
    if value.is_nan() or value.is_infinite():
        # only digit strings are accepted, the special spellings are not
        return None
    return value


def truncated_remainder(ctx: decimal.Context, a: Decimal, b: Decimal) -> Decimal:
    """a - b * trunc(a / b), the sign follows the dividend (C fmod convention).

    Both operands are scaled to integers over a common exponent and reduced with
    modular exponentiation, so the quotient is never materialized. The remainder
    is exact and rounded once to the working precision.
    """
    if not a.is_finite() or not b.is_finite() or b.is_zero():
        return ctx.remainder(a, b)
    if a.is_zero():
        return ctx.copy_sign(Decimal(0), a)
    if a.copy_abs() < b.copy_abs():
        return ctx.plus(a)

    _, a_digits, a_exp = a.as_tuple()
    _, b_digits, b_exp = b.as_tuple()
    a_coefficient = int(Decimal((0, a_digits, 0)))
    b_coefficient = int(Decimal((0, b_digits, 0)))
    exponent = min(a_exp, b_exp)
    # |a| >= |b| keeps b_exp - exponent within the coefficient lengths
    modulus = b_coefficient * 10 ** (b_exp - exponent)
    remainder = a_coefficient * pow(10, a_exp - exponent, modulus) % modulus
    return ctx.copy_sign(Decimal(remainder).scaleb(exponent, ctx), a)


def power(ctx: decimal.Context, base: Decimal, exponent: Decimal) -> Decimal:
    # pow(x, 0) = 1 and pow(1, y) = 1 for every x and y, NaN included
    if exponent.is_zero():
        return ONE
    if not base.is_nan() and base == ONE:
        return ONE
    if is_negative(base) and not exponent.is_nan():
        # IEEE rules: pow(-Inf, y) for non-integral y and pow(x < 0, +-Inf) ignore the sign of x
        integral = exponent.is_finite() and exponent == exponent.to_integral_value()
        if exponent.is_infinite() or (base.is_infinite() and not integral):
            return ctx.power(base.copy_abs(), exponent)
    return ctx.power(base, exponent)


def is_negative(value: Decimal) -> bool:
    return value.is_signed() and not value.is_zero() and not value.is_nan()


def decimal_exponent(value: Decimal) -> int:
    """e such that value = 0.d1d2... * 10^e, zero has e = 0"""
    if value.is_zero():
        return 0
    return value.adjusted() + 1


def format_value(value: Decimal) -> str:
    """Fixed notation for decimal exponents in [-3, 6], scientific otherwise.

    >>> format_value(Decimal(14))
    '14.00000000'
    >>> format_value(Decimal("12345678"))
    '1.2345678000e+07'
    """
    if value.is_nan():
        return "NaN"
    if value.is_infinite():
        return "-Infinity" if value.is_signed() else "Infinity"

    exponent = decimal_exponent(value)
    if FIXED_EXPONENT_MIN <= exponent <= FIXED_EXPONENT_MAX:
        digits = min(max(FRACTION_DIGITS - exponent, 0), FRACTION_DIGITS)
        quantum = Decimal(1).scaleb(-digits)
        quantize_ctx = decimal.Context(prec=FIXED_EXPONENT_MAX + FRACTION_DIGITS + 1, traps=[])
        return format(value.quantize(quantum, rounding=decimal.ROUND_HALF_EVEN, context=quantize_ctx), "f")

    rounded = decimal.Context(
        prec=FRACTION_DIGITS + 1,
        rounding=decimal.ROUND_HALF_EVEN,
        Emax=decimal.MAX_EMAX,
        Emin=decimal.MIN_EMIN,
        traps=[],
    ).plus(value)
    sign, digits, _ = rounded.as_tuple()
    coefficient = "".join(str(d) for d in digits).ljust(FRACTION_DIGITS + 1, "0")
    adjusted = rounded.adjusted()
    return (
        ("-" if sign else "")
        + f"{coefficient[0]}.{coefficient[1:]}"
        + f"e{'+' if adjusted >= 0 else '-'}{abs(adjusted):02d}"
    )
