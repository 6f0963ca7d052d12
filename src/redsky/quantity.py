"""Resource quantity parsing and scaling helpers.

Quantities follow the cluster notation: a decimal number followed by an
optional binary suffix (``Ki`` .. ``Ei``), decimal suffix (``n`` .. ``E``)
or exponent (``e3``). The format of the suffix is remembered so values can
be scaled back into the same family of units.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from decimal import ROUND_UP, Decimal, InvalidOperation, localcontext
from enum import Enum, IntEnum


class Format(str, Enum):
    """Unit family a quantity was written in."""

    BINARY_SI = "BinarySI"
    DECIMAL_SI = "DecimalSI"
    DECIMAL_EXPONENT = "DecimalExponent"


class Scale(IntEnum):
    """Powers of ten used when scaling quantities."""

    NANO = -9
    MICRO = -6
    MILLI = -3
    ONE = 0
    KILO = 3
    MEGA = 6
    GIGA = 9
    TERA = 12
    PETA = 15
    EXA = 18


_BINARY_MULTIPLIERS: dict[str, int] = {
    "Ki": 1024,
    "Mi": 1024**2,
    "Gi": 1024**3,
    "Ti": 1024**4,
    "Pi": 1024**5,
    "Ei": 1024**6,
}

_DECIMAL_EXPONENTS: dict[str, int] = {
    "n": -9,
    "u": -6,
    "m": -3,
    "": 0,
    "k": 3,
    "M": 6,
    "G": 9,
    "T": 12,
    "P": 15,
    "E": 18,
}

# Index is (scale - Scale.NANO) / 3
_BINARY_SUFFIXES = ["", "", "", "", "Ki", "Mi", "Gi", "Ti", "Pi", "Ei"]
_DECIMAL_SUFFIXES = ["n", "u", "m", "", "k", "M", "G", "T", "P", "E"]

_QUANTITY_RE = re.compile(r"^([+-]?(?:\d+\.?\d*|\.\d+))([eE][+-]?\d+|[A-Za-z]*)$")

_INT32_SPAN = 2**32
_INT32_MIN = -(2**31)


@dataclass(frozen=True)
class Quantity:
    """An exact resource quantity and the unit family it was written in."""

    amount: Decimal
    format: Format = Format.DECIMAL_SI

    @classmethod
    def parse(cls, text: str | int | float) -> Quantity:
        """Parse a quantity string such as ``"500m"`` or ``"1Gi"``.

        Raises:
            ValueError: If the text is not a valid quantity.
        """
        if isinstance(text, (int, float)) and not isinstance(text, bool):
            text = str(text)
        if not isinstance(text, str):
            raise ValueError(f"invalid quantity {text!r}")
        match = _QUANTITY_RE.match(text.strip())
        if match is None:
            raise ValueError(f"invalid quantity {text!r}")

        number, suffix = match.groups()
        try:
            amount = Decimal(number)
        except InvalidOperation as exc:
            raise ValueError(f"invalid quantity {text!r}") from exc

        with localcontext() as ctx:
            ctx.prec = 60
            if suffix in _BINARY_MULTIPLIERS:
                return cls(amount * _BINARY_MULTIPLIERS[suffix], Format.BINARY_SI)
            if suffix[:1] in ("e", "E") and len(suffix) > 1:
                return cls(amount.scaleb(int(suffix[1:])), Format.DECIMAL_EXPONENT)
            if suffix in _DECIMAL_EXPONENTS:
                return cls(amount.scaleb(_DECIMAL_EXPONENTS[suffix]), Format.DECIMAL_SI)
        raise ValueError(f"invalid quantity suffix {suffix!r} in {text!r}")

    def value(self) -> int:
        """Return the quantity as an integer, rounding away from zero."""
        return self.scaled_value(Scale.ONE)

    def scaled_value(self, scale: int) -> int:
        """Return ``amount / 10**scale`` rounded away from zero."""
        with localcontext() as ctx:
            ctx.prec = 60
            return int(self.amount.scaleb(-int(scale)).to_integral_value(ROUND_UP))

    def as_float(self) -> float:
        return float(self.amount)


def _to_int32(v: int) -> int:
    """Wrap an integer into the signed 32-bit range (two's complement)."""
    return (v - _INT32_MIN) % _INT32_SPAN + _INT32_MIN


def _trunc_div(v: int, d: int) -> int:
    q = abs(v) // d
    return q if v >= 0 else -q


def scale_to_int(q: Quantity, scale: int) -> int:
    """Scale a quantity honoring the base implied by its format.

    Decimal quantities are scaled directly. Binary quantities are divided
    (positive scale) or multiplied (negative scale) by 1024 once for every
    three units of scale, so ``scale_to_int(Quantity.parse("1Ki"), Scale.KILO)``
    is 1. The result wraps to the signed 32-bit range; callers are
    responsible for range checks.
    """
    if q.format != Format.BINARY_SI:
        return _to_int32(q.scaled_value(scale))

    v = q.value()
    steps = int(scale) // 3 if scale >= 0 else -(-int(scale) // 3)
    if steps > 0:
        for _ in range(steps):
            v = _trunc_div(v, 1024)
    else:
        for _ in range(-steps):
            v *= 1024
    return _to_int32(v)


def suffix_for(scale: int, format: Format | str) -> str:
    """Return the unit suffix for a scale, or an empty string if there is none.

    Suffixes only exist for scales that are multiples of three between
    ``Scale.NANO`` and ``Scale.EXA``.
    """
    if format == Format.BINARY_SI:
        suffixes = _BINARY_SUFFIXES
    elif format == Format.DECIMAL_SI:
        suffixes = _DECIMAL_SUFFIXES
    else:
        return ""

    offset = int(scale) - Scale.NANO
    if int(scale) % 3 != 0 or offset < 0:
        return ""
    i = offset // 3
    if i >= len(suffixes):
        return ""
    return suffixes[i]
