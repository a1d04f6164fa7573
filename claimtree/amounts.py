"""
Fixed-point handling of points amounts.

Raw points come out of the discord/twitter exports as decimal strings
("7.1", "0.000000000000000001", ...). The claim contract stores them as
integers scaled by 10**18, the smallest unit of the token, so every raw
amount is converted exactly, truncating (never rounding) anything past
the 18th fractional digit.
"""

import re
from decimal import Decimal, InvalidOperation, localcontext

from .errors import MalformedAmount, ScalingError

# number of fractional digits of the token's smallest unit
DECIMALS = 18
SCALE = 10 ** DECIMALS

# largest amount the contract can hold
MAX_UINT256 = 2 ** 256 - 1

# uint256 has 78 decimal digits, keep Decimal math comfortably above that
_PRECISION = 80

_DIGITS = re.compile(r"[0-9]*")


def normalize(raw: str) -> str:
    """
    Convert a raw decimal string into the canonical scaled integer string.

        normalize("7.1")                   -> "7100000000000000000"
        normalize("007.100000000000000000") -> "7100000000000000000"
        normalize("0.000000000000000001")  -> "1"
        normalize("3.1234567890123456789") -> "3123456789012345678"

    The input must contain exactly one decimal point and a non-empty
    fractional part; this is checked before any truncation happens.
    """
    v = (raw or "").strip()
    parts = v.split(".")
    if len(parts) != 2:
        raise MalformedAmount(f"amount must contain exactly one decimal point: {raw!r}")

    whole, frac = parts
    if not frac:
        raise MalformedAmount(f"amount has an empty fractional part: {raw!r}")
    if not _DIGITS.fullmatch(whole) or not _DIGITS.fullmatch(frac):
        raise MalformedAmount(f"amount is not an unsigned decimal number: {raw!r}")

    # truncate, then right-pad back to the full width
    digits = frac[:DECIMALS]
    digits += "0" * (DECIMALS - len(digits))
    if len(digits) != DECIMALS:
        raise ScalingError(f"invalid scaling for {raw!r}: got {len(digits)} fractional digits")

    # int() drops leading zeros on both sides; a whole part of "0" adds nothing
    scaled = int(whole or "0") * SCALE + int(digits)
    if scaled > MAX_UINT256:
        raise ScalingError(f"amount does not fit in uint256 once scaled: {raw!r}")
    return str(scaled)


def is_positive(raw: str) -> bool:
    """Return True when the raw amount is strictly greater than zero."""
    v = (raw or "").strip()
    try:
        return Decimal(v) > 0
    except InvalidOperation as e:
        raise MalformedAmount(f"amount is not a valid decimal number: {raw!r}") from e


def format_amount(amount: int) -> str:
    """Render a scaled integer back as a plain decimal string, e.g. 7100000000000000000 -> '7.1'."""
    with localcontext() as ctx:
        ctx.prec = _PRECISION
        d = Decimal(int(amount)).scaleb(-DECIMALS).normalize()
        return format(d, "f")
