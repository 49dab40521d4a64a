"""Conversion between human-readable amounts and atomic units.

All arithmetic is done on Decimal coefficients, never floats.
"""

from decimal import Decimal, Inexact, Overflow, localcontext
from typing import Union

from chainweaver.relay.base import InvalidAmountError

NEAR_DECIMALS = 24

# Largest deposit a transfer action can carry (u128)
MAX_ATOMIC_UNITS = 2**128 - 1


def to_atomic_units(amount: Union[Decimal, int, str], decimals: int = NEAR_DECIMALS) -> int:
    """Convert a whole-unit amount to atomic units.

    Args:
        amount: Amount in whole currency units
        decimals: Exponent of the unit scale (24 for yoctoNEAR)

    Returns:
        Exact integer number of atomic units

    Raises:
        InvalidAmountError: Amount is not finite, not positive, or carries
            more fractional digits than the scale supports, or exceeds
            MAX_ATOMIC_UNITS once scaled
    """
    try:
        value = amount if isinstance(amount, Decimal) else Decimal(str(amount))
    except ArithmeticError:
        raise InvalidAmountError(f"Invalid amount format: {amount!r}") from None

    if not value.is_finite():
        raise InvalidAmountError("amount must be a finite number.")
    if value <= 0:
        raise InvalidAmountError("amount must be a positive number.")

    # Shifting the exponent is exact as long as the coefficient fits
    try:
        with localcontext() as ctx:
            ctx.prec = max(ctx.prec, len(value.as_tuple().digits))
            ctx.traps[Inexact] = True
            scaled = value.scaleb(decimals)
    except Overflow:
        raise InvalidAmountError("amount is too large.") from None
    except ArithmeticError:
        raise InvalidAmountError(
            f"amount {value} has more than {decimals} fractional digits."
        ) from None

    if scaled != scaled.to_integral_value():
        raise InvalidAmountError(
            f"amount {value} has more than {decimals} fractional digits."
        )
    atomic = int(scaled)
    if atomic > MAX_ATOMIC_UNITS:
        raise InvalidAmountError("amount is too large.")
    return atomic


def format_atomic_units(value: int, decimals: int = NEAR_DECIMALS) -> str:
    """Render atomic units as a whole-unit amount without trailing zeros."""
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, len(str(abs(value))) + 1)
        human = Decimal(value).scaleb(-decimals)
    text = format(human, "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text
