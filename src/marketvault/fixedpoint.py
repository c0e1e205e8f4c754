"""Fixed-point helpers: decimal normalization, rounded mul-div and bps bands."""

from enum import Enum

from marketvault.errors import ValidationError

BPS_DENOMINATOR = 10_000


class Rounding(str, Enum):
    FLOOR = "floor"
    CEIL = "ceil"


def mul_div(a: int, b: int, denominator: int, rounding: Rounding = Rounding.FLOOR) -> int:
    """Compute ``a * b / denominator`` on non-negative ints with explicit rounding."""
    if denominator <= 0:
        raise ValidationError(f"denominator must be positive, got {denominator}")
    if a < 0 or b < 0:
        raise ValidationError(f"mul_div operands must be non-negative, got {a}, {b}")
    quotient, remainder = divmod(a * b, denominator)
    if rounding == Rounding.CEIL and remainder:
        quotient += 1
    return quotient


def bps_of(value: int, bps: int, rounding: Rounding = Rounding.FLOOR) -> int:
    """Return ``value * bps / 10000``."""
    return mul_div(value, bps, BPS_DENOMINATOR, rounding)


def band(reference: int, threshold_bps: int) -> tuple[int, int]:
    """Tolerance window ``[ref * (1 - t), ref * (1 + t)]`` for a threshold in bps.

    The lower bound is floored and the upper bound ceiled so an exact
    reference value is always inside its own band.
    """
    if threshold_bps < 0:
        raise ValidationError(f"threshold must be non-negative, got {threshold_bps}")
    lower_bps = max(BPS_DENOMINATOR - threshold_bps, 0)
    lower = bps_of(reference, lower_bps, Rounding.FLOOR)
    upper = bps_of(reference, BPS_DENOMINATOR + threshold_bps, Rounding.CEIL)
    return lower, upper


def outside_band(value: int, lower: int, upper: int) -> bool:
    return value < lower or value > upper


class DecimalNormalizer:
    """Rescales oracle-scaled market valuations into base-asset precision."""

    @staticmethod
    def convert(
        value: int,
        source_scale: int,
        market_decimals: int,
        asset_decimals: int,
    ) -> int:
        """Rescale ``value`` into ``asset_decimals`` precision.

        Conceptually ``value * 10**(asset_decimals - market_decimals) / 10**source_scale``.
        All multiplications happen before the single floor division so small
        magnitudes are not truncated to zero on the way.

        Raises:
            ValidationError: If ``value`` is not positive or an exponent is negative.
        """
        if value <= 0:
            raise ValidationError(f"cannot normalize non-positive value {value}")
        if source_scale < 0 or market_decimals < 0 or asset_decimals < 0:
            raise ValidationError(
                f"scales must be non-negative: source={source_scale} "
                f"market={market_decimals} asset={asset_decimals}"
            )

        numerator = value * 10**asset_decimals
        denominator = 10 ** (market_decimals + source_scale)
        return numerator // denominator
