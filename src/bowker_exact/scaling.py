"""Power-of-two rescaling of accumulated weights.

The exact p-value is

    p = Σ_{qualifying} w / 2^S,   S = Σ_pairs T

where every w is a product of binomial coefficients, so a single w can
approach 2^S.  For S beyond roughly 1023 neither the weights nor 2^S
fit in a double.  The accumulator therefore stores rescaled weights
``w · 2^(−factor)`` and the final division uses ``2^(S − factor)``
instead of ``2^S``; the two powers of two cancel exactly, so the
p-value is unchanged.

Choosing the factor
-------------------
With precision bound k the accumulator is kept below about
``2^(2^k)``::

    adjust = 0                               if S < 2^k
    adjust = floor(log2(S) − k + 1)          otherwise
    factor = S · (1 − 2^(−adjust))

so ``S − factor = S · 2^(−adjust)`` lands in ``[2^(k−1), 2^k)``.  When
``adjust = 0`` the factor is 0 and the arithmetic is exactly the
unscaled ``Σ w / 2^S``.

Rescaling trades overflow for underflow: weights much smaller than
``2^factor`` vanish.  If every qualifying weight vanishes, the result
is reported as precision-exhausted rather than as p = 0.  Tables large
enough that no k works need arbitrary-precision arithmetic instead.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass

import numpy as np

from ._config import DEFAULT_PRECISION_BOUND, validate_precision_bound

logger = logging.getLogger(__name__)

LN2 = math.log(2.0)


@dataclass(frozen=True)
class ScalingParameters:
    """Normalisation constants derived once per test.

    Attributes:
        total_margin: S, the sum of all non-degenerate margins.
        precision_bound: k.
        adjust: Power-of-two exponent reduction (0 = no rescaling).
        factor: ``S · (1 − 2^(−adjust))``.
        factor_ln2: ``ln 2 · factor``, subtracted from every log weight.
    """

    total_margin: int
    precision_bound: int
    adjust: int
    factor: float
    factor_ln2: float

    @property
    def residual_exponent(self) -> float:
        """S − factor, the exponent of the final divisor."""
        return self.total_margin - self.factor

    def normalise(self, log_weights: np.ndarray) -> np.ndarray:
        """Rescaled weights ``exp(log w − factor·ln 2)``."""
        return np.exp(log_weights - self.factor_ln2)

    def finalise(self, accumulator: float) -> float:
        """Divide the accumulated rescaled weight by ``2^(S − factor)``.

        Returns ``0.0`` (or a non-finite value) when the accumulator
        itself was unusable; the caller decides how to report that.
        """
        if not math.isfinite(accumulator) or accumulator <= 0.0:
            return accumulator
        try:
            return accumulator / 2.0 ** self.residual_exponent
        except OverflowError:
            # Only reachable for precision bounds above the double range.
            return math.exp(math.log(accumulator) - self.residual_exponent * LN2)


def compute_scaling(
    total_margin: int,
    precision_bound: int = DEFAULT_PRECISION_BOUND,
) -> ScalingParameters:
    """Derive :class:`ScalingParameters` for S = *total_margin*.

    Args:
        total_margin: Sum of the non-degenerate margins (>= 0).
        precision_bound: k, an integer >= 1.

    Raises:
        ValueError: If *total_margin* is negative or *precision_bound*
            is invalid.
    """
    k = validate_precision_bound(precision_bound)
    s = int(total_margin)
    if s < 0:
        raise ValueError(f"total_margin must be >= 0, got {total_margin}.")

    # floor(log2(S)) is bit_length − 1 for a positive int, so the
    # threshold S < 2^k and the adjust formula are evaluated exactly.
    adjust = max(0, s.bit_length() - k)
    factor = s * (1.0 - 2.0 ** (-adjust))

    params = ScalingParameters(
        total_margin=s,
        precision_bound=k,
        adjust=adjust,
        factor=factor,
        factor_ln2=LN2 * factor,
    )
    logger.debug(
        "Scaling for S=%d, k=%d: adjust=%d, factor=%.6g", s, k, adjust, factor
    )
    return params
