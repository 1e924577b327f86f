"""Combinatorial weights of candidate assignments, in log space.

The enumerated assignments are not equally likely.  Under H0 each of
the T discordant observations in a pair falls on either side of the
diagonal with probability 1/2, so the split ``(f, T − f)`` stands for
``C(T, f)`` elementary orderings.  Pairs are independent, so the weight
of a joint assignment is the product of its pairs' binomial
coefficients, and its log weight is the sum::

    log w = Σ_pairs [ lnΓ(T+1) − lnΓ(f+1) − lnΓ(T−f+1) ]

``scipy.special.gammaln`` evaluates lnΓ directly, so margins far past
the point where T! overflows a double stay accurate.
"""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np
from scipy.special import gammaln


def log_binomial(margin: int, f: int) -> float:
    """ln C(margin, f) via log-gamma."""
    if not 0 <= f <= margin:
        raise ValueError(f"f must lie in [0, {margin}], got {f}.")
    return float(gammaln(margin + 1) - gammaln(f + 1) - gammaln(margin - f + 1))


def log_weight(assignment: Sequence[int], margins: Sequence[int]) -> float:
    """Log weight of a single joint assignment."""
    if len(assignment) != len(margins):
        raise ValueError(
            f"assignment has {len(assignment)} values but there are "
            f"{len(margins)} pairs."
        )
    return sum(log_binomial(t, f) for f, t in zip(assignment, margins))


def log_binomial_tables(margins: Sequence[int]) -> list[np.ndarray]:
    """Per-pair lookup tables: ``tables[p][f] = ln C(T_p, f)``."""
    tables = []
    for t in margins:
        f = np.arange(t + 1, dtype=np.float64)
        tables.append(gammaln(t + 1.0) - gammaln(f + 1.0) - gammaln(t - f + 1.0))
    return tables


def log_weight_batch(
    batch: np.ndarray,
    margins: Sequence[int],
    tables: list[np.ndarray] | None = None,
) -> np.ndarray:
    """Vectorised log weights for a ``(B, n_pairs)`` batch."""
    if tables is None:
        tables = log_binomial_tables(margins)
    logw = np.zeros(batch.shape[0], dtype=np.float64)
    for p, table in enumerate(tables):
        logw += table[batch[:, p]]
    return logw
