"""Descriptive statistics that accompany the exact symmetry test.

Bowker's test answers *"are disagreements balanced?"* — it says nothing
about how often the two classifications agree.  A report therefore
pairs the exact p-value with:

1. **Agreement** — the observed proportion on the diagonal, the
   proportion expected by chance from the marginals, and Cohen's kappa
   with its standard error and 95% confidence interval (computed by
   ``statsmodels.stats.inter_rater.cohens_kappa``).

2. **Per-pair contributions** — for each mirrored pair, the two counts,
   their margin, and the pair's term in Bowker's statistic.  Large
   terms show *where* the asymmetry lives; zero-margin pairs are listed
   with a contribution of 0 so the listing covers the whole table.
"""

from __future__ import annotations

import logging
import math
import warnings
from typing import Any

import numpy as np
import pandas as pd
from statsmodels.stats.inter_rater import cohens_kappa

from .table import FrequencyTable

logger = logging.getLogger(__name__)

_NAN_AGREEMENT: dict[str, Any] = {
    "observed_agreement": math.nan,
    "expected_agreement": math.nan,
    "kappa": math.nan,
    "kappa_se": math.nan,
    "kappa_ci_lower": math.nan,
    "kappa_ci_upper": math.nan,
}


def compute_agreement(table: FrequencyTable) -> dict[str, Any]:
    """Agreement statistics for a square table.

    Args:
        table: The K×K frequency table.

    Returns:
        Dict with ``n_total``, ``observed_agreement``,
        ``expected_agreement``, ``kappa``, ``kappa_se``,
        ``kappa_ci_lower`` and ``kappa_ci_upper``.  An empty table
        yields NaN for every statistic.
    """
    counts = table.counts.astype(float)
    n = counts.sum()
    if n == 0:
        return {"n_total": 0, **_NAN_AGREEMENT}

    p_obs = float(np.trace(counts) / n)
    p_exp = float(np.sum(counts.sum(axis=1) * counts.sum(axis=0)) / n**2)

    # Degenerate marginals (p_exp = 1) make kappa 0/0; statsmodels
    # emits RuntimeWarnings and returns NaN, which is the right answer.
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", RuntimeWarning)
        try:
            res = cohens_kappa(counts)
            kappa = float(res.kappa)
            kappa_se = float(res.std_kappa)
            ci_lower = float(res.kappa_low)
            ci_upper = float(res.kappa_upp)
        except ZeroDivisionError as exc:
            logger.debug("Cohen's kappa undefined: %s", exc)
            kappa = kappa_se = ci_lower = ci_upper = math.nan

    return {
        "n_total": int(n),
        "observed_agreement": p_obs,
        "expected_agreement": p_exp,
        "kappa": kappa,
        "kappa_se": kappa_se,
        "kappa_ci_lower": ci_lower,
        "kappa_ci_upper": ci_upper,
    }


def compute_pair_contributions(table: FrequencyTable) -> pd.DataFrame:
    """One row per mirrored pair ``i < j`` with its statistic term.

    Columns: ``row``, ``col`` (level labels, or indices when the table
    is unlabelled), ``upper`` = F(i,j), ``lower`` = F(j,i),
    ``margin`` and ``contribution``.
    """
    labels = table.labels if table.labels is not None else list(range(table.n_levels))
    records = [
        {
            "row": labels[pair.i],
            "col": labels[pair.j],
            "upper": pair.upper,
            "lower": pair.lower,
            "margin": pair.margin,
            "contribution": pair.contribution,
        }
        for pair in table.pairs()
    ]
    return pd.DataFrame.from_records(
        records,
        columns=["row", "col", "upper", "lower", "margin", "contribution"],
    )
