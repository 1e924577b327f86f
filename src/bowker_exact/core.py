"""Public entry points for the exact Bowker test of symmetry.

Bowker's test asks whether a square contingency table is symmetric,
H₀: P(i, j) = P(j, i) for every i ≠ j — for two raters, whether their
disagreements are balanced in both directions.  The classical test
refers Bowker's statistic to a chi-square distribution, which is
unreliable when the off-diagonal cells are sparse.  The exact test
avoids the approximation:

    Conditional on each mirrored pair's margin T_ij = F_ij + F_ji, H₀
    makes every one of the T_ij discordant observations fall on either
    side of the diagonal with probability 1/2.  The reference set is
    therefore every split of every margin, each weighted by the number
    of orderings C(T_ij, f) it stands for, out of 2^S in total
    (S = Σ T_ij).

The p-value is the weighted share of splits whose statistic is at
least the observed one:

    p = Σ_{B(f) >= B_obs} ∏_pairs C(T, f) / 2^S

With a single non-degenerate pair this is McNemar's exact test.

Two entry points are provided:

* :func:`bowker_exact_test` — takes a K×K count matrix.
* :func:`bowker_exact_test_from_records` — tabulates case-level
  records first and attaches agreement statistics to the result.

References:
    Bowker, A. H. (1948). A test for symmetry in contingency tables.
    *Journal of the American Statistical Association*, 43(244),
    572–574.

    McNemar, Q. (1947). Note on the sampling error of the difference
    between correlated proportions or percentages. *Psychometrika*,
    12(2), 153–157.
"""

from __future__ import annotations

from collections.abc import Hashable, Sequence
from dataclasses import replace
from typing import Any

from ._compat import DataFrameLike
from ._results import SymmetryTestResult
from ._typing import ArrayLike
from .diagnostics import compute_agreement
from .engine import DEFAULT_BATCH_SIZE, ExactTestRunner
from .table import FrequencyTable
from .tabulate import RecordFilter, build_frequency_table

# Warnings point past the public function to its caller.
_API_STACKLEVEL = 4


def bowker_exact_test(
    table: FrequencyTable | ArrayLike,
    *,
    precision_bound: int | None = None,
    n_jobs: int = 1,
    batch_size: int = DEFAULT_BATCH_SIZE,
    max_permutations: int | None = None,
    timeout: float | None = None,
    precision: int = 4,
    p_value_threshold_one: float = 0.05,
    p_value_threshold_two: float = 0.01,
) -> SymmetryTestResult:
    """Exact permutation p-value for Bowker's test of symmetry.

    Args:
        table: Square K×K matrix of non-negative integer counts
            (2 <= K <= 9).  The diagonal is ignored.
        precision_bound: Precision bound k for weight rescaling.
            Defaults to the configured bound (10 unless overridden by
            :func:`~bowker_exact.set_precision_bound` or the
            ``BOWKER_EXACT_PRECISION_BOUND`` environment variable).
        n_jobs: Parallel workers for the enumeration (``-1`` = all
            cores).  The result does not depend on it beyond round-off.
        batch_size: Assignments evaluated per vectorised block.
        max_permutations: Refuse to enumerate spaces larger than this.
        timeout: Abort the enumeration after this many seconds.
        precision: Decimal places for the formatted p-value.
        p_value_threshold_one: First significance level.
        p_value_threshold_two: Second significance level.

    Returns:
        :class:`~bowker_exact.SymmetryTestResult` with
        ``permutations_computed``, ``weighted_permutations_exponent``
        and ``p_value`` (``None`` when precision is exhausted).

    Raises:
        ShapeError: If *table* is not square or K is out of range.
        DomainError: If *table* holds negative, fractional or
            non-finite counts.
        ResourceExhaustion: If *max_permutations* or *timeout* is
            exceeded.

    Warns:
        PrecisionExhausted: If the p-value cannot be represented at the
            chosen precision bound.
    """
    runner = ExactTestRunner(
        table,
        precision_bound=precision_bound,
        n_jobs=n_jobs,
        batch_size=batch_size,
        max_permutations=max_permutations,
        timeout=timeout,
        precision=precision,
        p_value_threshold_one=p_value_threshold_one,
        p_value_threshold_two=p_value_threshold_two,
    )
    runner._warn_stacklevel = _API_STACKLEVEL
    return runner.run()


def bowker_exact_test_from_records(
    data: DataFrameLike,
    row: str,
    col: str,
    *,
    weights: str | None = None,
    where: RecordFilter | None = None,
    levels: Sequence[Hashable] | None = None,
    **test_kwargs: Any,
) -> SymmetryTestResult:
    """Tabulate case-level records, then run :func:`bowker_exact_test`.

    Args:
        data: Records as a pandas or Polars DataFrame.
        row: Column holding the row variable (e.g. rater A).
        col: Column holding the column variable (e.g. rater B).
        weights: Optional column of non-negative integer case weights.
        where: Optional record filter — a ``DataFrame.query`` string, a
            callable returning a boolean mask, or a boolean mask.
        levels: Explicit level order; defaults to the sorted union of
            observed levels.
        **test_kwargs: Forwarded to :func:`bowker_exact_test`.

    Returns:
        The test result, labelled with the levels and carrying
        agreement statistics in ``result.agreement``.
    """
    table = build_frequency_table(
        data, row, col, weights=weights, where=where, levels=levels
    )
    runner = ExactTestRunner(table, **test_kwargs)
    runner._warn_stacklevel = _API_STACKLEVEL
    result = runner.run()
    return replace(result, agreement=compute_agreement(table))
