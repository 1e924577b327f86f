"""Exact test runner — orchestrates one pass over the permutation space.

The :class:`ExactTestRunner` walks a fixed sequence of states::

    INIT → COMPUTE_OBSERVED → COMPUTE_SCALING → ENUMERATE → FINALIZE → DONE

1. **Init** — validate the frequency table and the run options.
2. **Compute observed** — Bowker's statistic of the observed table.
3. **Compute scaling** — :class:`~.scaling.ScalingParameters` from
   S = Σ T and the precision bound k.
4. **Enumerate** — stream the permutation space in bounded batches.
   Every assignment whose statistic is **>=** the observed one
   contributes its rescaled weight ``exp(log w − factor·ln 2)``.  Ties
   count: the observed assignment always qualifies, so a computable
   p-value is never zero.
5. **Finalize** — ``p = acc / 2^(S − factor)``.  Round-off within
   ``1e-12`` of 1 is clamped to 1; a non-positive or non-finite p is
   reported as precision-exhausted instead of as a number.

Summation
~~~~~~~~~
Each batch is summed with ``numpy.sum`` (pairwise) and the per-batch
and per-partition partial sums are combined with ``math.fsum``, so the
result does not depend on enumeration order beyond round-off.

Parallelism
~~~~~~~~~~~
When ``n_jobs != 1`` the space is split on its leading pair (see
:meth:`~.permutations.PermutationSpace.partition`) and the parts are
accumulated with ``joblib.Parallel(prefer="threads")``.  The lookup
gathers and ``exp`` calls release the GIL on large batches; the parts
share no mutable state and are reduced by a single ``fsum``.

Resource limits
~~~~~~~~~~~~~~~
The space grows as ∏ (T + 1) and there is no built-in cap.  Callers may
set ``max_permutations`` (checked before enumeration) and ``timeout``
(checked between batches); either raises :class:`ResourceExhaustion`.
"""

from __future__ import annotations

import enum
import logging
import math
import time
import warnings

import numpy as np
from joblib import Parallel, cpu_count, delayed

from ._config import resolve_precision_bound
from ._exceptions import PrecisionExhausted, ResourceExhaustion
from ._results import SymmetryTestResult, format_p_value
from ._typing import ArrayLike
from .permutations import PermutationSpace
from .scaling import ScalingParameters, compute_scaling
from .statistics import (
    observed_statistic,
    scaled_observed_statistic,
    scaled_term_tables,
    statistic_batch,
    term_tables,
)
from .table import FrequencyTable, as_frequency_table
from .weights import log_binomial_tables, log_weight_batch

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 8192

# Relative slack for ties when the statistic has to be compared in
# floating point (margins whose LCM overflows int64).
_TIE_RTOL = 1e-10

# |p − 1| at or below this is round-off, not a real sub-1 p-value.
_ONE_EPSILON = 1e-12

_LARGE_SPACE = 10**8


class RunnerState(enum.Enum):
    """Lifecycle of an :class:`ExactTestRunner`."""

    INIT = "init"
    COMPUTE_OBSERVED = "compute_observed"
    COMPUTE_SCALING = "compute_scaling"
    ENUMERATE = "enumerate"
    FINALIZE = "finalize"
    DONE = "done"


def _accumulate(
    space: PermutationSpace,
    stat_tables: list[np.ndarray],
    threshold: float | int,
    weight_tables: list[np.ndarray],
    scaling: ScalingParameters,
    batch_size: int,
    deadline: float | None,
) -> float:
    """Sum the rescaled weights of qualifying assignments in *space*."""
    margins = space.margins
    partials: list[float] = []
    for batch in space.iter_batches(batch_size):
        if deadline is not None and time.monotonic() >= deadline:
            raise ResourceExhaustion(
                "Exact enumeration exceeded its timeout before covering the "
                f"permutation space ({space.size} assignments in this part)."
            )
        stats = statistic_batch(batch, margins, stat_tables)
        qualifying = batch[stats >= threshold]
        if qualifying.shape[0] == 0:
            continue
        logw = log_weight_batch(qualifying, margins, weight_tables)
        # Overflow is reported as precision exhaustion at finalize.
        with np.errstate(over="ignore"):
            partials.append(float(np.sum(scaling.normalise(logw))))
    return math.fsum(partials)


class ExactTestRunner:
    """Runs the exact Bowker test on one frequency table.

    Construct a runner, then call :meth:`run`.  The runner keeps its
    intermediate quantities (``observed``, ``scaling``,
    ``accumulator``) as attributes so they can be inspected after, or
    part-way through, a run.

    Args:
        table: A :class:`~.table.FrequencyTable` or anything it accepts.
        precision_bound: k for :func:`~.scaling.compute_scaling`;
            defaults to the configured bound (see :mod:`._config`).
        n_jobs: Number of joblib workers (``-1`` for all cores).
        batch_size: Assignments evaluated per vectorised block.
        max_permutations: Optional ceiling on the permutation space.
        timeout: Optional wall-clock limit in seconds.
        precision: Decimal places in ``p_value_str``.
        p_value_threshold_one: First significance level.
        p_value_threshold_two: Second significance level.

    Raises:
        ShapeError: If the table is not a square K×K table, 2 <= K <= 9.
        DomainError: If a count is not a finite non-negative integer.
        ValueError: If an option is out of range.
    """

    def __init__(
        self,
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
    ) -> None:
        self.state = RunnerState.INIT
        # Frames between a warning and the code that called run().
        self._warn_stacklevel = 3

        self.table: FrequencyTable = as_frequency_table(table)
        self.precision_bound: int = resolve_precision_bound(precision_bound)

        if n_jobs == 0:
            raise ValueError("n_jobs must be a non-zero integer.")
        if batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {batch_size}.")
        if max_permutations is not None and max_permutations < 1:
            raise ValueError(
                f"max_permutations must be >= 1, got {max_permutations}."
            )
        if timeout is not None and timeout < 0:
            raise ValueError(f"timeout must be >= 0, got {timeout}.")

        self.n_jobs = n_jobs
        self.batch_size = batch_size
        self.max_permutations = max_permutations
        self.timeout = timeout
        self.precision = precision
        self.p_value_threshold_one = p_value_threshold_one
        self.p_value_threshold_two = p_value_threshold_two

        self.space = PermutationSpace.from_table(self.table)
        self.observed: float | None = None
        self.scaling: ScalingParameters | None = None
        self.accumulator: float | None = None
        self.result: SymmetryTestResult | None = None

    # ---- state machine ------------------------------------------- #

    def _advance(self, state: RunnerState) -> None:
        logger.debug("ExactTestRunner: %s -> %s", self.state.value, state.value)
        self.state = state

    def run(self) -> SymmetryTestResult:
        """Execute every remaining state and return the result.

        Calling :meth:`run` again after completion returns the cached
        result; the computation is deterministic, so there is nothing
        to retry.
        """
        if self.state is RunnerState.DONE:
            assert self.result is not None
            return self.result
        if self.state is not RunnerState.INIT:
            raise RuntimeError(
                f"Cannot run from state '{self.state.value}'; a previous run "
                "was interrupted.  Construct a new ExactTestRunner."
            )

        self._compute_observed()
        self._compute_scaling()
        self._enumerate()
        return self._finalize()

    def _compute_observed(self) -> None:
        self._advance(RunnerState.COMPUTE_OBSERVED)
        self.observed = observed_statistic(self.table)
        logger.debug("Observed Bowker statistic: %.10g", self.observed)

    def _compute_scaling(self) -> None:
        self._advance(RunnerState.COMPUTE_SCALING)
        self.scaling = compute_scaling(
            sum(self.space.margins), self.precision_bound
        )

    def _n_parts(self) -> int:
        if self.n_jobs == 1:
            return 1
        if self.n_jobs < 0:
            return max(1, cpu_count() + 1 + self.n_jobs)
        return self.n_jobs

    def _enumerate(self) -> None:
        self._advance(RunnerState.ENUMERATE)
        assert self.observed is not None and self.scaling is not None

        size = self.space.size
        if self.max_permutations is not None and size > self.max_permutations:
            raise ResourceExhaustion(
                f"The permutation space has {size} assignments, more than "
                f"max_permutations={self.max_permutations}."
            )
        if self.max_permutations is None and size > _LARGE_SPACE:
            warnings.warn(
                f"The permutation space has {size} assignments; exhaustive "
                f"enumeration may take a very long time.  Pass "
                f"max_permutations or timeout to bound it.",
                UserWarning,
                stacklevel=self._warn_stacklevel,
            )

        margins = self.space.margins
        exact = scaled_term_tables(margins)
        threshold: float | int
        if exact is not None:
            stat_tables, scale = exact
            threshold = scaled_observed_statistic(self.table, scale)
        else:
            stat_tables = term_tables(margins)
            threshold = self.observed * (1.0 - _TIE_RTOL)
        weight_tables = log_binomial_tables(margins)

        deadline = None if self.timeout is None else time.monotonic() + self.timeout
        parts = self.space.partition(self._n_parts())
        logger.debug(
            "Enumerating %d assignments over %d pair(s) in %d part(s), "
            "exact ties: %s",
            size,
            self.space.n_pairs,
            len(parts),
            exact is not None,
        )

        args = (stat_tables, threshold, weight_tables, self.scaling, self.batch_size, deadline)
        if len(parts) == 1:
            partials = [_accumulate(parts[0], *args)]
        else:
            partials = Parallel(n_jobs=len(parts), prefer="threads")(
                delayed(_accumulate)(part, *args) for part in parts
            )
        self.accumulator = math.fsum(partials)

    def _finalize(self) -> SymmetryTestResult:
        self._advance(RunnerState.FINALIZE)
        assert self.scaling is not None and self.accumulator is not None
        assert self.observed is not None

        p = self.scaling.finalise(self.accumulator)
        message: str | None = None
        p_value: float | None
        if not math.isfinite(p) or p <= 0.0:
            p_value = None
            message = (
                f"The exact p-value could not be represented with "
                f"precision_bound={self.precision_bound} "
                f"(S={self.scaling.total_margin}, accumulator={self.accumulator!r}).  "
                f"Adjust the precision bound; if no bound works, the table "
                f"needs arbitrary-precision arithmetic."
            )
            warnings.warn(
                message, PrecisionExhausted, stacklevel=self._warn_stacklevel
            )
        elif p > 1.0 or 1.0 - p <= _ONE_EPSILON:
            p_value = 1.0
        else:
            p_value = p

        self.result = SymmetryTestResult(
            permutations_computed=self.space.size,
            weighted_permutations_exponent=self.scaling.total_margin,
            p_value=p_value,
            precision_exhausted=p_value is None,
            message=message,
            observed_statistic=self.observed,
            n_levels=self.table.n_levels,
            n_pairs=self.space.n_pairs,
            precision_bound=self.precision_bound,
            scaling=self.scaling,
            p_value_str=format_p_value(
                p_value,
                self.precision,
                self.p_value_threshold_one,
                self.p_value_threshold_two,
            ),
            p_value_threshold_one=self.p_value_threshold_one,
            p_value_threshold_two=self.p_value_threshold_two,
            labels=self.table.labels,
        )
        self._advance(RunnerState.DONE)
        return self.result
