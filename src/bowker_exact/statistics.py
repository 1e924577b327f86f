"""Bowker's statistic for observed tables and candidate assignments.

For a square table F, Bowker's statistic sums one chi-square-like term
per unordered pair of mirrored cells::

    B = Σ_{i<j, T_ij > 0} (F_ij − F_ji)² / T_ij,   T_ij = F_ij + F_ji

A candidate assignment fixes each pair's margin T and replaces F_ij by
f (so F_ji becomes T − f).  The pair's term is then
``(f − (T − f))² / T = (2f − T)² / T``.

The batch path precomputes one lookup table per pair — the term for
every f in ``[0, T]`` — and sums the looked-up columns in pair order.
The additions happen in exactly the order :func:`observed_statistic`
uses, so the observed assignment reproduces the observed statistic
bit-for-bit.

Ties with the observed statistic count toward the p-value, so ties
must be detected exactly.  :func:`scaled_term_tables` clears the
denominators by the margins' least common multiple, giving integer
statistics whose comparisons are exact whenever they fit in int64.
"""

from __future__ import annotations

import math
from collections.abc import Sequence

import numpy as np

from .table import FrequencyTable


def observed_statistic(table: FrequencyTable) -> float:
    """Bowker's statistic for the observed table.

    Pairs with a zero margin are skipped (they would be 0/0).
    """
    stat = 0.0
    for pair in table.pairs():
        if pair.is_degenerate:
            continue
        stat += pair.contribution
    return stat


def pair_term(margin: int, f: int) -> float:
    """Statistic term ``(2f − T)² / T`` of one non-degenerate pair."""
    return (2 * f - margin) ** 2 / margin


def statistic_for(assignment: Sequence[int], margins: Sequence[int]) -> float:
    """Bowker's statistic of a candidate assignment.

    Args:
        assignment: Candidate F(i,j) for each non-degenerate pair.
        margins: The pairs' fixed margins, in the same order.

    Returns:
        Σ (2f − T)² / T over the pairs.
    """
    if len(assignment) != len(margins):
        raise ValueError(
            f"assignment has {len(assignment)} values but there are "
            f"{len(margins)} pairs."
        )
    stat = 0.0
    for f, t in zip(assignment, margins):
        if t == 0:
            continue
        stat += pair_term(t, f)
    return stat


def term_tables(margins: Sequence[int]) -> list[np.ndarray]:
    """Per-pair lookup tables: ``tables[p][f]`` is the term for value f."""
    tables = []
    for t in margins:
        f = np.arange(t + 1, dtype=np.float64)
        tables.append((2.0 * f - t) ** 2 / t)
    return tables


def scaled_term_tables(
    margins: Sequence[int],
) -> tuple[list[np.ndarray], int] | None:
    """Exact integer lookup tables, scaled by the margins' LCM.

    Multiplying every term by ``L = lcm(T_1, …, T_m)`` turns
    ``(2f − T)² / T`` into the integer ``(2f − T)² · (L / T)``, so two
    assignments tie exactly when their scaled sums are equal.  The
    largest scaled statistic is at most ``L · S``; when that could
    overflow int64, ``None`` is returned and callers fall back to the
    floating-point tables.

    Returns:
        ``(tables, L)`` or ``None``.
    """
    scale = math.lcm(*margins)
    if scale * sum(margins) >= 2**62:
        return None
    tables = []
    for t in margins:
        f = np.arange(t + 1, dtype=np.int64)
        tables.append((2 * f - t) ** 2 * (scale // t))
    return tables, scale


def scaled_observed_statistic(table: FrequencyTable, scale: int) -> int:
    """Observed statistic multiplied by *scale* (a multiple of every margin)."""
    return sum(
        (pair.upper - pair.lower) ** 2 * (scale // pair.margin)
        for pair in table.nondegenerate_pairs()
    )


def statistic_batch(
    batch: np.ndarray,
    margins: Sequence[int],
    tables: list[np.ndarray] | None = None,
) -> np.ndarray:
    """Vectorised statistic for a ``(B, n_pairs)`` batch of assignments.

    Args:
        batch: Integer array, one assignment per row.
        margins: Non-degenerate pair margins, one per column.
        tables: Precomputed :func:`term_tables` (or the tables from
            :func:`scaled_term_tables`) for *margins*; float tables are
            built on the fly when omitted.

    Returns:
        Array of shape ``(B,)`` with the dtype of *tables*.
    """
    if tables is None:
        tables = term_tables(margins)
    dtype = tables[0].dtype if tables else np.float64
    stats = np.zeros(batch.shape[0], dtype=dtype)
    for p, table in enumerate(tables):
        stats += table[batch[:, p]]
    return stats
