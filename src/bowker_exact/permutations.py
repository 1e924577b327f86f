"""Lazy enumeration of margin-preserving cell reassignments.

The exact reference set
-----------------------
Under the symmetry hypothesis, the split of each mirrored pair's margin
T between its two cells is the only thing left random once the margins
are fixed.  Every non-degenerate pair ``(i, j)`` therefore ranges
independently over ``f ∈ {0, 1, …, T}`` (F_ij = f, F_ji = T − f), and
the full reference set is the Cartesian product of those ranges::

    |space| = ∏_pairs (T + 1)

Degenerate pairs (T = 0) contribute the single value f = 0, so they
are dropped from the product rather than adding a trivial factor.

Memory
------
The product can be astronomically large.  Nothing here ever
materialises it: :meth:`PermutationSpace.__iter__` is a generator over
``itertools.product`` holding one assignment at a time, and
:meth:`PermutationSpace.iter_batches` groups consecutive assignments
into bounded blocks for the vectorised evaluators.  Iterating the same
space twice restarts from the beginning.

Partitioning
------------
Accumulation over the space is a commutative sum, so the space may be
split freely.  :meth:`PermutationSpace.partition` slices the leading
pair's value range into contiguous chunks; the sub-spaces are disjoint
and together cover the whole product exactly once.
"""

from __future__ import annotations

import itertools
import math
from collections.abc import Iterator, Sequence
from dataclasses import dataclass

import numpy as np

from ._typing import Assignment
from .table import FrequencyTable


def count_permutations(margins: Sequence[int]) -> int:
    """∏ (T + 1) over non-degenerate margins (1 for an empty product)."""
    return math.prod(t + 1 for t in margins if t > 0)


def enumerate_assignments(margins: Sequence[int]) -> Iterator[Assignment]:
    """Yield every joint assignment for the non-degenerate *margins*.

    Zero margins are skipped, so each yielded tuple has one value per
    positive margin, in the order given.
    """
    return iter(PermutationSpace(tuple(t for t in margins if t > 0)))


@dataclass(frozen=True)
class PermutationSpace:
    """Cartesian product of per-pair value ranges.

    Attributes:
        margins: Positive margins of the non-degenerate pairs.
        leading: Optional ``(start, stop)`` restricting the first pair
            to ``range(start, stop)``; set by :meth:`partition`.
    """

    margins: tuple[int, ...]
    leading: tuple[int, int] | None = None

    def __post_init__(self) -> None:
        if any(t <= 0 for t in self.margins):
            raise ValueError(
                f"PermutationSpace margins must all be positive, got {self.margins}."
            )
        if self.leading is not None:
            if not self.margins:
                raise ValueError("Cannot restrict the leading pair of an empty space.")
            start, stop = self.leading
            if not 0 <= start < stop <= self.margins[0] + 1:
                raise ValueError(
                    f"Leading range {self.leading} is outside [0, {self.margins[0] + 1})."
                )

    @classmethod
    def from_table(cls, table: FrequencyTable) -> PermutationSpace:
        return cls(tuple(p.margin for p in table.nondegenerate_pairs()))

    @property
    def n_pairs(self) -> int:
        return len(self.margins)

    def _ranges(self) -> list[range]:
        ranges = [range(t + 1) for t in self.margins]
        if self.leading is not None:
            ranges[0] = range(*self.leading)
        return ranges

    @property
    def size(self) -> int:
        """Exact number of assignments in this (sub-)space."""
        return math.prod(len(r) for r in self._ranges())

    def __iter__(self) -> Iterator[Assignment]:
        # With no pairs, product() yields the single empty assignment.
        return itertools.product(*self._ranges())

    def iter_batches(self, batch_size: int = 8192) -> Iterator[np.ndarray]:
        """Yield ``(≤ batch_size, n_pairs)`` int64 blocks of assignments."""
        if batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {batch_size}.")
        it = iter(self)
        n_pairs = self.n_pairs
        while True:
            chunk = list(itertools.islice(it, batch_size))
            if not chunk:
                return
            yield np.array(chunk, dtype=np.int64).reshape(len(chunk), n_pairs)

    def partition(self, n_parts: int) -> list[PermutationSpace]:
        """Split into at most *n_parts* disjoint sub-spaces.

        The split is on the leading pair's values, so the number of
        parts is capped at that pair's range length.  A space with no
        pairs cannot be split and is returned whole.
        """
        if n_parts < 1:
            raise ValueError(f"n_parts must be >= 1, got {n_parts}.")
        if not self.margins or n_parts == 1:
            return [self]
        lead = self._ranges()[0]
        n_parts = min(n_parts, len(lead))
        bounds = np.linspace(lead.start, lead.stop, n_parts + 1).round().astype(int)
        return [
            PermutationSpace(self.margins, (int(lo), int(hi)))
            for lo, hi in zip(bounds[:-1], bounds[1:])
            if hi > lo
        ]
