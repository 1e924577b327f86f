"""Square frequency tables and their mirrored off-diagonal cell pairs.

Bowker's test looks only at the off-diagonal cells of a K×K table.
Each unordered pair of mirrored cells ``(i, j)`` / ``(j, i)`` with
``i < j`` is a :class:`CellPair`; its *margin* ``F(i,j) + F(j,i)`` is
held fixed by every permutation the exact test considers.  Pairs whose
margin is zero are *degenerate*: they carry no statistic, no
enumeration branching, and weight 1.

A :class:`FrequencyTable` is validated once at construction and is
read-only afterwards — its backing array has ``writeable=False``.
"""

from __future__ import annotations

from collections.abc import Hashable, Sequence
from dataclasses import dataclass

import numpy as np
import pandas as pd

from ._exceptions import DomainError, ShapeError
from ._typing import ArrayLike

MIN_LEVELS = 2
MAX_LEVELS = 9

_INT64_MAX = np.iinfo(np.int64).max
_FLOAT_EXACT_MAX = 2.0**53


@dataclass(frozen=True)
class CellPair:
    """An unordered pair of mirrored off-diagonal cells, ``i < j``."""

    i: int
    j: int
    upper: int
    """Observed count F(i, j)."""

    lower: int
    """Observed count F(j, i)."""

    @property
    def margin(self) -> int:
        """F(i, j) + F(j, i), invariant across permutations."""
        return self.upper + self.lower

    @property
    def is_degenerate(self) -> bool:
        return self.margin == 0

    @property
    def contribution(self) -> float:
        """(F(i,j) − F(j,i))² / margin, or 0 for a degenerate pair."""
        if self.is_degenerate:
            return 0.0
        return (self.upper - self.lower) ** 2 / self.margin


def _validate_counts(values: np.ndarray) -> np.ndarray:
    """Check shape and domain of a raw count matrix; return it as int64."""
    if values.ndim != 2:
        raise ShapeError(
            f"Frequency table must be two-dimensional, got {values.ndim} dimension(s)."
        )
    n_rows, n_cols = values.shape
    if n_rows != n_cols:
        raise ShapeError(
            f"Frequency table must be square, got {n_rows} rows and {n_cols} columns."
        )
    if not MIN_LEVELS <= n_rows <= MAX_LEVELS:
        raise ShapeError(
            f"Frequency table must have between {MIN_LEVELS} and {MAX_LEVELS} "
            f"levels, got {n_rows}."
        )

    if values.dtype == bool or values.dtype.kind not in "iuf":
        raise DomainError(
            f"Frequency table entries must be numeric counts, got dtype {values.dtype}."
        )
    if values.dtype.kind == "f":
        if not np.all(np.isfinite(values)):
            raise DomainError("Frequency table entries must be finite.")
        if np.any(values != np.floor(values)):
            raise DomainError("Frequency table entries must be whole numbers.")
    if np.any(values < 0):
        raise DomainError("Frequency table entries must be non-negative.")
    if values.dtype.kind == "u" and values.size:
        if values.max() > np.uint64(_INT64_MAX):
            raise DomainError(f"Frequency table entries must not exceed {_INT64_MAX}.")
    if values.dtype.kind == "f" and np.any(values > _FLOAT_EXACT_MAX):
        # Above 2**53 a float no longer pins down a unique count.
        raise DomainError(
            f"Floating-point entries must not exceed {_FLOAT_EXACT_MAX:.0f}; "
            "pass larger counts as integers."
        )

    return values.astype(np.int64)


def _align_columns(frame: pd.DataFrame) -> pd.DataFrame:
    """Order a DataFrame's columns to match its index.

    Cell ``(i, j)`` must mean "row level i, column level j", so the
    columns have to be the index levels, possibly in another order.
    """
    if frame.columns.equals(frame.index):
        return frame
    if (
        frame.index.is_unique
        and frame.columns.is_unique
        and set(frame.columns) == set(frame.index)
    ):
        return frame.loc[:, list(frame.index)]
    raise ShapeError(
        "Frequency table rows and columns must carry the same levels, got "
        f"index {list(frame.index)} and columns {list(frame.columns)}."
    )


class FrequencyTable:
    """Immutable K×K matrix of non-negative integer counts.

    Args:
        counts: Square matrix as a nested sequence, NumPy array, or
            pandas DataFrame.  A DataFrame's index supplies the level
            labels unless *labels* is given, and its columns are
            reordered to follow the index.
        labels: Optional level labels, one per row/column.

    Raises:
        ShapeError: If the matrix is not square, K is outside
            ``[2, 9]``, or a DataFrame's columns are not its index levels.
        DomainError: If any entry is negative, fractional, non-finite,
            non-numeric, or too large for a 64-bit count.
    """

    __slots__ = ("_counts", "_labels")

    def __init__(
        self,
        counts: ArrayLike,
        labels: Sequence[Hashable] | None = None,
    ) -> None:
        if isinstance(counts, pd.DataFrame):
            counts = _align_columns(counts)
            if labels is None:
                labels = list(counts.index)
            raw = counts.to_numpy()
        else:
            try:
                raw = np.asarray(counts)
            except ValueError as exc:
                # Ragged nested sequences cannot form a matrix.
                raise ShapeError(f"Frequency table must be square: {exc}") from None

        arr = _validate_counts(raw)
        arr.setflags(write=False)
        self._counts = arr

        if labels is not None:
            labels = list(labels)
            if len(labels) != arr.shape[0]:
                raise ShapeError(
                    f"Expected {arr.shape[0]} labels, got {len(labels)}."
                )
        self._labels: list[Hashable] | None = labels

    # ---- accessors ------------------------------------------------ #

    @property
    def n_levels(self) -> int:
        """Number of categories K."""
        return int(self._counts.shape[0])

    @property
    def counts(self) -> np.ndarray:
        """Read-only view of the count matrix."""
        return self._counts

    @property
    def labels(self) -> list[Hashable] | None:
        return None if self._labels is None else list(self._labels)

    def __getitem__(self, index: tuple[int, int]) -> int:
        i, j = index
        return int(self._counts[i, j])

    def __repr__(self) -> str:
        return f"FrequencyTable(n_levels={self.n_levels}, counts={self._counts.tolist()})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, FrequencyTable):
            return NotImplemented
        return bool(np.array_equal(self._counts, other._counts))

    __hash__ = None  # type: ignore[assignment]

    # ---- derived quantities --------------------------------------- #

    def pairs(self) -> tuple[CellPair, ...]:
        """All mirrored pairs ``i < j`` in row-major order."""
        k = self.n_levels
        c = self._counts
        return tuple(
            CellPair(i, j, int(c[i, j]), int(c[j, i]))
            for i in range(k)
            for j in range(i + 1, k)
        )

    def nondegenerate_pairs(self) -> tuple[CellPair, ...]:
        """Pairs with a positive margin, in row-major order."""
        return tuple(p for p in self.pairs() if not p.is_degenerate)

    @property
    def total_margin(self) -> int:
        """S = Σ F(i,j) + F(j,i) over all off-diagonal pairs."""
        return int(self._counts.sum() - np.trace(self._counts))

    def transpose(self) -> FrequencyTable:
        """Return the table with row and column variables swapped."""
        return FrequencyTable(self._counts.T.copy(), labels=self._labels)

    def to_frame(self) -> pd.DataFrame:
        """The counts as a labelled pandas DataFrame."""
        labels = self._labels if self._labels is not None else list(range(self.n_levels))
        return pd.DataFrame(self._counts, index=labels, columns=labels)


def as_frequency_table(table: FrequencyTable | ArrayLike) -> FrequencyTable:
    """Return *table* unchanged if already validated, else validate it."""
    if isinstance(table, FrequencyTable):
        return table
    return FrequencyTable(table)
