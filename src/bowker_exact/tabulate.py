"""Tabulation of case-level records into a square frequency table.

Each record carries a row-variable level and a column-variable level
(for example, two raters' classifications of one subject).  The
records are aggregated into a K×K table whose rows and columns share
the same level set — the sorted union of both variables' observed
values, or an explicit ``levels`` list.  Level combinations that never
occur are padded with zero counts, so the result is always square.

Optional case weights multiply a record's contribution; they must be
non-negative whole numbers because the exact test is defined on
integer counts.  An optional filter selects records before
aggregation.
"""

from __future__ import annotations

from collections.abc import Callable, Hashable, Sequence

import numpy as np
import pandas as pd

from ._compat import DataFrameLike, _ensure_pandas_df
from ._exceptions import DomainError
from .table import FrequencyTable

RecordFilter = str | Callable[[pd.DataFrame], pd.Series | np.ndarray] | np.ndarray | pd.Series


def _apply_filter(df: pd.DataFrame, where: RecordFilter) -> pd.DataFrame:
    """Keep the records selected by *where*.

    *where* may be a ``DataFrame.query`` expression, a callable
    returning a boolean mask, or a boolean mask aligned with *df*.
    """
    if isinstance(where, str):
        return df.query(where)
    mask = where(df) if callable(where) else where
    mask = np.asarray(mask)
    if mask.dtype != bool or mask.shape != (len(df),):
        raise ValueError(
            f"Record filter must yield a boolean mask of length {len(df)}, "
            f"got dtype {mask.dtype} and shape {mask.shape}."
        )
    return df.loc[mask]


def _validate_weights(weights: pd.Series) -> pd.Series:
    values = pd.to_numeric(weights, errors="coerce").to_numpy(dtype=float)
    if not np.all(np.isfinite(values)):
        raise DomainError(
            f"Case weights in '{weights.name}' must be finite numbers."
        )
    if np.any(values < 0):
        raise DomainError(f"Case weights in '{weights.name}' must be non-negative.")
    if np.any(values != np.floor(values)):
        raise DomainError(
            f"Case weights in '{weights.name}' must be whole numbers; "
            "fractional weights are not supported by the exact test."
        )
    return pd.Series(values.astype(np.int64), index=weights.index, name=weights.name)


def build_frequency_table(
    data: DataFrameLike,
    row: str,
    col: str,
    *,
    weights: str | None = None,
    where: RecordFilter | None = None,
    levels: Sequence[Hashable] | None = None,
) -> FrequencyTable:
    """Aggregate records into a square :class:`~.table.FrequencyTable`.

    Records with a missing row or column level are dropped.

    Args:
        data: Case-level records (pandas or Polars).
        row: Column holding the row variable.
        col: Column holding the column variable.
        weights: Optional column of non-negative integer case weights.
        where: Optional record filter (query string, callable, or
            boolean mask).
        levels: Explicit level order.  Defaults to the sorted union of
            the values present in *row* and *col*.

    Returns:
        The K×K frequency table, labelled with its levels.

    Raises:
        KeyError: If a named column is missing.
        DomainError: If a case weight is negative, fractional or
            non-finite.
        ValueError: If an observed value is not in *levels*.
        ShapeError: If the number of levels is outside ``[2, 9]``.
    """
    columns = [row, col] + ([weights] if weights is not None else [])
    # A filter may reference any column, so the frame is only narrowed
    # up front when there is none.
    if where is None:
        df = _ensure_pandas_df(data, name="data", columns=columns)
    else:
        df = _ensure_pandas_df(data, name="data")
        df = _apply_filter(df, where)
        df = _ensure_pandas_df(df, name="data", columns=columns)

    df = df.dropna(subset=[row, col])

    if levels is None:
        observed = pd.unique(pd.concat([df[row], df[col]], ignore_index=True))
        levels = sorted(observed.tolist())
    else:
        levels = list(levels)
        unknown = (set(df[row]) | set(df[col])) - set(levels)
        if unknown:
            raise ValueError(
                f"Observed level(s) {sorted(map(str, unknown))} are not in levels={levels}."
            )

    if weights is None:
        counts = df.groupby([row, col], observed=True).size()
    else:
        w = _validate_weights(df[weights])
        counts = w.groupby([df[row], df[col]], observed=True).sum()

    if counts.empty:
        matrix = pd.DataFrame(0, index=levels, columns=levels)
    else:
        matrix = counts.unstack(fill_value=0).reindex(
            index=levels, columns=levels, fill_value=0
        )
    return FrequencyTable(matrix.to_numpy(dtype=np.int64), labels=levels)
