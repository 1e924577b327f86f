"""Record-input compatibility layer with optional Polars support.

The tabulation helpers operate on pandas.  Case-level records may also
arrive as a ``polars.DataFrame`` or ``polars.LazyFrame``; those are
narrowed to the columns the tabulation needs and converted at the
boundary, so :mod:`.tabulate` only ever groups pandas frames.

For a LazyFrame the column projection happens *before* ``collect()``,
which lets Polars skip reading columns the table never uses.

Polars is **not** a required dependency.  Without it, only pandas
frames are accepted.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING, TypeAlias

import pandas as pd

if TYPE_CHECKING:
    import polars as pl

    DataFrameLike: TypeAlias = pd.DataFrame | pl.DataFrame | pl.LazyFrame
else:
    DataFrameLike: TypeAlias = pd.DataFrame

# Polars is optional.
try:
    import polars as pl

    _HAS_POLARS = True
except ImportError:
    _HAS_POLARS = False


def _check_columns(available: Sequence[str], columns: Sequence[str], name: str) -> None:
    missing = [c for c in columns if c not in available]
    if missing:
        raise KeyError(
            f"'{name}' is missing required column(s) {missing}; "
            f"available columns: {list(available)}."
        )


def _ensure_pandas_df(
    obj: DataFrameLike,
    *,
    name: str = "data",
    columns: Sequence[str] | None = None,
) -> pd.DataFrame:
    """Return the records in *obj* as a :class:`pandas.DataFrame`.

    Accepted types:
        * ``pandas.DataFrame`` — returned as-is (or column-projected).
        * ``polars.DataFrame`` — projected, then ``.to_pandas()``.
        * ``polars.LazyFrame`` — projected, collected, then converted.

    Args:
        obj: A pandas or Polars DataFrame (or LazyFrame).
        name: Label used in error messages.
        columns: Columns the caller needs.  When given, every one must
            be present and only these are returned.

    Returns:
        A pandas ``DataFrame``.

    Raises:
        TypeError: If *obj* is not a recognised DataFrame type.
        KeyError: If a requested column is missing.
    """
    if isinstance(obj, pd.DataFrame):
        if columns is None:
            return obj
        _check_columns(list(obj.columns), columns, name)
        return obj.loc[:, list(columns)]

    if _HAS_POLARS:
        if isinstance(obj, pl.LazyFrame):
            if columns is not None:
                _check_columns(obj.collect_schema().names(), columns, name)
                obj = obj.select(list(columns))
            return obj.collect().to_pandas()
        if isinstance(obj, pl.DataFrame):
            if columns is not None:
                _check_columns(obj.columns, columns, name)
                obj = obj.select(list(columns))
            return obj.to_pandas()

    raise TypeError(
        f"'{name}' must be a pandas DataFrame"
        + (" or Polars DataFrame/LazyFrame" if _HAS_POLARS else "")
        + f", got {type(obj).__name__}."
    )
