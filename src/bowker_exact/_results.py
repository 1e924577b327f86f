"""Typed result object for the exact symmetry test.

A frozen dataclass that provides:

* **Attribute access** — ``result.p_value``, ``result.n_levels``, etc.
* **Dict-like access** — ``result["p_value"]``, ``result.get("key")``,
  ``"key" in result`` for consumers that prefer bracket syntax.
* **Serialisation** — ``.to_dict()`` returns a plain ``dict[str, Any]``
  with NumPy types and the nested scaling record converted to native
  Python.

A precision-exhausted run is a *result*, not an exception: ``p_value``
is ``None``, ``precision_exhausted`` is ``True`` and ``message`` says
what to change.  The two outcomes are never conflated — a p-value of
0.0 is never reported.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from typing import Any, ClassVar

import numpy as np

from .scaling import ScalingParameters

INSUFFICIENT_PRECISION = "insufficient precision"

# ------------------------------------------------------------------ #
# Serialisation helper
# ------------------------------------------------------------------ #


def _numpy_to_python(obj: Any) -> Any:
    """Recursively convert NumPy scalars/arrays to Python-native types."""
    if isinstance(obj, np.ndarray):
        return obj.tolist()
    if isinstance(obj, (np.integer, np.bool_)):
        return int(obj)
    if isinstance(obj, np.floating):
        return float(obj)
    if isinstance(obj, dict):
        return {k: _numpy_to_python(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        converted = [_numpy_to_python(item) for item in obj]
        return type(obj)(converted)
    return obj


def format_p_value(
    p_value: float | None,
    precision: int = 4,
    threshold_one: float = 0.05,
    threshold_two: float = 0.01,
) -> str:
    """Format *p_value* with a significance marker.

    ``None`` (precision exhausted) formats as ``"insufficient precision"``
    so it can never be mistaken for a number.
    """
    if p_value is None:
        return INSUFFICIENT_PRECISION
    val = f"{p_value:.{precision}f}"
    if p_value < threshold_two:
        return f"{val} (**)"
    if p_value < threshold_one:
        return f"{val} (*)"
    return f"{val} (ns)"


# ------------------------------------------------------------------ #
# Dict-compatibility mixin
# ------------------------------------------------------------------ #


class _DictAccessMixin:
    """Dict-like access convenience for result dataclasses.

    Subclasses may override ``_SERIALIZERS`` to register conversion
    functions for non-primitive fields.
    """

    _SERIALIZERS: ClassVar[dict[str, Any]] = {}

    def __getitem__(self, key: str) -> Any:
        try:
            return getattr(self, key)
        except AttributeError:
            raise KeyError(key) from None

    def get(self, key: str, default: Any = None) -> Any:
        return getattr(self, key, default)

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, str):
            return False
        return hasattr(self, key)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a plain, JSON-serialisable dictionary."""
        result: dict[str, Any] = {}
        for f in fields(self):  # type: ignore[arg-type]
            val = getattr(self, f.name)
            if f.name in self._SERIALIZERS:
                val = self._SERIALIZERS[f.name](val)
            result[f.name] = _numpy_to_python(val)
        return result


# ------------------------------------------------------------------ #
# SymmetryTestResult
# ------------------------------------------------------------------ #


@dataclass(frozen=True)
class SymmetryTestResult(_DictAccessMixin):
    """Result of an exact Bowker symmetry test.

    Returned by :func:`~bowker_exact.bowker_exact_test` and
    :meth:`~bowker_exact.ExactTestRunner.run`.
    """

    _SERIALIZERS: ClassVar[dict[str, Any]] = {
        "scaling": asdict,
        "labels": lambda labels: None if labels is None else [str(x) for x in labels],
    }

    # ---- Required report values -------------------------------------
    permutations_computed: int
    """∏ (T + 1) over non-degenerate pairs (1 when there are none)."""

    weighted_permutations_exponent: int
    """S such that the weighted permutation count is 2^S."""

    p_value: float | None
    """Exact p-value in (0, 1], or ``None`` when precision ran out."""

    precision_exhausted: bool
    """``True`` when no numeric p-value could be represented."""

    message: str | None
    """Diagnostic text accompanying a precision-exhausted result."""

    # ---- Test details ---------------------------------------------
    observed_statistic: float
    """Bowker's statistic of the observed table."""

    n_levels: int
    """Number of categories K."""

    n_pairs: int
    """Number of non-degenerate mirrored pairs (the asymptotic df)."""

    precision_bound: int
    """Precision bound k used for rescaling."""

    scaling: ScalingParameters
    """Normalisation constants used by the accumulator."""

    p_value_str: str
    """Formatted p-value with significance marker."""

    p_value_threshold_one: float
    """First significance level (default 0.05)."""

    p_value_threshold_two: float
    """Second significance level (default 0.01)."""

    labels: list[Any] | None = None
    """Level labels, when the table carried them."""

    agreement: dict[str, Any] = field(default_factory=dict)
    """Agreement statistics (filled by the records entry point)."""

    @property
    def weighted_permutations(self) -> int:
        """2^S, the number of equally likely elementary orderings."""
        return 2 ** self.weighted_permutations_exponent
