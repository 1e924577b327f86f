"""Precision-bound configuration for the bowker_exact package.

The precision bound *k* controls how aggressively the exact test
rescales its accumulated weights (see :mod:`.scaling`).  The largest
magnitude the accumulator must hold is roughly ``2**(2**k)``, so the
default ``k = 10`` matches the exponent range of an IEEE-754 double.

Resolution order (first match wins):
    1. Programmatic override via :func:`set_precision_bound`.
    2. The ``BOWKER_EXACT_PRECISION_BOUND`` environment variable.
    3. The built-in default, ``10``.

Every public entry point also accepts an explicit ``precision_bound=``
argument, which takes priority over all three.

Examples:
    Lower the bound globally from the shell::

        export BOWKER_EXACT_PRECISION_BOUND=8

    Lower the bound programmatically::

        import bowker_exact
        bowker_exact.set_precision_bound(8)

    Restore the default resolution order::

        bowker_exact.set_precision_bound("auto")
"""

from __future__ import annotations

import os

DEFAULT_PRECISION_BOUND = 10

_ENV_VAR = "BOWKER_EXACT_PRECISION_BOUND"

# Sentinel indicating "no programmatic override has been set".
_precision_override: int | None = None


def validate_precision_bound(value: object) -> int:
    """Return *value* as an ``int`` if it is a valid precision bound.

    Raises:
        ValueError: If *value* is not an integer ``>= 1``.
    """
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(
            f"precision_bound must be an integer >= 1, got {value!r}."
        )
    if value < 1:
        raise ValueError(f"precision_bound must be an integer >= 1, got {value}.")
    return value


def get_precision_bound() -> int:
    """Return the active precision bound *k*.

    Resolution order:
        1. Value set by :func:`set_precision_bound` (unless ``"auto"``).
        2. ``BOWKER_EXACT_PRECISION_BOUND`` environment variable.
        3. :data:`DEFAULT_PRECISION_BOUND`.

    Raises:
        ValueError: If the environment variable is set to something
            other than a positive integer.
    """
    # 1. Programmatic override
    if _precision_override is not None:
        return _precision_override

    # 2. Environment variable
    env = os.environ.get(_ENV_VAR, "").strip().lower()
    if env and env != "auto":
        try:
            parsed = int(env)
        except ValueError:
            raise ValueError(
                f"{_ENV_VAR} must be a positive integer, got '{env}'."
            ) from None
        return validate_precision_bound(parsed)

    # 3. Default
    return DEFAULT_PRECISION_BOUND


def set_precision_bound(value: int | str | None) -> None:
    """Override the precision bound used when none is passed explicitly.

    Args:
        value: An integer ``>= 1``, or ``"auto"`` / ``None`` to restore
            the default resolution order.

    Raises:
        ValueError: If *value* is not a recognised setting.
    """
    global _precision_override
    if value is None or (isinstance(value, str) and value.strip().lower() == "auto"):
        _precision_override = None
        return
    _precision_override = validate_precision_bound(value)


def resolve_precision_bound(value: int | None) -> int:
    """Return *value* if given, else the configured precision bound."""
    if value is None:
        return get_precision_bound()
    return validate_precision_bound(value)
