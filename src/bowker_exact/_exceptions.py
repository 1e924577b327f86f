"""Exception and warning types raised by the exact symmetry test.

Each type subclasses the built-in category a caller would already be
catching, so ``except ValueError`` around table construction keeps
working:

* :class:`ShapeError` — the count matrix is not a square K×K table
  with K in ``[2, 9]``.
* :class:`DomainError` — a count (or case weight) is negative,
  fractional, non-finite, or not numeric.
* :class:`ResourceExhaustion` — the permutation space exceeds a
  configured ceiling, or the enumeration ran past its timeout.
* :class:`PrecisionExhausted` — a *warning*, not an error.  The
  accumulated weight could not be represented at the chosen precision
  bound, so no numeric p-value is reported.
"""

from __future__ import annotations


class ShapeError(ValueError):
    """The frequency table is not square or its size is out of range."""


class DomainError(ValueError):
    """A table entry is not a finite, non-negative integer."""


class ResourceExhaustion(RuntimeError):
    """The enumeration exceeded a permutation ceiling or a timeout."""


class PrecisionExhausted(UserWarning):
    """The p-value underflowed or overflowed at the chosen precision bound."""
