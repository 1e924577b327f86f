"""Formatted ASCII table display for exact symmetry test results.

The layout follows the 80-column statsmodels summary style: a title
banner, a two-column header panel of test metadata, then a body panel.
:func:`print_frequency_table` shows the K×K counts with row and column
totals; :func:`print_results_table` shows the three report values
(permutations computed, weighted permutations, exact p-value) and,
when present, the agreement statistics.

A precision-exhausted result prints ``insufficient precision`` in the
p-value slot followed by the diagnostic message — never a number.
"""

from __future__ import annotations

import math
import textwrap
from typing import TYPE_CHECKING, Any

from .diagnostics import compute_pair_contributions
from .table import FrequencyTable

if TYPE_CHECKING:
    from ._results import SymmetryTestResult

W = 80


def _truncate(name: str, max_len: int) -> str:
    """Truncate *name* to *max_len*, appending ``'...'`` if needed."""
    if len(name) <= max_len:
        return name
    return name[: max_len - 3] + "..."


def _fmt_float(val: Any, digits: int = 4) -> str:
    """Format a float, mapping ``None`` and NaN to ``'N/A'``."""
    if val is None:
        return "N/A"
    if isinstance(val, float) and math.isnan(val):
        return "N/A"
    return f"{val:.{digits}f}"


def _banner(title: str) -> None:
    print("=" * W)
    for line in textwrap.wrap(title, width=W - 2):
        print(f"{line:^{W}}")
    print("=" * W)


def _row(left_label: str, left_value: str, right_label: str = "", right_value: str = "") -> None:
    col1 = 40
    left = f"{left_label:<24}{left_value:<{col1 - 24}}"
    right = f"{right_label:>27} {right_value:>12}" if right_label else ""
    print(f"{left}{right}")


def print_frequency_table(
    table: FrequencyTable,
    *,
    title: str = "Frequency Table",
) -> None:
    """Print the K×K counts with row and column totals."""
    labels = table.labels if table.labels is not None else list(range(1, table.n_levels + 1))
    names = [_truncate(str(x), 8) for x in labels]
    counts = table.counts

    _banner(title)
    header = f"{'':<10}" + "".join(f"{n:>7}" for n in names) + f"{'Total':>9}"
    print(header)
    print("-" * W)
    for i, name in enumerate(names):
        cells = "".join(f"{int(v):>7}" for v in counts[i])
        print(f"{name:<10}{cells}{int(counts[i].sum()):>9}")
    print("-" * W)
    totals = "".join(f"{int(v):>7}" for v in counts.sum(axis=0))
    print(f"{'Total':<10}{totals}{int(counts.sum()):>9}")
    print("=" * W)


def print_results_table(
    result: SymmetryTestResult,
    *,
    table: FrequencyTable | None = None,
    title: str = "Exact Test of Symmetry (Bowker)",
) -> None:
    """Print an exact symmetry test result as a formatted ASCII table.

    Args:
        result: Result returned by
            :func:`~bowker_exact.bowker_exact_test`.
        table: Optional frequency table; when given, the per-pair
            contribution listing is printed as well.
        title: Title for the output table.
    """
    _banner(title)
    _row("Levels (K):", str(result.n_levels), "Precision bound (k):", str(result.precision_bound))
    _row(
        "Non-degenerate pairs:",
        str(result.n_pairs),
        "Rescaling exponent:",
        str(result.scaling.adjust),
    )
    _row("Bowker statistic:", _fmt_float(result.observed_statistic))
    print("-" * W)

    _row("Permutations computed:", str(result.permutations_computed))
    _row("Weighted permutations:", f"2^{result.weighted_permutations_exponent}")
    _row("Exact P-value:", result.p_value_str)

    if result.precision_exhausted and result.message:
        print("-" * W)
        print(textwrap.fill(result.message, width=W, subsequent_indent="  "))

    if table is not None:
        print("-" * W)
        contributions = compute_pair_contributions(table)
        print(f"{'Pair':<24}{'F(i,j)':>10}{'F(j,i)':>10}{'Margin':>10}{'Contribution':>16}")
        for rec in contributions.itertuples(index=False):
            pair = _truncate(f"{rec.row} / {rec.col}", 22)
            print(
                f"{pair:<24}{rec.upper:>10}{rec.lower:>10}{rec.margin:>10}"
                f"{_fmt_float(rec.contribution):>16}"
            )

    agreement = result.agreement
    if agreement:
        print("-" * W)
        _row(
            "Observed agreement:",
            _fmt_float(agreement.get("observed_agreement")),
            "Expected agreement:",
            _fmt_float(agreement.get("expected_agreement")),
        )
        ci = (
            f"[{_fmt_float(agreement.get('kappa_ci_lower'), 3)}, "
            f"{_fmt_float(agreement.get('kappa_ci_upper'), 3)}]"
        )
        _row("Cohen's kappa:", _fmt_float(agreement.get("kappa")), "ASE:", _fmt_float(agreement.get("kappa_se")))
        _row("95% CI for kappa:", ci, "N:", str(agreement.get("n_total", "N/A")))

    print("=" * W)
    print(
        f"Signif. codes:  '**' p < {result.p_value_threshold_two}, "
        f"'*' p < {result.p_value_threshold_one}, 'ns' otherwise."
    )
