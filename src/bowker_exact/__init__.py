"""bowker_exact — Exact permutation test of symmetry for square tables.

Computes the exact p-value of Bowker's test of symmetry on a K×K
contingency table by enumerating every margin-preserving reassignment
of the off-diagonal counts, weighting each by its binomial
multiplicity in log space, and rescaling by powers of two so large
tables neither overflow nor underflow.

Public API:
    .. autosummary::
        bowker_exact_test
        bowker_exact_test_from_records
        build_frequency_table
        compute_agreement
        compute_pair_contributions
        print_frequency_table
        print_results_table
        get_precision_bound
        set_precision_bound
        FrequencyTable
        CellPair
        PermutationSpace
        ScalingParameters
        compute_scaling
        ExactTestRunner
        RunnerState
        SymmetryTestResult
        ShapeError
        DomainError
        PrecisionExhausted
        ResourceExhaustion
"""

from ._config import get_precision_bound, set_precision_bound
from ._exceptions import DomainError, PrecisionExhausted, ResourceExhaustion, ShapeError
from ._results import SymmetryTestResult
from .core import bowker_exact_test, bowker_exact_test_from_records
from .diagnostics import compute_agreement, compute_pair_contributions
from .display import print_frequency_table, print_results_table
from .engine import ExactTestRunner, RunnerState
from .permutations import PermutationSpace
from .scaling import ScalingParameters, compute_scaling
from .table import CellPair, FrequencyTable
from .tabulate import build_frequency_table

__all__ = [
    "bowker_exact_test",
    "bowker_exact_test_from_records",
    "build_frequency_table",
    "compute_agreement",
    "compute_pair_contributions",
    "print_frequency_table",
    "print_results_table",
    "get_precision_bound",
    "set_precision_bound",
    "FrequencyTable",
    "CellPair",
    "PermutationSpace",
    "ScalingParameters",
    "compute_scaling",
    "ExactTestRunner",
    "RunnerState",
    "SymmetryTestResult",
    "ShapeError",
    "DomainError",
    "PrecisionExhausted",
    "ResourceExhaustion",
]

__version__ = "0.1.0"
