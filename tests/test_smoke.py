"""Smoke tests for the public API on realistically sized tables."""

import numpy as np
import pytest

import bowker_exact
from bowker_exact import bowker_exact_test

_RATER_TABLE = [
    [22, 4, 1, 0, 0],
    [1, 18, 5, 1, 0],
    [0, 2, 15, 4, 1],
    [0, 0, 1, 12, 3],
    [0, 0, 0, 1, 9],
]


class TestPublicApi:
    def test_all_exports_resolve(self):
        for name in bowker_exact.__all__:
            assert hasattr(bowker_exact, name), name

    def test_version(self):
        assert bowker_exact.__version__ == "0.1.0"

    def test_five_level_table(self):
        result = bowker_exact_test(_RATER_TABLE)
        assert result.n_levels == 5
        assert result.n_pairs == 7
        assert result.permutations_computed == 11520
        assert 0.0 < result.p_value <= 1.0


@pytest.mark.slow
class TestLargeEnumeration:
    """Spaces in the millions; deselected by default."""

    def test_parallel_large_space(self):
        counts = [[5, 6, 5, 4], [4, 5, 6, 3], [4, 3, 5, 7], [5, 6, 2, 5]]
        sequential = bowker_exact_test(counts, n_jobs=1)
        parallel = bowker_exact_test(counts, n_jobs=-1)
        assert sequential.permutations_computed == 11 * 10**5
        assert parallel.p_value == pytest.approx(sequential.p_value, rel=1e-12)

    def test_nine_levels_sparse(self):
        counts = np.diag(np.full(9, 10))
        for i in range(8):
            counts[i, i + 1] = 3
            counts[i + 1, i] = 1
        result = bowker_exact_test(counts, n_jobs=-1)
        assert result.permutations_computed == 5**8
        assert 0.0 < result.p_value <= 1.0
