"""Tests for the lazy permutation space."""

import itertools

import numpy as np
import pytest

from bowker_exact.permutations import (
    PermutationSpace,
    count_permutations,
    enumerate_assignments,
)
from bowker_exact.table import FrequencyTable


def _brute_force(margins):
    """Nested-loop enumeration used as an independent reference."""
    out = [()]
    for t in margins:
        out = [prefix + (f,) for prefix in out for f in range(t + 1)]
    return out


class TestCount:
    def test_worked_example(self):
        assert count_permutations((8, 0, 1)) == 18

    def test_empty_product(self):
        assert count_permutations(()) == 1
        assert count_permutations((0, 0, 0)) == 1

    def test_matches_enumeration(self):
        margins = (2, 1, 3)
        assert count_permutations(margins) == len(list(enumerate_assignments(margins)))


class TestEnumeration:
    def test_matches_brute_force(self):
        margins = (2, 1, 3)
        assert list(PermutationSpace(margins)) == _brute_force(margins)

    def test_no_duplicates(self):
        margins = (3, 2, 2, 1)
        seen = list(PermutationSpace(margins))
        assert len(seen) == len(set(seen)) == 4 * 3 * 3 * 2

    def test_zero_margins_filtered(self):
        assert list(enumerate_assignments((0, 1, 0))) == [(0,), (1,)]

    def test_empty_space_yields_one_assignment(self):
        assert list(PermutationSpace(())) == [()]

    def test_restartable(self):
        space = PermutationSpace((2, 2))
        assert list(space) == list(space)

    def test_lazy_on_huge_space(self):
        space = PermutationSpace((1000,) * 6)
        assert space.size == 1001**6
        it = iter(space)
        assert next(it) == (0,) * 6
        assert next(it) == (0,) * 5 + (1,)

    def test_from_table_skips_degenerate(self):
        table = FrequencyTable([[0, 8, 0], [0, 0, 1], [0, 0, 0]])
        space = PermutationSpace.from_table(table)
        assert space.margins == (8, 1)
        assert space.size == 18

    def test_rejects_non_positive_margins(self):
        with pytest.raises(ValueError, match="positive"):
            PermutationSpace((3, 0))


class TestBatches:
    def test_batches_concatenate_to_full_space(self):
        margins = (4, 3, 2)
        space = PermutationSpace(margins)
        batches = list(space.iter_batches(7))
        assert all(b.shape[0] <= 7 for b in batches)
        assert all(b.dtype == np.int64 for b in batches)
        stacked = np.concatenate(batches)
        assert [tuple(r) for r in stacked.tolist()] == list(space)

    def test_empty_space_single_row(self):
        batches = list(PermutationSpace(()).iter_batches())
        assert len(batches) == 1
        assert batches[0].shape == (1, 0)

    def test_invalid_batch_size(self):
        with pytest.raises(ValueError, match="batch_size"):
            next(PermutationSpace((1,)).iter_batches(0))


class TestPartition:
    def test_parts_cover_space_once(self):
        space = PermutationSpace((5, 2, 3))
        parts = space.partition(3)
        assert len(parts) == 3
        combined = list(itertools.chain.from_iterable(parts))
        assert sorted(combined) == list(space)
        assert sum(p.size for p in parts) == space.size

    def test_parts_capped_by_leading_range(self):
        parts = PermutationSpace((1, 4)).partition(8)
        assert len(parts) == 2
        assert [p.leading for p in parts] == [(0, 1), (1, 2)]

    def test_single_part_is_self(self):
        space = PermutationSpace((3, 3))
        assert space.partition(1) == [space]

    def test_empty_space_not_split(self):
        space = PermutationSpace(())
        assert space.partition(4) == [space]

    def test_invalid_part_count(self):
        with pytest.raises(ValueError, match="n_parts"):
            PermutationSpace((3,)).partition(0)

    def test_invalid_leading_range(self):
        with pytest.raises(ValueError, match="Leading range"):
            PermutationSpace((3,), leading=(2, 6))
