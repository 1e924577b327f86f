"""Tests for the ExactTestRunner state machine and accumulation."""

import warnings

import numpy as np
import pytest

from bowker_exact import (
    ExactTestRunner,
    PrecisionExhausted,
    ResourceExhaustion,
    RunnerState,
)
from bowker_exact._results import INSUFFICIENT_PRECISION

_WORKED = [[0, 8, 0], [0, 0, 1], [0, 0, 0]]

_MEDIUM = [
    [3, 6, 1, 2],
    [2, 5, 4, 0],
    [3, 1, 2, 5],
    [0, 2, 1, 4],
]


class TestLifecycle:
    def test_initial_state(self):
        runner = ExactTestRunner(_WORKED)
        assert runner.state is RunnerState.INIT
        assert runner.observed is None
        assert runner.scaling is None
        assert runner.result is None

    def test_run_reaches_done(self):
        runner = ExactTestRunner(_WORKED)
        result = runner.run()
        assert runner.state is RunnerState.DONE
        assert runner.observed == 9.0
        assert runner.scaling.total_margin == 9
        assert runner.accumulator == pytest.approx(4.0)
        assert result is runner.result

    def test_second_run_returns_cached_result(self):
        runner = ExactTestRunner(_WORKED)
        assert runner.run() is runner.run()

    def test_interrupted_runner_cannot_resume(self):
        runner = ExactTestRunner(_WORKED, timeout=0)
        with pytest.raises(ResourceExhaustion):
            runner.run()
        assert runner.state is RunnerState.ENUMERATE
        with pytest.raises(RuntimeError, match="interrupted"):
            runner.run()


class TestOptions:
    @pytest.mark.parametrize(
        "kwargs, match",
        [
            ({"n_jobs": 0}, "n_jobs"),
            ({"batch_size": 0}, "batch_size"),
            ({"max_permutations": 0}, "max_permutations"),
            ({"timeout": -1.0}, "timeout"),
            ({"precision_bound": 0}, "precision_bound"),
        ],
    )
    def test_invalid_options(self, kwargs, match):
        with pytest.raises(ValueError, match=match):
            ExactTestRunner(_WORKED, **kwargs)

    @pytest.mark.parametrize("batch_size", [1, 3, 17, 100_000])
    def test_batch_size_does_not_change_result(self, batch_size):
        reference = ExactTestRunner(_MEDIUM).run().p_value
        got = ExactTestRunner(_MEDIUM, batch_size=batch_size).run().p_value
        assert got == pytest.approx(reference, rel=1e-12)


class TestParallel:
    @pytest.mark.parametrize("n_jobs", [2, 3, -1])
    def test_parallel_matches_sequential(self, n_jobs):
        sequential = ExactTestRunner(_MEDIUM, n_jobs=1).run()
        parallel = ExactTestRunner(_MEDIUM, n_jobs=n_jobs, batch_size=64).run()
        assert parallel.permutations_computed == sequential.permutations_computed
        assert parallel.p_value == pytest.approx(sequential.p_value, rel=1e-12)

    def test_more_jobs_than_leading_values(self):
        # Leading pair has margin 1, so at most two parts exist.
        table = [[0, 1, 2], [0, 0, 3], [1, 0, 0]]
        sequential = ExactTestRunner(table).run()
        parallel = ExactTestRunner(table, n_jobs=8).run()
        assert parallel.p_value == pytest.approx(sequential.p_value, rel=1e-12)


class TestResourceLimits:
    def test_max_permutations_exceeded(self):
        runner = ExactTestRunner(_WORKED, max_permutations=17)
        with pytest.raises(ResourceExhaustion, match="max_permutations=17"):
            runner.run()

    def test_max_permutations_at_limit(self):
        result = ExactTestRunner(_WORKED, max_permutations=18).run()
        assert result.permutations_computed == 18

    def test_timeout_zero_aborts(self):
        with pytest.raises(ResourceExhaustion, match="timeout"):
            ExactTestRunner(_WORKED, timeout=0).run()

    def test_generous_timeout_completes(self):
        result = ExactTestRunner(_WORKED, timeout=60).run()
        assert result.p_value == pytest.approx(1 / 128)

    def test_large_space_warns(self):
        # 501³ assignments; the timeout stops it before any work.
        table = [[0, 500, 500], [0, 0, 500], [0, 0, 0]]
        with pytest.warns(UserWarning, match="max_permutations or timeout"):
            with pytest.raises(ResourceExhaustion):
                ExactTestRunner(table, timeout=0).run()

    def test_large_space_warning_points_at_run_caller(self):
        table = [[0, 500, 500], [0, 0, 500], [0, 0, 0]]
        with pytest.warns(UserWarning, match="max_permutations or timeout") as record:
            with pytest.raises(ResourceExhaustion):
                ExactTestRunner(table, timeout=0).run()
        assert record.pop(UserWarning).filename == __file__

    def test_no_warning_with_ceiling(self):
        table = [[0, 500, 500], [0, 0, 500], [0, 0, 0]]
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            with pytest.raises(ResourceExhaustion, match="max_permutations"):
                ExactTestRunner(table, max_permutations=10**6).run()


class TestPrecisionExhaustion:
    def test_underflow_reported_not_zero(self):
        # True p is 2 / 2^2000: representable only as 0.0 in a double.
        with pytest.warns(PrecisionExhausted):
            result = ExactTestRunner([[0, 2000], [0, 0]]).run()
        assert result.p_value is None
        assert result.precision_exhausted
        assert "precision_bound=10" in result.message
        assert result.p_value_str == INSUFFICIENT_PRECISION
        assert result.permutations_computed == 2001
        assert result.weighted_permutations_exponent == 2000

    def test_warning_points_at_run_caller(self):
        with pytest.warns(PrecisionExhausted) as record:
            ExactTestRunner([[0, 2000], [0, 0]]).run()
        assert record.pop(PrecisionExhausted).filename == __file__

    def test_moderate_large_margin_stays_numeric(self):
        # S = 1500 needs rescaling; every split qualifies for a balanced
        # table, so the weights must still sum to 2^S.
        with warnings.catch_warnings():
            warnings.simplefilter("error", PrecisionExhausted)
            result = ExactTestRunner([[0, 750], [750, 0]]).run()
        assert result.scaling.adjust > 0
        assert result.p_value == pytest.approx(1.0, rel=1e-9)

    def test_large_margin_tail_probability(self):
        # One-sided tail of a single pair with T = 1200, checked in logs.
        from scipy.stats import binom

        result = ExactTestRunner([[0, 660], [540, 0]]).run()
        expected = 2 * binom.sf(659, 1200, 0.5)
        assert result.scaling.adjust > 0
        assert result.p_value == pytest.approx(expected, rel=1e-8)


class TestFloatTiePath:
    def test_float_path_matches_exact_path(self, monkeypatch):
        exact = ExactTestRunner(_MEDIUM).run()
        monkeypatch.setattr(
            "bowker_exact.engine.scaled_term_tables", lambda margins: None
        )
        approx = ExactTestRunner(_MEDIUM).run()
        assert approx.p_value == pytest.approx(exact.p_value, rel=1e-12)

    def test_float_path_counts_observed_tie(self, monkeypatch):
        monkeypatch.setattr(
            "bowker_exact.engine.scaled_term_tables", lambda margins: None
        )
        result = ExactTestRunner(_WORKED).run()
        assert result.p_value == pytest.approx(1 / 128, rel=1e-12)


class TestAccumulatorNeutrality:
    def test_result_independent_of_precision_bound(self):
        # S = 27 here; bounds below 5 force rescaling.
        reference = ExactTestRunner(_MEDIUM, precision_bound=10).run()
        for k in (2, 3, 4):
            result = ExactTestRunner(_MEDIUM, precision_bound=k).run()
            assert result.scaling.adjust > 0
            assert result.p_value == pytest.approx(reference.p_value, rel=1e-10)

    def test_accumulator_is_rescaled(self):
        runner = ExactTestRunner(_MEDIUM, precision_bound=3)
        runner.run()
        unscaled = ExactTestRunner(_MEDIUM, precision_bound=10)
        unscaled.run()
        ratio = unscaled.accumulator / runner.accumulator
        assert np.log2(ratio) == pytest.approx(runner.scaling.factor, rel=1e-10)
