"""Tests for the SymmetryTestResult dataclass and p-value formatting."""

import dataclasses
import json
import warnings

import pytest

from bowker_exact import FrequencyTable, SymmetryTestResult, bowker_exact_test
from bowker_exact._results import INSUFFICIENT_PRECISION, format_p_value

_WORKED = [[0, 8, 0], [0, 0, 1], [0, 0, 0]]


class TestFormatPValue:
    def test_markers(self):
        assert format_p_value(0.005) == "0.0050 (**)"
        assert format_p_value(0.03) == "0.0300 (*)"
        assert format_p_value(0.5) == "0.5000 (ns)"

    def test_threshold_boundaries_exclusive(self):
        assert format_p_value(0.05).endswith("(ns)")
        assert format_p_value(0.01).endswith("(*)")

    def test_precision(self):
        assert format_p_value(0.123456, precision=2) == "0.12 (ns)"

    def test_none_is_not_a_number(self):
        assert format_p_value(None) == INSUFFICIENT_PRECISION


class TestSymmetryTestResult:
    def test_type(self):
        assert isinstance(bowker_exact_test(_WORKED), SymmetryTestResult)

    def test_frozen(self):
        result = bowker_exact_test(_WORKED)
        with pytest.raises(dataclasses.FrozenInstanceError):
            result.p_value = 0.5

    def test_dict_access(self):
        result = bowker_exact_test(_WORKED)
        assert result["permutations_computed"] == 18
        assert result.get("weighted_permutations_exponent") == 9
        assert result.get("nope", "default") == "default"
        assert "p_value" in result
        assert "nope" not in result
        assert 3 not in result

    def test_missing_key(self):
        with pytest.raises(KeyError):
            bowker_exact_test(_WORKED)["nope"]

    def test_to_dict_is_json_serialisable(self):
        d = bowker_exact_test(_WORKED).to_dict()
        json.dumps(d)
        assert d["permutations_computed"] == 18
        assert d["scaling"]["total_margin"] == 9
        assert d["scaling"]["adjust"] == 0

    def test_to_dict_labels_as_strings(self):
        table = FrequencyTable(_WORKED, labels=[1, 2, 3])
        assert bowker_exact_test(table).to_dict()["labels"] == ["1", "2", "3"]

    def test_to_dict_exhausted(self):
        with warnings.catch_warnings():
            warnings.simplefilter("ignore")
            d = bowker_exact_test([[0, 2000], [0, 0]]).to_dict()
        json.dumps(d)
        assert d["p_value"] is None
        assert d["precision_exhausted"] is True
        assert d["message"]

    def test_weighted_permutations_exact_integer(self):
        with warnings.catch_warnings():
            warnings.simplefilter("ignore")
            result = bowker_exact_test([[0, 2000], [0, 0]])
        assert result.weighted_permutations == 2**2000
