"""
Tests for input validation utilities.

Validates every function in core/validation.py:
    - check_array: conversion, dtype coercion, object/complex rejection
    - check_finite: NaN/Inf detection
    - check_ndim / check_2d / check_square: dimensionality checks
    - check_consistent_length: multi-array length matching
    - check_block_shape: operator output shapes
    - check_block_size: k and constraints fit into n
    - check_choice / check_tolerance / check_max_iter: option values
"""

import numpy as np
import pytest

from pylobpcg.core.exceptions import (
    ConfigurationError,
    DimensionError,
    ValidationError,
)
from pylobpcg.core.validation import (
    check_2d,
    check_array,
    check_block_shape,
    check_block_size,
    check_choice,
    check_consistent_length,
    check_finite,
    check_max_iter,
    check_ndim,
    check_square,
    check_tolerance,
)


# ═══════════════════════════════════════════════════════════════════════
# check_array
# ═══════════════════════════════════════════════════════════════════════


class TestCheckArray:
    """check_array converts to ndarray and rejects non-numeric data."""

    def test_list_to_float_array(self):
        result = check_array([1, 2, 3], "X")
        assert isinstance(result, np.ndarray)
        assert np.issubdtype(result.dtype, np.floating)
        np.testing.assert_array_equal(result, [1.0, 2.0, 3.0])

    def test_float32_preserved(self):
        arr = np.array([1.0, 2.0], dtype=np.float32)
        assert check_array(arr, "X").dtype == np.float32

    def test_object_array_rejected(self):
        with pytest.raises(ValidationError, match="object dtype"):
            check_array(np.array([1, "a", None], dtype=object), "X")

    def test_string_array_rejected(self):
        with pytest.raises(ValidationError, match="non-numeric"):
            check_array(np.array(["a", "b"]), "X")

    def test_complex_rejected(self):
        with pytest.raises(ValidationError, match="complex"):
            check_array(np.array([1 + 2j]), "A")


# ═══════════════════════════════════════════════════════════════════════
# check_finite / dimensionality
# ═══════════════════════════════════════════════════════════════════════


class TestCheckFinite:

    def test_finite_passes(self):
        check_finite(np.array([1.0, 2.0]), "X")

    def test_nan_rejected(self):
        with pytest.raises(ValidationError, match="1 NaN"):
            check_finite(np.array([1.0, np.nan]), "X")

    def test_inf_rejected(self):
        with pytest.raises(ValidationError, match="1 Inf"):
            check_finite(np.array([np.inf, 1.0]), "X")


class TestDimensionality:

    def test_ndim_mismatch(self):
        with pytest.raises(DimensionError, match="expected 2D"):
            check_ndim(np.zeros(3), 2, "X")

    def test_2d_passes(self):
        check_2d(np.zeros((3, 2)), "X")

    def test_square_passes(self):
        check_square(np.eye(3), "A")

    def test_non_square_rejected(self):
        with pytest.raises(DimensionError, match="square"):
            check_square(np.zeros((3, 2)), "A")


class TestCheckConsistentLength:

    def test_same_length_passes(self):
        check_consistent_length(np.zeros((4, 2)), np.zeros((4, 1)), names=("X", "Y"))

    def test_mismatch_rejected(self):
        with pytest.raises(DimensionError, match="X=4, Y=5"):
            check_consistent_length(np.zeros((4, 2)), np.zeros((5, 1)), names=("X", "Y"))

    def test_names_must_match_arrays(self):
        with pytest.raises(ValueError):
            check_consistent_length(np.zeros(3), names=("X", "Y"))


class TestCheckBlockShape:

    def test_matching_shape_passes(self):
        check_block_shape(np.zeros((5, 2)), (5, 2), "A")

    def test_mismatch_rejected(self):
        with pytest.raises(DimensionError, match=r"A: returned block of shape \(5, 1\)"):
            check_block_shape(np.zeros((5, 1)), (5, 2), "A")


# ═══════════════════════════════════════════════════════════════════════
# Solver configuration
# ═══════════════════════════════════════════════════════════════════════


class TestCheckBlockSize:

    def test_fits(self):
        check_block_size(10, 3, 2)

    def test_k_equals_n(self):
        check_block_size(4, 4)

    def test_zero_block_rejected(self):
        with pytest.raises(ConfigurationError):
            check_block_size(10, 0)

    def test_k_larger_than_n(self):
        with pytest.raises(ConfigurationError, match="exceeds problem dimension") as exc_info:
            check_block_size(3, 4)
        assert exc_info.value.parameter == "k"
        assert exc_info.value.value == 4

    def test_constraints_consume_dimension(self):
        with pytest.raises(ConfigurationError, match="constraints"):
            check_block_size(5, 3, 3)


class TestOptions:

    def test_choice_accepts(self):
        check_choice("largest", ("largest", "smallest"), "order")

    def test_choice_rejects(self):
        with pytest.raises(ConfigurationError, match="Unknown order") as exc_info:
            check_choice("biggest", ("largest", "smallest"), "order")
        assert exc_info.value.parameter == "order"

    def test_zero_tolerance_allowed(self):
        check_tolerance(0.0)

    @pytest.mark.parametrize("tol", [-1e-3, np.nan, np.inf])
    def test_bad_tolerance(self, tol):
        with pytest.raises(ConfigurationError):
            check_tolerance(tol)

    @pytest.mark.parametrize("max_iter", [0, -5, 2.5])
    def test_bad_max_iter(self, max_iter):
        with pytest.raises(ConfigurationError):
            check_max_iter(max_iter)

    def test_max_iter_name_in_message(self):
        with pytest.raises(ConfigurationError, match="maxiter"):
            check_max_iter(0, "maxiter")
