"""
Input validation utilities for pylobpcg.

These validators follow the "fail fast, fail loud" principle. They raise
immediately with clear error messages rather than silently correcting
or making assumptions about user intent.

Design principles:
    - No silent type coercion (except np.asarray on array-likes)
    - No default handling of edge cases
    - Clear, actionable error messages with actual values
    - Each function validates ONE thing
    - Parameter names included in all error messages
"""

import numpy as np
from numpy.typing import ArrayLike, NDArray
from typing import Any, Iterable

from pylobpcg.core.exceptions import (
    ConfigurationError,
    DimensionError,
    ValidationError,
)


def check_array(
    array: ArrayLike,
    name: str,
) -> NDArray[np.floating[Any]]:
    """
    Validate and convert input to numpy array.

    Accepts any array-like and converts to numpy array. Rejects inputs
    that result in object dtype (indicating mixed types or non-numeric data)
    and complex inputs, which the solvers do not support.

    Args:
        array: Input to validate
        name: Parameter name for error messages

    Returns:
        numpy.ndarray with real floating dtype

    Raises:
        ValidationError: If input cannot be converted to a real numeric array
    """
    try:
        result = np.asarray(array)
    except (ValueError, TypeError) as e:
        raise ValidationError(f"{name}: cannot convert to array: {e}") from e

    if result.dtype == object:
        raise ValidationError(
            f"{name}: converted to object dtype, indicating mixed types or non-numeric data"
        )

    # Reject non-numeric dtypes (strings, bytes, datetime, etc.)
    if not np.issubdtype(result.dtype, np.number):
        raise ValidationError(
            f"{name}: non-numeric dtype {result.dtype}, expected numeric data"
        )

    if np.issubdtype(result.dtype, np.complexfloating):
        raise ValidationError(
            f"{name}: complex dtype {result.dtype} is not supported, expected real data"
        )

    # Ensure floating point for numerical stability
    if not np.issubdtype(result.dtype, np.floating):
        result = result.astype(np.float64)

    return result


def check_finite(array: NDArray[np.floating[Any]], name: str) -> None:
    """
    Verify array contains no NaN or Inf values.

    Args:
        array: Array to check
        name: Parameter name for error messages

    Raises:
        ValidationError: If array contains non-finite values
    """
    if not np.all(np.isfinite(array)):
        n_nan = int(np.sum(np.isnan(array)))
        n_inf = int(np.sum(np.isinf(array)))
        raise ValidationError(
            f"{name}: contains non-finite values ({n_nan} NaN, {n_inf} Inf)"
        )


def check_ndim(array: NDArray[np.floating[Any]], ndim: int, name: str) -> None:
    """
    Verify array has exactly the specified number of dimensions.

    Args:
        array: Array to check
        ndim: Required number of dimensions
        name: Parameter name for error messages

    Raises:
        DimensionError: If array has wrong number of dimensions
    """
    if array.ndim != ndim:
        raise DimensionError(
            f"{name}: expected {ndim}D array, got {array.ndim}D with shape {array.shape}"
        )


def check_2d(array: NDArray[np.floating[Any]], name: str) -> None:
    """
    Verify array is 2-dimensional.

    Args:
        array: Array to check
        name: Parameter name for error messages

    Raises:
        DimensionError: If array is not 2D
    """
    check_ndim(array, 2, name)


def check_square(array: NDArray[np.floating[Any]], name: str) -> None:
    """
    Verify array is a square matrix.

    Args:
        array: 2D array to check
        name: Parameter name for error messages

    Raises:
        DimensionError: If array is not square
    """
    check_2d(array, name)
    if array.shape[0] != array.shape[1]:
        raise DimensionError(
            f"{name}: expected square matrix, got shape {array.shape}"
        )


def check_consistent_length(
    *arrays: NDArray[np.floating[Any]],
    names: tuple[str, ...]
) -> None:
    """
    Verify all arrays have the same length (first dimension).

    Args:
        *arrays: Arrays to check
        names: Parameter names for error messages (must match number of arrays)

    Raises:
        ValueError: If number of names doesn't match number of arrays
        DimensionError: If arrays have inconsistent lengths
    """
    if len(arrays) != len(names):
        raise ValueError(
            f"Number of arrays ({len(arrays)}) must match number of names ({len(names)})"
        )

    if len(arrays) < 2:
        return

    lengths = [arr.shape[0] for arr in arrays]
    if len(set(lengths)) > 1:
        details = ", ".join(f"{name}={length}" for name, length in zip(names, lengths))
        raise DimensionError(f"Inconsistent lengths: {details}")


def check_block_shape(
    block: NDArray[np.floating[Any]],
    expected: tuple[int, int],
    name: str,
) -> None:
    """
    Verify a block returned by an operator has the shape it was given.

    Args:
        block: Array produced by an operator
        expected: Shape of the block that was passed in
        name: Operator name for error messages

    Raises:
        DimensionError: If the shapes differ
    """
    shape = np.shape(block)
    if tuple(shape) != tuple(expected):
        raise DimensionError(
            f"{name}: returned block of shape {tuple(shape)}, expected {tuple(expected)}"
        )


def check_block_size(n: int, k: int, n_constraints: int = 0) -> None:
    """
    Verify that k eigenpairs fit into an n-dimensional problem.

    The search space is the orthogonal complement of the constraints, so
    k + n_constraints must not exceed n.

    Args:
        n: Problem dimension
        k: Requested block size
        n_constraints: Number of constraint columns

    Raises:
        ConfigurationError: If k < 1 or the block does not fit
    """
    if k < 1:
        raise ConfigurationError(
            f"block size must be >= 1, got {k}", parameter='k', value=k
        )
    if k > n:
        raise ConfigurationError(
            f"block size {k} exceeds problem dimension {n}", parameter='k', value=k
        )
    if k + n_constraints > n:
        raise ConfigurationError(
            f"block size {k} plus {n_constraints} constraints exceeds "
            f"problem dimension {n}",
            parameter='k',
            value=k,
        )


def check_choice(value: str, choices: Iterable[str], name: str) -> None:
    """
    Verify a string option is one of the allowed choices.

    Args:
        value: The option value
        choices: Allowed values
        name: Parameter name for error messages

    Raises:
        ConfigurationError: If value is not an allowed choice
    """
    choices = tuple(choices)
    if value not in choices:
        raise ConfigurationError(
            f"Unknown {name}: {value!r}. Use one of {', '.join(map(repr, choices))}.",
            parameter=name,
            value=value,
        )


def check_tolerance(tol: float, name: str = 'tol') -> None:
    """
    Verify a residual tolerance is a non-negative finite number.

    Args:
        tol: Tolerance value
        name: Parameter name for error messages

    Raises:
        ConfigurationError: If tol is negative or not finite
    """
    if not np.isfinite(tol) or tol < 0:
        raise ConfigurationError(
            f"{name}: must be a finite non-negative number, got {tol}",
            parameter=name,
            value=tol,
        )


def check_max_iter(max_iter: int, name: str = 'max_iter') -> None:
    """
    Verify an iteration budget is a positive integer.

    Args:
        max_iter: Iteration budget
        name: Parameter name for error messages

    Raises:
        ConfigurationError: If max_iter < 1
    """
    if int(max_iter) != max_iter or max_iter < 1:
        raise ConfigurationError(
            f"{name}: must be a positive integer, got {max_iter}",
            parameter=name,
            value=max_iter,
        )
