"""Input validation utilities."""

from typing import Any, Tuple

import numpy as np


def validate_state(x: Any, n_states: int) -> Tuple[bool, str]:
    """
    Validate a state vector against the expected dimension.

    Returns:
        (is_valid, error_message) tuple
    """
    x = np.asarray(x, dtype=np.float64)

    if x.ndim != 1:
        return False, f"state must be a vector, got shape {x.shape}"

    if len(x) != n_states:
        return False, f"state has {len(x)} elements, expected {n_states}"

    return True, ""


def check_finite(x: np.ndarray, name: str) -> Tuple[bool, str]:
    """
    Check that an array contains no NaN/inf values.

    Returns:
        (is_valid, error_message) tuple
    """
    if np.any(np.isnan(x)):
        return False, f"{name} contains NaN values"

    if np.any(np.isinf(x)):
        return False, f"{name} contains infinite values"

    return True, ""
