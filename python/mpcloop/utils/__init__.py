"""Utility functions for mpcloop."""

from .validation import validate_state, check_finite

__all__ = ["validate_state", "check_finite"]
