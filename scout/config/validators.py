"""Shared validators for Pydantic config models.

This module provides common validation utilities that reduce code
duplication across configuration models:
- Weight sum validation
- Ordered threshold validation
- String list normalization
"""

from typing import Any


def validate_weights_sum(
    values: dict[str, float],
    tolerance: float = 0.01,
    expected_sum: float = 1.0,
) -> None:
    """Validate that numeric values sum to expected value.

    Args:
        values: Dictionary of field names to weight values
        tolerance: Allowed deviation from expected_sum
        expected_sum: Expected sum of all weights

    Raises:
        ValueError: If sum deviates from expected by more than tolerance
    """
    total = sum(values.values())
    if abs(total - expected_sum) > tolerance:
        raise ValueError(
            f"Weights must sum to {expected_sum} (got {total:.2f}). " f"Values: {values}"
        )


def validate_non_decreasing(values: list[tuple[str, float]]) -> None:
    """Validate that named values are in non-decreasing order.

    Args:
        values: Ordered (name, value) pairs

    Raises:
        ValueError: Naming the first pair that breaks the order
    """
    for (prev_name, prev_value), (name, value) in zip(values, values[1:]):
        if prev_value > value:
            raise ValueError(
                f"{prev_name} ({prev_value}) must not exceed {name} ({value})"
            )


def normalize_string_list(value: Any) -> list[str]:
    """Normalize string list to lowercase.

    Handles None, single strings, and lists. Blank entries are dropped.

    Args:
        value: Input value (None, str, or list[str])

    Returns:
        List of lowercased, stripped strings
    """
    if value is None:
        return []
    if isinstance(value, str):
        value = [value]
    if isinstance(value, list | tuple):
        return [s.strip().lower() for s in value if isinstance(s, str) and s.strip()]
    return []


__all__ = [
    "validate_weights_sum",
    "validate_non_decreasing",
    "normalize_string_list",
]
