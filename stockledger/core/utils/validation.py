"""
Validation utilities for core domain models.

Provides consistent numeric field validation across the application.
"""

from typing import Any

from stockledger.core.exceptions.ledger import ValidationError
from stockledger.core.types.financial import ZERO, is_blank, parse_number


def validate_positive(
    value: Any, param_name: str, error_cls: type[ValidationError] = ValidationError
) -> float:
    """Validate that a raw value parses to a finite positive number.

    Args:
        value: Raw value (number or user-entered string)
        param_name: Parameter name for error messages
        error_cls: ValidationError subclass to raise

    Returns:
        The parsed value

    Raises:
        ValidationError: If value is not a finite positive number
    """
    number = parse_number(value)
    if number is None or number <= ZERO:
        raise error_cls(f"{param_name} must be a positive number, got {value!r}", value)
    return number


def validate_non_negative(
    value: Any,
    param_name: str,
    error_cls: type[ValidationError] = ValidationError,
    default: float = ZERO,
) -> float:
    """Validate an optional non-negative number; blank yields ``default``.

    Raises:
        ValidationError: If value is present but not a finite number >= 0
    """
    if is_blank(value):
        return default
    number = parse_number(value)
    if number is None or number < ZERO:
        raise error_cls(f"{param_name} must be zero or a positive number, got {value!r}", value)
    return number
