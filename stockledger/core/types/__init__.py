"""
Core type definitions and utilities.
"""

# Re-export financial utilities for easy access
from .financial import (
    ZERO,
    exceeds,
    format_quantity,
    is_blank,
    is_depleted,
    parse_number,
)

__all__ = [
    # Utility functions
    "parse_number",
    "is_blank",
    "exceeds",
    "is_depleted",
    "format_quantity",
    # Constants
    "ZERO",
]
