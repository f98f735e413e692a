"""Common helper functions for the service layer.

This module provides reusable utilities for:
- Identifier generation
- Enum validation
"""

from __future__ import annotations

import uuid


def new_id(prefix: str) -> str:
    """Generate a short unique identifier such as ``cable-3f9c0a1b2d4e``.

    Args:
        prefix: Leading label for the identifier

    Returns:
        Identifier string that never contains the fiber-port marker
    """
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


def validate_enum(value, enum_cls, label: str):
    """Validate and convert a value to an enum member.

    Args:
        value: Value to validate (can be None)
        enum_cls: Enum class to validate against
        label: Human-readable label for error messages

    Returns:
        Enum member or None if value is None

    Raises:
        ValueError: if value is not a valid enum member
    """
    if value is None:
        return None
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError as exc:
        raise ValueError(f"Invalid {label}") from exc
