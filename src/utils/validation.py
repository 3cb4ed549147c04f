"""
Input validation utilities for loader setup bundles.

Provides the small set of predicates and coercions every setup step is
built from: blank checks, required values, membership in an allowed set,
and integer / boolean coercion of loosely typed operator input.
"""

import re
from collections.abc import Collection
from typing import Any

from src.core.errors import ValidationError

# Values accepted as "yes" for flag fields such as clusterUseSSL
TRUTHY_VALUES = frozenset({"y", "yes", "true", "t", "1", "on"})

# Optional sign followed by ASCII digits, no underscores
DECIMAL_INTEGER = re.compile(r"[+-]?[0-9]+")


def is_blank(value: Any) -> bool:
    """
    Check whether a value is absent, empty, or whitespace-only.

    Args:
        value: The value to check

    Returns:
        True if the value carries no usable content

    Examples:
        >>> is_blank(None)
        True
        >>> is_blank("   ")
        True
        >>> is_blank(0)
        False
    """
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    return False


def require_not_blank(value: Any, message: str, field_name: str | None = None) -> Any:
    """
    Require a non-blank value.

    Args:
        value: The value to check
        message: Error message reported to the operator
        field_name: Name of the input field (for error context)

    Returns:
        The value, unchanged

    Raises:
        ValidationError: If the value is blank
    """
    if is_blank(value):
        raise ValidationError(message, field_name=field_name)
    return value


def require_in_set(
    allowed_values: Collection[str],
    value: Any,
    message: str,
    field_name: str | None = None,
) -> Any:
    """
    Require a value to be one of an allowed set.

    Membership is case-sensitive; callers normalise case first.

    Args:
        allowed_values: The accepted values
        value: The value to check
        message: Error message reported to the operator
        field_name: Name of the input field (for error context)

    Returns:
        The value, unchanged

    Raises:
        ValidationError: If the value is not in allowed_values
    """
    if value not in allowed_values:
        raise ValidationError(message, field_name=field_name)
    return value


def coerce_int(value: Any, field_name: str | None = None) -> int:
    """
    Coerce a value to a base-10 integer.

    Args:
        value: An int, an integral float, or a string of decimal digits
        field_name: Name of the input field (for error context)

    Returns:
        The integer value

    Raises:
        ValidationError: If the value cannot be read as an integer

    Examples:
        >>> coerce_int("5439")
        5439
        >>> coerce_int(" 42 ")
        42
    """
    # bool is an int subclass, but True is not a port number
    if isinstance(value, bool):
        raise ValidationError(f"Expected an integer, got {value!r}", field_name=field_name)

    if isinstance(value, int):
        return value

    if isinstance(value, float):
        if value.is_integer():
            return int(value)
        raise ValidationError(f"Expected an integer, got {value!r}", field_name=field_name)

    if isinstance(value, str) and DECIMAL_INTEGER.fullmatch(value.strip()):
        return int(value.strip(), 10)

    raise ValidationError(f"Expected an integer, got {value!r}", field_name=field_name)


def coerce_bool(value: Any) -> bool:
    """
    Coerce a flag value to a boolean.

    Never raises: anything not recognised as truthy is False.

    Examples:
        >>> coerce_bool("Y")
        True
        >>> coerce_bool("no")
        False
        >>> coerce_bool(None)
        False
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value == 1
    if isinstance(value, str):
        return value.strip().lower() in TRUTHY_VALUES
    return False
