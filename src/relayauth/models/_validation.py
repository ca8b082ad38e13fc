"""Shared validation helpers for frozen dataclass models.

Private module, not part of the public API. Used by ``__post_init__``
methods and builders in sibling model modules.
"""

from __future__ import annotations

import re
from typing import Any


def validate_instance(value: Any, expected: type, name: str) -> None:
    """Raise ``TypeError`` if *value* is not an instance of *expected*."""
    if not isinstance(value, expected):
        article = "an" if expected.__name__[0] in "AEIOUaeiou" else "a"
        raise TypeError(f"{name} must be {article} {expected.__name__}, got {type(value).__name__}")


def validate_timestamp(value: Any, name: str) -> None:
    """Raise if *value* is not a non-negative ``int`` (``bool`` excluded)."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{name} must be an int, got {type(value).__name__}")
    if value < 0:
        raise ValueError(f"{name} must be non-negative")


def validate_str_no_null(value: Any, name: str) -> None:
    """Raise if *value* is not a ``str`` or contains null bytes."""
    if not isinstance(value, str):
        raise TypeError(f"{name} must be a str, got {type(value).__name__}")
    if "\x00" in value:
        raise ValueError(f"{name} contains null bytes")


def validate_str_not_empty(value: Any, name: str) -> None:
    """Raise if *value* is not a non-empty ``str`` without null bytes."""
    validate_str_no_null(value, name)
    if not value:
        raise ValueError(f"{name} must not be empty")


def validate_hex(value: Any, name: str, *, length: int = 64) -> None:
    """Raise if *value* is not a lowercase hex string of *length* characters."""
    validate_instance(value, str, name)
    if not re.fullmatch(rf"[0-9a-f]{{{length}}}", value):
        raise ValueError(f"{name} must be {length} lowercase hex characters")


def validate_tags(value: Any, name: str) -> None:
    """Raise unless *value* is a tuple of non-empty tuples of strings."""
    validate_instance(value, tuple, name)
    for i, tag in enumerate(value):
        validate_instance(tag, tuple, f"{name}[{i}]")
        if not tag:
            raise ValueError(f"{name}[{i}] must not be empty")
        for j, item in enumerate(tag):
            validate_str_no_null(item, f"{name}[{i}][{j}]")


def freeze_tags(tags: Any, name: str = "tags") -> tuple[tuple[str, ...], ...]:
    """Copy a list-of-lists into nested tuples so callers cannot mutate it later."""
    if isinstance(tags, str | bytes) or not hasattr(tags, "__iter__"):
        raise TypeError(f"{name} must be a sequence of sequences, got {type(tags).__name__}")
    frozen: list[tuple[str, ...]] = []
    for i, tag in enumerate(tags):
        if isinstance(tag, str | bytes) or not hasattr(tag, "__iter__"):
            raise TypeError(f"{name}[{i}] must be a sequence of strings, got {type(tag).__name__}")
        frozen.append(tuple(tag))
    result = tuple(frozen)
    validate_tags(result, name)
    return result
