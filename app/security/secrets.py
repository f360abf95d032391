"""Read credentials from the environment, refusing unset or sample values."""
from __future__ import annotations

import os
from typing import Final

__all__ = ["MissingSecretError", "is_placeholder", "read_secret", "require_secret"]

_SAMPLE_VALUES: Final[frozenset[str]] = frozenset(
    {
        "changeme",
        "change-me",
        "placeholder",
        "example",
        "sample",
        "secret",
        "your-key-here",
        "your-secret-here",
    }
)


class MissingSecretError(RuntimeError):
    """Raised when a credential the caller depends on is absent."""


def is_placeholder(value: str | None) -> bool:
    """True for empty values and the sample strings shipped in ``.env`` templates."""

    cleaned = (value or "").strip().lower()
    return not cleaned or cleaned in _SAMPLE_VALUES


def read_secret(name: str) -> str | None:
    value = os.getenv(name)
    if is_placeholder(value):
        return None
    return value.strip()


def require_secret(name: str) -> str:
    value = read_secret(name)
    if value is None:
        raise MissingSecretError(f"{name} must be set to a real value (unset or sample values are rejected)")
    return value
