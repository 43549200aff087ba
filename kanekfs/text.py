"""Small text helpers."""

from __future__ import annotations

__all__ = ["trim"]

_C_WHITESPACE = " \t\n\v\f\r"


def trim(text: str) -> str:
    """Return ``text`` without leading and trailing ASCII whitespace."""
    return text.strip(_C_WHITESPACE)