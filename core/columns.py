"""Column identifier resolution for the record store (1-based, letter-like)."""

from __future__ import annotations

import re

_LETTERS = re.compile(r"^[A-Z]+$")
_DIGITS = re.compile(r"^[0-9]+$")


def column_index(identifier: str) -> int:
    """Map ``"A"`` -> 1, ``"Z"`` -> 26, ``"AA"`` -> 27; numeric strings pass through."""
    token = str(identifier or "").strip().upper()
    if not token:
        raise ValueError("column identifier is required")

    if _DIGITS.match(token):
        value = int(token)
        if value < 1:
            raise ValueError(f"column number must be positive: {identifier!r}")
        return value

    if not _LETTERS.match(token):
        raise ValueError(f"invalid column identifier: {identifier!r}")

    value = 0
    for char in token:
        value = value * 26 + (ord(char) - ord("A") + 1)
    return value


def column_letter(index: int) -> str:
    if int(index) < 1:
        raise ValueError(f"column number must be positive: {index!r}")
    remaining = int(index)
    letters = []
    while remaining:
        remaining, rest = divmod(remaining - 1, 26)
        letters.append(chr(ord("A") + rest))
    return "".join(reversed(letters))
