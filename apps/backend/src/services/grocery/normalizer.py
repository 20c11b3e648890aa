"""Ingredient bucket keys.

Two ingredients merge on the grocery list if and only if their bucket keys
are identical. Names compare case- and whitespace-insensitively but never
fuzzily: "Garlic clove" and "garlic cloves" stay two lines.
"""

from __future__ import annotations


KEY_DELIMITER = "|"


def normalize_name(name: str) -> str:
    """Lowercase, trimmed form of an ingredient name."""
    return name.strip().lower()


def pantry_bit(is_pantry_staple: bool) -> str:
    return "1" if is_pantry_staple else "0"


def bucket_key(name: str, unit_code: str, is_pantry_staple: bool) -> str:
    """Return the merge key ``<normalized name>|<unit code>|<pantry bit>``."""
    return KEY_DELIMITER.join(
        (normalize_name(name), unit_code, pantry_bit(is_pantry_staple))
    )
