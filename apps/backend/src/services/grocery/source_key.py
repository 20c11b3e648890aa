"""Versioned source keys: ``v<plan version>|<bucket key>``.

The key both names the bucket a row came from and records the plan version
it was generated at, which is all staleness detection needs.
"""

from __future__ import annotations

from services.grocery.normalizer import KEY_DELIMITER


def version_prefix(version: int) -> str:
    return f"v{version}{KEY_DELIMITER}"


def stamp_source_key(version: int, bucket_key: str) -> str:
    """Stamp a bucket key with the plan version read at aggregation time."""
    return f"{version_prefix(version)}{bucket_key}"


def is_current(source_key: str, version: int) -> bool:
    return source_key.startswith(version_prefix(version))


def split_source_key(source_key: str) -> tuple[int | None, str]:
    """Split a source key into ``(version, bucket_key)``.

    Keys without a parseable ``v<int>`` head return ``(None, source_key)``.
    """
    head, sep, rest = source_key.partition(KEY_DELIMITER)
    if not sep or not head.startswith("v") or not head[1:].isdigit():
        return None, source_key
    return int(head[1:]), rest
