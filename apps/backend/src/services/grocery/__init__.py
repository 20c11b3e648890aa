"""Grocery list generation from meal plans.

Pipeline: expander -> normalizer -> aggregator -> source_key -> reconciler,
driven by the staleness entry points in ``services.grocery.staleness``.
"""

from .aggregator import aggregate, format_amount, round_amount
from .exceptions import FetchFailure, GroceryListError, WriteFailure
from .normalizer import bucket_key
from .source_key import stamp_source_key


__all__ = [
    "FetchFailure",
    "GroceryListError",
    "WriteFailure",
    "aggregate",
    "bucket_key",
    "format_amount",
    "round_amount",
    "stamp_source_key",
]
