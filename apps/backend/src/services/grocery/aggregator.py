"""Fold scaled ingredient instances into merged grocery lines.

Amounts are rounded exactly once, here, to three fractional digits. Display
formatting reuses the stored value and never rounds again.
"""

from __future__ import annotations

from collections.abc import Iterable
from decimal import ROUND_HALF_UP, Decimal

from services.grocery.models import MergedLineItem, ScaledIngredient


AMOUNT_QUANTUM = Decimal("0.001")


def round_amount(value: Decimal) -> Decimal:
    """Round half away from zero to 3 places and drop trailing zeros.

    ``Decimal("1.250")`` becomes ``Decimal("1.25")``; ``Decimal("2.000")``
    becomes ``Decimal("2")`` (never exponent form such as ``2E+1``).
    """
    quantized = value.quantize(AMOUNT_QUANTUM, rounding=ROUND_HALF_UP)
    return Decimal(format_amount(quantized))


def format_amount(value: Decimal | float | int) -> str:
    """Render an already rounded amount with the minimal number of digits."""
    text = format(Decimal(str(value)), "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    if text in {"-0", ""}:
        return "0"
    return text


def aggregate(scaled: Iterable[ScaledIngredient]) -> list[MergedLineItem]:
    """Merge instances sharing a bucket key, summing their amounts.

    The first instance of a bucket supplies the display name (trimmed,
    original case), unit code and pantry flag. Output order follows first
    appearance but carries no meaning.
    """
    merged: dict[str, MergedLineItem] = {}
    for item in scaled:
        current = merged.get(item.bucket_key)
        if current is None:
            merged[item.bucket_key] = MergedLineItem(
                ingredient_name=item.name.strip(),
                amount=item.amount,
                unit_code=item.unit_code,
                is_pantry_staple=item.is_pantry_staple,
                bucket_key=item.bucket_key,
            )
        else:
            current.amount += item.amount

    for line in merged.values():
        line.amount = round_amount(line.amount)
    return list(merged.values())
