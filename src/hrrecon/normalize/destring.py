"""Money destringing: string-encoded amounts to signed Decimals."""

from __future__ import annotations

import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Optional

from pydantic import BaseModel, Field

CENTS = Decimal("0.01")


class DestringConfig(BaseModel):
    """Characters and markers stripped before numeric conversion."""

    ignore_chars: list[str] = Field(default_factory=lambda: [" ", ",", '"', "'", "*"])
    currency_markers: list[str] = Field(default_factory=lambda: ["RM", "MYR"])
    trailing_negative_handling: bool = True
    parenthesis_negative_handling: bool = True


_NUMBER = re.compile(r"^-?\d+(\.\d+)?$")


def destring(raw: Optional[str], config: DestringConfig | None = None) -> Optional[Decimal]:
    """Convert an amount string to a Decimal quantized to cents.

    ``"RM 1,234.50"`` -> 1234.50, ``"123.45-"`` -> -123.45, ``"(50)"`` -> -50.00.
    Returns None when nothing numeric remains.
    """
    if raw is None:
        return None
    cfg = config or DestringConfig()
    value = raw.strip()
    for marker in cfg.currency_markers:
        value = re.sub(rf"\b{re.escape(marker)}\b", "", value, flags=re.IGNORECASE)
    for ch in cfg.ignore_chars:
        value = value.replace(ch, "")
    if not value:
        return None

    negative = False
    if cfg.parenthesis_negative_handling and value.startswith("(") and value.endswith(")"):
        negative = True
        value = value[1:-1]
    if cfg.trailing_negative_handling and value.endswith("-"):
        negative = not negative
        value = value[:-1]
    if value.startswith("-"):
        negative = not negative
        value = value[1:]
    if value.startswith("+"):
        value = value[1:]

    if not _NUMBER.match(value):
        return None
    try:
        amount = Decimal(value)
    except InvalidOperation:
        return None
    if negative:
        amount = -amount
    return amount.quantize(CENTS, rounding=ROUND_HALF_UP)
