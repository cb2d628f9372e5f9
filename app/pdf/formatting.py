from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any

from app.schemas.invoice import to_money


def format_money(amount: Any, symbol: str = "$") -> str:
    return f"{symbol}{to_money(amount):.2f}"


def format_rate(rate: Any) -> str:
    """Render a percentage without trailing zeros: 8.50 -> "8.5", 10 -> "10"."""

    value = rate if isinstance(rate, Decimal) else Decimal(str(rate))
    return format(value.normalize(), "f")


def format_display_date(value: date) -> str:
    """Short US-style date as shown on the printed invoice, e.g. 9/7/2025."""

    return f"{value.month}/{value.day}/{value.year}"


def format_long_date(value: date) -> str:
    return f"{value:%B} {value.day}, {value.year}"
