"""Line item amounts and invoice totals.

Bad numeric input never raises here: it degrades to zero so the live form
preview and the PDF always have something to show.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable

UNITS = ("BDL", "BOX", "BTL", "DOZ", "GM", "KG", "LTR", "ML", "PCS", "PKT", "TIN")
DEFAULT_UNIT = "PCS"


def parse_number(value) -> float:
    """Parse a form value as float, returning 0.0 when it is not a number."""
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        try:
            number = float(str(value).strip())
        except ValueError:
            return 0.0
    if not math.isfinite(number):
        return 0.0
    return number


def parse_discount(gross_amount: float, discount) -> float:
    """Return the discount amount for ``gross_amount``.

    ``"10%"`` is a percentage of the gross amount, a bare number is an
    absolute amount, anything empty or unparseable is no discount.
    """
    text = "" if discount is None else str(discount).strip()
    if not text:
        return 0.0
    if text.endswith("%"):
        percent = parse_number(text[:-1])
        return gross_amount * percent / 100
    return parse_number(text)


def is_percentage(discount) -> bool:
    return isinstance(discount, str) and discount.strip().endswith("%")


def discount_label(discount, symbol: str = "Rs.") -> str:
    """Display form of a discount: ``"0"``, ``"10%"`` or ``"Rs. 15"``."""
    text = "" if discount is None else str(discount).strip()
    if not text:
        return "0"
    if text.endswith("%"):
        return text if parse_number(text[:-1]) else "0"
    value = parse_number(text)
    if not value:
        return "0"
    return f"{symbol} {value:g}"


def format_money(value: float) -> str:
    return f"{value:.2f}"


@dataclass(frozen=True)
class LineItem:
    name: str
    qty: float
    unit: str = DEFAULT_UNIT
    rate: float = 0.0
    discount: str = ""


@dataclass(frozen=True)
class ComputedLineItem:
    name: str
    qty: float
    unit: str
    rate: float
    discount: str
    gross_amount: float
    discount_amount: float
    net_amount: float

    @property
    def is_percentage(self) -> bool:
        return is_percentage(self.discount)

    @property
    def has_discount(self) -> bool:
        return self.discount_amount != 0


def compute_item(item: LineItem) -> ComputedLineItem:
    qty = parse_number(item.qty)
    rate = parse_number(item.rate)
    discount = "" if item.discount is None else str(item.discount).strip()
    gross = qty * rate
    discount_amount = parse_discount(gross, discount)
    return ComputedLineItem(
        name=item.name,
        qty=qty,
        unit=item.unit or DEFAULT_UNIT,
        rate=rate,
        discount=discount,
        gross_amount=gross,
        discount_amount=discount_amount,
        # Not clamped: a discount larger than the gross gives a negative line.
        net_amount=gross - discount_amount,
    )


def compute_total(items: Iterable[ComputedLineItem]) -> float:
    return sum((item.net_amount for item in items), 0.0)
