"""Request models for the invoice form.

The form posts strings for almost everything; coercion to numbers and dates
happens here, once, before the calculator runs.
"""

from __future__ import annotations

import datetime as dt
import math
import re
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .calculator import DEFAULT_UNIT, LineItem, compute_item, compute_total, parse_number
from .models import Invoice

_CURRENCY_PREFIX = re.compile(r"^\s*(₹|rs\.?)\s*", re.IGNORECASE)


class ItemRequest(BaseModel):
    """One row of the items table."""

    name: str = ""
    qty: float = Field(0.0, ge=0)
    unit: str = DEFAULT_UNIT
    rate: float = Field(0.0, ge=0)
    discount: str = ""

    @field_validator("name", mode="before")
    @classmethod
    def _strip_name(cls, value):
        return "" if value is None else str(value).strip()

    @field_validator("qty", "rate", mode="before")
    @classmethod
    def _lenient_number(cls, value):
        return parse_number(value)

    @field_validator("unit", mode="before")
    @classmethod
    def _normalize_unit(cls, value):
        unit = "" if value is None else str(value).strip().upper()
        return unit or DEFAULT_UNIT

    @field_validator("discount", mode="before")
    @classmethod
    def _normalize_discount(cls, value):
        if value is None:
            return ""
        # Older clients send the display label ("₹15") instead of the raw value.
        return _CURRENCY_PREFIX.sub("", str(value).strip())

    @model_validator(mode="after")
    def _finite_amount(self):
        if not math.isfinite(compute_item(self.to_line_item()).net_amount):
            raise ValueError("Item amount is too large")
        return self

    def to_line_item(self) -> LineItem:
        return LineItem(
            name=self.name,
            qty=self.qty,
            unit=self.unit,
            rate=self.rate,
            discount=self.discount,
        )


class InvoiceRequest(BaseModel):
    """Body of ``POST /generate``."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    billto: str = Field(..., min_length=1)
    invoice: str = Field(..., min_length=1)
    date: dt.date
    duedate: Optional[dt.date] = None
    received: float = 0.0
    items: List[ItemRequest]
    is_editing: bool = Field(False, alias="isEditing")
    original_invoice_no: Optional[str] = Field(None, alias="originalInvoiceNo")

    @field_validator("billto", mode="before")
    @classmethod
    def _normalize_billto(cls, value):
        if value is None:
            return ""
        return str(value).replace("\r\n", "\n").strip()

    @field_validator("invoice", mode="before")
    @classmethod
    def _strip_invoice(cls, value):
        return "" if value is None else str(value).strip()

    @field_validator("duedate", "original_invoice_no", mode="before")
    @classmethod
    def _blank_is_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("received", mode="before")
    @classmethod
    def _lenient_received(cls, value):
        return parse_number(value)

    @field_validator("items")
    @classmethod
    def _drop_blank_items(cls, value: List[ItemRequest]) -> List[ItemRequest]:
        items = [item for item in value if item.name]
        if not items:
            raise ValueError("At least one item with a name is required")
        return items

    @model_validator(mode="after")
    def _default_due_date(self):
        if self.duedate is None:
            self.duedate = self.date
        return self

    @model_validator(mode="after")
    def _finite_total(self):
        if not math.isfinite(compute_total(compute_item(item.to_line_item()) for item in self.items)):
            raise ValueError("Invoice total is too large")
        return self

    @property
    def update_target(self) -> Optional[str]:
        """Invoice number to update in place, or None to create."""
        if self.is_editing and self.original_invoice_no:
            return self.original_invoice_no.strip()
        return None

    def to_invoice(self) -> Invoice:
        return Invoice(
            invoice_no=self.invoice,
            bill_to=self.billto,
            date=self.date,
            due_date=self.duedate,
            items=tuple(compute_item(item.to_line_item()) for item in self.items),
            received=self.received,
        )
