"""Invoice aggregate and list summaries."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional, Tuple

from .calculator import ComputedLineItem, compute_total


@dataclass(frozen=True)
class Invoice:
    invoice_no: str
    bill_to: str
    date: date
    due_date: date
    items: Tuple[ComputedLineItem, ...] = field(default_factory=tuple)
    received: float = 0.0

    @property
    def total(self) -> float:
        """Always the sum of the item net amounts."""
        return compute_total(self.items)

    @property
    def bill_to_lines(self):
        return self.bill_to.splitlines() or [""]

    def to_dict(self) -> dict:
        """JSON shape used by the form when loading an invoice for editing."""
        return {
            "invoiceNo": self.invoice_no,
            "billTo": self.bill_to,
            "date": self.date.isoformat(),
            "dueDate": self.due_date.isoformat(),
            "items": [
                {
                    "name": item.name,
                    "qty": item.qty,
                    "unit": item.unit,
                    "rate": item.rate,
                    "discount": item.discount,
                    "amount": round(item.net_amount, 2),
                }
                for item in self.items
            ],
            "total": round(self.total, 2),
            "received": self.received,
        }


@dataclass(frozen=True)
class InvoiceSummary:
    invoice_no: str
    bill_to: str
    total: float
    created_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        return {
            "invoiceNo": self.invoice_no,
            "billTo": self.bill_to,
            "total": round(self.total, 2),
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }
