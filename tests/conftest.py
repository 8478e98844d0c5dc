from datetime import date

import pytest

from invoicing.calculator import LineItem, compute_item
from invoicing.config import BusinessProfile, Settings
from invoicing.models import Invoice


@pytest.fixture
def business():
    return BusinessProfile(
        name="Sharma Traders",
        address="12 Market Road, Civil Lines",
        phone="98765 43210",
        city="Jaipur",
    )


@pytest.fixture
def settings(business, tmp_path):
    return Settings(business=business, database_path=str(tmp_path / "invoices.db"))


def make_invoice(items=None, **overrides):
    fields = dict(
        invoice_no="INV-001",
        bill_to="Acme Corp\n42 Station Road\nJaipur",
        date=date(2024, 3, 5),
        due_date=date(2024, 4, 4),
        items=tuple(compute_item(item) for item in (items or [LineItem("Widget", 5, "PCS", 20, "10%")])),
        received=0.0,
    )
    fields.update(overrides)
    return Invoice(**fields)


@pytest.fixture
def invoice():
    return make_invoice()
