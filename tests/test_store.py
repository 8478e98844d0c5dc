"""Tests for SQLite invoice storage."""

import pytest

from invoicing.calculator import LineItem
from invoicing.store import DuplicateInvoiceError, InvoiceStore, StoreError, StoreUnavailableError
from tests.conftest import make_invoice


@pytest.fixture
def store(tmp_path):
    store = InvoiceStore.open(str(tmp_path / "invoices.db"))
    assert store.available
    return store


def test_save_and_get(store, invoice):
    assert store.save(invoice) == "created"
    loaded = store.get("INV-001")
    assert loaded == invoice
    assert loaded.total == pytest.approx(90)


def test_get_missing(store):
    assert store.get("NOPE") is None


def test_duplicate_create_is_rejected(store, invoice):
    store.save(invoice)
    with pytest.raises(DuplicateInvoiceError) as excinfo:
        store.save(make_invoice(bill_to="Someone else"))
    assert excinfo.value.invoice_no == "INV-001"
    assert store.get("INV-001").bill_to == invoice.bill_to


def test_update_in_place(store, invoice):
    store.save(invoice)
    edited = make_invoice(items=[LineItem("Bolt", 10, "BOX", 7, "")], received=30)
    assert store.save(edited, original_invoice_no="INV-001") == "updated"
    loaded = store.get("INV-001")
    assert [item.name for item in loaded.items] == ["Bolt"]
    assert loaded.total == 70
    assert loaded.received == 30
    assert len(store.list_recent()) == 1


def test_update_can_rename(store, invoice):
    store.save(invoice)
    store.save(make_invoice(invoice_no="INV-002"), original_invoice_no="INV-001")
    assert store.get("INV-001") is None
    assert store.get("INV-002") is not None


def test_update_missing_original_creates(store, invoice):
    assert store.save(invoice, original_invoice_no="GONE") == "created"
    assert store.get("INV-001") is not None


def test_rename_onto_existing_number_is_rejected(store, invoice):
    store.save(invoice)
    store.save(make_invoice(invoice_no="INV-002"))
    with pytest.raises(DuplicateInvoiceError):
        store.save(make_invoice(invoice_no="INV-002"), original_invoice_no="INV-001")
    assert store.get("INV-001") is not None


def test_other_integrity_errors_are_not_duplicates(store):
    with pytest.raises(StoreError) as excinfo:
        store.save(make_invoice(bill_to=None))
    assert not isinstance(excinfo.value, DuplicateInvoiceError)
    assert store.get("INV-001") is None


def test_list_recent_newest_first(store):
    for number in range(1, 4):
        store.save(make_invoice(invoice_no=f"INV-{number}"))
    summaries = store.list_recent()
    assert [s.invoice_no for s in summaries] == ["INV-3", "INV-2", "INV-1"]
    assert summaries[0].total == pytest.approx(90)
    assert summaries[0].created_at is not None
    assert len(store.list_recent(limit=2)) == 2


def test_delete(store, invoice):
    store.save(invoice)
    assert store.delete("INV-001") is True
    assert store.get("INV-001") is None
    assert store.delete("INV-001") is False


def test_items_keep_their_order(store):
    items = [LineItem(name, 1, "PCS", 1, "") for name in ["Zinc", "Alum", "Mica"]]
    store.save(make_invoice(items=items))
    assert [item.name for item in store.get("INV-001").items] == ["Zinc", "Alum", "Mica"]


def test_no_path_means_pdf_only():
    store = InvoiceStore.open("")
    assert not store.available
    assert store.status.reason == "no database configured"
    with pytest.raises(StoreUnavailableError):
        store.list_recent()


def test_unusable_path_means_pdf_only(tmp_path):
    store = InvoiceStore.open(str(tmp_path / "missing" / "dir" / "invoices.db"))
    assert not store.available
    assert store.status.reason
    with pytest.raises(StoreUnavailableError):
        store.save(make_invoice())
