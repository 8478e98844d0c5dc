"""Unit tests for the page layout plan."""

import pytest
from reportlab.pdfbase.pdfmetrics import stringWidth

from invoicing.calculator import LineItem
from invoicing.layout import (
    BOTTOM,
    CONTENT_WIDTH,
    MARGIN,
    PAGE_WIDTH,
    LayoutOptions,
    Line,
    Rect,
    TextRun,
    build_layout,
    table_columns,
    truncate,
)
from tests.conftest import make_invoice


def texts(plan):
    return [run.text for run in plan.texts()]


def items(count, name="Item"):
    return [LineItem(f"{name} {n}", 1, "PCS", 10, "") for n in range(1, count + 1)]


def test_single_page_sections(invoice, business):
    plan = build_layout(invoice, business)
    assert len(plan.pages) == 1
    found = texts(plan)
    for expected in [
        "BILL OF SUPPLY",
        "ORIGINAL FOR RECIPIENT",
        "Sharma Traders",
        "12 Market Road, Civil Lines",
        "Mobile: 98765 43210",
        "BILL TO",
        "Acme Corp",
        "42 Station Road",
        "Invoice No.",
        "INV-001",
        "05/03/2024",
        "04/04/2024",
        "TOTAL",
        "RECEIVED AMOUNT",
        "Rs. 90.00",
        "Rs. 0.00",
        "Ninety Rupees",
        "2. All disputes are subject to Jaipur jurisdiction only",
        "For Sharma Traders",
        "Authorized Signatory",
    ]:
        assert expected in found


def test_bill_to_lines_get_own_baselines(invoice, business):
    plan = build_layout(invoice, business)
    runs = {run.text: run for run in plan.texts()}
    ys = [runs[line].y for line in ["Acme Corp", "42 Station Road", "Jaipur"]]
    assert ys == sorted(ys)
    assert len(set(ys)) == 3


def test_header_columns_with_discount(invoice, business):
    plan = build_layout(invoice, business)
    found = texts(plan)
    for label in ["S.NO", "ITEMS", "QTY.", "UNIT", "RATE", "DISCOUNT", "AMOUNT"]:
        assert label in found
    assert "10%" in found
    assert "90.00" in found


def test_discount_column_hidden_without_discounts(business):
    invoice = make_invoice([LineItem("Widget", 5, "PCS", 20, "")])
    assert "DISCOUNT" not in texts(build_layout(invoice, business))


def test_columns_span_content_width():
    for show_discount in (True, False):
        columns = table_columns(show_discount)
        assert columns[0].x == MARGIN
        assert columns[-1].x + columns[-1].width == pytest.approx(MARGIN + CONTENT_WIDTH)


@pytest.mark.parametrize("count,minimum", [(1, 8), (3, 8), (8, 8), (0, 0)])
def test_padding_to_minimum_rows(business, count, minimum):
    invoice = make_invoice(items(count) if count else [LineItem("Only", 1, "PCS", 1, "")])
    plan = build_layout(invoice, business, LayoutOptions(min_rows=minimum))
    item_count = len(invoice.items)
    assert plan.table_rows == max(minimum, item_count)
    assert plan.padding_rows == max(0, minimum - item_count)


def test_more_items_than_minimum_has_no_padding(business):
    invoice = make_invoice(items(12))
    plan = build_layout(invoice, business, LayoutOptions(min_rows=8))
    assert plan.table_rows == 12
    assert plan.padding_rows == 0
    assert "12" in texts(plan)


def test_long_names_are_truncated(business):
    name = "Extra long premium basmati rice family pack"
    invoice = make_invoice([LineItem(name, 1, "KG", 80, "")])
    found = texts(build_layout(invoice, business))
    assert name not in found
    assert truncate(name, 35) in found
    assert truncate(name, 35).endswith("...")
    assert len(truncate(name, 35)) <= 35


def test_truncate_short_text_unchanged():
    assert truncate("Rice", 35) == "Rice"


def test_wrap_mode_keeps_full_name_and_grows_row(business):
    name = " ".join(["Extra long premium basmati rice family pack"] * 3)
    invoice = make_invoice([LineItem(name, 1, "KG", 80, "")])
    plan = build_layout(invoice, business, LayoutOptions(wrap_item_names=True))
    name_runs = [run for run in plan.texts() if run.text and run.text in name and len(run.text) > 10]
    assert len(name_runs) > 1
    assert " ".join(run.text for run in name_runs) == name
    assert not any(run.text.endswith("...") for run in plan.texts())


def test_many_items_continue_on_new_page(business):
    invoice = make_invoice(items(40))
    plan = build_layout(invoice, business)
    assert len(plan.pages) > 1
    assert plan.table_rows == 40
    for page in plan.pages[:2]:
        assert "ITEMS" in [run.text for run in page.texts()]
    for page in plan.pages:
        assert f"Page {page.number} of {len(plan.pages)}" in [run.text for run in page.texts()]
    assert "TOTAL" in texts(plan)
    assert "Terms and Conditions" in [run.text for run in plan.pages[-1].texts()]


HUGE_NAME = " ".join(["word"] * 1200)


def within_page(plan):
    for page in plan.pages:
        for element in page.elements:
            if isinstance(element, Rect):
                assert element.x >= MARGIN - 1e-6
                assert element.x + element.width <= PAGE_WIDTH - MARGIN + 1e-6
                assert element.y + element.height <= BOTTOM + 1e-6
            elif isinstance(element, Line):
                assert max(element.y1, element.y2) <= BOTTOM + 1e-6
            elif isinstance(element, TextRun) and not element.text.startswith("Page "):
                assert element.y <= BOTTOM
                if element.width is not None:
                    assert stringWidth(element.text, element.font, element.size) <= element.width + 1e-6


@pytest.mark.parametrize(
    "invoice_args,options",
    [
        ({"items": items(60)}, LayoutOptions(wrap_item_names=True)),
        ({"items": [LineItem(HUGE_NAME, 1, "PCS", 1, "")]}, LayoutOptions(wrap_item_names=True)),
        ({"bill_to": "\n".join(f"Line {n}" for n in range(80))}, LayoutOptions()),
        ({"bill_to": "Warehouse " * 40}, LayoutOptions()),
        ({"items": [LineItem("W" * 40, 1, "PCS", 10, "5%")]}, LayoutOptions()),
        ({"items": [LineItem("Crane", 1, "PCS", 123456789012.5, "")]}, LayoutOptions()),
    ],
)
def test_elements_stay_on_page(business, invoice_args, options):
    invoice_args = dict(invoice_args)
    plan = build_layout(make_invoice(invoice_args.pop("items", None), **invoice_args), business, options)
    within_page(plan)


def test_row_taller_than_page_continues_on_next_page(business):
    invoice = make_invoice([LineItem(HUGE_NAME, 1, "PCS", 1, "")])
    plan = build_layout(invoice, business, LayoutOptions(wrap_item_names=True))
    name_runs = [run for run in plan.texts() if run.text.startswith("word")]
    assert " ".join(run.text for run in name_runs) == HUGE_NAME
    pages_with_name = [page for page in plan.pages if any(run.text.startswith("word") for run in page.texts())]
    assert len(pages_with_name) > 1
    for page in pages_with_name:
        assert "ITEMS" in [run.text for run in page.texts()]


def test_long_bill_to_continues_on_next_page(business):
    bill_to = "\n".join(f"Line {n}" for n in range(80))
    plan = build_layout(make_invoice(bill_to=bill_to), business)
    found = texts(plan)
    assert all(f"Line {n}" in found for n in range(80))
    assert "BILL TO (contd.)" in [run.text for run in plan.pages[1].texts()]


def test_bill_to_lines_wrap_to_left_half(business):
    plan = build_layout(make_invoice(bill_to="Warehouse " * 40), business)
    runs = [run for run in plan.texts() if run.text.startswith("Warehouse")]
    assert len(runs) > 1
    half = CONTENT_WIDTH / 2
    for run in runs:
        assert run.x + stringWidth(run.text, run.font, run.size) <= MARGIN + half


def test_wide_names_cut_to_column_width(business):
    invoice = make_invoice([LineItem("W" * 35, 1, "PCS", 10, "5%")])
    plan = build_layout(invoice, business)
    name = next(run for run in plan.texts() if run.text.startswith("WWW"))
    assert name.text.endswith("...")
    assert stringWidth(name.text, name.font, name.size) <= name.width


def test_non_finite_total_still_lays_out(business):
    invoice = make_invoice([LineItem("Big", 1e200, "PCS", 1e200, "")])
    plan = build_layout(invoice, business)
    assert "Rupees" in texts(plan)


def test_received_amount_shown(business):
    invoice = make_invoice(received=50)
    assert "Rs. 50.00" in texts(build_layout(invoice, business))


def test_zero_total_words(business):
    invoice = make_invoice([LineItem("Free sample", 1, "PCS", 0, "")])
    assert "Rupees" in texts(build_layout(invoice, business))


def test_layout_is_deterministic(invoice, business):
    assert build_layout(invoice, business) == build_layout(invoice, business)
