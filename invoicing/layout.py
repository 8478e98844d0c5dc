"""Page layout for the bill of supply.

``build_layout`` turns an invoice into a ``LayoutPlan``: pages of boxes,
rules and text runs in points, origin at the top-left corner of an A4 page.
Nothing here draws; the renderer paints the plan.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, List, Optional, Tuple, Union

from reportlab.lib.pagesizes import A4
from reportlab.lib.utils import simpleSplit
from reportlab.pdfbase.pdfmetrics import stringWidth

from .calculator import ComputedLineItem, discount_label, format_money
from .config import BusinessProfile
from .models import Invoice
from .words import amount_in_words

PAGE_WIDTH, PAGE_HEIGHT = A4
MARGIN = 30
CONTENT_WIDTH = PAGE_WIDTH - MARGIN * 2
BOTTOM = PAGE_HEIGHT - MARGIN

FONT = "Helvetica"
FONT_BOLD = "Helvetica-Bold"
HEADER_GRAY = "#f0f0f0"

ROW_HEIGHT = 20
HEADER_HEIGHT = 25
TOTAL_HEIGHT = 25
ITEM_FONT_SIZE = 8
ITEM_LEADING = 10
MIN_FONT_SIZE = 6
CELL_PAD = 5
SECTION_GAP = 10

# Name lines in one row that fills a page below the table header.
MAX_ROW_LINES = int((BOTTOM - MARGIN - SECTION_GAP - HEADER_HEIGHT) // ITEM_LEADING) - 1


@dataclass(frozen=True)
class Rect:
    x: float
    y: float
    width: float
    height: float
    fill: Optional[str] = None
    stroke: bool = True


@dataclass(frozen=True)
class Line:
    x1: float
    y1: float
    x2: float
    y2: float


@dataclass(frozen=True)
class TextRun:
    """Single line of text; ``y`` is the top of the line.

    With ``align`` "center" or "right" the text is placed inside the span
    ``x`` .. ``x + width``.
    """

    text: str
    x: float
    y: float
    size: float
    bold: bool = False
    align: str = "left"
    width: Optional[float] = None

    @property
    def font(self) -> str:
        return FONT_BOLD if self.bold else FONT


Element = Union[Rect, Line, TextRun]


@dataclass(frozen=True)
class Page:
    number: int
    elements: Tuple[Element, ...]

    def texts(self) -> List[TextRun]:
        return [e for e in self.elements if isinstance(e, TextRun)]


@dataclass(frozen=True)
class LayoutPlan:
    pages: Tuple[Page, ...]
    width: float = PAGE_WIDTH
    height: float = PAGE_HEIGHT
    table_rows: int = 0
    padding_rows: int = 0

    def texts(self) -> Iterator[TextRun]:
        for page in self.pages:
            yield from page.texts()


@dataclass(frozen=True)
class LayoutOptions:
    min_rows: int = 8
    wrap_item_names: bool = False
    name_chars: int = 35
    currency_symbol: str = "Rs."
    currency_word: str = "Rupees"
    title: str = "BILL OF SUPPLY"
    tag: str = "ORIGINAL FOR RECIPIENT"


@dataclass(frozen=True)
class Column:
    label: str
    x: float
    width: float
    align: str


# Share of the content width per column.
COLUMNS = [
    ("S.NO", 0.07, "center"),
    ("ITEMS", 0.45, "left"),
    ("QTY.", 0.10, "right"),
    ("UNIT", 0.08, "center"),
    ("RATE", 0.14, "right"),
    ("AMOUNT", 0.16, "right"),
]
COLUMNS_WITH_DISCOUNT = [
    ("S.NO", 0.07, "center"),
    ("ITEMS", 0.37, "left"),
    ("QTY.", 0.10, "right"),
    ("UNIT", 0.08, "center"),
    ("RATE", 0.12, "right"),
    ("DISCOUNT", 0.12, "right"),
    ("AMOUNT", 0.14, "right"),
]


def table_columns(show_discount: bool) -> List[Column]:
    columns = []
    x = MARGIN
    for label, share, align in COLUMNS_WITH_DISCOUNT if show_discount else COLUMNS:
        width = CONTENT_WIDTH * share
        columns.append(Column(label, x, width, align))
        x += width
    return columns


def truncate(text: str, limit: int) -> str:
    if limit <= 3 or len(text) <= limit:
        return text
    return text[: limit - 3].rstrip() + "..."


def fit_width(text: str, width: float, font: str = FONT, size: float = ITEM_FONT_SIZE) -> str:
    """Cut ``text`` with "..." until it measures at most ``width`` points."""
    if stringWidth(text, font, size) <= width:
        return text
    while text and stringWidth(text + "...", font, size) > width:
        text = text[:-1]
    return text.rstrip() + "..."


def wrap_text(text: str, width: float, font: str = FONT, size: float = ITEM_FONT_SIZE) -> List[str]:
    """Split ``text`` into lines no wider than ``width``, breaking long words."""
    lines = []
    for line in simpleSplit(text, font, size, width):
        while len(line) > 1 and stringWidth(line, font, size) > width:
            cut = len(line) - 1
            while cut > 1 and stringWidth(line[:cut], font, size) > width:
                cut -= 1
            lines.append(line[:cut])
            line = line[cut:]
        lines.append(line)
    return lines or [""]


def shrink_to_fit(text: str, width: float, font: str, size: float) -> float:
    """Largest font size down to ``MIN_FONT_SIZE`` at which ``text`` fits."""
    while size > MIN_FONT_SIZE and stringWidth(text, font, size) > width:
        size -= 0.5
    return size


def format_qty(qty: float) -> str:
    return f"{qty:g}"


def format_date(value) -> str:
    return value.strftime("%d/%m/%Y")


class _Writer:
    """Collects elements page by page and tracks the vertical cursor."""

    def __init__(self):
        self.pages: List[List[Element]] = []
        self.y = 0.0
        self.new_page()

    @property
    def elements(self) -> List[Element]:
        return self.pages[-1]

    def new_page(self):
        self.pages.append([Rect(MARGIN, MARGIN, CONTENT_WIDTH, PAGE_HEIGHT - MARGIN * 2)])
        self.y = MARGIN + SECTION_GAP

    def fits(self, height: float) -> bool:
        return self.y + height <= BOTTOM

    def ensure(self, height: float) -> bool:
        """Start a new page unless ``height`` fits. True if a page was added."""
        if self.fits(height):
            return False
        self.new_page()
        return True

    def add(self, element: Element):
        self.elements.append(element)

    def text(self, text, x, y, size, bold=False, align="left", width=None):
        self.add(TextRun(text, x, y, size, bold, align, width))

    def rule(self, y: float):
        self.add(Line(MARGIN, y, MARGIN + CONTENT_WIDTH, y))


def _draw_title(w: _Writer, options: LayoutOptions):
    y = w.y
    w.text(options.title, MARGIN, y, 16, bold=True, align="center", width=CONTENT_WIDTH)
    tag_width = 120
    tag_x = MARGIN + CONTENT_WIDTH - tag_width - 5
    w.add(Rect(tag_x, y - 2, tag_width, 15, fill=HEADER_GRAY, stroke=False))
    w.text(options.tag, tag_x, y + 2, 8, align="center", width=tag_width)
    w.y = y + 25
    w.rule(w.y)


def _draw_business(w: _Writer, business: BusinessProfile):
    inner_x = MARGIN + 20
    inner_width = CONTENT_WIDTH - 40
    w.y += 15
    w.text(business.name, inner_x, w.y, 14, bold=True, align="center", width=inner_width)
    w.y += 20
    for line in simpleSplit(business.address, FONT, 10, inner_width) or [""]:
        w.text(line, inner_x, w.y, 10, align="center", width=inner_width)
        w.y += 15
    w.text(f"Mobile: {business.phone}", inner_x, w.y, 10, align="center", width=inner_width)
    w.y += 20
    w.rule(w.y)


def _draw_meta(w: _Writer, invoice: Invoice, top: float, half: float):
    meta_x = MARGIN + half + 10
    meta_width = (half - 20) / 3
    meta = [
        ("Invoice No.", invoice.invoice_no),
        ("Invoice Date", format_date(invoice.date)),
        ("Due Date", format_date(invoice.due_date)),
    ]
    for index, (label, value) in enumerate(meta):
        x = meta_x + index * meta_width
        w.text(label, x, top, 9, bold=True)
        w.text(fit_width(value, meta_width - 5, FONT, 9), x, top + 15, 9)


def _draw_bill_to(w: _Writer, invoice: Invoice):
    """Bill-to address beside the invoice number and dates.

    Address lines are wrapped to the left half; an address longer than the
    page continues at the top of the next one.
    """
    half = CONTENT_WIDTH / 2
    lines = [part for line in invoice.bill_to_lines for part in wrap_text(line, half - 30, FONT, 9)]
    label = "BILL TO"
    first = True
    while True:
        block_top = w.y
        top = block_top + 15
        capacity = max(1, int((BOTTOM - top - 30) // 12))
        chunk, lines = lines[:capacity], lines[capacity:]

        w.text(label, MARGIN + 20, top, 10, bold=True)
        for index, line in enumerate(chunk):
            w.text(line, MARGIN + 20, top + 15 + index * 12, 9)
        bottom = min(BOTTOM, top + max(60, 15 + 12 * len(chunk) + 15))
        if first:
            _draw_meta(w, invoice, top, half)
            w.add(Line(MARGIN + half, block_top, MARGIN + half, bottom))
        w.y = bottom
        w.rule(w.y)
        if not lines:
            return
        w.new_page()
        label = "BILL TO (contd.)"
        first = False


def _draw_row_frame(w: _Writer, columns: List[Column], height: float, fill=None):
    w.add(Rect(MARGIN, w.y, CONTENT_WIDTH, height, fill=fill))
    for column in columns[1:]:
        w.add(Line(column.x, w.y, column.x, w.y + height))


def _cell(w: _Writer, column: Column, text: str, y: float, size=ITEM_FONT_SIZE, bold=False, align=None, shrink=True):
    """Text inside a column; shrunk and then cut so it never crosses the cell."""
    width = column.width - CELL_PAD * 2
    font = FONT_BOLD if bold else FONT
    if shrink:
        size = shrink_to_fit(text, width, font, size)
    w.text(
        fit_width(text, width, font, size),
        column.x + CELL_PAD,
        y,
        size,
        bold=bold,
        align=align or column.align,
        width=width,
    )


def _draw_table_header(w: _Writer, columns: List[Column]):
    _draw_row_frame(w, columns, HEADER_HEIGHT, fill=HEADER_GRAY)
    for column in columns:
        _cell(w, column, column.label, w.y + 8, size=9, bold=True, align="center")
    w.y += HEADER_HEIGHT


def _item_cells(item: ComputedLineItem, index: int, show_discount: bool, symbol: str) -> List[Optional[str]]:
    cells = [
        str(index),
        None,  # name, laid out separately
        format_qty(item.qty),
        item.unit,
        format_money(item.rate),
    ]
    if show_discount:
        cells.append(discount_label(item.discount, symbol))
    cells.append(format_money(item.net_amount))
    return cells


def _name_lines(item: ComputedLineItem, column: Column, options: LayoutOptions) -> List[str]:
    name = " ".join(item.name.split())
    width = column.width - CELL_PAD * 2
    if options.wrap_item_names:
        return wrap_text(name, width)
    return [fit_width(truncate(name, options.name_chars), width)]


def _row_height(line_count: int) -> float:
    return max(ROW_HEIGHT, ITEM_LEADING * (line_count + 1))


def _draw_items(w: _Writer, invoice: Invoice, options: LayoutOptions) -> Tuple[int, int]:
    show_discount = any(item.has_discount for item in invoice.items)
    columns = table_columns(show_discount)
    name_column = columns[1]

    w.y += SECTION_GAP
    w.ensure(HEADER_HEIGHT + ROW_HEIGHT)
    _draw_table_header(w, columns)

    for index, item in enumerate(invoice.items, 1):
        name_lines = _name_lines(item, name_column, options)
        cells = _item_cells(item, index, show_discount, options.currency_symbol)
        # A row taller than a page is split; the rest of the name continues
        # under the repeated header.
        while True:
            if w.ensure(_row_height(1 if len(name_lines) > MAX_ROW_LINES else len(name_lines))):
                _draw_table_header(w, columns)
            chunk = name_lines
            if not w.fits(_row_height(len(chunk))):
                chunk = name_lines[: max(1, int((BOTTOM - w.y) // ITEM_LEADING) - 1)]
            height = _row_height(len(chunk))
            _draw_row_frame(w, columns, height)

            text_y = w.y + 6
            for column, text in zip(columns, cells):
                if text is not None:
                    _cell(w, column, text, text_y)
            for offset, line in enumerate(chunk):
                _cell(w, name_column, line, text_y + offset * ITEM_LEADING, shrink=False)
            w.y += height

            name_lines = name_lines[len(chunk):]
            if not name_lines:
                break
            cells = [None] * len(columns)

    padding = max(0, options.min_rows - len(invoice.items))
    for _ in range(padding):
        if w.ensure(ROW_HEIGHT):
            _draw_table_header(w, columns)
        _draw_row_frame(w, columns, ROW_HEIGHT)
        w.y += ROW_HEIGHT

    _draw_totals(w, columns, invoice, options)
    return len(invoice.items) + padding, padding


def _draw_totals(w: _Writer, columns: List[Column], invoice: Invoice, options: LayoutOptions):
    w.ensure(TOTAL_HEIGHT * 2)
    amount_column = columns[-1]
    label_width = amount_column.x - MARGIN
    rows = [
        ("TOTAL", invoice.total),
        ("RECEIVED AMOUNT", invoice.received),
    ]
    for label, amount in rows:
        w.add(Rect(MARGIN, w.y, CONTENT_WIDTH, TOTAL_HEIGHT))
        w.add(Rect(MARGIN, w.y, label_width, TOTAL_HEIGHT, fill=HEADER_GRAY))
        w.text(label, MARGIN, w.y + 8, 10, bold=True, align="center", width=label_width)
        _cell(
            w,
            amount_column,
            f"{options.currency_symbol} {format_money(amount)}",
            w.y + 8,
            size=10,
            bold=True,
            align="right",
        )
        w.y += TOTAL_HEIGHT


def _draw_words(w: _Writer, invoice: Invoice, options: LayoutOptions):
    words = amount_in_words(invoice.total, options.currency_word)
    lines = simpleSplit(words, FONT, 9, CONTENT_WIDTH - 20) or [""]
    height = 23 + 12 * len(lines) + 5
    w.y += SECTION_GAP
    w.ensure(height)
    w.add(Rect(MARGIN, w.y, CONTENT_WIDTH, height))
    w.text("Total Amount (in words)", MARGIN + 10, w.y + 8, 10, bold=True)
    for index, line in enumerate(lines):
        w.text(line, MARGIN + 10, w.y + 23 + index * 12, 9)
    w.y += height


def terms_lines(business: BusinessProfile) -> List[str]:
    return [
        "1. Goods once sold will not be taken back or exchanged",
        f"2. All disputes are subject to {business.city} jurisdiction only",
    ]


def _draw_terms(w: _Writer, business: BusinessProfile):
    lines = terms_lines(business)
    height = 23 + 12 * len(lines) + 5
    w.y += SECTION_GAP
    w.ensure(height)
    w.add(Rect(MARGIN, w.y, CONTENT_WIDTH, height))
    w.text("Terms and Conditions", MARGIN + 10, w.y + 8, 9, bold=True)
    for index, line in enumerate(lines):
        w.text(line, MARGIN + 10, w.y + 23 + index * 12, 8)
    w.y += height


def _draw_signature(w: _Writer, business: BusinessProfile) -> bool:
    width, height = 200, 60
    if not w.fits(SECTION_GAP + height + SECTION_GAP):
        return False
    x = MARGIN + CONTENT_WIDTH - width - 10
    y = w.y + SECTION_GAP
    w.add(Rect(x, y, width, height))
    w.text(f"For {business.name}", x, y + 8, 9, bold=True, align="center", width=width)
    w.text("Authorized Signatory", x, y + height - 15, 8, align="center", width=width)
    w.y = y + height
    return True


def _number_pages(pages: List[List[Element]]):
    if len(pages) < 2:
        return
    for number, elements in enumerate(pages, 1):
        elements.append(
            TextRun(
                f"Page {number} of {len(pages)}",
                MARGIN,
                BOTTOM + 8,
                7,
                align="right",
                width=CONTENT_WIDTH,
            )
        )


def build_layout(
    invoice: Invoice,
    business: BusinessProfile,
    options: Optional[LayoutOptions] = None,
) -> LayoutPlan:
    """Lay out ``invoice`` as one or more A4 pages."""
    options = options or LayoutOptions()
    w = _Writer()

    _draw_title(w, options)
    _draw_business(w, business)
    _draw_bill_to(w, invoice)
    table_rows, padding_rows = _draw_items(w, invoice, options)
    _draw_words(w, invoice, options)
    _draw_terms(w, business)
    _draw_signature(w, business)

    _number_pages(w.pages)
    return LayoutPlan(
        pages=tuple(Page(number, tuple(elements)) for number, elements in enumerate(w.pages, 1)),
        table_rows=table_rows,
        padding_rows=padding_rows,
    )
