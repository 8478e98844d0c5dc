"""Paint a layout plan onto a PDF with reportlab."""

import io
import logging
from contextlib import closing

from reportlab.lib.colors import HexColor, black
from reportlab.pdfbase.pdfmetrics import getAscent
from reportlab.pdfgen import canvas

from .layout import LayoutPlan, Line, Rect, TextRun

logger = logging.getLogger(__name__)


class RenderError(Exception):
    """The PDF backend failed to produce a document."""


class PdfRenderer:
    """Draws ``LayoutPlan`` elements on a reportlab canvas.

    The plan uses a top-left origin; reportlab's is bottom-left, so every
    y coordinate is flipped against the page height here.
    """

    def __init__(self, title: str = "Bill of Supply", line_width: float = 0.5):
        self.title = title
        self.line_width = line_width

    def render(self, plan: LayoutPlan) -> bytes:
        try:
            with closing(io.BytesIO()) as buffer:
                c = canvas.Canvas(buffer, pagesize=(plan.width, plan.height))
                c.setTitle(self.title)
                for index, page in enumerate(plan.pages):
                    if index:
                        c.showPage()
                    self._start_page(c)
                    for element in page.elements:
                        self._draw(c, plan.height, element)
                c.save()
                return buffer.getvalue()
        except Exception as exc:
            logger.error("PDF rendering failed: %s", exc)
            raise RenderError(str(exc)) from exc

    def _start_page(self, c):
        c.setLineWidth(self.line_width)
        c.setStrokeColor(black)
        c.setFillColor(black)

    def _draw(self, c, page_height, element):
        if isinstance(element, Rect):
            self._draw_rect(c, page_height, element)
        elif isinstance(element, Line):
            c.line(element.x1, page_height - element.y1, element.x2, page_height - element.y2)
        elif isinstance(element, TextRun):
            self._draw_text(c, page_height, element)
        else:
            raise TypeError(f"Unknown layout element: {element!r}")

    def _draw_rect(self, c, page_height, rect: Rect):
        if rect.fill:
            c.setFillColor(HexColor(rect.fill))
        c.rect(
            rect.x,
            page_height - rect.y - rect.height,
            rect.width,
            rect.height,
            stroke=1 if rect.stroke else 0,
            fill=1 if rect.fill else 0,
        )
        c.setFillColor(black)

    def _draw_text(self, c, page_height, run: TextRun):
        if not run.text:
            return
        c.setFont(run.font, run.size)
        baseline = page_height - run.y - getAscent(run.font, run.size)
        if run.align == "center" and run.width is not None:
            c.drawCentredString(run.x + run.width / 2, baseline, run.text)
        elif run.align == "right" and run.width is not None:
            c.drawRightString(run.x + run.width, baseline, run.text)
        else:
            c.drawString(run.x, baseline, run.text)
