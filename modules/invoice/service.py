"""
Invoice Module - PDF Renderer
===============================
Renders a downloadable invoice for an order with reportlab.
Pure: reads the order and its items, never modifies them.
"""

import io
import logging
from typing import Iterable, Optional

from reportlab.lib.pagesizes import letter
from reportlab.pdfgen import canvas

from common.helpers import format_money

logger = logging.getLogger("homelyeats.invoice")

PAYMENT_METHOD_LABELS = {
    "card": "Card",
    "cash": "Cash on delivery",
}

LEFT = 60
RIGHT = 552
TOP = 740
BOTTOM = 80
LINE = 16


class InvoiceRenderer:

    def __init__(self, store_name: str, tagline: str = "", currency_symbol: str = "$"):
        self.store_name = store_name
        self.tagline = tagline
        self.currency_symbol = currency_symbol

    def render(self, order, items: Iterable) -> bytes:
        buffer = io.BytesIO()
        c = canvas.Canvas(buffer, pagesize=letter)
        c.setTitle(f"Invoice #{order.id}")

        y = self._header(c, order)
        y = self._items(c, items, y)
        y = self._total(c, order, y)
        y = self._delivery(c, order, y)
        self._footer(c)

        c.showPage()
        c.save()
        pdf = buffer.getvalue()
        logger.info(f"Invoice rendered for order #{order.id} ({len(pdf)} bytes)")
        return pdf

    # ==========================================
    # Sections
    # ==========================================

    def _header(self, c: canvas.Canvas, order) -> float:
        y = TOP
        c.setFont("Helvetica-Bold", 20)
        c.drawString(LEFT, y, self.store_name)
        if self.tagline:
            y -= LINE
            c.setFont("Helvetica-Oblique", 10)
            c.drawString(LEFT, y, self.tagline)

        y -= LINE * 2
        c.setFont("Helvetica-Bold", 14)
        c.drawString(LEFT, y, f"Invoice #{order.id}")

        c.setFont("Helvetica", 11)
        for label, value in (
            ("Date", order.created_at.strftime("%Y-%m-%d %H:%M") if order.created_at else ""),
            ("Status", str(order.status).replace("_", " ").title()),
            ("Payment method", payment_method_label(order.payment_method)),
        ):
            y -= LINE
            c.drawString(LEFT, y, f"{label}: {value}")
        return y - LINE * 2

    def _items(self, c: canvas.Canvas, items: Iterable, y: float) -> float:
        y = self._table_head(c, y)
        c.setFont("Helvetica", 10)
        for item in items:
            if y < BOTTOM:
                c.showPage()
                y = self._table_head(c, TOP)
                c.setFont("Helvetica", 10)
            c.drawString(LEFT, y, _truncate(item.dish_name, 48))
            c.drawRightString(360, y, str(item.quantity))
            c.drawRightString(450, y, format_money(item.price_at_time, self.currency_symbol))
            c.drawRightString(RIGHT, y, format_money(item.quantity * item.price_at_time, self.currency_symbol))
            y -= LINE
        return y

    def _table_head(self, c: canvas.Canvas, y: float) -> float:
        c.setFont("Helvetica-Bold", 10)
        c.drawString(LEFT, y, "Item")
        c.drawRightString(360, y, "Qty")
        c.drawRightString(450, y, "Unit price")
        c.drawRightString(RIGHT, y, "Line total")
        y -= 6
        c.line(LEFT, y, RIGHT, y)
        return y - LINE

    def _total(self, c: canvas.Canvas, order, y: float) -> float:
        c.line(LEFT, y + LINE - 4, RIGHT, y + LINE - 4)
        c.setFont("Helvetica-Bold", 12)
        c.drawString(LEFT, y, "Total")
        c.drawRightString(RIGHT, y, format_money(order.total_amount, self.currency_symbol))
        return y - LINE * 2

    def _delivery(self, c: canvas.Canvas, order, y: float) -> float:
        if y < BOTTOM + LINE * 5:
            c.showPage()
            y = TOP
        c.setFont("Helvetica-Bold", 12)
        c.drawString(LEFT, y, "Delivery information")
        c.setFont("Helvetica", 10)
        y -= LINE
        c.drawString(LEFT, y, f"Address: {_truncate(order.delivery_address, 80)}")
        y -= LINE
        c.drawString(LEFT, y, f"Contact: {order.contact_number}")
        if order.special_instructions:
            y -= LINE
            c.drawString(LEFT, y, f"Instructions: {_truncate(order.special_instructions, 80)}")
        return y - LINE

    def _footer(self, c: canvas.Canvas):
        c.setFont("Helvetica-Oblique", 9)
        c.drawCentredString((LEFT + RIGHT) / 2, 40, f"Thank you for ordering from {self.store_name}!")


def payment_method_label(method: Optional[str]) -> str:
    if not method:
        return "Not selected"
    return PAYMENT_METHOD_LABELS.get(method, method)


def _truncate(text: Optional[str], limit: int) -> str:
    text = text or ""
    return text if len(text) <= limit else text[: limit - 3] + "..."
