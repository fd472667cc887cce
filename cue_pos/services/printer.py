"""Session and order receipts rendered to PDF for 58mm roll printers."""

from __future__ import annotations

import logging
import os
import subprocess
import sys
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from reportlab.lib.pagesizes import portrait
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFont
from reportlab.pdfgen import canvas

from ..core import paths
from ..core.money import fmt_money
from .billing import format_duration, format_span
from .models import SESSION_FIXED, Order, SessionRecord

logger = logging.getLogger(__name__)

_FONT_ALIAS = "CuePOSFont"
_FONT_CANDIDATES = [
    "dejavusans.ttf",
    "DejaVuSans.ttf",
    "arial.ttf",
    "segoeui.ttf",
    "NotoSans-Regular.ttf",
]
_font_name = "Helvetica"

_RULE = "-" * 30


def receipts_dir() -> Path:
    return paths.PRINTS_DIR / "receipts"


def _font_search_paths() -> List[Path]:
    found: List[Path] = []
    if sys.platform.startswith("win"):
        found.append(Path(os.environ.get("WINDIR", r"C:\\Windows")) / "Fonts")
    else:
        found.extend(
            [
                Path.home() / ".fonts",
                Path("/usr/share/fonts/truetype/dejavu"),
                Path("/usr/share/fonts"),
            ]
        )
    return [p for p in found if p.exists()]


def _register_font() -> str:
    # Helvetica has no glyph for the peso sign; prefer a system TTF when present
    global _font_name
    if _FONT_ALIAS in pdfmetrics.getRegisteredFontNames():
        _font_name = _FONT_ALIAS
        return _font_name
    for folder in _font_search_paths():
        for candidate in _FONT_CANDIDATES:
            path = folder / candidate
            if not path.exists():
                continue
            try:
                pdfmetrics.registerFont(TTFont(_FONT_ALIAS, str(path)))
            except Exception as exc:  # reportlab raises its own TTFError and plain Exceptions
                logger.debug("font %s rejected: %s", path, exc)
                continue
            _font_name = _FONT_ALIAS
            return _font_name
    return _font_name


def _sanitize_filename(value: str) -> str:
    safe = [ch if ch.isalnum() else "-" for ch in value]
    return "".join(safe).strip("-") or "receipt"


def _line_height() -> float:
    return 14.0


def _page_dimensions(line_count: int) -> tuple[float, float]:
    width = 200  # about a 58mm roll
    base_height = 60
    return portrait((width, base_height + line_count * _line_height()))


def render_pdf(title: str, lines: List[str], folder: Path, prefix: str) -> Path:
    folder.mkdir(parents=True, exist_ok=True)
    font = _register_font()
    stamp = datetime.now().strftime("%Y%m%d-%H%M%S-%f")
    target = folder / f"{stamp}-{_sanitize_filename(prefix)}.pdf"
    width, height = _page_dimensions(len(lines) + 4)
    canv = canvas.Canvas(str(target), pagesize=(width, height))
    canv.setTitle(title)
    canv.setAuthor("Cue POS")
    canv.setFont(font, 10)

    y = height - 18
    for line in lines:
        canv.drawString(10, y, line)
        y -= _line_height()
    canv.showPage()
    canv.save()
    return target


def dispatch_pdf(pdf_path: Path, printer_name: Optional[str] = None) -> bool:
    """Hand *pdf_path* to the OS print queue; returns ``False`` when it could not."""
    try:
        if sys.platform.startswith("win"):
            os.startfile(str(pdf_path), "print")  # type: ignore[attr-defined]
        else:
            cmd = ["lp"]
            if printer_name:
                cmd += ["-d", printer_name]
            subprocess.Popen(cmd + [str(pdf_path)])
    except OSError as exc:
        logger.warning("could not send %s to the printer: %s", pdf_path.name, exc)
        return False
    return True


def session_receipt_lines(record: SessionRecord, currency: str = "₱") -> List[str]:
    lines = [
        "CUE POS - TABLE RECEIPT",
        f"Table: {record.table_name}",
        f"Started: {record.start_time:%Y-%m-%d %H:%M}",
        f"Ended:   {record.end_time:%Y-%m-%d %H:%M}" if record.end_time else "Ended:   -",
        _RULE,
    ]
    if record.session_type == SESSION_FIXED and record.fixed_duration:
        lines.append(f"Fixed time: {record.fixed_duration:g} h")
    else:
        lines.append("Open time (per quarter hour)")
    lines.append(f"Rate: {fmt_money(record.hourly_rate, currency)}/h")
    if record.ended_elapsed_ms is not None:
        lines.append(f"Played: {format_duration(record.ended_elapsed_ms)}")
    else:
        lines.append(f"Played: {format_span(record.start_time, record.end_time)}")
    lines.append(_RULE)
    lines.append(f"TOTAL: {fmt_money(record.total_amount, currency)}")
    if record.is_voided:
        lines.append("*** VOIDED ***")
    lines.append("Thank you for playing")
    return lines


def order_receipt_lines(order: Order, currency: str = "₱") -> List[str]:
    lines = [
        "CUE POS - COUNTER RECEIPT",
        f"Order: {order.id}",
        f"Time: {order.timestamp:%Y-%m-%d %H:%M:%S}",
        _RULE,
    ]
    for line in order.items:
        lines.append(f"{line.quantity} x {line.item_name}")
        lines.append(
            f"   @ {fmt_money(line.unit_price, currency)} = {fmt_money(line.total_price, currency)}"
        )
    if order.notes:
        lines.append(f"Note: {order.notes}")
    lines.append(_RULE)
    lines.append(f"TOTAL: {fmt_money(order.total_price, currency)}")
    if order.is_voided:
        lines.append("*** VOIDED ***")
    return lines


class PrinterService:
    """Render receipts to PDFs and optionally forward them to a printer."""

    __slots__ = ("printer_name", "currency", "auto_dispatch")

    def __init__(
        self,
        printer_name: Optional[str] = None,
        currency: str = "₱",
        auto_dispatch: bool = False,
    ) -> None:
        self.printer_name = (printer_name or "").strip() or None
        self.currency = currency
        self.auto_dispatch = auto_dispatch

    def print_session_receipt(self, record: SessionRecord) -> Path:
        lines = session_receipt_lines(record, self.currency)
        pdf_path = render_pdf("Table Receipt", lines, receipts_dir(), f"table-{record.table_name}")
        logger.info("session receipt for %s written to %s", record.table_name, pdf_path)
        if self.auto_dispatch:
            dispatch_pdf(pdf_path, self.printer_name)
        return pdf_path

    def print_order_receipt(self, order: Order) -> Path:
        lines = order_receipt_lines(order, self.currency)
        pdf_path = render_pdf("Counter Receipt", lines, receipts_dir(), f"order-{order.id}")
        logger.info("order receipt for %s written to %s", order.id, pdf_path)
        if self.auto_dispatch:
            dispatch_pdf(pdf_path, self.printer_name)
        return pdf_path
