"""CSV / PDF / JSON-backup export and backup restore."""
import csv
import io
import json
import logging
from datetime import date, datetime, timezone
from typing import List, Optional, Sequence, Tuple
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from refund_calc.config import BACKUP_VERSION
from refund_calc.models import CalculationResult, HistoryItem, Template

logger = logging.getLogger(__name__)

CSV_HEADERS = ["Date", "Amount Paid", "Weeks Paid", "Weeks Received", "Refund Amount", "Cost Per Week", "Notes"]


class BackupError(Exception):
    pass


def format_timestamp(ms: int) -> str:
    """Local time as an en-US locale string, e.g. "3/7/2026, 4:05:09 PM"."""
    dt = datetime.fromtimestamp(ms / 1000)
    hour = dt.hour % 12 or 12
    return f"{dt.month}/{dt.day}/{dt.year}, {hour}:{dt:%M:%S} {dt:%p}"


def format_plain_number(value: float) -> str:
    """12.0 -> "12", 3.5 -> "3.5"."""
    v = float(value)
    if v.is_integer():
        return str(int(v))
    return repr(v)


def _dated_filename(prefix: str, ext: str, today: Optional[date] = None) -> str:
    return f"{prefix}-{(today or date.today()).isoformat()}.{ext}"


def csv_filename(today: Optional[date] = None) -> str:
    return _dated_filename("refund-calculations", "csv", today)


def pdf_filename(today: Optional[date] = None) -> str:
    return _dated_filename("refund-calculation", "pdf", today)


def backup_filename(today: Optional[date] = None) -> str:
    return _dated_filename("refund-calculator-backup", "json", today)


def history_to_csv(history: Sequence[HistoryItem]) -> str:
    """Header row, then one fully quoted row per history item."""
    buf = io.StringIO()
    writer = csv.writer(buf, quoting=csv.QUOTE_ALL, lineterminator="\n")
    for item in history:
        result = item.result
        writer.writerow([
            format_timestamp(item.timestamp),
            f"{result.input.amount_paid:.2f}",
            format_plain_number(result.input.weeks_paid),
            format_plain_number(result.input.weeks_received),
            f"{result.refund_amount:.2f}",
            f"{result.cost_per_week:.2f}",
            result.input.notes or "",
        ])
    lines = [",".join(CSV_HEADERS)]
    body = buf.getvalue().rstrip("\n")
    if body:
        lines.append(body)
    return "\n".join(lines)


def export_backup(
    history: Sequence[HistoryItem],
    templates: Sequence[Template],
    now: Optional[datetime] = None,
) -> str:
    now = now or datetime.now(timezone.utc)
    export_date = now.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")
    data = {
        "history": [h.to_dict() for h in history],
        "templates": [t.to_dict() for t in templates],
        "exportDate": export_date,
        "version": BACKUP_VERSION,
    }
    return json.dumps(data, ensure_ascii=False, indent=2)


def parse_backup(text) -> Tuple[List[HistoryItem], List[Template]]:
    """Parse a backup file. Missing sections are empty; anything unreadable raises BackupError."""
    if isinstance(text, bytes):
        try:
            text = text.decode("utf-8")
        except UnicodeDecodeError as e:
            raise BackupError(f"Backup file is not UTF-8 text: {e}") from e
    try:
        data = json.loads(text)
    except ValueError as e:
        raise BackupError(f"Backup file is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise BackupError("Backup file must contain a JSON object")

    history_raw = data.get("history") or []
    templates_raw = data.get("templates") or []
    if not isinstance(history_raw, list) or not isinstance(templates_raw, list):
        raise BackupError("Backup 'history' and 'templates' must be lists")
    try:
        history = [HistoryItem.from_dict(r) for r in history_raw]
        templates = [Template.from_dict(r) for r in templates_raw]
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise BackupError(f"Backup contains a malformed record: {e!r}") from e

    version = data.get("version")
    if version not in (None, BACKUP_VERSION):
        logger.warning("Restoring backup with unexpected version %r", version)
    return history, templates


def result_to_pdf(result: CalculationResult, currency: str = "USD") -> bytes:
    """Single-page report for one calculation."""
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(buffer, pagesize=A4, leftMargin=14 * mm, rightMargin=14 * mm, topMargin=16 * mm)
    styles = getSampleStyleSheet()
    inp = result.input
    elements = [
        Paragraph("Refund Calculation Report", styles["Title"]),
        Spacer(1, 4 * mm),
        Paragraph(f"Date: {format_timestamp(result.timestamp)}", styles["Normal"]),
        Spacer(1, 4 * mm),
    ]
    for line in (
        f"Amount Paid: {currency} {inp.amount_paid:.2f}",
        f"Weeks Paid: {format_plain_number(inp.weeks_paid)}",
        f"Weeks Received: {format_plain_number(inp.weeks_received)}",
        f"Medication Dispensed: {format_plain_number(inp.medication_dispensed)} {escape(inp.medication_unit)}",
    ):
        elements.append(Paragraph(line, styles["Normal"]))
    elements.append(Spacer(1, 6 * mm))
    elements.append(Paragraph("Calculation Results", styles["Heading2"]))

    table = Table(
        [
            ["Metric", "Value"],
            ["Cost per Week", f"{currency} {result.cost_per_week:.2f}"],
            ["Cost per Unit", f"{currency} {result.cost_per_unit:.2f}"],
            ["Medication per Week", f"{result.medication_per_week:.2f} {inp.medication_unit}"],
            ["Refund Amount", f"{currency} {result.refund_amount:.2f}"],
        ],
        colWidths=[70 * mm, 70 * mm],
    )
    table.setStyle(TableStyle([
        ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#2563eb")),
        ("TEXTCOLOR", (0, 0), (-1, 0), colors.whitesmoke),
        ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
        ("ROWBACKGROUNDS", (0, 1), (-1, -1), [colors.white, colors.HexColor("#f1f5f9")]),
        ("ALIGN", (1, 1), (1, -1), "RIGHT"),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 6),
    ]))
    elements.append(table)

    if inp.notes:
        elements.append(Spacer(1, 6 * mm))
        elements.append(Paragraph("Notes:", styles["Heading3"]))
        elements.append(Paragraph(escape(inp.notes), styles["Normal"]))

    doc.build(elements)
    return buffer.getvalue()
