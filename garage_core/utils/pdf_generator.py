import logging
from io import BytesIO

from reportlab.lib.colors import black, lightgrey
from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas

from garage_core.pricing import money, to_decimal
from garage_core.utils.timestamps import as_utc

logger = logging.getLogger(__name__)

CURRENCY = "Rs."
MAX_CHARS = 70


def format_date(value):
    try:
        value = as_utc(value)
    except (TypeError, ValueError):
        return str(value)
    return value.strftime("%d %b %Y") if value else "N/A"


def wrap_text(text, max_chars=MAX_CHARS):
    text = str(text or '')
    lines = []
    for paragraph in text.splitlines() or ['']:
        lines.extend(paragraph[i:i + max_chars] for i in range(0, len(paragraph), max_chars))
        if not paragraph:
            lines.append('')
    return lines or ['']


def generate_invoice_pdf(invoice_data, preview=False):
    """
    Render an invoice PDF.

    Args:
        invoice_data (dict): invoice_number, issue_date, due_date, customer_*,
            vehicle_info, work_items ([{title, price}]), subtotal, tax,
            discount, total, service_* and notes.
        preview (bool): Add a DRAFT watermark.

    Returns:
        bytes
    """
    work_items = invoice_data.get('work_items') or []
    logger.debug("Rendering invoice %s with %d items (preview=%s)",
                 invoice_data.get('invoice_number'), len(work_items), preview)

    buffer = BytesIO()
    c = canvas.Canvas(buffer, pagesize=A4)
    width, height = A4
    margin = 56.69  # ~2cm
    y = height - margin

    # --- Title & number (top) ---
    c.setFont("Helvetica-Bold", 22)
    c.drawString(margin, y, "INVOICE")

    c.setFont("Helvetica", 10)
    c.drawRightString(width - margin, y + 8, f"Invoice #: {invoice_data.get('invoice_number', 'N/A')}")
    c.drawRightString(width - margin, y - 4, f"Date: {format_date(invoice_data.get('issue_date'))}")
    if invoice_data.get('due_date'):
        c.drawRightString(width - margin, y - 16, f"Due: {format_date(invoice_data.get('due_date'))}")
    y -= 50

    # --- From / Bill to ---
    left_x, right_x = margin, width / 2 + 10
    c.setFont("Helvetica-Bold", 11)
    c.drawString(left_x, y, "FROM:")
    c.drawString(right_x, y, "BILL TO:")
    y -= 15

    c.setFont("Helvetica", 10)
    from_lines = [invoice_data.get('service_name') or 'Service']
    for label, key in (('', 'service_address'), ('Phone: ', 'service_phone'), ('GSTIN: ', 'service_gst_number')):
        if invoice_data.get(key):
            from_lines.append(f"{label}{invoice_data[key]}")

    to_lines = [invoice_data.get('customer_name') or 'Unknown Customer']
    for label, key in (('', 'customer_address'), ('', 'customer_email'),
                       ('Phone: ', 'customer_phone'), ('GSTIN: ', 'customer_gst_number')):
        if invoice_data.get(key):
            to_lines.append(f"{label}{invoice_data[key]}")
    if invoice_data.get('vehicle_info'):
        to_lines.append(f"Vehicle: {invoice_data['vehicle_info']}")

    for i in range(max(len(from_lines), len(to_lines))):
        if i < len(from_lines):
            c.drawString(left_x, y, from_lines[i][:45])
        if i < len(to_lines):
            c.drawString(right_x, y, to_lines[i][:45])
        y -= 12
    y -= 25

    # --- Table Headers ---
    def draw_headers(y):
        c.setFont("Helvetica-Bold", 11)
        c.drawString(margin + 2, y, "Description")
        c.drawRightString(width - margin - 2, y, "Amount")
        y -= 6
        c.line(margin, y, width - margin, y)
        c.setFont("Helvetica", 10)
        return y - 14

    y = draw_headers(y)

    # --- Items ---
    if not work_items:
        c.drawString(margin + 2, y, "No items listed.")
        y -= 20
    for item in work_items:
        lines = wrap_text(item.get('title'))
        for index, line in enumerate(lines):
            if y < 100:
                c.showPage()
                y = draw_headers(height - margin)
            c.drawString(margin + 2, y, line)
            if index == 0:
                c.drawRightString(width - margin - 2, y, f"{CURRENCY} {money(item.get('price')):.2f}")
            y -= 14
        c.setStrokeColor(lightgrey)
        c.line(margin, y + 8, width - margin, y + 8)
        c.setStrokeColor(black)

    # --- Totals ---
    y -= 20
    if y < 140:
        c.showPage()
        y = height - margin

    subtotal = money(invoice_data.get('subtotal'))
    tax = money(invoice_data.get('tax'))
    discount = money(invoice_data.get('discount'))
    totals_x = width - margin - 100

    c.setFont("Helvetica", 11)
    c.drawRightString(totals_x, y, "Subtotal:")
    c.drawRightString(width - margin - 2, y, f"{CURRENCY} {subtotal:.2f}")
    y -= 15
    if tax > 0:
        rate = to_decimal(invoice_data.get('tax_rate')) if invoice_data.get('tax_rate') is not None else (
            money(tax / subtotal * 100) if subtotal > 0 else to_decimal(0))
        c.drawRightString(totals_x, y, f"Tax ({rate:.2f}%):")
        c.drawRightString(width - margin - 2, y, f"{CURRENCY} {tax:.2f}")
        y -= 15
    if discount > 0:
        c.drawRightString(totals_x, y, "Discount:")
        c.drawRightString(width - margin - 2, y, f"- {CURRENCY} {discount:.2f}")
        y -= 15

    c.setFont("Helvetica-Bold", 12)
    c.drawRightString(totals_x, y, "TOTAL:")
    c.drawRightString(width - margin - 2, y, f"{CURRENCY} {money(invoice_data.get('total')):.2f}")
    y -= 40

    # --- Notes ---
    if invoice_data.get('notes'):
        c.setFont("Helvetica-Bold", 10)
        c.drawString(margin, y, "Notes:")
        y -= 13
        c.setFont("Helvetica", 9)
        for line in wrap_text(invoice_data['notes'], 95):
            if y < 60:
                c.showPage()
                y = height - margin
                c.setFont("Helvetica", 9)
            c.drawString(margin, y, line)
            y -= 11

    c.setFont("Helvetica-Oblique", 9)
    c.drawCentredString(width / 2, 40, "Thank you for your business!")

    # --- DRAFT Watermark ---
    if preview:
        c.saveState()
        c.setFont("Helvetica-Bold", 80)
        c.setFillColor(black)
        c.setFillAlpha(0.1)
        c.translate(width / 2, height / 2)
        c.rotate(45)
        c.drawCentredString(0, 0, "DRAFT")
        c.restoreState()

    c.save()
    return buffer.getvalue()
