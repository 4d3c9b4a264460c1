import logging
import os
import platform
import subprocess
import threading
from datetime import datetime
from xml.sax.saxutils import escape
from zoneinfo import ZoneInfo

from reportlab.lib.enums import TA_CENTER, TA_LEFT, TA_RIGHT
from reportlab.lib.pagesizes import A5
from reportlab.lib.styles import ParagraphStyle
from reportlab.lib.units import mm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Table, TableStyle

import db
from errors import EmptyBillError, ReceiptError
from models import Product, included_tax, money

logger = logging.getLogger(__name__)

RECEIPT_DATE_FORMAT = "%d-%m-%Y %I:%M:%S %p"
SEPARATOR = "-" * 50

_pdf_lock = threading.Lock()

_BASE = ParagraphStyle("receipt", fontName="Helvetica", fontSize=10, leading=12)
STYLES = {
    "title": ParagraphStyle("title", _BASE, fontName="Helvetica-Bold", fontSize=20, leading=24,
                            alignment=TA_CENTER, spaceAfter=5),
    "address": ParagraphStyle("address", _BASE, alignment=TA_CENTER),
    "separator": ParagraphStyle("separator", _BASE, alignment=TA_CENTER, spaceBefore=5, spaceAfter=5),
    "detail_left": ParagraphStyle("detail_left", _BASE, fontSize=9, alignment=TA_LEFT),
    "detail_right": ParagraphStyle("detail_right", _BASE, fontSize=9, alignment=TA_RIGHT),
    "header": ParagraphStyle("header", _BASE, fontName="Helvetica-Bold", alignment=TA_CENTER),
    "left": ParagraphStyle("left", _BASE, alignment=TA_LEFT),
    "center": ParagraphStyle("center", _BASE, alignment=TA_CENTER),
    "right": ParagraphStyle("right", _BASE, alignment=TA_RIGHT),
    "grand": ParagraphStyle("grand", _BASE, fontName="Helvetica-Bold", fontSize=14, leading=17, alignment=TA_RIGHT),
}

NO_BORDER = TableStyle([
    ("VALIGN", (0, 0), (-1, -1), "TOP"),
    ("TOPPADDING", (0, 0), (-1, -1), 2),
    ("BOTTOMPADDING", (0, 0), (-1, -1), 2),
])


def _p(text, style):
    return Paragraph(escape(str(text)), STYLES[style])


def _table(rows, widths, total_width):
    scale = total_width / sum(widths)
    table = Table(rows, colWidths=[w * scale for w in widths])
    table.setStyle(NO_BORDER)
    return table


def bill_pdf_path(bills_dir, bill_id):
    return os.path.join(bills_dir, f"Bill_{bill_id}.pdf")


def generate_bill_pdf(bill_id, lines, subtotal, discount_amount, grand_total, *, bills_dir="bills",
                      shop_name="TEAM 5", shop_address="", currency="Rs.", timezone="Asia/Kolkata",
                      tax_amount=None, printed_at=None):
    """
    Render the receipt for one bill to bills_dir/Bill_<id>.pdf and return the path.

    lines is a list of (product, quantity); each product needs name, price
    and tax_slab. tax_amount defaults to the tax included in the lines.
    printed_at defaults to now, shown in the given timezone.
    """
    if not lines:
        raise EmptyBillError("Cannot generate PDF for an empty bill.")
    with _pdf_lock:
        try:
            os.makedirs(bills_dir, exist_ok=True)
        except OSError as e:
            raise ReceiptError(f"Failed to create '{bills_dir}' directory. Check folder permissions.") from e

        file_path = bill_pdf_path(bills_dir, bill_id)
        tz = ZoneInfo(timezone)
        stamp = printed_at.astimezone(tz) if printed_at else datetime.now(tz)

        doc = SimpleDocTemplate(file_path, pagesize=A5, leftMargin=12 * mm, rightMargin=12 * mm,
                                topMargin=12 * mm, bottomMargin=12 * mm,
                                title=f"Bill {bill_id}", author=shop_name)
        width = doc.width

        story = [_p(shop_name, "title")]
        if shop_address:
            story.append(_p(shop_address, "address"))
        story.append(_p(SEPARATOR, "separator"))
        story.append(_table(
            [[_p(f"Bill No: {bill_id}", "detail_left"),
              _p(f"Date: {stamp.strftime(RECEIPT_DATE_FORMAT)}", "detail_right")]],
            [1, 1], width))
        story.append(_p(SEPARATOR, "separator"))

        rows = [[_p(h, "header") for h in ("Item Name", "MRP", "Qty", "Tax", "Amount")]]
        for product, quantity in lines:
            rows.append([
                _p(product.name, "left"),
                _p(f"{currency} {product.price:.2f}", "right"),
                _p(quantity, "center"),
                _p(f"{product.tax_slab:.1f}%", "right"),
                _p(f"{currency} {money(product.price * quantity):.2f}", "right"),
            ])
        items_table = _table(rows, [4, 2, 1, 2, 2], width)
        items_table.repeatRows = 1
        story.append(items_table)
        story.append(_p(SEPARATOR, "separator"))

        totals = [[_p("Subtotal:", "right"), _p(f"{currency} {subtotal:.2f}", "right")]]
        if discount_amount > 0:
            totals.append([_p("Discount:", "right"), _p(f"- {currency} {discount_amount:.2f}", "right")])
        if tax_amount is None:
            tax_amount = money(included_tax(lines))
        totals.append([_p("Tax included:", "right"), _p(f"{currency} {tax_amount:.2f}", "right")])
        totals.append([_p("Grand Total:", "grand"), _p(f"{currency} {grand_total:.2f}", "grand")])
        story.append(_table(totals, [1, 1], width))

        try:
            doc.build(story)
        except Exception as e:
            if os.path.exists(file_path):
                os.remove(file_path)
            raise ReceiptError(f"Error generating PDF for bill #{bill_id}: {e}") from e

    logger.info("PDF generated successfully at: %s", file_path)
    return file_path


def reprint_bill_pdf(bill_id, config):
    """Rebuild the receipt of a saved bill from the database."""
    bill = db.get_bill(bill_id)
    items = db.get_bill_details(bill_id)
    lines = [(Product(item.product_barcode or "", item.product_name, item.price_per_item, 0, item.tax_slab),
              item.quantity) for item in items]
    printed_at = datetime.strptime(bill.bill_date, db.DATE_FORMAT).astimezone()
    return generate_bill_pdf(
        bill.bill_id, lines, bill.subtotal, bill.discount_amount, bill.total_amount,
        bills_dir=config["BILLS_DIR"],
        shop_name=config["SHOP_NAME"],
        shop_address=config["SHOP_ADDRESS"],
        currency=config["CURRENCY"],
        timezone=config["TIMEZONE"],
        tax_amount=money(included_tax(lines)),
        printed_at=printed_at,
    )


def print_receipt(pdf_path):
    """
    Send a receipt PDF to the default printer.
    Returns False when the platform is unsupported or the print command fails.
    """
    system = platform.system()
    try:
        if system == "Windows":
            os.startfile(pdf_path, "print")
        elif system == "Linux":
            # Requires 'lpr' installed
            subprocess.run(["lpr", pdf_path], check=True)
        elif system == "Darwin":
            subprocess.run(["lp", pdf_path], check=True)
        else:
            logger.warning("Automatic printing is not supported on %s", system)
            return False
    except (OSError, subprocess.CalledProcessError) as e:
        logger.error("Failed to print %s: %s", pdf_path, e)
        return False
    return True


def open_bills_folder(path):
    """Open a folder in the platform's file browser."""
    os.makedirs(path, exist_ok=True)
    system = platform.system()
    if system == "Windows":
        os.startfile(path)
    elif system == "Darwin":
        subprocess.Popen(["open", path])
    else:
        subprocess.Popen(["xdg-open", path])
