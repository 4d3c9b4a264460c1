"""Cart handling and bill arithmetic for the Billing tab.

Nothing in here touches Tk, so the GUI can call it from a worker thread
and the tests can call it directly.
"""

import logging
import math
import os
import threading
import uuid
from collections import OrderedDict
from dataclasses import dataclass
from decimal import Decimal

import db
from errors import EmptyBillError, InsufficientStockError, ValidationError
from models import Product, included_tax, money
from print_utils import generate_bill_pdf

logger = logging.getLogger(__name__)

PERCENT = "%"
MAX_PRICE = 1_000_000
MAX_STOCK = 1_000_000


class Cart:
    """
    Products keyed by barcode, in the order they were first scanned.

    The Tk thread adds items while finalize_bill reads and trims the cart
    on a worker thread, so every access goes through the lock.
    """

    def __init__(self):
        self._lines = OrderedDict()
        self._lock = threading.Lock()

    def add(self, product):
        with self._lock:
            _, current = self._lines.get(product.barcode, (product, 0))
            if product.stock_quantity <= current:
                raise InsufficientStockError(f"Not enough stock for {product.name}")
            # keep the freshest copy of the product so the stock check stays current
            self._lines[product.barcode] = (product, current + 1)
            return current + 1

    def remove_one(self, barcode):
        self.remove(barcode, 1)

    def remove(self, barcode, quantity):
        with self._lock:
            product, qty = self._lines[barcode]
            if qty > quantity:
                self._lines[barcode] = (product, qty - quantity)
            else:
                del self._lines[barcode]

    def remove_billed(self, lines):
        """Take billed quantities out; anything scanned since the snapshot stays."""
        with self._lock:
            for product, quantity in lines:
                if product.barcode not in self._lines:
                    continue
                current_product, current = self._lines[product.barcode]
                if current > quantity:
                    self._lines[product.barcode] = (current_product, current - quantity)
                else:
                    del self._lines[product.barcode]

    def quantity_of(self, barcode):
        with self._lock:
            return self._lines.get(barcode, (None, 0))[1]

    def lines(self):
        with self._lock:
            return list(self._lines.values())

    def clear(self):
        with self._lock:
            self._lines.clear()

    @property
    def is_empty(self):
        with self._lock:
            return not self._lines

    def __len__(self):
        with self._lock:
            return len(self._lines)

    @property
    def subtotal(self):
        return money(sum(Decimal(str(p.price)) * qty for p, qty in self.lines()))


@dataclass
class BillTotals:
    subtotal: float
    discount_amount: float
    grand_total: float
    tax_amount: float


@dataclass
class FinalizedBill:
    bill_id: int
    pdf_path: str
    totals: BillTotals


def parse_discount(text):
    text = (text or "").strip()
    if not text:
        return 0.0
    try:
        value = float(text)
    except ValueError:
        raise ValidationError("Invalid discount value. Please enter a valid number.")
    if not math.isfinite(value):
        raise ValidationError("Invalid discount value. Please enter a valid number.")
    if value < 0:
        raise ValidationError("Discount cannot be negative.")
    return value


def compute_totals(lines, discount_value=0.0, discount_type=PERCENT):
    """
    Subtotal, discount, grand total and included tax for cart lines.

    Prices are MRP, so tax is already inside them; tax_amount is the
    portion of the subtotal that is tax. A percent discount applies to
    the subtotal, any other discount_type is a flat amount. The discount
    never exceeds the subtotal, so the grand total never goes below zero.
    """
    subtotal = sum((Decimal(str(p.price)) * qty for p, qty in lines), Decimal("0"))
    tax = included_tax(lines)
    discount = Decimal(str(discount_value or 0))
    if discount_type == PERCENT:
        discount = subtotal * discount / 100
    discount = min(max(discount, Decimal("0")), subtotal)
    return BillTotals(
        subtotal=money(subtotal),
        discount_amount=money(discount),
        grand_total=money(subtotal - discount),
        tax_amount=money(tax),
    )


def build_product(barcode, name, price_text, tax_text, stock_text):
    """Validate the Add Product form and return a Product."""
    name = (name or "").strip()
    if not name:
        raise ValidationError("Product Name cannot be empty.")
    try:
        price = float(price_text.strip())
        tax_slab = float(tax_text.strip())
        stock = int(stock_text.strip())
    except (ValueError, AttributeError):
        raise ValidationError("MRP, Tax Slab, and Stock must be valid numbers.")
    if not (math.isfinite(price) and math.isfinite(tax_slab)):
        raise ValidationError("MRP, Tax Slab, and Stock must be valid numbers.")
    if price <= 0 or stock < 0 or tax_slab < 0 or price > MAX_PRICE or stock > MAX_STOCK:
        raise ValidationError(
            "Please enter valid, reasonable values.\n"
            "MRP must be positive. Stock and Tax cannot be negative."
        )
    barcode = (barcode or "").strip()
    if not barcode:
        barcode = "N/A-" + uuid.uuid4().hex[:8]
    return Product(barcode, name, price, stock, tax_slab)


def finalize_bill(cart, discount_value, discount_type, config, lines=None):
    """
    Turn the cart into a saved bill with a PDF receipt.

    The PDF is written inside the database transaction: if rendering
    fails the sale is rolled back, and if the commit fails the PDF is
    removed. Only the billed quantities leave the cart, and only after a
    successful commit, so items scanned while saving stay for the next bill.
    lines defaults to the whole cart; the GUI passes the lines it showed
    in its confirmation dialog.
    """
    if lines is None:
        lines = cart.lines()
    if not lines:
        raise EmptyBillError("Cannot finalize an empty bill.")
    totals = compute_totals(lines, discount_value, discount_type)
    written = {}

    def write_receipt(bill_id):
        written['path'] = generate_bill_pdf(
            bill_id, lines, totals.subtotal, totals.discount_amount, totals.grand_total,
            bills_dir=config["BILLS_DIR"],
            shop_name=config["SHOP_NAME"],
            shop_address=config["SHOP_ADDRESS"],
            currency=config["CURRENCY"],
            timezone=config["TIMEZONE"],
            tax_amount=totals.tax_amount,
        )

    try:
        bill_id = db.save_bill(lines, totals.subtotal, totals.discount_amount, totals.grand_total,
                               receipt_writer=write_receipt)
    except Exception:
        path = written.get('path')
        if path and os.path.exists(path):
            os.remove(path)
        raise
    cart.remove_billed(lines)
    logger.info("Bill %s finalized, receipt at %s", bill_id, written["path"])
    return FinalizedBill(bill_id, written['path'], totals)
