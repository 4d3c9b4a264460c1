# Data classes and money helpers shared by db.py, billing.py, print_utils.py and the GUI

from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal

ROLE_ADMIN = "administrator"
ROLE_STAFF = "staff"
ROLES = (ROLE_ADMIN, ROLE_STAFF)


@dataclass
class Product:
    barcode: str
    name: str = field(compare=False)
    price: float = field(compare=False)
    stock_quantity: int = field(compare=False)
    tax_slab: float = field(default=0.0, compare=False)

    # Same barcode means same product, even if stock has moved since it was read
    def __hash__(self):
        return hash(self.barcode)


@dataclass
class User:
    username: str
    role: str

    @property
    def is_admin(self):
        return self.role == ROLE_ADMIN


@dataclass
class Bill:
    bill_id: int
    bill_date: str
    total_amount: float
    subtotal: float = 0.0
    discount_amount: float = 0.0


@dataclass
class BillItem:
    bill_id: int
    product_barcode: str
    product_name: str
    quantity: int
    price_per_item: float
    tax_slab: float = 0.0

    @property
    def total(self):
        return self.quantity * self.price_per_item


def money(value):
    """Round to paise, half up."""
    return float(Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def included_tax(lines):
    """Tax already inside the MRP of (product, quantity) lines, unrounded."""
    return sum(
        (Decimal(str(p.price)) * qty * Decimal(str(p.tax_slab)) / (100 + Decimal(str(p.tax_slab)))
         for p, qty in lines),
        Decimal("0"),
    )
