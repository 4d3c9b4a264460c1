import logging
import sqlite3
from datetime import date, datetime, timedelta

from errors import (
    BillNotFoundError, DuplicateProductError, DuplicateUserError, EmptyBillError,
    InsufficientStockError, ProductNotFoundError, UserNotFoundError, ValidationError,
)
from models import ROLE_ADMIN, ROLES, Bill, BillItem, Product, User
from password_utils import hash_password, needs_rehash, verify_password

logger = logging.getLogger(__name__)

DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
SALES_FILTERS = ("Today", "This Week", "This Month", "All")

_db_path = "inventory.db"


def set_db_path(path):
    global _db_path
    _db_path = str(path)


def get_db_path():
    return _db_path


def db_connect():
    conn = sqlite3.connect(_db_path)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS products (
        barcode TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        price REAL NOT NULL,
        stock_quantity INTEGER NOT NULL CHECK (stock_quantity >= 0),
        tax_slab REAL NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS users (
        username TEXT PRIMARY KEY,
        password_hash TEXT NOT NULL,
        role TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS bills (
        bill_id INTEGER PRIMARY KEY AUTOINCREMENT,
        bill_date TEXT NOT NULL,
        total_amount REAL NOT NULL,
        subtotal REAL NOT NULL DEFAULT 0,
        discount_amount REAL NOT NULL DEFAULT 0
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS bill_items (
        item_id INTEGER PRIMARY KEY AUTOINCREMENT,
        bill_id INTEGER NOT NULL REFERENCES bills(bill_id) ON DELETE CASCADE,
        product_barcode TEXT REFERENCES products(barcode) ON DELETE SET NULL,
        product_name TEXT NOT NULL,
        quantity INTEGER NOT NULL,
        price_per_item REAL NOT NULL,
        tax_slab REAL NOT NULL DEFAULT 0
    )
    """,
)


def initialize_database():
    """
    Create every table that does not exist yet.
    On first run, also create the default administrator (admin/admin).
    Returns True if the default administrator was created.
    """
    conn = db_connect()
    cur = conn.cursor()
    try:
        for statement in SCHEMA:
            cur.execute(statement)
        cur.execute("SELECT COUNT(*) FROM users")
        created_admin = cur.fetchone()[0] == 0
        if created_admin:
            cur.execute(
                "INSERT INTO users (username, password_hash, role) VALUES (?,?,?)",
                ("admin", hash_password("admin"), ROLE_ADMIN)
            )
            logger.warning("Default administrator account created. Username: 'admin', Password: 'admin'")
        conn.commit()
    except sqlite3.Error:
        conn.rollback()
        raise
    finally:
        cur.close(); conn.close()
    return created_admin


def _row_to_product(row):
    return Product(row['barcode'], row['name'], row['price'], row['stock_quantity'], row['tax_slab'])


def _row_to_bill(row):
    return Bill(row['bill_id'], row['bill_date'], row['total_amount'], row['subtotal'], row['discount_amount'])


def _day_bounds(day):
    return f"{day.isoformat()} 00:00:00", f"{day.isoformat()} 23:59:59"


# --------- USERS ----------
def add_user(username, password, role):
    username = (username or "").strip()
    if not username or not password:
        raise ValidationError("Username and password cannot be empty.")
    if role not in ROLES:
        raise ValidationError(f"Unknown role '{role}'.")
    conn = db_connect()
    cur = conn.cursor()
    try:
        cur.execute(
            "INSERT INTO users (username, password_hash, role) VALUES (?,?,?)",
            (username, hash_password(password), role)
        )
        conn.commit()
    except sqlite3.IntegrityError:
        raise DuplicateUserError(f"Username '{username}' already exists.")
    finally:
        cur.close(); conn.close()
    logger.info("Added user %s with role %s", username, role)


def verify_user(username, password):
    """Return the user's role if the credentials match, otherwise None."""
    conn = db_connect()
    cur = conn.cursor()
    try:
        cur.execute("SELECT password_hash, role FROM users WHERE username=?", (username,))
        row = cur.fetchone()
        if not row or not verify_password(password, row['password_hash']):
            logger.info("Failed login for %s", username)
            return None
        if needs_rehash(row['password_hash']):
            try:
                new_hash = hash_password(password)
            except ValidationError as e:
                # keep the legacy hash; the login itself is still valid
                logger.warning("Could not upgrade password hash for %s: %s", username, e)
            else:
                cur.execute("UPDATE users SET password_hash=? WHERE username=?", (new_hash, username))
                conn.commit()
                logger.info("Upgraded password hash for %s", username)
        return row['role']
    finally:
        cur.close(); conn.close()


def get_all_users():
    conn = db_connect()
    cur = conn.cursor()
    cur.execute("SELECT username, role FROM users ORDER BY username")
    users = [User(row['username'], row['role']) for row in cur.fetchall()]
    cur.close(); conn.close()
    return users


def reset_user_password(username, new_password):
    if not new_password:
        raise ValidationError("The new password cannot be empty.")
    conn = db_connect()
    cur = conn.cursor()
    try:
        cur.execute("UPDATE users SET password_hash=? WHERE username=?", (hash_password(new_password), username))
        if cur.rowcount == 0:
            raise UserNotFoundError(f"User '{username}' does not exist.")
        conn.commit()
    finally:
        cur.close(); conn.close()
    logger.info("Password reset for %s", username)


# --------- PRODUCTS ----------
def product_name_exists(name):
    conn = db_connect()
    cur = conn.cursor()
    cur.execute("SELECT 1 FROM products WHERE name=?", (name,))
    found = cur.fetchone() is not None
    cur.close(); conn.close()
    return found


def add_product(product):
    conn = db_connect()
    cur = conn.cursor()
    try:
        cur.execute(
            "INSERT INTO products (barcode, name, price, stock_quantity, tax_slab) VALUES (?,?,?,?,?)",
            (product.barcode, product.name, product.price, product.stock_quantity, product.tax_slab)
        )
        conn.commit()
    except sqlite3.IntegrityError:
        raise DuplicateProductError(f"A product with barcode '{product.barcode}' already exists.")
    finally:
        cur.close(); conn.close()
    logger.info("Added product %s (%s)", product.barcode, product.name)


def find_product_by_barcode(barcode):
    conn = db_connect()
    cur = conn.cursor()
    cur.execute("SELECT * FROM products WHERE barcode=?", (barcode,))
    row = cur.fetchone()
    cur.close(); conn.close()
    return _row_to_product(row) if row else None


def get_all_products():
    conn = db_connect()
    cur = conn.cursor()
    cur.execute("SELECT * FROM products ORDER BY name")
    products = [_row_to_product(row) for row in cur.fetchall()]
    cur.close(); conn.close()
    return products


def update_stock(barcode, quantity_change):
    """Add (or with a negative value, remove) stock for one product."""
    conn = db_connect()
    cur = conn.cursor()
    try:
        cur.execute(
            "UPDATE products SET stock_quantity = stock_quantity + ? WHERE barcode=?",
            (quantity_change, barcode)
        )
        if cur.rowcount == 0:
            raise ProductNotFoundError(f"No product with barcode '{barcode}'.")
        conn.commit()
    except sqlite3.IntegrityError:
        raise InsufficientStockError(f"Stock for '{barcode}' cannot go below zero.")
    finally:
        cur.close(); conn.close()
    logger.info("Stock of %s changed by %+d", barcode, quantity_change)


def delete_product(barcode):
    conn = db_connect()
    cur = conn.cursor()
    try:
        cur.execute("DELETE FROM products WHERE barcode=?", (barcode,))
        if cur.rowcount == 0:
            raise ProductNotFoundError(f"No product with barcode '{barcode}'.")
        conn.commit()
    finally:
        cur.close(); conn.close()
    logger.info("Deleted product %s", barcode)


# --------- BILLS ----------
def save_bill(items, subtotal, discount_amount, total_amount, receipt_writer=None):
    """
    Persist a sale in a single transaction.

    items is a list of (Product, quantity). The bill row, its line items
    and the stock decrements are written together. If receipt_writer is
    given it is called with the new bill id before commit, so a failed
    receipt rolls the sale back as well. Returns the bill id.
    """
    if not items:
        raise EmptyBillError("Cannot finalize an empty bill.")
    conn = db_connect()
    cur = conn.cursor()
    try:
        cur.execute(
            "INSERT INTO bills (bill_date, total_amount, subtotal, discount_amount) VALUES (?,?,?,?)",
            (datetime.now().strftime(DATE_FORMAT), total_amount, subtotal, discount_amount)
        )
        bill_id = cur.lastrowid
        for product, quantity in items:
            # decrement first: the item row's foreign key needs the product to exist
            cur.execute(
                "UPDATE products SET stock_quantity = stock_quantity - ? WHERE barcode=? AND stock_quantity >= ?",
                (quantity, product.barcode, quantity)
            )
            if cur.rowcount == 0:
                cur.execute("SELECT stock_quantity FROM products WHERE barcode=?", (product.barcode,))
                row = cur.fetchone()
                if row is None:
                    raise ProductNotFoundError(f"Product '{product.name}' no longer exists.")
                raise InsufficientStockError(
                    f"Not enough stock for {product.name}: {row['stock_quantity']} left, {quantity} requested."
                )
            cur.execute(
                "INSERT INTO bill_items (bill_id, product_barcode, product_name, quantity, price_per_item, tax_slab) "
                "VALUES (?,?,?,?,?,?)",
                (bill_id, product.barcode, product.name, quantity, product.price, product.tax_slab)
            )
        if receipt_writer is not None:
            receipt_writer(bill_id)
        conn.commit()
    except Exception:
        logger.exception("Transaction failed. Rolling back changes.")
        conn.rollback()
        raise
    finally:
        cur.close(); conn.close()
    logger.info("Saved bill %s, total %.2f", bill_id, total_amount)
    return bill_id


def get_sales_history(period, today=None):
    """Bills for Today / This Week / This Month / All, newest first."""
    if period not in SALES_FILTERS:
        raise ValidationError(f"Unknown sales filter '{period}'.")
    today = today or date.today()
    end = _day_bounds(today)[1]
    if period == "Today":
        start = today
    elif period == "This Week":
        start = today - timedelta(days=today.weekday())
    elif period == "This Month":
        start = today.replace(day=1)
    conn = db_connect()
    cur = conn.cursor()
    if period == "All":
        cur.execute("SELECT * FROM bills WHERE bill_date <= ? ORDER BY bill_date DESC, bill_id DESC", (end,))
    else:
        cur.execute(
            "SELECT * FROM bills WHERE bill_date BETWEEN ? AND ? ORDER BY bill_date DESC, bill_id DESC",
            (_day_bounds(start)[0], end)
        )
    bills = [_row_to_bill(row) for row in cur.fetchall()]
    cur.close(); conn.close()
    return bills


def get_bill(bill_id):
    conn = db_connect()
    cur = conn.cursor()
    cur.execute("SELECT * FROM bills WHERE bill_id=?", (bill_id,))
    row = cur.fetchone()
    cur.close(); conn.close()
    if row is None:
        raise BillNotFoundError(f"Bill #{bill_id} does not exist.")
    return _row_to_bill(row)


def get_bill_details(bill_id):
    conn = db_connect()
    cur = conn.cursor()
    cur.execute(
        "SELECT bill_id, product_barcode, product_name, quantity, price_per_item, tax_slab "
        "FROM bill_items WHERE bill_id=? ORDER BY item_id",
        (bill_id,)
    )
    items = [
        BillItem(row['bill_id'], row['product_barcode'], row['product_name'],
                 row['quantity'], row['price_per_item'], row['tax_slab'])
        for row in cur.fetchall()
    ]
    cur.close(); conn.close()
    return items


# --------- DASHBOARD ----------
def get_todays_total_sales(today=None):
    start, end = _day_bounds(today or date.today())
    conn = db_connect()
    cur = conn.cursor()
    cur.execute("SELECT COALESCE(SUM(total_amount), 0) FROM bills WHERE bill_date BETWEEN ? AND ?", (start, end))
    total = cur.fetchone()[0]
    cur.close(); conn.close()
    return float(total)


def get_todays_bill_count(today=None):
    start, end = _day_bounds(today or date.today())
    conn = db_connect()
    cur = conn.cursor()
    cur.execute("SELECT COUNT(*) FROM bills WHERE bill_date BETWEEN ? AND ?", (start, end))
    count = cur.fetchone()[0]
    cur.close(); conn.close()
    return count


def get_low_stock_products(threshold=10):
    conn = db_connect()
    cur = conn.cursor()
    cur.execute("SELECT * FROM products WHERE stock_quantity <= ? ORDER BY stock_quantity ASC, name", (threshold,))
    products = [_row_to_product(row) for row in cur.fetchall()]
    cur.close(); conn.close()
    return products


def get_top_selling_products_this_month(limit=5, today=None):
    """(product name, units sold) pairs for the current month, best first."""
    today = today or date.today()
    start = _day_bounds(today.replace(day=1))[0]
    end = _day_bounds(today)[1]
    conn = db_connect()
    cur = conn.cursor()
    cur.execute("""
        SELECT bi.product_name AS name, SUM(bi.quantity) AS units
        FROM bill_items bi
        JOIN bills b ON bi.bill_id = b.bill_id
        WHERE b.bill_date BETWEEN ? AND ?
        GROUP BY bi.product_name
        ORDER BY units DESC, name
        LIMIT ?
    """, (start, end, limit))
    result = [(row['name'], row['units']) for row in cur.fetchall()]
    cur.close(); conn.close()
    return result
