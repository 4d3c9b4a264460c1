import os

import pytest

import db
from billing import PERCENT, Cart, build_product, compute_totals, finalize_bill, parse_discount
from errors import EmptyBillError, InsufficientStockError, ReceiptError, ValidationError
from models import Product

FLAT = "Rs."


def test_cart_counts_units_per_barcode():
    cart = Cart()
    milk = Product("111", "Milk", 50.0, 3)
    bread = Product("222", "Bread", 40.0, 1)
    cart.add(milk)
    cart.add(bread)
    assert cart.add(milk) == 2
    assert len(cart) == 2
    assert cart.quantity_of("111") == 2
    assert [p.barcode for p, _ in cart.lines()] == ["111", "222"]
    assert cart.subtotal == 140.0


def test_cart_refuses_more_than_stock():
    cart = Cart()
    bread = Product("222", "Bread", 40.0, 1)
    cart.add(bread)
    with pytest.raises(InsufficientStockError):
        cart.add(bread)
    with pytest.raises(InsufficientStockError):
        cart.add(Product("333", "Soap", 10.0, 0))
    assert cart.quantity_of("222") == 1
    assert cart.quantity_of("333") == 0


def test_cart_remove_one():
    cart = Cart()
    milk = Product("111", "Milk", 50.0, 5)
    cart.add(milk)
    cart.add(milk)
    cart.remove_one("111")
    assert cart.quantity_of("111") == 1
    cart.remove_one("111")
    assert cart.is_empty
    with pytest.raises(KeyError):
        cart.remove_one("111")


@pytest.mark.parametrize("text, expected", [("", 0.0), ("  ", 0.0), (None, 0.0), ("10", 10.0), (" 2.5 ", 2.5)])
def test_parse_discount(text, expected):
    assert parse_discount(text) == expected


@pytest.mark.parametrize("text", ["abc", "-5", "1,5", "nan", "inf", "-inf"])
def test_parse_discount_rejects(text):
    with pytest.raises(ValidationError):
        parse_discount(text)


def test_totals_percent_and_flat_discount():
    lines = [(Product("111", "Milk", 50.0, 10), 2), (Product("222", "Bread", 40.0, 10), 1)]
    percent = compute_totals(lines, 10, PERCENT)
    assert (percent.subtotal, percent.discount_amount, percent.grand_total) == (140.0, 14.0, 126.0)
    flat = compute_totals(lines, 15.5, FLAT)
    assert (flat.subtotal, flat.discount_amount, flat.grand_total) == (140.0, 15.5, 124.5)


def test_discount_is_clamped_to_subtotal():
    lines = [(Product("111", "Milk", 50.0, 10), 1)]
    assert compute_totals(lines, 80, FLAT).grand_total == 0.0
    assert compute_totals(lines, 80, FLAT).discount_amount == 50.0
    assert compute_totals(lines, 150, PERCENT).grand_total == 0.0
    assert compute_totals([], 10, FLAT).grand_total == 0.0


def test_included_tax():
    lines = [(Product("111", "Shampoo", 118.0, 10, 18.0), 2), (Product("222", "Rice", 60.0, 10, 0.0), 1)]
    totals = compute_totals(lines)
    assert totals.tax_amount == 36.0
    assert totals.grand_total == 296.0


def test_build_product():
    product = build_product(" 890 ", " Tea ", "120", "5", "12")
    assert product == Product("890", "Tea", 120.0, 12, 5.0)
    assert (product.name, product.price, product.stock_quantity, product.tax_slab) == ("Tea", 120.0, 12, 5.0)


def test_build_product_generates_missing_barcode():
    first = build_product("", "Tea", "1", "0", "0")
    second = build_product("  ", "Tea", "1", "0", "0")
    assert first.barcode.startswith("N/A-")
    assert len(first.barcode) == len("N/A-") + 8
    assert first.barcode != second.barcode


@pytest.mark.parametrize("name, price, tax, stock", [
    ("", "1", "0", "0"),
    ("Tea", "abc", "0", "0"),
    ("Tea", "1", "0", "1.5"),
    ("Tea", "0", "0", "0"),
    ("Tea", "-1", "0", "0"),
    ("Tea", "1", "-1", "0"),
    ("Tea", "1", "0", "-1"),
    ("Tea", "1000001", "0", "0"),
    ("Tea", "1", "0", "1000001"),
    ("Tea", "nan", "0", "0"),
    ("Tea", "1", "inf", "0"),
])
def test_build_product_validation(name, price, tax, stock):
    with pytest.raises(ValidationError):
        build_product("", name, price, tax, stock)


def test_finalize_bill(stocked, database, config):
    cart = Cart()
    cart.add(stocked["111"])
    cart.add(stocked["111"])
    cart.add(stocked["222"])

    result = finalize_bill(cart, 10, PERCENT, config)

    assert cart.is_empty
    assert result.totals.grand_total == 126.0
    assert os.path.basename(result.pdf_path) == f"Bill_{result.bill_id}.pdf"
    with open(result.pdf_path, "rb") as f:
        assert f.read(4) == b"%PDF"
    assert database.get_bill(result.bill_id).total_amount == 126.0
    assert database.find_product_by_barcode("111").stock_quantity == 8


def test_finalize_empty_cart(database, config):
    with pytest.raises(EmptyBillError):
        finalize_bill(Cart(), 0, PERCENT, config)


def test_finalize_keeps_cart_when_stock_ran_out(stocked, database, config):
    cart = Cart()
    cart.add(stocked["222"])
    cart.add(stocked["222"])
    database.update_stock("222", -3)

    with pytest.raises(InsufficientStockError):
        finalize_bill(cart, 0, PERCENT, config)
    assert cart.quantity_of("222") == 2
    assert database.get_sales_history("All") == []
    assert not os.path.exists(config["BILLS_DIR"]) or os.listdir(config["BILLS_DIR"]) == []


def test_finalize_rolls_back_when_receipt_fails(stocked, database, config, tmp_path):
    blocker = tmp_path / "not_a_dir"
    blocker.write_text("x")
    config["BILLS_DIR"] = str(blocker / "bills")
    cart = Cart()
    cart.add(stocked["111"])

    with pytest.raises(ReceiptError):
        finalize_bill(cart, 0, PERCENT, config)
    assert cart.quantity_of("111") == 1
    assert database.find_product_by_barcode("111").stock_quantity == 10
    assert db.get_sales_history("All") == []


def test_remove_billed_keeps_later_scans():
    cart = Cart()
    milk = Product("111", "Milk", 50.0, 10)
    bread = Product("222", "Bread", 40.0, 10)
    cart.add(milk)
    billed = cart.lines()
    cart.add(milk)
    cart.add(bread)

    cart.remove_billed(billed)

    assert cart.quantity_of("111") == 1
    assert cart.quantity_of("222") == 1


def test_items_scanned_while_saving_stay_in_cart(stocked, database, config, monkeypatch):
    cart = Cart()
    cart.add(stocked["111"])
    real_save_bill = db.save_bill

    def save_while_scanning(*args, **kwargs):
        cart.add(stocked["222"])
        return real_save_bill(*args, **kwargs)

    monkeypatch.setattr(db, "save_bill", save_while_scanning)
    result = finalize_bill(cart, 0, PERCENT, config)

    assert [i.product_name for i in database.get_bill_details(result.bill_id)] == ["Milk 1L"]
    assert cart.quantity_of("111") == 0
    assert cart.quantity_of("222") == 1
    assert database.find_product_by_barcode("222").stock_quantity == 3


def test_finalize_bills_only_the_confirmed_lines(stocked, database, config):
    cart = Cart()
    cart.add(stocked["111"])
    confirmed = cart.lines()
    cart.add(stocked["111"])

    result = finalize_bill(cart, 0, PERCENT, config, confirmed)

    assert result.totals.grand_total == 50.0
    assert database.get_bill_details(result.bill_id)[0].quantity == 1
    assert cart.quantity_of("111") == 1
