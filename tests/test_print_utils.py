import subprocess
from datetime import datetime, timezone

import pytest
from pypdf import PdfReader

import print_utils
from billing import compute_totals
from errors import BillNotFoundError, EmptyBillError
from models import Product
from print_utils import bill_pdf_path, generate_bill_pdf, print_receipt, reprint_bill_pdf


def pdf_text(path):
    return "\n".join(page.extract_text() for page in PdfReader(path).pages)


def test_receipt_layout(tmp_path):
    lines = [(Product("111", "Milk 1L", 50.0, 10, 5.0), 2), (Product("222", "Bread & Butter", 40.0, 3), 1)]
    printed_at = datetime(2024, 5, 15, 8, 30, 0, tzinfo=timezone.utc)

    path = generate_bill_pdf(7, lines, 140.0, 14.0, 126.0, bills_dir=str(tmp_path),
                             shop_name="Corner Store", shop_address="Main Road",
                             tax_amount=4.76, printed_at=printed_at)

    assert path == bill_pdf_path(str(tmp_path), 7)
    with open(path, "rb") as f:
        assert f.read(4) == b"%PDF"
    text = pdf_text(path)
    assert "Corner Store" in text
    assert "Main Road" in text
    assert "Bill No: 7" in text
    # 08:30 UTC is 14:00 in Asia/Kolkata
    assert "15-05-2024 02:00:00 PM" in text
    for heading in ("Item Name", "MRP", "Qty", "Tax", "Amount"):
        assert heading in text
    assert "Bread & Butter" in text
    assert "Rs. 100.00" in text
    assert "Rs.100.00" not in text
    assert "Tax included:" in text
    assert "Rs. 4.76" in text
    assert "Discount:" in text
    assert "Grand Total:" in text
    assert "Rs. 126.00" in text


def test_no_discount_row_without_discount(tmp_path):
    lines = [(Product("111", "Milk", 50.0, 10), 1)]
    path = generate_bill_pdf(1, lines, 50.0, 0.0, 50.0, bills_dir=str(tmp_path))
    text = pdf_text(path)
    assert "Discount:" not in text
    assert "Tax included:" in text
    assert "Rs. 0.00" in text


def test_empty_bill_has_no_receipt(tmp_path):
    with pytest.raises(EmptyBillError):
        generate_bill_pdf(1, [], 0, 0, 0, bills_dir=str(tmp_path))


def test_reprint_uses_saved_bill(stocked, database, config):
    bill_id = database.save_bill([(stocked["111"], 3)], 150.0, 0.0, 150.0)
    database.delete_product("111")

    path = reprint_bill_pdf(bill_id, config)
    text = pdf_text(path)
    assert f"Bill No: {bill_id}" in text
    assert "Milk 1L" in text
    assert "Rs. 150.00" in text

    with pytest.raises(BillNotFoundError):
        reprint_bill_pdf(9999, config)


def test_print_receipt_reports_failure(monkeypatch, tmp_path):
    def fail(*args, **kwargs):
        raise subprocess.CalledProcessError(1, args[0])

    monkeypatch.setattr(print_utils.platform, "system", lambda: "Linux")
    monkeypatch.setattr(print_utils.subprocess, "run", fail)
    assert print_receipt(str(tmp_path / "Bill_1.pdf")) is False

    monkeypatch.setattr(print_utils.platform, "system", lambda: "Plan9")
    assert print_receipt(str(tmp_path / "Bill_1.pdf")) is False


def test_print_receipt_uses_lpr_on_linux(monkeypatch):
    calls = []
    monkeypatch.setattr(print_utils.platform, "system", lambda: "Linux")
    monkeypatch.setattr(print_utils.subprocess, "run", lambda cmd, check: calls.append(cmd))
    assert print_receipt("Bill_1.pdf") is True
    assert calls == [["lpr", "Bill_1.pdf"]]


def test_reprint_tax_matches_the_original_bill(stocked, database, config, monkeypatch):
    lines = [(stocked["111"], 3), (Product("555", "Shampoo", 99.99, 5, 18.0), 1)]
    database.add_product(lines[1][0])
    totals = compute_totals(lines)
    bill_id = database.save_bill(lines, totals.subtotal, 0.0, totals.grand_total)

    captured = {}

    def capture(*args, **kwargs):
        captured.update(kwargs)
        return "unused.pdf"

    monkeypatch.setattr(print_utils, "generate_bill_pdf", capture)
    reprint_bill_pdf(bill_id, config)
    assert captured["tax_amount"] == totals.tax_amount


def test_default_tax_is_computed_from_lines(tmp_path):
    lines = [(Product("555", "Shampoo", 118.0, 5, 18.0), 1)]
    text = pdf_text(generate_bill_pdf(2, lines, 118.0, 0.0, 118.0, bills_dir=str(tmp_path)))
    assert "Rs. 18.00" in text
