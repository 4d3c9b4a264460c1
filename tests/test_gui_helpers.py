import pytest

# the GUI modules import tkinter, which some headless interpreters lack
pytest.importorskip("tkinter")
pytest.importorskip("customtkinter")

from gui_dashboard import tabs_for_role  # noqa: E402
from gui_history import format_bill_details  # noqa: E402
from models import ROLE_ADMIN, ROLE_STAFF, Bill, BillItem  # noqa: E402


def test_admin_tabs():
    assert tabs_for_role(ROLE_ADMIN) == ["Dashboard", "Billing", "Manage Products", "Sales History", "Manage Users"]


def test_staff_tabs_are_limited():
    tabs = tabs_for_role(ROLE_STAFF)
    assert tabs == ["Billing", "Add Product"]
    for hidden in ("Manage Products", "Sales History", "Manage Users"):
        assert hidden not in tabs


def test_unknown_role_gets_staff_tabs():
    assert tabs_for_role("guest") == tabs_for_role(ROLE_STAFF)


def test_bill_details_listing():
    bill = Bill(3, "2024-05-15 10:00:00", 126.0, 140.0, 14.0)
    items = [BillItem(3, "111", "Milk 1L", 2, 50.0), BillItem(3, None, "Bread", 1, 40.0)]
    text = format_bill_details(bill, items, "Rs.")
    assert "Bill ID: 3" in text
    assert "Discount: - Rs. 14.00" in text
    assert "Total: Rs. 126.00" in text
    milk_line = next(line for line in text.splitlines() if line.startswith("Milk 1L"))
    assert milk_line.split() == ["Milk", "1L", "2", "50.00", "100.00"]
