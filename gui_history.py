import customtkinter as ctk

import db
from gui_utils import fill_tree, make_tree, run_in_background, show_popup_info
from print_utils import reprint_bill_pdf


def format_bill_details(bill, items, currency):
    """Plain-text listing of a bill for the details window."""
    lines = [
        "--- Bill Details ---",
        f"Bill ID: {bill.bill_id}",
        f"Date: {bill.bill_date}",
        f"Subtotal: {currency} {bill.subtotal:.2f}",
    ]
    if bill.discount_amount > 0:
        lines.append(f"Discount: - {currency} {bill.discount_amount:.2f}")
    lines += [
        f"Total: {currency} {bill.total_amount:.2f}",
        "",
        "--- Items Purchased ---",
        f"{'Name':<25} {'Qty':>5} {'Price':>10} {'Total':>10}",
        "-" * 53,
    ]
    for item in items:
        lines.append(f"{item.product_name[:25]:<25} {item.quantity:>5d} {item.price_per_item:>10.2f} {item.total:>10.2f}")
    return "\n".join(lines)


class SalesHistoryTab(ctk.CTkFrame):
    def __init__(self, master, config):
        super().__init__(master, fg_color="transparent")
        self.config_data = config
        self.build_ui()

    def build_ui(self):
        top = ctk.CTkFrame(self, fg_color="transparent")
        top.pack(fill="x", padx=10, pady=10)
        ctk.CTkLabel(top, text="Filter by:").pack(side="left")
        self.filter_var = ctk.StringVar(value=db.SALES_FILTERS[0])
        ctk.CTkOptionMenu(top, values=list(db.SALES_FILTERS), variable=self.filter_var,
                          command=lambda _: self.refresh()).pack(side="left", padx=8)
        ctk.CTkButton(top, text="Refresh", command=self.refresh).pack(side="left")

        frame, self.history_tree = make_tree(
            self, ("Bill ID", "Date", f"Total Amount ({self.config_data['CURRENCY']})"), (100, 220, 160), height=18
        )
        frame.pack(fill="both", expand=True, padx=10, pady=(0, 10))
        self.history_tree.bind("<<TreeviewSelect>>", lambda e: self.show_selected_bill())

    def refresh(self):
        period = self.filter_var.get()

        def show(bills):
            fill_tree(self.history_tree, [(b.bill_id, b.bill_date, f"{b.total_amount:.2f}") for b in bills])

        run_in_background(self, lambda: db.get_sales_history(period), show, title="Could not fetch sales history")

    def show_selected_bill(self):
        selected = self.history_tree.focus()
        if not selected:
            return
        bill_id = int(self.history_tree.item(selected, "values")[0])

        run_in_background(self, lambda: (db.get_bill(bill_id), db.get_bill_details(bill_id)),
                          lambda result: self.open_details_window(*result),
                          title="Could not fetch bill details")

    def open_details_window(self, bill, items):
        window = ctk.CTkToplevel(self)
        window.title(f"Bill Details - #{bill.bill_id}")
        window.geometry("520x400")
        window.transient(self.winfo_toplevel())
        text = ctk.CTkTextbox(window, font=("Courier New", 12))
        text.pack(fill="both", expand=True, padx=10, pady=10)
        text.insert("1.0", format_bill_details(bill, items, self.config_data["CURRENCY"]))
        text.configure(state="disabled")
        ctk.CTkButton(window, text="Reprint Receipt",
                      command=lambda: self.reprint(bill.bill_id, window)).pack(pady=(0, 10))

    def reprint(self, bill_id, window):
        run_in_background(
            self, lambda: reprint_bill_pdf(bill_id, self.config_data),
            lambda path: show_popup_info(f"Receipt saved to {path}", parent=window),
            title="Could not reprint receipt",
        )
