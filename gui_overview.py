import customtkinter as ctk

import db
from gui_utils import fill_tree, labelled_section, make_tree, run_in_background


class OverviewTab(ctk.CTkFrame):
    """Admin dashboard: today's figures, low stock and best sellers."""

    def __init__(self, master, config):
        super().__init__(master, fg_color="transparent")
        self.config_data = config
        self.build_ui()

    def build_ui(self):
        currency = self.config_data["CURRENCY"]
        metrics = ctk.CTkFrame(self, fg_color="transparent")
        metrics.pack(fill="x", padx=15, pady=15)
        metrics.grid_columnconfigure((0, 1), weight=1)
        self.lbl_sales = self.metric_card(metrics, "Today's Sales", f"{currency} 0.00", 0)
        self.lbl_bills = self.metric_card(metrics, "Today's Bills", "0", 1)

        lists = ctk.CTkFrame(self, fg_color="transparent")
        lists.pack(fill="both", expand=True, padx=15, pady=(0, 15))
        lists.grid_columnconfigure((0, 1), weight=1)
        lists.grid_rowconfigure(0, weight=1)

        threshold = self.config_data["LOW_STOCK_THRESHOLD"]
        low, low_body = labelled_section(lists, f"Low Stock Alerts (<= {threshold} items)")
        low.grid(row=0, column=0, sticky="nsew", padx=(0, 10))
        frame, self.low_stock_tree = make_tree(low_body, ("Product Name", "Stock Left"), (220, 90))
        frame.pack(fill="both", expand=True)

        top, top_body = labelled_section(lists, "Top Selling Products (This Month)")
        top.grid(row=0, column=1, sticky="nsew", padx=(10, 0))
        frame, self.top_selling_tree = make_tree(top_body, ("Product Name", "Units Sold (Month)"), (220, 130))
        frame.pack(fill="both", expand=True)

    def metric_card(self, parent, title, initial, column):
        card = ctk.CTkFrame(parent, border_width=1)
        card.grid(row=0, column=column, sticky="ew", padx=10)
        ctk.CTkLabel(card, text=title, font=("Arial", 16, "bold")).pack(pady=(10, 0))
        value = ctk.CTkLabel(card, text=initial, font=("Arial", 28, "bold"))
        value.pack(pady=(0, 10))
        return value

    def refresh(self):
        threshold = self.config_data["LOW_STOCK_THRESHOLD"]
        limit = self.config_data["TOP_SELLING_LIMIT"]

        def load():
            return {
                "sales": db.get_todays_total_sales(),
                "bills": db.get_todays_bill_count(),
                "low_stock": db.get_low_stock_products(threshold),
                "top_selling": db.get_top_selling_products_this_month(limit),
            }

        def show(data):
            self.lbl_sales.configure(text=f"{self.config_data['CURRENCY']} {data['sales']:.2f}")
            self.lbl_bills.configure(text=str(data["bills"]))
            fill_tree(self.low_stock_tree, [(p.name, p.stock_quantity) for p in data["low_stock"]])
            fill_tree(self.top_selling_tree, data["top_selling"])

        run_in_background(self, load, show, title="Failed to load dashboard data")
