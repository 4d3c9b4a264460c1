import customtkinter as ctk

import db
from billing import build_product
from errors import ValidationError
from gui_utils import (
    fill_tree, labelled_section, make_tree, run_in_background, show_popup_error, show_popup_info,
    show_popup_question,
)


class InventoryTab(ctk.CTkFrame):
    """
    Product management. Administrators get the full tab (add, adjust
    stock, delete, inventory list); staff only get the add form.
    """

    def __init__(self, master, config, full=True):
        super().__init__(master, fg_color="transparent")
        self.config_data = config
        self.full = full
        self.inventory_tree = None
        self.build_ui()

    def build_ui(self):
        self.build_add_form()
        if not self.full:
            return
        self.build_update_form()
        self.build_delete_form()

        section, body = labelled_section(self, "Full Stock Inventory")
        section.pack(fill="both", expand=True, padx=10, pady=5)
        frame, self.inventory_tree = make_tree(
            body, ("Barcode", "Name", "MRP", "Stock", "Tax Slab (%)"), (140, 240, 90, 80, 100), height=8
        )
        frame.pack(fill="both", expand=True)
        ctk.CTkButton(body, text="Refresh Inventory", command=self.refresh).pack(pady=(6, 0))

    def build_add_form(self):
        section, body = labelled_section(self, "Add New Product")
        section.pack(fill="x", padx=10, pady=5)
        fields = [
            ("Barcode (Optional):", "barcode", 0, 0),
            ("Product Name:", "name", 0, 2),
            (f"MRP ({self.config_data['CURRENCY']}):", "mrp", 1, 0),
            ("Tax Slab (%):", "tax", 1, 2),
            ("Initial Stock:", "stock", 2, 0),
        ]
        self.add_entries = {}
        for label, key, row, col in fields:
            ctk.CTkLabel(body, text=label).grid(row=row, column=col, sticky="w", padx=5, pady=3)
            entry = ctk.CTkEntry(body, width=200)
            entry.grid(row=row, column=col + 1, sticky="w", padx=5, pady=3)
            self.add_entries[key] = entry
        ctk.CTkButton(body, text="Add Product", command=self.add_product).grid(row=3, column=0, columnspan=4, pady=6)

    def build_update_form(self):
        section, body = labelled_section(self, "Update Stock Quantity")
        section.pack(fill="x", padx=10, pady=5)
        ctk.CTkLabel(body, text="Product Barcode:").pack(side="left")
        self.ent_update_barcode = ctk.CTkEntry(body, width=160)
        self.ent_update_barcode.pack(side="left", padx=5)
        ctk.CTkLabel(body, text="Qty to Add/Remove (+/-):").pack(side="left")
        self.ent_update_qty = ctk.CTkEntry(body, width=70)
        self.ent_update_qty.pack(side="left", padx=5)
        ctk.CTkButton(body, text="Update Stock", command=self.update_stock).pack(side="left", padx=5)

    def build_delete_form(self):
        section, body = labelled_section(self, "Delete Product Permanently")
        section.pack(fill="x", padx=10, pady=5)
        ctk.CTkLabel(body, text="Product Barcode:").pack(side="left")
        self.ent_delete_barcode = ctk.CTkEntry(body, width=160)
        self.ent_delete_barcode.pack(side="left", padx=5)
        ctk.CTkButton(body, text="Delete Product", fg_color="#C62828", hover_color="#8E0000",
                      command=self.delete_product).pack(side="left", padx=5)

    def refresh(self):
        if self.inventory_tree is None:
            return

        def show(products):
            fill_tree(self.inventory_tree, [
                (p.barcode, p.name, f"{p.price:.2f}", p.stock_quantity, f"{p.tax_slab:.1f}")
                for p in products
            ])

        run_in_background(self, db.get_all_products, show, title="Failed to load inventory")

    # ---------- ACTIONS ----------
    def add_product(self):
        parent = self.winfo_toplevel()
        e = self.add_entries
        try:
            product = build_product(e["barcode"].get(), e["name"].get(), e["mrp"].get(),
                                    e["tax"].get(), e["stock"].get())
        except ValidationError as exc:
            show_popup_error(str(exc), title="Input Error", parent=parent)
            return

        def added(_):
            show_popup_info("Product added successfully.", parent=parent)
            for entry in self.add_entries.values():
                entry.delete(0, "end")
            self.refresh()

        def checked(name_exists):
            if name_exists and not show_popup_question(
                f"A product with the name '{product.name}' already exists.\n"
                "Do you still want to add this new product?",
                title="Duplicate Product Name", parent=parent,
            ):
                return
            run_in_background(self, lambda: db.add_product(product), added, title="Failed to add product")

        run_in_background(self, lambda: db.product_name_exists(product.name), checked,
                          title="Failed to add product")

    def update_stock(self):
        parent = self.winfo_toplevel()
        barcode = self.ent_update_barcode.get().strip()
        if not barcode:
            show_popup_error("Please enter a product barcode.", title="Input Error", parent=parent)
            return
        try:
            quantity = int(self.ent_update_qty.get().strip())
        except ValueError:
            show_popup_error("Quantity must be a valid integer.", title="Input Error", parent=parent)
            return

        def updated(_):
            show_popup_info("Stock updated successfully.", parent=parent)
            self.ent_update_barcode.delete(0, "end")
            self.ent_update_qty.delete(0, "end")
            self.refresh()

        run_in_background(self, lambda: db.update_stock(barcode, quantity), updated,
                          title="Failed to update stock")

    def delete_product(self):
        parent = self.winfo_toplevel()
        barcode = self.ent_delete_barcode.get().strip()
        if not barcode:
            show_popup_error("Please enter the barcode of the product to delete.", title="Input Error", parent=parent)
            return
        if not show_popup_question(
            "Are you sure you want to permanently delete this product?\nThis action cannot be undone.",
            title="Confirm Deletion", parent=parent,
        ):
            return

        def deleted(_):
            show_popup_info("Product deleted successfully.", parent=parent)
            self.ent_delete_barcode.delete(0, "end")
            self.refresh()

        run_in_background(self, lambda: db.delete_product(barcode), deleted, title="Failed to delete product")
