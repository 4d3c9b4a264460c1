import logging

import customtkinter as ctk

import db
from barcode_server import BarcodeServer
from billing import PERCENT, Cart, compute_totals, finalize_bill, parse_discount
from errors import InsufficientStockError, ValidationError
from gui_utils import (
    fill_tree, handle_task_error, labelled_section, make_tree, run_in_background,
    show_popup_custom, show_popup_error, show_popup_question, show_popup_warning,
)
from net_utils import IP_NOT_FOUND, get_local_ip
from print_utils import open_bills_folder, print_receipt
from qr_utils import generate_qr_image, scanner_url

logger = logging.getLogger(__name__)

QR_SIZE = 180


class BillingTab(ctk.CTkFrame):
    """
    Point of sale. Also acts as the BarcodeReceiver for the phone
    scanner, so scans from the phone land in the same cart.
    """

    def __init__(self, master, config, on_bill_saved=None):
        super().__init__(master, fg_color="transparent")
        self.config_data = config
        self.on_bill_saved = on_bill_saved
        self.cart = Cart()
        self.server = None
        self.qr_image = None
        self._closing = False
        self.build_ui()

    def build_ui(self):
        currency = self.config_data["CURRENCY"]

        top = ctk.CTkFrame(self, fg_color="transparent")
        top.pack(fill="x", padx=10, pady=10)
        ctk.CTkLabel(top, text="Scan Barcode:").pack(side="left")
        self.ent_barcode = ctk.CTkEntry(top, width=220)
        self.ent_barcode.pack(side="left", padx=8)
        self.ent_barcode.bind("<Return>", lambda e: self.add_barcode(self.ent_barcode.get()))
        ctk.CTkButton(top, text="Remove Selected Item", command=self.remove_selected_item).pack(side="left", padx=8)
        self.btn_scanner = ctk.CTkButton(top, text="Start Phone Scanner", command=self.toggle_scanner)
        self.btn_scanner.pack(side="right")

        middle = ctk.CTkFrame(self, fg_color="transparent")
        middle.pack(fill="both", expand=True, padx=10)

        frame, self.cart_tree = make_tree(
            middle, ("Name", "MRP", "Tax Slab", "Quantity", "Total"), (260, 90, 80, 80, 100), height=14
        )
        frame.pack(side="left", fill="both", expand=True)

        self.scanner_panel, body = labelled_section(middle, "Phone Scanner")
        self.lbl_qr = ctk.CTkLabel(body, text="")
        self.lbl_qr.pack(pady=5)
        self.lbl_url = ctk.CTkLabel(body, text="", wraplength=QR_SIZE + 20)
        self.lbl_url.pack()
        self.lbl_status = ctk.CTkLabel(body, text="Server not running.", wraplength=QR_SIZE + 20)
        self.lbl_status.pack(pady=5)

        bottom = ctk.CTkFrame(self, fg_color="transparent")
        bottom.pack(fill="x", padx=10, pady=10)
        self.lbl_total = ctk.CTkLabel(bottom, text=f"Total: {currency} 0.00", font=("Arial", 20, "bold"))
        self.lbl_total.pack(side="left")

        self.btn_finalize = ctk.CTkButton(bottom, text="Finalize Bill", command=self.finalize)
        self.btn_finalize.pack(side="right")
        self.discount_type = ctk.StringVar(value=currency)
        ctk.CTkOptionMenu(bottom, values=[currency, PERCENT], variable=self.discount_type, width=70,
                          command=lambda _: self.update_total()).pack(side="right", padx=8)
        self.discount_var = ctk.StringVar()
        self.discount_var.trace_add("write", lambda *args: self.update_total())
        ctk.CTkEntry(bottom, textvariable=self.discount_var, width=80).pack(side="right")
        ctk.CTkLabel(bottom, text="Discount:").pack(side="right", padx=8)

        self.after(100, self.ent_barcode.focus_set)

    # ---------- CART ----------
    def add_barcode(self, barcode):
        barcode = (barcode or "").strip()
        self.ent_barcode.delete(0, "end")
        if not barcode:
            return

        def added(product):
            self.ent_barcode.focus_set()
            if product is None:
                show_popup_error("Product not found.", parent=self.winfo_toplevel())
                return
            try:
                self.cart.add(product)
            except InsufficientStockError as e:
                show_popup_warning(str(e), title="Stock Alert", parent=self.winfo_toplevel())
                return
            self.refresh_cart()

        run_in_background(self, lambda: db.find_product_by_barcode(barcode), added,
                          title="Error fetching product")

    def remove_selected_item(self):
        selected = self.cart_tree.focus()
        if not selected:
            show_popup_warning("Please select an item from the bill to remove.", title="No Item Selected",
                               parent=self.winfo_toplevel())
            return
        index = self.cart_tree.index(selected)
        product, _ = self.cart.lines()[index]
        self.cart.remove_one(product.barcode)
        self.refresh_cart()

    def refresh_cart(self):
        fill_tree(self.cart_tree, [
            (p.name, f"{p.price:.2f}", f"{p.tax_slab:.1f}%", qty, f"{p.price * qty:.2f}")
            for p, qty in self.cart.lines()
        ])
        self.update_total()

    def current_totals(self):
        return compute_totals(self.cart.lines(), parse_discount(self.discount_var.get()), self.discount_type.get())

    def update_total(self):
        try:
            totals = self.current_totals()
        except ValidationError:
            # half-typed discount; keep the last total until the field parses
            return
        self.lbl_total.configure(text=f"Total: {self.config_data['CURRENCY']} {totals.grand_total:.2f}")

    def finalize(self):
        parent = self.winfo_toplevel()
        if self.cart.is_empty:
            show_popup_warning("Cannot finalize an empty bill.", parent=parent)
            return
        try:
            discount = parse_discount(self.discount_var.get())
        except ValidationError as e:
            show_popup_error(str(e), title="Input Error", parent=parent)
            return
        discount_type = self.discount_type.get()
        lines = self.cart.lines()
        totals = compute_totals(lines, discount, discount_type)
        currency = self.config_data["CURRENCY"]
        confirmed = show_popup_question(
            f"Subtotal: {currency} {totals.subtotal:.2f}\n"
            f"Discount: - {currency} {totals.discount_amount:.2f}\n"
            f"Grand Total: {currency} {totals.grand_total:.2f}\n\n"
            "Finalize this bill?",
            title="Confirm Bill", parent=parent,
        )
        if not confirmed:
            return

        def saved(result):
            self.btn_finalize.configure(state="normal")
            self.discount_var.set("")
            self.refresh_cart()
            if self.on_bill_saved:
                self.on_bill_saved()
            bills_dir = self.config_data["BILLS_DIR"]
            show_popup_custom(
                "Success",
                f"Bill #{result.bill_id} finalized successfully!\nPDF saved in the '{bills_dir}' directory.",
                [("Open Bill Location", lambda: self.open_folder(bills_dir)),
                 ("Print", lambda: self.print_pdf(result.pdf_path)),
                 ("OK", None)],
                parent=parent,
            )

        def failed(exc):
            self.btn_finalize.configure(state="normal")
            handle_task_error(self, exc, "Failed to finalize bill")

        self.btn_finalize.configure(state="disabled")
        run_in_background(self, lambda: finalize_bill(self.cart, discount, discount_type, self.config_data, lines),
                          saved, failed)

    def open_folder(self, path):
        try:
            open_bills_folder(path)
        except OSError as e:
            logger.error("Could not open %s: %s", path, e)
            show_popup_error("Could not open bills directory.", parent=self.winfo_toplevel())

    def print_pdf(self, path):
        run_in_background(
            self, lambda: print_receipt(path),
            lambda ok: ok or show_popup_warning("Receipt could not be sent to the printer.",
                                                parent=self.winfo_toplevel()),
            title="Print failed",
        )

    # ---------- PHONE SCANNER ----------
    def toggle_scanner(self):
        if self.server is not None and self.server.is_running:
            self.stop_scanner()
        else:
            self.start_scanner()

    def start_scanner(self):
        port = self.config_data["SERVER_PORT"]
        ip = get_local_ip()
        self.scanner_panel.pack(side="right", fill="y", padx=(10, 0))
        self.server = BarcodeServer(self, port=port)
        if not self.server.start():
            self.server = None
            return
        self.btn_scanner.configure(text="Stop Phone Scanner")
        if ip == IP_NOT_FOUND:
            self.lbl_url.configure(text=IP_NOT_FOUND)
            return
        url = scanner_url(ip, port)
        self.lbl_url.configure(text=url)
        try:
            image = generate_qr_image(url, QR_SIZE, QR_SIZE)
        except ValueError as e:
            handle_task_error(self, e, "Could not generate QR code")
            return
        self.qr_image = ctk.CTkImage(light_image=image, dark_image=image, size=(QR_SIZE, QR_SIZE))
        self.lbl_qr.configure(image=self.qr_image)

    def stop_scanner(self):
        if self.server is not None:
            self.server.stop()
            self.server = None
        self.btn_scanner.configure(text="Start Phone Scanner")
        self.scanner_panel.pack_forget()

    # BarcodeReceiver: called on the server thread, so hop onto the Tk loop
    def on_barcode_received(self, barcode):
        if self._closing:
            return
        self.after(0, lambda: self.add_barcode(barcode))

    def set_server_status(self, status):
        if self._closing:
            return
        self.after(0, lambda: self.lbl_status.configure(text=status))

    def destroy(self):
        self._closing = True
        if self.server is not None:
            self.server.stop()
            self.server = None
        super().destroy()
