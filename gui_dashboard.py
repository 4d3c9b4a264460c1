import logging

import customtkinter as ctk

from gui_billing import BillingTab
from gui_history import SalesHistoryTab
from gui_inventory import InventoryTab
from gui_overview import OverviewTab
from gui_users import UsersTab
from models import ROLE_ADMIN

logger = logging.getLogger(__name__)

TAB_DASHBOARD = "Dashboard"
TAB_BILLING = "Billing"
TAB_PRODUCTS = "Manage Products"
TAB_ADD_PRODUCT = "Add Product"
TAB_HISTORY = "Sales History"
TAB_USERS = "Manage Users"


def tabs_for_role(role):
    if role == ROLE_ADMIN:
        return [TAB_DASHBOARD, TAB_BILLING, TAB_PRODUCTS, TAB_HISTORY, TAB_USERS]
    return [TAB_BILLING, TAB_ADD_PRODUCT]


class Dashboard(ctk.CTk):
    def __init__(self, user, config, on_logout=None):
        super().__init__()
        self.user = user
        self.config_data = config
        self.on_logout = on_logout
        self.title(f"Stock and Billing System - Role: {user.role.upper()}")
        self.geometry("1200x800")
        self.tabs = {}
        self.build_ui()
        self.protocol("WM_DELETE_WINDOW", self.destroy)

    def build_ui(self):
        header = ctk.CTkFrame(self, fg_color="transparent")
        header.pack(fill="x", padx=10, pady=(10, 0))
        ctk.CTkLabel(header, text=f"Logged in as {self.user.username}", font=("Arial", 16)).pack(side="left")
        ctk.CTkButton(header, text="Logout", width=100, command=self.logout).pack(side="right")

        self.tabview = ctk.CTkTabview(self, command=self.refresh_current_tab)
        self.tabview.pack(fill="both", expand=True, padx=10, pady=10)
        for name in tabs_for_role(self.user.role):
            tab = self.make_tab(name, self.tabview.add(name))
            tab.pack(fill="both", expand=True)
            self.tabs[name] = tab
        self.refresh_current_tab()

    def make_tab(self, name, master):
        config = self.config_data
        if name == TAB_DASHBOARD:
            return OverviewTab(master, config)
        if name == TAB_BILLING:
            return BillingTab(master, config, on_bill_saved=self.on_bill_saved)
        if name == TAB_PRODUCTS:
            return InventoryTab(master, config, full=True)
        if name == TAB_ADD_PRODUCT:
            return InventoryTab(master, config, full=False)
        if name == TAB_HISTORY:
            return SalesHistoryTab(master, config)
        if name == TAB_USERS:
            return UsersTab(master, config)
        raise ValueError(f"Unknown tab: {name}")

    def refresh_current_tab(self):
        tab = self.tabs.get(self.tabview.get())
        if tab is not None and hasattr(tab, "refresh"):
            tab.refresh()

    # Stock and sales figures change after every bill
    def on_bill_saved(self):
        for name in (TAB_PRODUCTS, TAB_DASHBOARD, TAB_HISTORY):
            if name in self.tabs:
                self.tabs[name].refresh()

    def logout(self):
        logger.info("User %s logged out", self.user.username)
        self.destroy()
        if self.on_logout:
            self.on_logout()
