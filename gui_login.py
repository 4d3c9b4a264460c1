import logging

import customtkinter as ctk

from db import verify_user
from gui_utils import run_in_background, show_popup_error, show_popup_info

logger = logging.getLogger(__name__)


class LoginWindow(ctk.CTk):
    def __init__(self, on_login):
        super().__init__()
        self.title("User Login")
        self.resizable(False, False)
        self.on_login = on_login
        self.center(400, 280)
        self.build_ui()

    def center(self, width, height):
        x = (self.winfo_screenwidth() - width) // 2
        y = (self.winfo_screenheight() - height) // 2
        self.geometry(f"{width}x{height}+{x}+{y}")

    def build_ui(self):
        frame = ctk.CTkFrame(self)
        frame.pack(pady=20, padx=20, fill="both", expand=True)
        ctk.CTkLabel(frame, text="Stock and Billing System", font=("Arial", 18, "bold")).pack(pady=(15, 10))
        ctk.CTkLabel(frame, text="Username:").pack()
        self.ent_user = ctk.CTkEntry(frame, width=220)
        self.ent_user.pack(pady=(0, 5))
        ctk.CTkLabel(frame, text="Password:").pack()
        self.ent_pass = ctk.CTkEntry(frame, show="*", width=220)
        self.ent_pass.pack(pady=(0, 5))
        self.btn_login = ctk.CTkButton(frame, text="Login", command=self.try_login)
        self.btn_login.pack(pady=10)
        self.ent_user.bind("<Return>", lambda e: self.ent_pass.focus_set())
        self.ent_pass.bind("<Return>", lambda e: self.try_login())
        self.after(100, self.ent_user.focus_set)

    def try_login(self):
        username = self.ent_user.get().strip()
        password = self.ent_pass.get()
        if not username or not password:
            show_popup_error("Username and password cannot be empty.", title="Login Error", parent=self)
            return
        self.btn_login.configure(state="disabled")

        def done(role):
            self.btn_login.configure(state="normal")
            if role is None:
                self.ent_pass.delete(0, "end")
                show_popup_error("Invalid username or password.", title="Login Failed", parent=self)
                return
            logger.info("User %s logged in as %s", username, role)
            show_popup_info("Login successful. Welcome!", parent=self)
            self.destroy()
            self.on_login(username, role)

        def failed(exc):
            self.btn_login.configure(state="normal")
            logger.exception("Login check failed", exc_info=exc)
            show_popup_error(f"Could not check credentials: {exc}", title="Login Error", parent=self)

        run_in_background(self, lambda: verify_user(username, password), done, failed)
