import customtkinter as ctk

import db
from gui_utils import (
    fill_tree, labelled_section, make_tree, run_in_background, show_popup_error, show_popup_info,
    show_popup_question, show_popup_warning,
)
from models import ROLE_STAFF


class UsersTab(ctk.CTkFrame):
    def __init__(self, master, config):
        super().__init__(master, fg_color="transparent")
        self.config_data = config
        self.build_ui()

    def build_ui(self):
        section, body = labelled_section(self, "Add New Staff Member")
        section.pack(fill="x", padx=10, pady=5)
        ctk.CTkLabel(body, text="Username:").pack(side="left")
        self.ent_new_user = ctk.CTkEntry(body, width=160)
        self.ent_new_user.pack(side="left", padx=5)
        ctk.CTkLabel(body, text="Password:").pack(side="left")
        self.ent_new_pass = ctk.CTkEntry(body, width=160, show="*")
        self.ent_new_pass.pack(side="left", padx=5)
        ctk.CTkButton(body, text="Add Staff", command=self.add_staff).pack(side="left", padx=5)

        section, body = labelled_section(self, "Reset User Password")
        section.pack(fill="x", padx=10, pady=5)
        ctk.CTkLabel(body, text="Select User:").pack(side="left")
        self.user_var = ctk.StringVar(value="")
        self.user_menu = ctk.CTkOptionMenu(body, values=[""], variable=self.user_var, width=160)
        self.user_menu.pack(side="left", padx=5)
        ctk.CTkLabel(body, text="New Password:").pack(side="left")
        self.ent_reset_pass = ctk.CTkEntry(body, width=160, show="*")
        self.ent_reset_pass.pack(side="left", padx=5)
        ctk.CTkButton(body, text="Reset Password", command=self.reset_password).pack(side="left", padx=5)

        section, body = labelled_section(self, "Current Users")
        section.pack(fill="both", expand=True, padx=10, pady=5)
        frame, self.users_tree = make_tree(body, ("Username", "Role"), (240, 160), height=12)
        frame.pack(fill="both", expand=True)

    def refresh(self):
        def show(users):
            fill_tree(self.users_tree, [(u.username, u.role) for u in users])
            names = [u.username for u in users]
            self.user_menu.configure(values=names or [""])
            if self.user_var.get() not in names:
                self.user_var.set(names[0] if names else "")

        run_in_background(self, db.get_all_users, show, title="Could not fetch user list")

    def add_staff(self):
        parent = self.winfo_toplevel()
        username = self.ent_new_user.get().strip()
        password = self.ent_new_pass.get()
        if not username or not password:
            show_popup_error("Username and password cannot be empty.", title="Input Error", parent=parent)
            return

        def added(_):
            show_popup_info("Staff member added successfully.", parent=parent)
            self.ent_new_user.delete(0, "end")
            self.ent_new_pass.delete(0, "end")
            self.refresh()

        run_in_background(self, lambda: db.add_user(username, password, ROLE_STAFF), added,
                          title="Failed to add staff member")

    def reset_password(self):
        parent = self.winfo_toplevel()
        username = self.user_var.get()
        new_password = self.ent_reset_pass.get()
        if not username:
            show_popup_warning("Please select a user to reset their password.", title="No User Selected",
                               parent=parent)
            return
        if not new_password:
            show_popup_error("The new password cannot be empty.", title="Input Error", parent=parent)
            return
        if not show_popup_question(f"Are you sure you want to reset the password for user '{username}'?",
                                   title="Confirm Password Reset", parent=parent):
            self.ent_reset_pass.delete(0, "end")
            return

        def done(_):
            self.ent_reset_pass.delete(0, "end")
            show_popup_info(f"Password for user '{username}' has been reset successfully.", parent=parent)

        run_in_background(self, lambda: db.reset_user_password(username, new_password), done,
                          title="Failed to reset password")
