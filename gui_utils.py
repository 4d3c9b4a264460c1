import logging
import queue
import threading
import tkinter as tk
from tkinter import messagebox, ttk

import customtkinter as ctk

from errors import PosError

logger = logging.getLogger(__name__)

POLL_MS = 50


def show_popup_info(msg, title="Success", parent=None):
    """
    Show a short info popup.
    """
    messagebox.showinfo(title, msg, parent=parent)


def show_popup_warning(msg, title="Warning", parent=None):
    messagebox.showwarning(title, msg, parent=parent)


def show_popup_error(msg, title="Error", parent=None):
    messagebox.showerror(title, msg, parent=parent)


def show_popup_question(msg, title="Confirm", parent=None):
    """
    Yes/No popup, returns True/False
    """
    return messagebox.askyesno(title, msg, parent=parent)


def show_popup_custom(title, message, buttons, parent=None):
    """
    Show a custom popup with a row of buttons.
    buttons: list of (label, callback); callback may be None.
    Returns the index of the button pressed, or None if the window was closed.
    """
    popup = ctk.CTkToplevel(parent)
    popup.title(title)
    popup.geometry("420x200")
    popup.resizable(False, False)
    if parent is not None:
        popup.transient(parent)
    ctk.CTkLabel(popup, text=message, font=("Arial", 14), wraplength=380).pack(pady=30, padx=20)
    btn_frame = ctk.CTkFrame(popup, fg_color="transparent")
    btn_frame.pack(pady=10)
    results = {'btn_pressed': None}

    def make_callback(idx, cb):
        def _cb():
            results['btn_pressed'] = idx
            popup.destroy()
            if cb:
                cb()
        return _cb

    for idx, (label, cb) in enumerate(buttons):
        ctk.CTkButton(btn_frame, text=label, command=make_callback(idx, cb), width=120,
                      font=("Arial", 12)).pack(side="left", padx=10)
    popup.after(100, popup.grab_set)
    popup.wait_window()
    return results['btn_pressed']


def error_message(exc):
    if isinstance(exc, PosError):
        return str(exc)
    return f"An error occurred: {exc}"


def handle_task_error(widget, exc, title):
    if isinstance(exc, PosError):
        logger.warning("%s: %s", title, exc)
    else:
        logger.error("%s", title, exc_info=(type(exc), exc, exc.__traceback__))
    show_popup_error(error_message(exc), title=title, parent=widget.winfo_toplevel())


def run_in_background(widget, func, on_success=None, on_error=None, title="Error"):
    """
    Run func on a worker thread and hand its result back on the Tk thread.

    Tk widgets must only be touched from the main loop, so the worker
    puts its outcome on a queue that widget.after polls. on_success gets
    the return value; on_error gets the exception and defaults to an
    error popup titled with title.
    """
    results = queue.Queue(maxsize=1)

    def worker():
        try:
            results.put((True, func()))
        except Exception as e:
            results.put((False, e))

    def poll():
        try:
            ok, value = results.get_nowait()
        except queue.Empty:
            widget.after(POLL_MS, poll)
            return
        if ok:
            if on_success:
                on_success(value)
        elif on_error:
            on_error(value)
        else:
            handle_task_error(widget, value, title)

    threading.Thread(target=worker, daemon=True).start()
    widget.after(POLL_MS, poll)


def make_tree(parent, columns, widths=None, height=10):
    """Treeview with headings and a vertical scrollbar, packed into its own frame."""
    frame = ctk.CTkFrame(parent, fg_color="transparent")
    tree = ttk.Treeview(frame, columns=columns, show="headings", height=height, selectmode="browse")
    for i, col in enumerate(columns):
        tree.heading(col, text=col)
        if widths:
            tree.column(col, width=widths[i], anchor="w" if i == 0 else "center")
    scrollbar = ttk.Scrollbar(frame, orient="vertical", command=tree.yview)
    tree.configure(yscrollcommand=scrollbar.set)
    tree.pack(side="left", fill="both", expand=True)
    scrollbar.pack(side="right", fill="y")
    return frame, tree


def fill_tree(tree, rows):
    for row in tree.get_children():
        tree.delete(row)
    for values in rows:
        tree.insert("", tk.END, values=values)


def labelled_section(parent, title):
    """A frame with a bold caption, standing in for a titled border."""
    section = ctk.CTkFrame(parent)
    ctk.CTkLabel(section, text=title, font=("Arial", 13, "bold")).pack(anchor="w", padx=10, pady=(6, 2))
    body = ctk.CTkFrame(section, fg_color="transparent")
    body.pack(fill="x", padx=10, pady=(0, 8))
    return section, body
