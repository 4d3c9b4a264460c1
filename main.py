import logging

import customtkinter as ctk

import db
from config import load_config, setup_logging
from gui_dashboard import Dashboard
from gui_login import LoginWindow
from models import User

logger = logging.getLogger(__name__)


def main():
    config = load_config()
    setup_logging(config)
    ctk.set_appearance_mode(config["APPEARANCE_MODE"])
    ctk.set_default_color_theme(config["COLOR_THEME"])

    db.set_db_path(config["DB_FILE"])
    db.initialize_database()

    while True:
        session = {}

        def on_login(username, role):
            session["user"] = User(username, role)

        login = LoginWindow(on_login)
        login.mainloop()
        if "user" not in session:
            break

        def on_logout():
            session["logged_out"] = True

        app = Dashboard(session["user"], config, on_logout)
        app.mainloop()
        if not session.get("logged_out"):
            break
    logger.info("Application closed")


if __name__ == "__main__":
    main()
