import json
import logging
import os

DEFAULT_CONFIG = {
    "DB_FILE": "inventory.db",
    "BILLS_DIR": "bills",
    "LOG_FILE": "billing.log",
    "SHOP_NAME": "TEAM 5",
    "SHOP_ADDRESS": "Mavoor Road, Kozhikode, Kerala",
    "CURRENCY": "Rs.",
    "TIMEZONE": "Asia/Kolkata",
    "SERVER_PORT": 9999,
    "LOW_STOCK_THRESHOLD": 10,
    "TOP_SELLING_LIMIT": 5,
    "APPEARANCE_MODE": "light",
    "COLOR_THEME": "blue",
}

INT_KEYS = ("SERVER_PORT", "LOW_STOCK_THRESHOLD", "TOP_SELLING_LIMIT")

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def load_config(config_file="config.json"):
    """
    Read config.json and fill in defaults for any missing key.
    A missing file means every default applies.
    """
    config = dict(DEFAULT_CONFIG)
    if not os.path.exists(config_file):
        return config
    try:
        with open(config_file, 'r', encoding='utf-8') as f:
            loaded = json.load(f)
    except json.JSONDecodeError as e:
        with open(config_file, 'r', encoding='utf-8') as f:
            lines = f.readlines()
            error_line = lines[e.lineno - 1] if e.lineno <= len(lines) else "Unknown"
        raise ValueError(f"Config file {config_file} is not valid: {str(e)}\nLine {e.lineno}: {error_line.strip()}")

    if not isinstance(loaded, dict):
        raise ValueError(f"Config file {config_file} must contain a JSON object")
    config.update(loaded)

    bad_keys = [key for key in INT_KEYS if isinstance(config[key], bool) or not isinstance(config[key], int)]
    if bad_keys:
        raise ValueError(f"These keys in {config_file} must be whole numbers: {', '.join(bad_keys)}")
    return config


def setup_logging(config, level=logging.INFO):
    handlers = [logging.StreamHandler()]
    if config.get("LOG_FILE"):
        handlers.append(logging.FileHandler(config["LOG_FILE"], encoding="utf-8"))
    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=handlers)
