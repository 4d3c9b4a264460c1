import os
import sys

import pytest

# ensure project root is on sys.path when running from tests/ folder
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

import db
from config import DEFAULT_CONFIG
from models import Product


@pytest.fixture
def database(tmp_path):
    old_path = db.get_db_path()
    db.set_db_path(tmp_path / "test.db")
    db.initialize_database()
    yield db
    db.set_db_path(old_path)


@pytest.fixture
def config(tmp_path):
    cfg = dict(DEFAULT_CONFIG)
    cfg["DB_FILE"] = str(tmp_path / "test.db")
    cfg["BILLS_DIR"] = str(tmp_path / "bills")
    cfg["LOG_FILE"] = ""
    return cfg


@pytest.fixture
def stocked(database):
    products = [
        Product("111", "Milk 1L", 50.0, 10, 5.0),
        Product("222", "Bread", 40.0, 3, 0.0),
        Product("333", "Soap", 25.5, 0, 18.0),
    ]
    for p in products:
        database.add_product(p)
    return {p.barcode: p for p in products}
