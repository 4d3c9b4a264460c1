import json

import pytest

from config import DEFAULT_CONFIG, load_config


def test_missing_file_gives_defaults(tmp_path):
    assert load_config(str(tmp_path / "nope.json")) == DEFAULT_CONFIG


def test_values_override_defaults(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"SERVER_PORT": 8080, "SHOP_NAME": "Corner Store"}), encoding="utf-8")
    config = load_config(str(path))
    assert config["SERVER_PORT"] == 8080
    assert config["SHOP_NAME"] == "Corner Store"
    assert config["BILLS_DIR"] == DEFAULT_CONFIG["BILLS_DIR"]


def test_invalid_json_reports_the_line(tmp_path):
    path = tmp_path / "config.json"
    path.write_text('{\n  "SERVER_PORT": 9999,\n  "SHOP_NAME": oops\n}\n', encoding="utf-8")
    with pytest.raises(ValueError) as exc:
        load_config(str(path))
    assert "Line 3" in str(exc.value)
    assert "oops" in str(exc.value)


@pytest.mark.parametrize("content", ['[1, 2]', '{"SERVER_PORT": "9999"}', '{"LOW_STOCK_THRESHOLD": true}'])
def test_rejects_bad_shapes(tmp_path, content):
    path = tmp_path / "config.json"
    path.write_text(content, encoding="utf-8")
    with pytest.raises(ValueError):
        load_config(str(path))
