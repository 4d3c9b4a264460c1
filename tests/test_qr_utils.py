import pytest

from qr_utils import generate_qr_image, scanner_url


def test_scanner_url():
    assert scanner_url("192.168.1.20", 9999) == "http://192.168.1.20:9999/"


def test_qr_image_size_and_mode():
    img = generate_qr_image(scanner_url("192.168.1.20", 9999), 180, 180)
    assert img.size == (180, 180)
    assert img.mode == "RGB"
    # quiet zone is white, the finder pattern in the top-left is black
    assert min(img.getpixel((0, 0))) > 200
    assert max(img.getpixel((int(180 * 0.2), int(180 * 0.2)))) < 60


def test_qr_needs_text():
    with pytest.raises(ValueError):
        generate_qr_image("")
