import qrcode


def scanner_url(ip, port):
    return f"http://{ip}:{port}/"


def generate_qr_image(text, width=200, height=200):
    """Return a PIL image of a QR code encoding text, resized to width x height."""
    if not text:
        raise ValueError("Cannot generate a QR code for empty text")
    qr = qrcode.QRCode(box_size=10, border=4)
    qr.add_data(text)
    qr.make(fit=True)
    img = qr.make_image(fill_color="black", back_color="white").get_image()
    return img.convert("RGB").resize((width, height))
