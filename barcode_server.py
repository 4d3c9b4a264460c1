"""Local HTTP listener that lets a phone camera act as a barcode scanner.

The phone opens the page served at "/", scans with html5-qrcode, and
POSTs each decoded barcode as the raw request body.
"""

import logging
import os
import socket
import sys
import threading
from typing import Protocol

from flask import Flask, Response, request
from werkzeug.serving import make_server

logger = logging.getLogger(__name__)

DEFAULT_PORT = 9999


def find_web_dir(candidates=None):
    """
    Locate the scanner page. A source checkout keeps web/ beside this
    module; a wheel install puts it under sys.prefix (see pyproject data-files).
    """
    if candidates is None:
        candidates = [
            os.path.join(os.path.dirname(os.path.abspath(__file__)), "web"),
            os.path.join(sys.prefix, "web"),
        ]
    for path in candidates:
        if os.path.isfile(os.path.join(path, "mobile_scanner.html")):
            return path
    return candidates[0]


WEB_DIR = find_web_dir()

STATIC_FILES = {
    "/": ("mobile_scanner.html", "text/html"),
    "/html5-qrcode.min.js": ("html5-qrcode.min.js", "application/javascript"),
}


class BarcodeReceiver(Protocol):
    def on_barcode_received(self, barcode: str) -> None: ...

    def set_server_status(self, status: str) -> None: ...


def _text(body, status):
    return Response(body, status=status, mimetype="text/plain")


def create_app(receiver: BarcodeReceiver, web_dir: str = WEB_DIR) -> Flask:
    app = Flask(__name__)

    def handle(path):
        if request.method == "POST":
            barcode = request.get_data(as_text=True).strip()
            if barcode:
                logger.info("Barcode received from %s: %s", request.remote_addr, barcode)
                receiver.on_barcode_received(barcode)
            return _text("OK", 200)

        if path not in STATIC_FILES:
            return _text("Not Found", 404)
        filename, content_type = STATIC_FILES[path]
        file_path = os.path.join(web_dir, filename)
        if not os.path.isfile(file_path):
            message = f"Error: File not found on server at path: {file_path}"
            logger.error(message)
            return _text(message, 404)
        with open(file_path, "rb") as f:
            return Response(f.read(), status=200, mimetype=content_type)

    @app.route("/", methods=["GET", "POST"])
    def index():
        return handle("/")

    @app.route("/<path:subpath>", methods=["GET", "POST"])
    def any_path(subpath):
        return handle("/" + subpath)

    @app.errorhandler(405)
    def method_not_allowed(error):
        return _text("Method Not Allowed", 405)

    return app


class BarcodeServer:
    """Runs the listener on a daemon thread so the GUI stays responsive."""

    def __init__(self, receiver: BarcodeReceiver, port: int = DEFAULT_PORT,
                 host: str = "0.0.0.0", web_dir: str = WEB_DIR):
        self.receiver = receiver
        self.port = port
        self.host = host
        self.app = create_app(receiver, web_dir)
        self._socket = None
        self._server = None
        self._thread = None

    @property
    def is_running(self):
        return self._thread is not None and self._thread.is_alive()

    def _bind(self):
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            # on Windows SO_REUSEADDR would let two servers share the port
            if os.name != "nt":
                sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.bind((self.host, self.port))
            sock.listen()
        except OSError:
            sock.close()
            raise
        return sock

    def start(self):
        if self.is_running:
            return True
        # werkzeug exits the process on a failed bind, so bind here and pass the fd
        try:
            self._socket = self._bind()
        except OSError as e:
            logger.error("Could not start server on port %s: %s", self.port, e)
            self.receiver.set_server_status(f"Error: Could not start server on port {self.port}")
            return False
        self._server = make_server(self.host, self.port, self.app, threaded=False, fd=self._socket.fileno())
        self._thread = threading.Thread(target=self._server.serve_forever, name="barcode-server", daemon=True)
        self._thread.start()
        logger.info("Barcode server listening on %s:%s", self.host, self.port)
        self.receiver.set_server_status(f"Server started on port {self.port}. Listening...")
        return True

    def stop(self):
        if self._server is None:
            return
        self._server.shutdown()
        self._server.server_close()
        self._socket.close()
        if self._thread is not None:
            self._thread.join(timeout=5)
        self._server = None
        self._socket = None
        self._thread = None
        logger.info("Barcode server stopped")
        self.receiver.set_server_status("Server stopped.")
