"""Always-200 HTTP responder for external uptime probes."""

import logging
import threading

from flask import Flask, jsonify
from werkzeug.serving import make_server

from .constants import APP_NAME

logger = logging.getLogger(APP_NAME)


def create_app() -> Flask:
    app = Flask(__name__)

    @app.route("/", methods=["GET"])
    @app.route("/health", methods=["GET"])
    def health_check():
        """Health check endpoint."""
        return jsonify({"status": "ok", "service": APP_NAME}), 200

    return app


def start_liveness_server(host: str, port: int) -> threading.Thread:
    """Serves the liveness app from a daemon thread.

    Returns:
        threading.Thread: The running server thread.

    Raises:
        OSError: If the address cannot be bound.
    """
    server = make_server(host, port, create_app(), threaded=True)
    thread = threading.Thread(
        target=server.serve_forever, name="liveness", daemon=True
    )
    thread.start()
    logger.info(f"Liveness endpoint: http://{host}:{port}/")
    return thread
