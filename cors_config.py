# CORS configuration
import logging

from flask import request
from flask_cors import CORS

logger = logging.getLogger(__name__)


def configure_cors(app, origins):
    # Read-only API: no credentials, GET only
    CORS(app, resources={
        r"/api/*": {
            "origins": list(origins),
            "methods": ["GET", "OPTIONS"],
            "allow_headers": ["Content-Type", "X-Requested-With"],
        }
    })

    @app.after_request
    def log_cross_origin(response):
        origin = request.headers.get("Origin")
        if origin:
            logger.debug(f"CORS - Origin: {origin} {request.method} -> {response.status_code}")
        return response

    return app
