"""Application-wide JSON error handlers."""

from __future__ import annotations

from typing import Tuple

from flask import Blueprint, Flask, Response, current_app, jsonify
from werkzeug.exceptions import HTTPException

# Initialize Blueprint
bp = Blueprint("errors", __name__)


def init_app(app: Flask) -> None:
    """Initialize error handlers with the Flask application."""
    app.register_blueprint(bp)


def _create_error_response(message: str, status_code: int) -> Tuple[Response, int]:
    """Create the ``{"error": message}`` body shared with the API routes."""
    return jsonify({"error": message}), status_code


@bp.app_errorhandler(HTTPException)
def handle_http_exception(error: HTTPException) -> Tuple[Response, int]:
    """Handle HTTP exceptions (404, 405, 429, ...)."""
    status_code = error.code if error.code is not None else 500
    return _create_error_response(error.description or "HTTP error occurred", status_code)


@bp.app_errorhandler(Exception)
def handle_exception(error: Exception) -> Tuple[Response, int]:
    """Handle all unhandled exceptions."""
    current_app.logger.error(f"Unhandled exception: {str(error)}", exc_info=True)
    return _create_error_response("Internal error", 500)
