"""Error handlers for the application.

Every error leaves the service as JSON ``{"error": code, "message": ...}``;
there are no HTML pages in this API.
"""
import logging

from flask import jsonify
from werkzeug.exceptions import HTTPException

from authz.core.exceptions import AuthzError, StorageUnavailable

logger = logging.getLogger(__name__)

# Werkzeug status code -> stable error code
_HTTP_CODES = {
    400: "invalid_request",
    401: "unauthorized",
    403: "forbidden",
    404: "not_found",
    405: "method_not_allowed",
    409: "conflict",
    413: "payload_too_large",
    415: "unsupported_media_type",
}


def error_response(error: AuthzError):
    """JSON response tuple for an engine error."""
    response = jsonify(error.to_dict())
    if isinstance(error, StorageUnavailable):
        response.headers["Retry-After"] = "1"
    return response, error.status


def register_error_handlers(app):
    """Register error handlers with the Flask app."""

    @app.errorhandler(AuthzError)
    def handle_authz_error(error: AuthzError):
        """Handle engine errors (forbidden, storage unavailable, validation...)."""
        if error.status >= 500:
            logger.error(f"{error.code}: {error.message}")
        return error_response(error)

    @app.errorhandler(HTTPException)
    def handle_http_error(error: HTTPException):
        """Handle werkzeug HTTP errors (unknown route, wrong method, bad JSON...)."""
        code = _HTTP_CODES.get(error.code, "http_error")
        return jsonify({"error": code, "message": error.description or error.name}), error.code

    @app.errorhandler(Exception)
    def handle_exception(error):
        """Handle uncaught exceptions."""
        # ALWAYS log the error with traceback - the body never carries details
        logger.error(f"Unhandled exception: {error}", exc_info=True)
        return jsonify({"error": "internal_error", "message": "An unexpected error occurred"}), 500
