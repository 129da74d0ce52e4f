"""
Custom error handlers for the Flask application.

This module defines the `OwnershipError` raised when a user tries to edit a
store they do not own, and registers handlers for HTTP errors and unhandled
exceptions. Browser requests get a rendered error page; requests under
`/api/` get a JSON body so the front-end widgets and API clients can parse it.
"""
from flask import render_template, current_app, request, session, jsonify
from werkzeug.exceptions import HTTPException


class OwnershipError(Exception):
    """Raised when the current user is not the author of the store being edited."""


def _wants_json():
    return request.path.startswith('/api/')


def _error_response(status_code, title, message, details=None):
    """Builds either a JSON or an HTML error response for the current request."""
    if _wants_json():
        return jsonify({'error': message, 'status': status_code}), status_code
    return render_template(
        "error.html",
        title=title,
        error_code=status_code,
        error_title=title,
        error_message=message,
        details=details
    ), status_code


def _log_extra(e):
    return {
        'error_type': type(e).__name__,
        'error_details': str(e),
        'requested_url': request.url,
        'user_id': session.get('user_id'),
        'user_email': session.get('user_email'),
    }


def register_error_handlers(app):
    """
    Registers custom error handler functions with the Flask application instance.

    Args:
        app (Flask): The Flask application instance to which the error handlers
                     will be attached.
    """

    @app.errorhandler(OwnershipError)
    def ownership_error(e):
        """The user is logged in but is not the store's author."""
        current_app.logger.warning("Store ownership check failed.", extra=_log_extra(e))
        return _error_response(403, "Access Forbidden", str(e))

    @app.errorhandler(403)
    def forbidden_error(e):
        current_app.logger.warning(
            "Forbidden access attempt (403).",
            extra={**_log_extra(e), 'ip_address': request.remote_addr}
        )
        return _error_response(403, "Access Forbidden",
                               "You do not have permission to access this page or resource.")

    @app.errorhandler(404)
    def not_found_error(e):
        current_app.logger.warning(
            "Resource not found (404).",
            extra={**_log_extra(e), 'referrer': request.referrer}
        )
        return _error_response(404, "Page Not Found",
                               "The page or resource you were looking for could not be found.")

    @app.errorhandler(413)
    def request_too_large(e):
        current_app.logger.warning("Upload rejected: request too large (413).", extra=_log_extra(e))
        limit_mb = current_app.config['MAX_CONTENT_LENGTH'] // (1024 * 1024)
        return _error_response(413, "Upload Too Large", f"Uploads are limited to {limit_mb}MB.")

    @app.errorhandler(HTTPException)
    def http_error(e):
        """Any other HTTP error (400 bad request, 401, 405, CSRF failures...) keeps its status code."""
        current_app.logger.warning(f"HTTP error ({e.code}).", extra=_log_extra(e))
        return _error_response(e.code, e.name, e.description)

    @app.errorhandler(Exception)
    def internal_server_error(e):
        """
        Handles all other unhandled exceptions as a 500 Internal Server Error.
        Logs the exception with a full stack trace.
        """
        current_app.logger.exception("Unhandled Internal Server Error (500) occurred.", extra=_log_extra(e))
        if current_app.debug:
            details = f"Exception Type: {type(e).__name__}\nDetails: {str(e)}"
        else:
            details = "We are sorry, but something went wrong on our end."
        return _error_response(500, "Internal Server Error",
                               "An unexpected error occurred on the server.", details)

    app.logger.info("Custom error handlers registered.")
