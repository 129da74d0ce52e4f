"""
Application factory for the Flask web application.

This module contains the `create_app` function, which is responsible for
initializing and configuring the Flask application instance. This includes
setting up logging, configuration, error handlers, CSRF protection, JWT
support for the API, registering blueprints, template helpers and
initializing the database.
"""
import os
import sys
import logging
from urllib.parse import urlencode

from pythonjsonlogger import jsonlogger
from flask import Flask, g

from app.config import Config, BASE_DIR, DEV_SECRET_KEY
from app.error import register_error_handlers
from app.extensions import csrf, jwt
from app.models import user as user_model


# --- Custom JSON Logging Helper Classes ---
class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """
    Custom JSON log formatter to ensure consistent fields like 'timestamp',
    'level', 'logger_name', and add application-specific default fields.
    """
    def add_fields(self, log_record, record, message_dict):
        super(CustomJsonFormatter, self).add_fields(log_record, record, message_dict)
        if not log_record.get('timestamp'):
            log_record['timestamp'] = record.created
        if not log_record.get('level'):
            log_record['level'] = record.levelname
        if not log_record.get('logger_name'):
            log_record['logger_name'] = record.name
        log_record['application'] = 'storefinder'


class StdoutFilter(logging.Filter):
    """Lets DEBUG and INFO records through; intended for the STDOUT handler."""
    def filter(self, record):
        return record.levelno <= logging.INFO


class StderrFilter(logging.Filter):
    """Lets WARNING and above through; intended for the STDERR handler."""
    def filter(self, record):
        return record.levelno >= logging.WARNING


def configure_logging(app):
    """
    Replaces Flask's and Werkzeug's default handlers with JSON handlers:
    DEBUG/INFO to stdout, WARNING and above to stderr.
    """
    json_formatter = CustomJsonFormatter(
        '%(asctime)s %(levelname)s %(name)s %(module)s %(funcName)s %(lineno)d %(message)s'
    )

    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setFormatter(json_formatter)
    stdout_handler.addFilter(StdoutFilter())
    stdout_handler.setLevel(logging.DEBUG)

    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setFormatter(json_formatter)
    stderr_handler.addFilter(StderrFilter())
    stderr_handler.setLevel(logging.WARNING)

    level = logging.DEBUG if app.debug else logging.INFO
    # app.logger is the 'app' logger, so the data layer's 'app.*' loggers inherit these handlers.
    for logger in (app.logger, logging.getLogger('werkzeug')):
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
        logger.addHandler(stdout_handler)
        logger.addHandler(stderr_handler)
        logger.setLevel(level)
        logger.propagate = False  # Avoid duplicate lines through the root logger.

    app.logger.info("Application logging configured for JSON output to stdout/stderr.")


def register_template_helpers(app):
    """Values and helpers available in every template."""

    menu = [
        {'endpoint': 'stores_bp.index', 'title': 'Stores', 'icon': 'store'},
        {'endpoint': 'stores_bp.stores_by_tag', 'title': 'Tags', 'icon': 'tag'},
        {'endpoint': 'stores_bp.top_stores', 'title': 'Top', 'icon': 'top'},
        {'endpoint': 'stores_bp.add_store', 'title': 'Add', 'icon': 'add'},
        {'endpoint': 'stores_bp.map_page', 'title': 'Map', 'icon': 'map'},
    ]

    def static_map(lat, lng):
        """URL of a static Google map image centred on the store."""
        query = urlencode({
            'zoom': 14,
            'size': '800x150',
            'key': app.config['MAP_KEY'],
            'markers': f'{lat},{lng}',
            'scale': 2,
        })
        return f'https://maps.googleapis.com/maps/api/staticmap?{query}'

    @app.context_processor
    def inject_globals():
        user = g.get('user')
        return dict(
            site_name=app.config['SITE_NAME'],
            map_key=app.config['MAP_KEY'],
            menu=menu,
            current_user=user,
            hearts=user_model.get_heart_ids(user['id']) if user else [],
            static_map=static_map,
        )


def create_app(config_object=None, test_config=None):
    """
    Application factory function. Creates, configures, and returns the Flask app instance.

    Args:
        config_object: Configuration class to load (defaults to `Config`).
        test_config (dict, optional): Extra settings applied last, mainly for tests.
    """
    app = Flask(
        __name__,
        template_folder=os.path.join(BASE_DIR, "templates"),
        static_folder=os.path.join(BASE_DIR, "static"),
    )

    # --- Application Configuration ---
    app.config.from_object(config_object or Config)
    if test_config:
        app.config.from_mapping(test_config)

    configure_logging(app)

    # --- Ensure Runtime Directories Exist ---
    os.makedirs(app.config['UPLOAD_FOLDER'], exist_ok=True)
    os.makedirs(os.path.dirname(os.path.abspath(app.config['DATABASE'])), exist_ok=True)

    # Secret Key Configuration: Crucial for session security and CSRF protection.
    IS_PROD = os.environ.get("FLASK_ENV") == "production"
    if IS_PROD and not os.environ.get("SECRET_KEY"):
        app.logger.critical("FATAL: SECRET_KEY environment variable must be set in production. Application cannot start.")
        raise RuntimeError("SECRET_KEY must be set in production for security reasons.")
    if app.config['SECRET_KEY'] == DEV_SECRET_KEY:
        app.logger.warning(
            "SECURITY WARNING: Running with a default development secret key. "
            "Set the SECRET_KEY environment variable to a strong, unique random value."
        )

    # Register custom error handlers (e.g., for 404, 500 errors).
    register_error_handlers(app)

    # --- Extensions ---
    csrf.init_app(app)
    jwt.init_app(app)

    # --- Register Blueprints ---
    from routes import blueprints
    from routes.api import api_bp
    for bp in blueprints:
        app.register_blueprint(bp)
    # The API blueprint runs its own CSRF check so bearer-token clients are not blocked.
    csrf.exempt(api_bp)
    app.logger.info(f"Registered {len(blueprints)} blueprints.")

    register_template_helpers(app)

    # --- Database Initialization ---
    with app.app_context():
        from app.db import init_db
        init_db()

    app.logger.info(f"Flask application '{app.name}' created and configured successfully. Debug mode: {app.debug}")
    return app
