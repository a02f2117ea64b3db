import logging
import os

from dotenv import load_dotenv
from flask import Flask
from flask_cors import CORS

from config import get_config

# Load environment variables from .env file
load_dotenv()

# Initialize logger
logger = logging.getLogger(__name__)

__version__ = "0.1.0"

__all__ = ["create_app", "__version__"]


def create_app(config_name: str | None = None) -> Flask:
    """Create and configure the Flask application.

    Args:
        config_name: Optional FLASK_ENV override ("development", "testing", "production").
    Returns:
        Flask: The configured Flask application instance.
    """
    if config_name:
        os.environ["FLASK_ENV"] = config_name

    config = get_config()

    app = Flask(__name__)
    app.config.from_object(config)

    _configure_app_settings(app)
    _configure_logging(app)
    _initialize_components(app)
    _initialize_cli(app)

    return app


def _configure_app_settings(app: Flask) -> None:
    """Configure basic application settings and validation."""
    if not app.config.get("SQLALCHEMY_DATABASE_URI"):
        raise ValueError("SQLALCHEMY_DATABASE_URI is not configured")

    app.config.setdefault("SQLALCHEMY_TRACK_MODIFICATIONS", False)
    app.json.sort_keys = False


def _configure_logging(app: Flask) -> None:
    """Configure application logging."""
    log_level = logging.DEBUG if app.debug else logging.INFO
    logger.setLevel(log_level)

    logger.debug("Application configuration:")
    logger.debug(f"- ENV: {app.config.get('ENVIRONMENT', 'Not set')}")
    logger.debug(f"- DEBUG: {app.debug}")
    logger.debug(f"- DATABASE_URI: {app.config.get('SQLALCHEMY_DATABASE_URI', 'Not set')}")
    logger.debug(f"- S3_RECEIPTS_BUCKET: {app.config.get('S3_RECEIPTS_BUCKET') or 'Not set'}")


def _initialize_components(app: Flask) -> None:
    """Initialize core application components."""
    from .database import init_database
    from .extensions import init_app as init_extensions

    # Database first so migrations see the bound SQLAlchemy instance
    init_database(app)
    init_extensions(app)

    _register_blueprints(app)

    from .errors import init_app as init_errors

    init_errors(app)
    logger.debug("Registered error handlers")

    _configure_cors(app)
    _log_registered_routes(app)


def _initialize_cli(app: Flask) -> None:
    """Register CLI commands."""
    from .bills.cli import register_commands as register_bill_commands

    register_bill_commands(app)
    logger.debug("Initialized CLI commands")


def _register_blueprints(app: Flask) -> None:
    """Register all application blueprints."""
    logger.debug("Registering blueprints...")

    from .api import bp as api_bp
    from .bills import bp as bills_bp
    from .health import bp as health_bp

    blueprint_configs = [
        (api_bp, "/api"),
        (bills_bp, "/api/communities"),
        (health_bp, "/health"),
    ]

    for bp, url_prefix in blueprint_configs:
        app.register_blueprint(bp, url_prefix=url_prefix)
        logger.debug(f"Registered blueprint: {bp.name} at {url_prefix}")


def _configure_cors(app: Flask) -> None:
    """Configure CORS for the JSON API."""
    cors_origins = app.config.get("CORS_ORIGINS", "*")
    if isinstance(cors_origins, str):
        cors_origins = [origin.strip() for origin in cors_origins.split(",") if origin.strip()]

    CORS(
        app,
        resources={
            r"/api/*": {
                "origins": cors_origins,
                "methods": ["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
                "allow_headers": ["Content-Type", "Authorization", "X-Requested-With"],
                "expose_headers": ["Content-Length"],
                "supports_credentials": False,
            }
        },
    )


def _log_registered_routes(app: Flask) -> None:
    """Log all registered routes for debugging."""
    logger.debug("Registered routes:")
    for rule in app.url_map.iter_rules():
        methods = list(rule.methods - {"OPTIONS", "HEAD"})
        logger.debug(f"  {rule.endpoint}: {rule.rule} {methods}")
