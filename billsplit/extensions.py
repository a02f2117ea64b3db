"""Application Flask extensions.

This module initializes and configures all Flask extensions used in the application.
"""

import logging
import os

from flask import Flask
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy

logger = logging.getLogger(__name__)

# Initialize SQLAlchemy
db = SQLAlchemy()

# Initialize rate limiter; the OCR endpoint carries its own tighter limit
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=["400 per day", "100 per hour"],
)

# Initialize Flask-Migrate for database migrations
migrate = Migrate()


def _configure_migration_directory(app: Flask) -> None:
    """Configure Flask-Migrate with the repository migrations directory."""
    migration_dir = os.environ.get("MIGRATIONS_DIR")
    if not migration_dir:
        migration_dir = os.path.join(os.path.dirname(os.path.dirname(__file__)), "migrations")
    logger.debug(f"Using migration directory: {migration_dir}")

    migrate.init_app(app, db, directory=migration_dir)


def init_app(app: Flask) -> None:
    """Initialize all extensions with the Flask application.

    SQLAlchemy itself is bound by ``database.init_database`` so that engine
    options are settled before the engine is created.
    """
    _configure_migration_directory(app)

    app.config.setdefault("RATELIMIT_STORAGE_URI", "memory://")
    limiter.init_app(app)
