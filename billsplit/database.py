"""Database configuration and utilities for the bill splitter.

This module provides a centralized way to manage database connections,
initialization, and utilities for the application.
"""

from __future__ import annotations

import logging
import os

from flask import Flask
from sqlalchemy import event
from sqlalchemy.engine import Engine

from .extensions import db

# Configure logger
logger = logging.getLogger(__name__)

__all__ = [
    "db",
    "init_database",
]


def _get_database_uri_from_env() -> str | None:
    """Get database URI from environment variable."""
    db_url = os.environ.get("DATABASE_URL")
    if not db_url:
        return None

    if db_url.startswith("postgres://"):
        db_url = db_url.replace("postgres://", "postgresql://", 1)

    return db_url


def _get_database_uri_fallback() -> str:
    """Get fallback SQLite database URI."""
    instance_path = os.path.join(os.path.dirname(__file__), "..", "instance")
    os.makedirs(instance_path, exist_ok=True)
    db_path = os.path.join(instance_path, f"billsplit-{os.getenv('FLASK_ENV', 'development')}.db")
    return f"sqlite:///{db_path}"


def _get_database_uri(app: Flask) -> str:
    """Get the database URI with proper fallback logic.

    Priority order:
    1. SQLALCHEMY_DATABASE_URI from app config
    2. DATABASE_URL environment variable (with postgres:// to postgresql:// conversion)
    3. SQLite database file in instance directory
    """
    db_url = app.config.get("SQLALCHEMY_DATABASE_URI")
    if db_url:
        return str(db_url)

    db_url = _get_database_uri_from_env()
    if db_url:
        return db_url

    return _get_database_uri_fallback()


@event.listens_for(Engine, "connect")
def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:  # type: ignore[no-untyped-def]
    """Turn on FK enforcement for SQLite so bill items cascade with their bill."""
    if type(dbapi_connection).__module__.startswith("sqlite3"):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def init_database(app: Flask) -> None:
    """Initialize the database with the Flask app.

    This function configures SQLAlchemy with the appropriate database URI,
    sets up connection pooling for production, and creates missing tables.
    """
    # Only initialize if not already done
    if "sqlalchemy" in app.extensions:
        return

    try:
        db_uri = _get_database_uri(app)
        app.config["SQLALCHEMY_DATABASE_URI"] = db_uri
        app.config["SQLALCHEMY_TRACK_MODIFICATIONS"] = False

        # Configure connection pooling for production databases
        if not db_uri.startswith("sqlite"):
            app.config["SQLALCHEMY_ENGINE_OPTIONS"] = {
                "pool_pre_ping": True,
                "pool_recycle": 300,  # Recycle connections after 5 minutes
                "pool_size": 5,
                "max_overflow": 10,
            }
        else:
            app.config["SQLALCHEMY_ENGINE_OPTIONS"] = {}

        db.init_app(app)

        # Models must be imported before create_all so their tables are registered
        from .bills import models  # noqa: F401

        with app.app_context():
            db.create_all()
        logger.info(f"Database initialized successfully with URI: {db_uri}")

    except Exception as e:
        logger.error("Failed to initialize database: %s", e)
        raise RuntimeError(f"Failed to initialize database: {e}") from e

