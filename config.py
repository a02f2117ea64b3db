"""Application configuration.

This module provides environment-specific configuration settings for the application.
"""

import os
from pathlib import Path
from typing import Any, Dict, Optional


class Config:
    """Base configuration with settings common to all environments."""

    # Security
    SECRET_KEY: str = os.getenv("SECRET_KEY", "dev-key-change-in-production")

    # Flask settings
    DEBUG: bool = os.getenv("DEBUG", "false").lower() == "true"
    TESTING: bool = False

    # Database settings
    SQLALCHEMY_TRACK_MODIFICATIONS: bool = False
    SQLALCHEMY_ENGINE_OPTIONS: Dict[str, Any] = {
        "pool_pre_ping": True,
        "pool_recycle": 300,  # 5 minutes
    }

    # Application settings
    APP_NAME: str = os.getenv("APP_NAME", "billsplit")
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "dev")
    CORS_ORIGINS: str = os.getenv("CORS_ORIGINS", "*")

    # S3 settings for receipt images (uploaded by the client, read here)
    S3_RECEIPTS_BUCKET: Optional[str] = os.getenv("S3_RECEIPTS_BUCKET")
    S3_REGION: str = os.getenv("S3_REGION", "eu-west-2")

    # Azure AI Document Intelligence
    AZURE_DOCUMENT_INTELLIGENCE_ENDPOINT: Optional[str] = os.getenv("AZURE_DOCUMENT_INTELLIGENCE_ENDPOINT")
    AZURE_DOCUMENT_INTELLIGENCE_KEY: Optional[str] = os.getenv("AZURE_DOCUMENT_INTELLIGENCE_KEY")
    DOCUMENT_ANALYSIS_MODEL_ID: str = os.getenv("DOCUMENT_ANALYSIS_MODEL_ID", "prebuilt-receipt")
    DOCUMENT_ANALYSIS_TIMEOUT: int = int(os.getenv("DOCUMENT_ANALYSIS_TIMEOUT", "120"))  # seconds
    DOCUMENT_ANALYSIS_POLLING_INTERVAL: int = int(os.getenv("DOCUMENT_ANALYSIS_POLLING_INTERVAL", "1"))

    # Bill defaults
    BILL_CURRENCY: str = "GBP"
    DEFAULT_EXCHANGE_RATE_GBP_TO_CNY: float = float(os.getenv("DEFAULT_EXCHANGE_RATE_GBP_TO_CNY", "9"))

    # Each OCR request costs a paid analysis call
    OCR_RATE_LIMIT: str = os.getenv("OCR_RATE_LIMIT", "30 per hour")
    RATELIMIT_STORAGE_URI: str = os.getenv("RATELIMIT_STORAGE_URI", "memory://")

    def __init__(self) -> None:
        """Initialize configuration."""
        os.environ.setdefault("FLASK_ENV", "development")

        self.SQLALCHEMY_DATABASE_URI = self._get_database_uri()

    def _get_database_uri(self) -> str:
        """Get the appropriate database URI for the current environment."""
        # Handle Heroku-style database URLs
        if "DATABASE_URL" in os.environ:
            uri = os.environ["DATABASE_URL"]
            if uri.startswith("postgres://"):
                uri = uri.replace("postgres://", "postgresql://", 1)
            return uri

        instance_path = Path(__file__).parent / "instance"
        instance_path.mkdir(exist_ok=True)
        return f'sqlite:///{instance_path}/billsplit-{os.getenv("FLASK_ENV")}.db'


class DevelopmentConfig(Config):
    """Development configuration."""

    DEBUG: bool = True


class UnitTestConfig(Config):  # noqa: D101
    """Testing configuration."""

    TESTING: bool = True
    DEBUG: bool = True
    RATELIMIT_ENABLED: bool = False
    AZURE_DOCUMENT_INTELLIGENCE_ENDPOINT: Optional[str] = "https://test.cognitiveservices.azure.com/"
    AZURE_DOCUMENT_INTELLIGENCE_KEY: Optional[str] = "test-key"
    S3_RECEIPTS_BUCKET: Optional[str] = "test-receipts"

    def _get_database_uri(self) -> str:
        return "sqlite:///:memory:"


class ProductionConfig(Config):
    """Production configuration."""

    DEBUG: bool = False
    TESTING: bool = False


def get_config() -> Config:
    """Get the appropriate configuration based on environment."""
    env = os.getenv("FLASK_ENV", "development").lower()

    configs = {
        "development": DevelopmentConfig,
        "testing": UnitTestConfig,
        "production": ProductionConfig,
    }

    config_class = configs.get(env, DevelopmentConfig)
    return config_class()
