"""Health check endpoints for the application."""

from datetime import UTC, datetime
import logging
from typing import cast

from flask import Response, current_app, jsonify
from sqlalchemy import text

from billsplit.extensions import db
from billsplit.services.ocr_service import DocumentAnalysisConfig

from . import bp

logger = logging.getLogger(__name__)


@bp.route("/")
def check() -> Response:
    """Report database connectivity and whether receipt analysis is configured.

    Returns:
        JSON: Status, version, timestamp, database and analysis status
    """
    try:
        db.session.execute(text("SELECT 1"))
        db_status = "connected"
    except Exception as e:
        logger.error(f"Database connection error: {str(e)}")
        db_status = f"error: {str(e)}"

    analysis_config = DocumentAnalysisConfig.from_mapping(current_app.config)

    from billsplit import __version__

    return cast(
        Response,
        jsonify(
            {
                "status": "ok",
                "version": __version__,
                "timestamp": datetime.now(UTC).isoformat(),
                "database": db_status,
                "documentAnalysis": "configured" if analysis_config.is_configured else "not configured",
                "receiptsBucket": current_app.config.get("S3_RECEIPTS_BUCKET") or None,
            }
        ),
    )
