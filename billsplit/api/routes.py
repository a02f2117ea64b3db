from __future__ import annotations

from typing import Tuple

from flask import Response, current_app, jsonify, request
from marshmallow import ValidationError

from billsplit.bills.exceptions import BillValidationError
from billsplit.extensions import limiter
from billsplit.services.exceptions import ReceiptIngestionError
from billsplit.services.receipt_ingestion import IngestionRequest, ReceiptIngestionService

from . import bp
from .schemas import REQUIRED_OCR_FIELDS, OcrRequestSchema

MISSING_FIELDS_MESSAGE = "Missing communityId, storagePath or createdBy"

ocr_request_schema = OcrRequestSchema()


def _error_response(message: str, code: int, **extra: object) -> Tuple[Response, int]:
    """Create the ``{"error": message}`` body used by every failing API call."""
    body = {"error": message}
    body.update(extra)
    return jsonify(body), code


def _handle_validation_error(error: ValidationError) -> Tuple[Response, int]:
    """Map request validation errors to a 400 response."""
    messages = error.messages if isinstance(error.messages, dict) else {}
    if any(field in messages for field in REQUIRED_OCR_FIELDS):
        return _error_response(MISSING_FIELDS_MESSAGE, 400)
    return _error_response("Invalid request", 400, errors=messages)


def _handle_service_error(error: Exception, operation: str) -> Tuple[Response, int]:
    """Handle pipeline errors consistently."""
    current_app.logger.error(f"Error in {operation}: {str(error)}", exc_info=True)
    message = str(error) or "Internal error"
    return _error_response(message, 500)


def _ocr_rate_limit() -> str:
    return str(current_app.config.get("OCR_RATE_LIMIT", "30 per hour"))


# Health Check
@bp.route("/health")
def health_check() -> Response:
    """API Health Check"""
    return jsonify({"status": "healthy"})


@bp.route("/ocr", methods=["POST"])
@limiter.limit(_ocr_rate_limit)
def ingest_receipt() -> Tuple[Response, int]:
    """Analyze an uploaded receipt and create a bill from it.

    Request body:
        communityId, storagePath, createdBy (required), exchangeRateGBPToCNY (optional, default 9)

    Returns:
        200 with billId, itemsCount, total and debug diagnostics;
        400 when a required field is missing; 500 when any pipeline stage fails
    """
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        payload = {}

    try:
        data = ocr_request_schema.load(payload)
    except ValidationError as e:
        return _handle_validation_error(e)

    ingestion_request = IngestionRequest(
        community_id=data["community_id"],
        storage_path=data["storage_path"],
        created_by=data["created_by"],
        exchange_rate=data.get("exchange_rate"),
    )

    try:
        result = ReceiptIngestionService.from_app_config().ingest(ingestion_request)
    except BillValidationError as e:
        return _error_response(e.message, 400)
    except ReceiptIngestionError as e:
        return _handle_service_error(e, f"receipt ingestion ({e.stage})")
    except Exception as e:
        return _handle_service_error(e, "receipt ingestion")

    current_app.logger.info(f"OCR created bill {result.bill_id} with {result.items_count} items")
    return jsonify(result.to_dict()), 200
