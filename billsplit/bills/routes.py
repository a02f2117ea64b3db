from __future__ import annotations

from typing import Any, Tuple

from flask import Response, current_app, jsonify, request
from marshmallow import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from billsplit.api.schemas import BillDetailSchema, BillItemSchema, BillSchema, BillUpdateSchema, UserActionSchema
from billsplit.bills import services as bill_services
from billsplit.bills.exceptions import (
    BillItemNotFoundError,
    BillNotFoundError,
    BillValidationError,
)

from . import bp

bills_schema = BillSchema(many=True)
bill_detail_schema = BillDetailSchema()
bill_item_schema = BillItemSchema()
bill_update_schema = BillUpdateSchema()
user_action_schema = UserActionSchema()


def _json_body() -> dict[str, Any]:
    payload = request.get_json(silent=True)
    return payload if isinstance(payload, dict) else {}


def _handle_not_found(error: BillNotFoundError | BillItemNotFoundError) -> Tuple[Response, int]:
    return jsonify({"error": str(error)}), 404


def _handle_validation_error(error: ValidationError) -> Tuple[Response, int]:
    return jsonify({"error": "Validation failed", "errors": error.messages}), 400


def _handle_bill_error(error: BillValidationError) -> Tuple[Response, int]:
    return jsonify(error.to_dict()), error.status_code


def _handle_service_error(error: Exception, operation: str) -> Tuple[Response, int]:
    current_app.logger.error(f"Error in {operation}: {str(error)}", exc_info=True)
    return jsonify({"error": f"Failed to {operation}"}), 500


def _bill_detail(bill: Any) -> dict[str, Any]:
    data = bill_detail_schema.dump(bill)
    data["split"] = bill_services.compute_split(bill)
    return data


@bp.route("/<community_id>/bills", methods=["GET"])
def list_bills(community_id: str) -> Tuple[Response, int]:
    """List a community's bills, newest first."""
    bills = bill_services.get_bills_for_community(community_id)
    return jsonify({"bills": bills_schema.dump(bills)}), 200


@bp.route("/<community_id>/bills/<bill_id>", methods=["GET"])
def get_bill(community_id: str, bill_id: str) -> Tuple[Response, int]:
    """Get a bill with its items and the per-participant split."""
    try:
        bill = bill_services.get_bill_for_community(community_id, bill_id)
    except BillNotFoundError as e:
        return _handle_not_found(e)
    return jsonify(_bill_detail(bill)), 200


@bp.route("/<community_id>/bills/<bill_id>", methods=["PATCH"])
def update_bill(community_id: str, bill_id: str) -> Tuple[Response, int]:
    """Rename a bill or change its exchange rate."""
    try:
        bill = bill_services.get_bill_for_community(community_id, bill_id)
        data = bill_update_schema.load(_json_body())
        bill = bill_services.update_bill(bill, data)
        return jsonify(_bill_detail(bill)), 200
    except BillNotFoundError as e:
        return _handle_not_found(e)
    except ValidationError as e:
        return _handle_validation_error(e)
    except BillValidationError as e:
        return _handle_bill_error(e)
    except SQLAlchemyError as e:
        return _handle_service_error(e, "update bill")


@bp.route("/<community_id>/bills/<bill_id>", methods=["DELETE"])
def delete_bill(community_id: str, bill_id: str) -> Tuple[Response, int]:
    """Delete a bill and its items."""
    try:
        bill = bill_services.get_bill_for_community(community_id, bill_id)
        bill_services.delete_bill(bill)
        return jsonify({"billId": bill_id, "deleted": True}), 200
    except BillNotFoundError as e:
        return _handle_not_found(e)
    except SQLAlchemyError as e:
        return _handle_service_error(e, "delete bill")


@bp.route("/<community_id>/bills/<bill_id>/items/<item_id>/claim", methods=["POST"])
def toggle_claim(community_id: str, bill_id: str, item_id: str) -> Tuple[Response, int]:
    """Claim an item privately, or release the caller's own claim."""
    try:
        data = user_action_schema.load(_json_body())
        bill = bill_services.get_bill_for_community(community_id, bill_id)
        item = bill_services.toggle_claim(bill, item_id, data["user_id"])
        return jsonify({"item": bill_item_schema.dump(item), "split": bill_services.compute_split(bill)}), 200
    except ValidationError as e:
        return _handle_validation_error(e)
    except (BillNotFoundError, BillItemNotFoundError) as e:
        return _handle_not_found(e)
    except BillValidationError as e:
        return _handle_bill_error(e)
    except SQLAlchemyError as e:
        return _handle_service_error(e, "toggle claim")


@bp.route("/<community_id>/bills/<bill_id>/participants", methods=["POST"])
def toggle_participant(community_id: str, bill_id: str) -> Tuple[Response, int]:
    """Add a user to the bill's participants, or remove them."""
    try:
        data = user_action_schema.load(_json_body())
        bill = bill_services.get_bill_for_community(community_id, bill_id)
        bill = bill_services.toggle_participant(bill, data["user_id"])
        return jsonify(_bill_detail(bill)), 200
    except ValidationError as e:
        return _handle_validation_error(e)
    except BillNotFoundError as e:
        return _handle_not_found(e)
    except SQLAlchemyError as e:
        return _handle_service_error(e, "toggle participant")
