"""Service functions for creating, splitting and editing bills."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal, InvalidOperation
import logging
import time
from typing import Any, Optional
import uuid

from flask import current_app
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from billsplit.bills.exceptions import (
    BillItemNotFoundError,
    BillNotFoundError,
    BillValidationError,
    ItemAlreadyClaimedError,
)
from billsplit.bills.models import Bill, BillItem
from billsplit.extensions import db
from billsplit.services.exceptions import BillPersistenceError
from billsplit.services.receipt_parser import ExtractionResult
from billsplit.utils.currency import format_both

logger = logging.getLogger(__name__)

DEFAULT_CURRENCY = "GBP"
DEFAULT_EXCHANGE_RATE = Decimal("9")


def default_bill_name(merchant_name: Optional[str], now: Optional[datetime] = None) -> str:
    """Derive a display name for a new bill.

    Args:
        merchant_name: Merchant detected on the receipt, if any
        now: Timestamp for the fallback label, defaults to the local current time

    Returns:
        ``"<merchant> Receipt"``, or ``"Bill dd/mm/yyyy, HH:MM:SS"`` when no merchant is known
    """
    if merchant_name:
        return f"{merchant_name} Receipt"
    now = now or datetime.now()
    return f"Bill {now.strftime('%d/%m/%Y, %H:%M:%S')}"


def _coerce_rate(value: Any, field: str = "exchangeRateGBPToCNY") -> Decimal:
    """Convert an exchange rate to Decimal, rejecting non-numbers and negatives."""
    if isinstance(value, bool):
        raise BillValidationError("Exchange rate must be a number", field=field)
    try:
        rate = Decimal(str(value))
    except (InvalidOperation, ValueError) as e:
        raise BillValidationError("Exchange rate must be a number", field=field) from e
    if not rate.is_finite() or rate < 0:
        raise BillValidationError("Exchange rate must be zero or greater", field=field)
    return rate


def _default_exchange_rate() -> Decimal:
    return _coerce_rate(current_app.config.get("DEFAULT_EXCHANGE_RATE_GBP_TO_CNY", DEFAULT_EXCHANGE_RATE))


def _new_item_key() -> str:
    return uuid.uuid4().hex


def materialize_bill(
    extraction: ExtractionResult,
    community_id: str,
    created_by: str,
    storage_path: str,
    exchange_rate: Any = None,
) -> Bill:
    """Create a bill and its items from an extraction result in one transaction.

    The bill and every item are added to a single session and committed once, so
    either all ``1 + len(extraction.items)`` rows are written or none are.

    Args:
        extraction: Items, total and merchant name from the receipt parser
        community_id: Owning community
        created_by: User id of the uploader, who becomes the only participant
        storage_path: Object-store path of the receipt image
        exchange_rate: GBP to CNY rate; the configured default when None

    Returns:
        The committed Bill

    Raises:
        BillValidationError: If the exchange rate is invalid
        BillPersistenceError: If the commit fails; nothing is written in that case
    """
    rate = _default_exchange_rate() if exchange_rate is None else _coerce_rate(exchange_rate)

    bill = Bill(
        id=str(uuid.uuid4()),
        community_id=community_id,
        created_by=created_by,
        created_at=int(time.time() * 1000),
        bill_name=default_bill_name(extraction.merchant_name),
        currency=current_app.config.get("BILL_CURRENCY", DEFAULT_CURRENCY),
        exchange_rate_gbp_to_cny=rate,
        participants=[created_by],
        total=extraction.total,
        storage_path=storage_path,
    )
    bill.items = [
        BillItem(id=_new_item_key(), position=position, name=item.name, price=item.price, claimed_by=None)
        for position, item in enumerate(extraction.items)
    ]

    try:
        db.session.add(bill)
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error(f"Failed to save bill for community {community_id}: {str(e)}", exc_info=True)
        raise BillPersistenceError(f"Failed to save bill: {e}") from e

    logger.info(f"Created bill {bill.id} in community {community_id} with {len(bill.items)} items")
    return bill


def get_bill_for_community(community_id: str, bill_id: str) -> Bill:
    """Get a bill, ensuring it belongs to the community.

    Raises:
        BillNotFoundError: If no such bill exists in the community
    """
    bill = db.session.scalar(select(Bill).where(Bill.id == bill_id, Bill.community_id == community_id))
    if bill is None:
        raise BillNotFoundError(bill_id, community_id)
    return bill


def get_bills_for_community(community_id: str) -> list[Bill]:
    """Get all bills of a community, newest first."""
    stmt = select(Bill).where(Bill.community_id == community_id).order_by(Bill.created_at.desc())
    return list(db.session.scalars(stmt))


def _get_item(bill: Bill, item_id: str) -> BillItem:
    for item in bill.items:
        if item.id == item_id:
            return item
    raise BillItemNotFoundError(item_id, bill.id)


def _commit(action: str) -> None:
    try:
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logger.error(f"Failed to {action}", exc_info=True)
        raise


def toggle_claim(bill: Bill, item_id: str, user_id: str) -> BillItem:
    """Claim an unclaimed item for a user, or release the user's own claim.

    Raises:
        BillItemNotFoundError: If the item is not on the bill
        ItemAlreadyClaimedError: If another user holds the claim
    """
    item = _get_item(bill, item_id)
    if item.claimed_by is None:
        item.claimed_by = user_id
    elif item.claimed_by == user_id:
        item.claimed_by = None
    else:
        raise ItemAlreadyClaimedError(item_id, item.claimed_by)

    _commit(f"toggle claim on item {item_id}")
    return item


def toggle_participant(bill: Bill, user_id: str) -> Bill:
    """Add the user to the bill's participants, or remove them if already present."""
    participants = list(bill.participants or [])
    if user_id in participants:
        participants.remove(user_id)
    else:
        participants.append(user_id)
    # Reassign so SQLAlchemy sees the JSON column change
    bill.participants = participants

    _commit(f"toggle participant {user_id} on bill {bill.id}")
    return bill


def update_bill(bill: Bill, data: dict[str, Any]) -> Bill:
    """Rename a bill and/or change its exchange rate.

    Args:
        bill: The bill to update
        data: Optional ``bill_name`` and ``exchange_rate_gbp_to_cny`` keys
    """
    if "bill_name" in data:
        name = (data["bill_name"] or "").strip()
        if not name:
            raise BillValidationError("Bill name cannot be empty", field="billName")
        bill.bill_name = name
    if "exchange_rate_gbp_to_cny" in data:
        bill.exchange_rate_gbp_to_cny = _coerce_rate(data["exchange_rate_gbp_to_cny"])

    _commit(f"update bill {bill.id}")
    return bill


def delete_bill(bill: Bill) -> None:
    """Delete a bill together with its items."""
    bill.delete()
    logger.info(f"Deleted bill {bill.id}")


def compute_split(bill: Bill) -> dict[str, Any]:
    """Work out what each participant owes.

    Unclaimed items are shared equally by all participants; claimed items are
    owed in full by their claimer.

    Returns:
        Dict with the shared subtotal, per-head share and one row per participant
    """
    rate = bill.exchange_rate_gbp_to_cny or Decimal("0")
    private_totals: dict[str, Decimal] = {}
    shared_total = Decimal("0")
    for item in bill.items:
        price = item.price or Decimal("0")
        if item.claimed_by:
            private_totals[item.claimed_by] = private_totals.get(item.claimed_by, Decimal("0")) + price
        else:
            shared_total += price

    participants = list(bill.participants or [])
    per_head = shared_total / max(len(participants), 1)

    rows = []
    for user_id in participants:
        private = private_totals.get(user_id, Decimal("0"))
        total = private + per_head
        rows.append(
            {
                "userId": user_id,
                "private": float(private),
                "share": float(per_head),
                "total": float(total),
                "display": format_both(total, rate),
            }
        )

    return {
        "sharedTotal": float(shared_total),
        "sharedDisplay": format_both(shared_total, rate),
        "perHead": float(per_head),
        "participants": rows,
    }
