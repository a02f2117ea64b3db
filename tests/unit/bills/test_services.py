"""Tests for bill services."""

from datetime import datetime
from decimal import Decimal
import re
from unittest.mock import patch

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError, SQLAlchemyError

from billsplit.bills import services as bill_services
from billsplit.bills.exceptions import (
    BillItemNotFoundError,
    BillNotFoundError,
    BillValidationError,
    ItemAlreadyClaimedError,
)
from billsplit.bills.models import Bill, BillItem
from billsplit.extensions import db
from billsplit.services.exceptions import BillPersistenceError
from billsplit.services.receipt_parser import ExtractedLineItem, ExtractionResult, ReceiptParser


def _count(model) -> int:
    return db.session.scalar(select(func.count()).select_from(model))


def _extraction(*items, total=None, merchant=None) -> ExtractionResult:
    line_items = [ExtractedLineItem(name=name, price=Decimal(price)) for name, price in items]
    if total is None:
        total = sum((item.price for item in line_items), Decimal("0"))
    return ExtractionResult(items=line_items, total=Decimal(total), merchant_name=merchant)


class TestDefaultBillName:
    def test_merchant_name(self):
        assert bill_services.default_bill_name("Tesco") == "Tesco Receipt"

    def test_timestamp_fallback(self):
        name = bill_services.default_bill_name(None)

        assert re.fullmatch(r"Bill \d{2}/\d{2}/\d{4}, \d{2}:\d{2}:\d{2}", name)

    def test_timestamp_fallback_uses_given_time(self):
        assert bill_services.default_bill_name("", now=datetime(2024, 3, 5, 14, 7, 9)) == "Bill 05/03/2024, 14:07:09"


class TestMaterializeBill:
    """Test creating a bill and its items atomically."""

    def test_writes_bill_and_items(self, app):
        extraction = _extraction(("Milk", "1.50"), ("Bread", "2.00"), ("Eggs", "3.25"), merchant="Tesco")

        bill = bill_services.materialize_bill(
            extraction, community_id="community-1", created_by="alice", storage_path="receipts/r.jpg"
        )

        assert _count(Bill) == 1
        assert _count(BillItem) == 3
        assert bill.bill_name == "Tesco Receipt"
        assert bill.currency == "GBP"
        assert bill.total == Decimal("6.75")
        assert bill.participants == ["alice"]
        assert bill.storage_path == "receipts/r.jpg"
        assert len(bill.id) == 36
        assert [(item.position, item.name) for item in bill.items] == [(0, "Milk"), (1, "Bread"), (2, "Eggs")]
        assert all(item.claimed_by is None for item in bill.items)
        assert len({item.id for item in bill.items}) == 3

    def test_empty_extraction_writes_bill_only(self, app):
        bill = bill_services.materialize_bill(
            ExtractionResult(), community_id="community-1", created_by="alice", storage_path="receipts/r.jpg"
        )

        assert bill.total == Decimal("0")
        assert bill.bill_name.startswith("Bill ")
        assert _count(Bill) == 1
        assert _count(BillItem) == 0

    def test_default_exchange_rate_from_config(self, app):
        app.config["DEFAULT_EXCHANGE_RATE_GBP_TO_CNY"] = 9.25

        bill = bill_services.materialize_bill(
            _extraction(("Milk", "1.50")), community_id="c", created_by="alice", storage_path="p"
        )

        assert bill.exchange_rate_gbp_to_cny == Decimal("9.25")

    def test_negative_exchange_rate_rejected(self, app):
        with pytest.raises(BillValidationError):
            bill_services.materialize_bill(
                _extraction(("Milk", "1.50")), community_id="c", created_by="alice", storage_path="p", exchange_rate=-1
            )

        assert _count(Bill) == 0

    def test_stored_amounts_match_extraction(self, app, analyze_result_factory):
        extraction = ReceiptParser().parse(analyze_result_factory(items=[("Gum", 0.004), ("Tea", 2.345)]))

        bill = bill_services.materialize_bill(
            extraction, community_id="community-1", created_by="alice", storage_path="receipts/r.jpg"
        )
        bill_id = bill.id
        db.session.expunge_all()
        stored = db.session.get(Bill, bill_id)

        assert stored.total == extraction.total == Decimal("2.35")
        assert [(item.name, item.price) for item in stored.items] == [
            (item.name, item.price) for item in extraction.items
        ]
        assert all(item.price > 0 for item in stored.items)

    def test_commit_failure_writes_nothing(self, app):
        extraction = _extraction(("Milk", "1.50"), ("Bread", "2.00"))

        with patch.object(db.session, "commit", side_effect=OperationalError("INSERT", {}, Exception("disk full"))):
            with pytest.raises(BillPersistenceError):
                bill_services.materialize_bill(
                    extraction, community_id="community-1", created_by="alice", storage_path="receipts/r.jpg"
                )

        assert _count(Bill) == 0
        assert _count(BillItem) == 0


class TestBillQueries:
    def test_get_bill_scoped_to_community(self, app, bill_factory):
        bill = bill_factory(community_id="community-1")

        assert bill_services.get_bill_for_community("community-1", bill.id) is not None
        with pytest.raises(BillNotFoundError):
            bill_services.get_bill_for_community("community-2", bill.id)

    def test_bills_newest_first(self, app, bill_factory):
        older = bill_factory(created_at=1_000)
        newer = bill_factory(created_at=2_000)
        bill_factory(community_id="other", created_at=3_000)

        bills = bill_services.get_bills_for_community("community-1")

        assert [bill.id for bill in bills] == [newer.id, older.id]


class TestToggleClaim:
    def test_claim_and_release(self, app, bill_factory):
        bill = bill_factory()
        item_id = bill.items[0].id

        item = bill_services.toggle_claim(bill, item_id, "alice")
        assert item.claimed_by == "alice"

        item = bill_services.toggle_claim(bill, item_id, "alice")
        assert item.claimed_by is None

    def test_claimed_by_another_user(self, app, bill_factory):
        bill = bill_factory(participants=["alice", "bob"])
        item_id = bill.items[0].id
        bill_services.toggle_claim(bill, item_id, "alice")

        with pytest.raises(ItemAlreadyClaimedError) as exc_info:
            bill_services.toggle_claim(bill, item_id, "bob")

        assert exc_info.value.status_code == 409
        assert db.session.get(BillItem, item_id).claimed_by == "alice"

    def test_unknown_item(self, app, bill_factory):
        bill = bill_factory()

        with pytest.raises(BillItemNotFoundError):
            bill_services.toggle_claim(bill, "missing", "alice")


class TestToggleParticipant:
    def test_add_and_remove(self, app, bill_factory):
        bill = bill_factory(participants=["alice"])

        bill_services.toggle_participant(bill, "bob")
        db.session.expire_all()
        assert db.session.get(Bill, bill.id).participants == ["alice", "bob"]

        bill_services.toggle_participant(bill, "alice")
        db.session.expire_all()
        assert db.session.get(Bill, bill.id).participants == ["bob"]


class TestUpdateBill:
    def test_rename_and_change_rate(self, app, bill_factory):
        bill = bill_factory()

        bill_services.update_bill(bill, {"bill_name": "  Friday dinner ", "exchange_rate_gbp_to_cny": 9.1})

        assert bill.bill_name == "Friday dinner"
        assert bill.exchange_rate_gbp_to_cny == Decimal("9.1")

    def test_blank_name_rejected(self, app, bill_factory):
        bill = bill_factory()

        with pytest.raises(BillValidationError) as exc_info:
            bill_services.update_bill(bill, {"bill_name": "   "})

        assert exc_info.value.field == "billName"

    def test_commit_failure_is_rolled_back(self, app, bill_factory):
        bill = bill_factory()

        with patch.object(db.session, "commit", side_effect=SQLAlchemyError("boom")):
            with pytest.raises(SQLAlchemyError):
                bill_services.update_bill(bill, {"bill_name": "New name"})

        assert db.session.get(Bill, bill.id).bill_name == "Test Receipt"


class TestDeleteBill:
    def test_items_deleted_with_bill(self, app, bill_factory):
        bill = bill_factory()

        bill_services.delete_bill(bill)

        assert _count(Bill) == 0
        assert _count(BillItem) == 0


class TestComputeSplit:
    def test_shared_items_split_equally(self, app, bill_factory):
        bill = bill_factory(participants=["alice", "bob"], items=(("Pizza", "10.00"), ("Wine", "20.00")))

        split = bill_services.compute_split(bill)

        assert split["sharedTotal"] == 30.0
        assert split["perHead"] == 15.0
        assert split["sharedDisplay"] == "£30.00 / ¥270.00"
        assert [row["total"] for row in split["participants"]] == [15.0, 15.0]

    def test_claimed_items_owed_by_claimer(self, app, bill_factory):
        bill = bill_factory(participants=["alice", "bob"], items=(("Pizza", "10.00"), ("Wine", "20.00")))
        bill_services.toggle_claim(bill, bill.items[1].id, "bob")

        split = bill_services.compute_split(bill)
        rows = {row["userId"]: row for row in split["participants"]}

        assert split["sharedTotal"] == 10.0
        assert rows["alice"]["total"] == 5.0
        assert rows["bob"]["private"] == 20.0
        assert rows["bob"]["total"] == 25.0
        assert rows["bob"]["display"] == "£25.00 / ¥225.00"

    def test_no_participants(self, app, bill_factory):
        bill = bill_factory(participants=[], items=(("Pizza", "10.00"),))

        split = bill_services.compute_split(bill)

        assert split["participants"] == []
        assert split["perHead"] == 10.0
