"""Pytest configuration and fixtures for the test suite."""

import os
import sys
from decimal import Decimal
from pathlib import Path
from typing import Generator

import pytest
from flask import Flask
from flask.testing import FlaskClient, FlaskCliRunner

# Add the project root to the Python path first to avoid import issues
project_root = str(Path(__file__).parent.parent)
sys.path.insert(0, project_root)

# Set test environment variables before the config module is imported
os.environ.update(
    {
        "FLASK_ENV": "testing",
        "FLASK_APP": "billsplit",
        "SECRET_KEY": "test-secret-key",
        "DATABASE_URL": "sqlite:///:memory:",
        "TESTING": "True",
    }
)

from billsplit import create_app  # noqa: E402
from billsplit.bills.models import Bill, BillItem  # noqa: E402
from billsplit.extensions import db  # noqa: E402


@pytest.fixture(scope="function")
def app() -> Generator[Flask, None, None]:
    """Create and configure a new app instance for testing.

    This fixture is function-scoped to ensure a clean database for each test.
    """
    app = create_app("testing")
    app.config.update(
        TESTING=True,
        SERVER_NAME="localhost",
        PREFERRED_URL_SCHEME="http",
    )

    ctx = app.app_context()
    ctx.push()

    db.create_all()

    yield app

    db.session.remove()
    db.drop_all()

    ctx.pop()


@pytest.fixture
def client(app: Flask) -> Generator[FlaskClient, None, None]:
    """Create a test client for the application."""
    with app.test_client() as client:
        yield client


@pytest.fixture
def runner(app: Flask) -> FlaskCliRunner:
    """Create a CLI runner for testing Click commands."""
    return app.test_cli_runner()


def make_analyze_result(items=None, total=None, merchant=None, documents=1):
    """Build an analysis result in the document service's REST shape."""
    fields = {}
    if merchant is not None:
        fields["MerchantName"] = {"type": "string", "valueString": merchant}
    if items is not None:
        value_array = []
        for description, amount in items:
            value_object = {}
            if description is not None:
                value_object["Description"] = {"type": "string", "valueString": description}
            if amount is not None:
                value_object["TotalPrice"] = {
                    "type": "currency",
                    "valueCurrency": {"amount": amount, "currencyCode": "GBP"},
                }
            value_array.append({"type": "object", "valueObject": value_object})
        fields["Items"] = {"type": "array", "valueArray": value_array}
    if total is not None:
        fields["Total"] = {"type": "currency", "valueCurrency": {"amount": total, "currencyCode": "GBP"}}

    document = {"docType": "receipt.retailMeal", "fields": fields}
    return {
        "apiVersion": "2024-11-30",
        "modelId": "prebuilt-receipt",
        "documents": [document for _ in range(documents)],
    }


@pytest.fixture
def analyze_result_factory():
    """Factory for analysis results."""
    return make_analyze_result


@pytest.fixture
def bill_factory(app: Flask):
    """Create persisted bills with items for route and service tests."""

    def _create(
        community_id="community-1",
        created_by="alice",
        participants=None,
        items=(("Milk", "1.50"), ("Bread", "2.00")),
        rate="9",
        created_at=1_700_000_000_000,
        bill_id=None,
    ) -> Bill:
        bill = Bill(
            id=bill_id or f"bill-{created_at}",
            community_id=community_id,
            created_by=created_by,
            created_at=created_at,
            bill_name="Test Receipt",
            currency="GBP",
            exchange_rate_gbp_to_cny=Decimal(rate),
            participants=list(participants) if participants is not None else [created_by],
            total=sum((Decimal(price) for _, price in items), Decimal("0")),
            storage_path=f"receipts/{community_id}/receipt.jpg",
        )
        bill.items = [
            BillItem(id=f"{bill.id}-item-{position}", position=position, name=name, price=Decimal(price))
            for position, (name, price) in enumerate(items)
        ]
        db.session.add(bill)
        db.session.commit()
        return bill

    return _create
