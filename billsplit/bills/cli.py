"""CLI commands for bill management."""

from __future__ import annotations

import json

import click
from flask.cli import with_appcontext

from billsplit.bills.exceptions import BillNotFoundError
from billsplit.bills.models import Bill
from billsplit.bills.services import compute_split, get_bill_for_community, get_bills_for_community
from billsplit.extensions import db
from billsplit.services.exceptions import ReceiptIngestionError
from billsplit.services.receipt_ingestion import IngestionRequest, ReceiptIngestionService
from billsplit.utils.currency import format_both


@click.group("bill")
def bill_cli():
    """Bill management commands."""


def register_commands(app):
    """Register CLI commands with the application."""
    app.cli.add_command(bill_cli)

    bill_cli.add_command(ingest_receipt)
    bill_cli.add_command(list_bills)
    bill_cli.add_command(show_bill)


@click.command("ingest")
@click.option("--community", "community_id", required=True, help="Community the bill belongs to")
@click.option("--path", "storage_path", required=True, help="Object key of the uploaded receipt image")
@click.option("--created-by", required=True, help="User ID of the uploader")
@click.option("--rate", type=float, default=None, help="GBP to CNY exchange rate (defaults to config)")
@with_appcontext
def ingest_receipt(community_id: str, storage_path: str, created_by: str, rate: float | None) -> None:
    """Analyze a stored receipt image and create a bill from it."""
    request = IngestionRequest(
        community_id=community_id,
        storage_path=storage_path,
        created_by=created_by,
        exchange_rate=rate,
    )
    try:
        result = ReceiptIngestionService.from_app_config().ingest(request)
    except ReceiptIngestionError as e:
        raise click.ClickException(f"{e.stage} failed: {e}") from e

    click.echo(f"✅ Created bill {result.bill_id}")
    click.echo(f"   Items: {result.items_count}")
    click.echo(f"   Total: {result.total}")


@click.command("list")
@click.option("--community", "community_id", required=True, help="Community to list bills for")
@with_appcontext
def list_bills(community_id: str) -> None:
    """List a community's bills, newest first."""
    bills = get_bills_for_community(community_id)
    if not bills:
        click.echo(f"No bills found for community {community_id}")
        return

    for bill in bills:
        click.echo(f"🧾 {bill.bill_name} (ID: {bill.id})")
        click.echo(f"   Items: {len(bill.items)}  Total: {format_both(bill.total, bill.exchange_rate_gbp_to_cny)}")


@click.command("show")
@click.argument("bill_id")
@click.option("--community", "community_id", default=None, help="Only show the bill if it belongs to this community")
@click.option("--as-json", is_flag=True, help="Print the bill, its items and the split as JSON")
@with_appcontext
def show_bill(bill_id: str, community_id: str | None, as_json: bool) -> None:
    """Show a bill's items and what each participant owes."""
    if community_id:
        try:
            bill = get_bill_for_community(community_id, bill_id)
        except BillNotFoundError as e:
            raise click.ClickException(str(e)) from e
    else:
        bill = db.session.get(Bill, bill_id)
        if bill is None:
            raise click.ClickException(f"Bill {bill_id} not found")

    if as_json:
        data = bill.to_dict()
        data["items"] = [item.to_dict() for item in bill.items]
        data["split"] = compute_split(bill)
        click.echo(json.dumps(data, indent=2, ensure_ascii=False))
        return

    click.echo(f"🧾 {bill.bill_name} [{bill.currency}]")
    for item in bill.items:
        owner = "shared" if item.is_shared else item.claimed_by
        click.echo(f"   {item.position:>3}. {item.name:<30} {item.price:>10}  ({owner})")

    split = compute_split(bill)
    click.echo(f"\n   Shared: {split['sharedDisplay']}")
    for row in split["participants"]:
        click.echo(f"   {row['userId']}: {row['display']}")
