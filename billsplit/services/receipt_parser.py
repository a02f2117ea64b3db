"""Receipt parser for turning document-analysis results into bill line items.

The analysis service returns a loosely structured document. This module reads
the handful of fields the bill splitter consumes into small typed records, with
every "field absent" case handled where the field is read, and then applies the
extraction rules:

* only the first analyzed document is used
* items without a positive price are dropped
* a missing or non-positive printed total is replaced by the sum of the kept items

It has no dependencies on Flask or Azure, so it can be used from the CLI and from tests.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
import logging
from typing import Any

logger = logging.getLogger(__name__)

UNKNOWN_ITEM_NAME = "Unknown Item"

MERCHANT_NAME_FIELD = "MerchantName"
ITEMS_FIELD = "Items"
TOTAL_FIELD = "Total"
DESCRIPTION_FIELD = "Description"
TOTAL_PRICE_FIELD = "TotalPrice"

# Amounts are stored as Numeric(10, 2)
_CENT = Decimal("0.01")


def _to_decimal(value: Any) -> Decimal | None:
    """Convert a numeric field value to Decimal, returning None when it is not a number."""
    if value is None or isinstance(value, bool):
        return None
    try:
        # str() first so 1.1 becomes Decimal("1.1") and not its binary expansion
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None
    return amount if amount.is_finite() else None


def _as_mapping(value: Any) -> Mapping[str, Any] | None:
    return value if isinstance(value, Mapping) else None


def _string_value(fields: Mapping[str, Any], name: str) -> str | None:
    """Read ``valueString`` of a field, None if the field or value is missing or blank."""
    field_data = _as_mapping(fields.get(name))
    if field_data is None:
        return None
    value = field_data.get("valueString")
    if not isinstance(value, str) or not value.strip():
        return None
    return value.strip()


@dataclass(frozen=True)
class CurrencyValue:
    """A ``valueCurrency`` field: an amount rounded to cents and an optional ISO currency code."""

    amount: Decimal
    currency_code: str | None = None

    @classmethod
    def from_field(cls, fields: Mapping[str, Any], name: str) -> CurrencyValue | None:
        """Read a currency field, None if the field, its currency value or its amount is absent."""
        field_data = _as_mapping(fields.get(name))
        if field_data is None:
            return None
        currency = _as_mapping(field_data.get("valueCurrency"))
        if currency is None:
            return None
        amount = _to_decimal(currency.get("amount"))
        if amount is None:
            return None
        try:
            amount = amount.quantize(_CENT, rounding=ROUND_HALF_UP)
        except InvalidOperation:
            return None
        code = currency.get("currencyCode")
        return cls(
            amount=amount,
            currency_code=code if isinstance(code, str) else None,
        )


@dataclass(frozen=True)
class ReceiptLineItemField:
    """One entry of the ``Items`` array as reported by the analysis service."""

    description: str | None
    total_price: CurrencyValue | None

    @classmethod
    def from_value_object(cls, value_object: Mapping[str, Any]) -> ReceiptLineItemField:
        return cls(
            description=_string_value(value_object, DESCRIPTION_FIELD),
            total_price=CurrencyValue.from_field(value_object, TOTAL_PRICE_FIELD),
        )


@dataclass(frozen=True)
class ReceiptDocument:
    """The subset of an analyzed receipt document used to build a bill."""

    doc_type: str | None
    field_names: list[str]
    merchant_name: str | None
    items: list[ReceiptLineItemField]
    raw_items_count: int
    total: CurrencyValue | None

    @classmethod
    def from_dict(cls, document: Mapping[str, Any]) -> ReceiptDocument:
        fields = _as_mapping(document.get("fields")) or {}

        items_field = _as_mapping(fields.get(ITEMS_FIELD)) or {}
        value_array = items_field.get("valueArray")
        if not isinstance(value_array, list):
            value_array = []

        items = []
        for entry in value_array:
            value_object = _as_mapping(entry.get("valueObject")) if isinstance(entry, Mapping) else None
            if value_object is None:
                continue
            items.append(ReceiptLineItemField.from_value_object(value_object))

        doc_type = document.get("docType")
        return cls(
            doc_type=doc_type if isinstance(doc_type, str) else None,
            field_names=list(fields.keys()),
            merchant_name=_string_value(fields, MERCHANT_NAME_FIELD),
            items=items,
            raw_items_count=len(value_array),
            total=CurrencyValue.from_field(fields, TOTAL_FIELD),
        )


@dataclass(frozen=True)
class ExtractedLineItem:
    """A line item that survived extraction; price is always positive."""

    name: str
    price: Decimal

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "price": float(self.price)}


@dataclass
class ExtractionResult:
    """Normalized items and total extracted from one analysis result."""

    items: list[ExtractedLineItem] = field(default_factory=list)
    total: Decimal = Decimal("0")
    merchant_name: str | None = None
    diagnostics: dict[str, Any] = field(default_factory=dict)

    @property
    def items_count(self) -> int:
        return len(self.items)


class ReceiptParser:
    """Extracts bill line items and a reconciled total from an analysis result."""

    def parse(self, analyze_result: Mapping[str, Any] | None) -> ExtractionResult:
        """Parse an analysis result into an :class:`ExtractionResult`.

        Args:
            analyze_result: The analysis result in the service's REST shape
                (``{"documents": [{"docType": ..., "fields": {...}}], ...}``)

        Returns:
            ExtractionResult with positive-priced items and the reconciled total.
            A result without documents yields no items and a zero total.
        """
        analyze_result = analyze_result or {}
        documents = analyze_result.get("documents")
        if not isinstance(documents, list):
            documents = []

        diagnostics: dict[str, Any] = {
            "analyzeResultKeys": list(analyze_result.keys()),
            "documentsCount": len(documents),
            "docType": None,
            "firstDocFields": [],
            "rawItemsCount": 0,
            "reportedTotal": None,
            "totalReconciled": False,
            "ignoredDocuments": 0,
            "parsedItems": [],
        }

        if not documents:
            logger.warning("No documents found in analysis result")
            return ExtractionResult(diagnostics=diagnostics)

        if len(documents) > 1:
            logger.warning(f"Analysis returned {len(documents)} documents, only the first is used")
            diagnostics["ignoredDocuments"] = len(documents) - 1

        first = _as_mapping(documents[0]) or {}
        document = ReceiptDocument.from_dict(first)

        logger.debug(f"Document type: {document.doc_type}")
        logger.debug(f"Merchant: {document.merchant_name}")
        logger.debug(f"Items count: {document.raw_items_count}")

        items = self.extract_items(document.items)
        total = self.reconcile_total(document.total, items)

        diagnostics.update(
            {
                "docType": document.doc_type,
                "firstDocFields": document.field_names,
                "rawItemsCount": document.raw_items_count,
                "reportedTotal": float(document.total.amount) if document.total is not None else None,
                "totalReconciled": document.total is None or document.total.amount <= 0,
                "parsedItems": [item.to_dict() for item in items],
            }
        )

        logger.debug(f"Final: {len(items)} items, total: {total}")
        return ExtractionResult(
            items=items,
            total=total,
            merchant_name=document.merchant_name,
            diagnostics=diagnostics,
        )

    def extract_items(self, entries: list[ReceiptLineItemField]) -> list[ExtractedLineItem]:
        """Normalize item entries, keeping only those with a positive price.

        A missing price counts as zero, so it is dropped together with genuinely
        free or negative lines.
        """
        items: list[ExtractedLineItem] = []
        for entry in entries:
            name = entry.description or UNKNOWN_ITEM_NAME
            price = entry.total_price.amount if entry.total_price is not None else Decimal("0")
            currency = entry.total_price.currency_code if entry.total_price is not None else None
            logger.debug(f"Item: name={name!r} price={price} currency={currency}")

            if name and price > 0:
                items.append(ExtractedLineItem(name=name, price=price))
        return items

    def reconcile_total(self, reported: CurrencyValue | None, items: list[ExtractedLineItem]) -> Decimal:
        """Return the printed total, or the item sum when it is missing or not positive."""
        if reported is not None and reported.amount > 0:
            logger.debug(f"Total: {reported.amount} {reported.currency_code}")
            return reported.amount

        total = sum((item.price for item in items), Decimal("0"))
        logger.debug(f"Calculated total from items: {total}")
        return total
