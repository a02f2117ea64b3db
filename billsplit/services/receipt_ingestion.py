"""Receipt ingestion: image in the object store to a persisted bill.

retrieve -> analyze -> extract -> persist, strictly in that order. Each stage
raises a ``ReceiptIngestionError`` subclass on failure and nothing is retried.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
import logging
from typing import Any

from flask import current_app

from billsplit.bills.services import materialize_bill
from billsplit.services.ocr_service import DocumentAnalysisConfig, DocumentAnalysisService
from billsplit.services.receipt_parser import ReceiptParser
from billsplit.services.s3_service import S3Service, get_s3_service

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IngestionRequest:
    """A receipt that has been uploaded and should become a bill."""

    community_id: str
    storage_path: str
    created_by: str
    exchange_rate: Any = None


@dataclass
class IngestionResult:
    """Outcome of a successful ingestion."""

    bill_id: str
    items_count: int
    total: Decimal
    debug: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "billId": self.bill_id,
            "itemsCount": self.items_count,
            "total": float(self.total),
            "debug": self.debug,
        }


class ReceiptIngestionService:
    """Coordinates image retrieval, document analysis, extraction and bill creation."""

    def __init__(
        self,
        storage: S3Service,
        analysis: DocumentAnalysisService,
        parser: ReceiptParser | None = None,
    ) -> None:
        self.storage = storage
        self.analysis = analysis
        self.parser = parser or ReceiptParser()

    @classmethod
    def from_app_config(cls) -> ReceiptIngestionService:
        """Build the service from the current application's configuration."""
        return cls(
            storage=get_s3_service(),
            analysis=DocumentAnalysisService(DocumentAnalysisConfig.from_mapping(current_app.config)),
        )

    def ingest(self, request: IngestionRequest) -> IngestionResult:
        """Turn one uploaded receipt into a bill with its items.

        Args:
            request: Community, image path, uploader and optional exchange rate

        Returns:
            IngestionResult with the new bill id, item count, total and parsing diagnostics

        Raises:
            ReceiptIngestionError: From whichever stage failed
        """
        # Fail on missing credentials before touching storage
        self.analysis.ensure_configured()

        logger.info(f"Ingesting receipt {request.storage_path} for community {request.community_id}")
        image_bytes = self.storage.download_receipt(request.storage_path)

        analyze_result = self.analysis.analyze_receipt(image_bytes)

        extraction = self.parser.parse(analyze_result)
        logger.info(f"Parsed: {extraction.items_count} items, total: {extraction.total}")

        bill = materialize_bill(
            extraction,
            community_id=request.community_id,
            created_by=request.created_by,
            storage_path=request.storage_path,
            exchange_rate=request.exchange_rate,
        )

        return IngestionResult(
            bill_id=bill.id,
            items_count=extraction.items_count,
            total=extraction.total,
            debug=extraction.diagnostics,
        )
