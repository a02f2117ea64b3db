"""Document analysis service for receipt images using Azure AI Document Intelligence."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
import logging
from typing import Any

from azure.ai.documentintelligence import DocumentIntelligenceClient
from azure.ai.documentintelligence.models import AnalyzeDocumentRequest
from azure.core.credentials import AzureKeyCredential
from azure.core.exceptions import AzureError, HttpResponseError

from billsplit.services.exceptions import (
    AnalysisConfigurationError,
    AnalysisFailedError,
    AnalysisRejectedError,
    AnalysisTimeoutError,
)

logger = logging.getLogger(__name__)

RECEIPT_MODEL_ID = "prebuilt-receipt"


@dataclass(frozen=True)
class DocumentAnalysisConfig:
    """Connection settings for the document analysis service."""

    endpoint: str | None
    api_key: str | None
    model_id: str = RECEIPT_MODEL_ID
    timeout_seconds: float = 120
    polling_interval_seconds: float = 1

    @classmethod
    def from_mapping(cls, config: Mapping[str, Any]) -> DocumentAnalysisConfig:
        """Build the configuration from a Flask config (or any mapping)."""
        return cls(
            endpoint=config.get("AZURE_DOCUMENT_INTELLIGENCE_ENDPOINT"),
            api_key=config.get("AZURE_DOCUMENT_INTELLIGENCE_KEY"),
            model_id=config.get("DOCUMENT_ANALYSIS_MODEL_ID") or RECEIPT_MODEL_ID,
            timeout_seconds=float(config.get("DOCUMENT_ANALYSIS_TIMEOUT", 120)),
            polling_interval_seconds=float(config.get("DOCUMENT_ANALYSIS_POLLING_INTERVAL", 1)),
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.endpoint and self.api_key)


class DocumentAnalysisService:
    """Runs the receipt model on image bytes and returns the structured result."""

    def __init__(self, config: DocumentAnalysisConfig, client: DocumentIntelligenceClient | None = None) -> None:
        """Initialize the service.

        Args:
            config: Endpoint, key, model and polling bounds
            client: Pre-built client, mainly for tests; built lazily from config otherwise
        """
        self.config = config
        self._client = client

    def ensure_configured(self) -> None:
        """Raise AnalysisConfigurationError unless endpoint and key are both set."""
        if not self.config.is_configured:
            raise AnalysisConfigurationError("Missing Azure Document Intelligence endpoint or key")

    def _get_client(self) -> DocumentIntelligenceClient:
        if self._client is None:
            self._client = DocumentIntelligenceClient(
                endpoint=str(self.config.endpoint),
                credential=AzureKeyCredential(str(self.config.api_key)),
            )
        return self._client

    def analyze_receipt(self, image_bytes: bytes) -> dict[str, Any]:
        """Analyze a receipt image and wait for the structured result.

        The image is embedded in the request body (base64 ``bytesSource``) and the
        service's long-running operation is polled until it finishes or the
        configured timeout passes.

        Args:
            image_bytes: Raw receipt image

        Returns:
            The analysis result as a plain dict in the service's REST shape

        Raises:
            AnalysisConfigurationError: Endpoint or key is missing
            AnalysisRejectedError: The service refused the request
            AnalysisTimeoutError: The job did not finish in time
            AnalysisFailedError: The job finished unsuccessfully
        """
        self.ensure_configured()

        client = self._get_client()
        logger.debug(f"Submitting {len(image_bytes)} bytes to model {self.config.model_id}")

        try:
            poller = client.begin_analyze_document(
                self.config.model_id,
                AnalyzeDocumentRequest(bytes_source=image_bytes),
                polling_interval=self.config.polling_interval_seconds,
            )
        except HttpResponseError as e:
            code, message = _error_details(e)
            logger.error(f"Document analysis request rejected: {code} {message}")
            raise AnalysisRejectedError(message, code=code) from e
        except AzureError as e:
            logger.error(f"Document analysis request failed: {str(e)}")
            raise AnalysisFailedError(f"Document analysis request failed: {e}") from e

        try:
            poller.wait(timeout=self.config.timeout_seconds)
            if not poller.done():
                logger.error(f"Document analysis timed out after {self.config.timeout_seconds}s")
                raise AnalysisTimeoutError(self.config.timeout_seconds)
            result = poller.result()
        except AzureError as e:
            logger.error(f"Document analysis failed: {str(e)}")
            raise AnalysisFailedError(f"Document analysis failed: {e}") from e

        analyze_result = result.as_dict() if hasattr(result, "as_dict") else dict(result)
        logger.info(f"Document analysis completed with {len(analyze_result.get('documents') or [])} document(s)")
        return analyze_result


def _error_details(error: HttpResponseError) -> tuple[str | None, str]:
    """Pull the service's error code and message out of an HTTP error."""
    odata = getattr(error, "error", None)
    code = getattr(odata, "code", None)
    message = getattr(odata, "message", None) or error.message or str(error)
    return code, message
