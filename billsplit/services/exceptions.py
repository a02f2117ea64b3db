"""Custom exceptions for the receipt ingestion pipeline."""

from typing import Any


class ReceiptIngestionError(Exception):
    """Base exception for failures while turning a receipt into a bill."""

    stage = "ingestion"

    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {"error": self.message}


class AnalysisConfigurationError(ReceiptIngestionError):
    """Raised when the document analysis endpoint or key is not configured."""

    stage = "configuration"


class ReceiptRetrievalError(ReceiptIngestionError):
    """Raised when the receipt image cannot be read from the object store."""

    stage = "retrieval"

    def __init__(self, storage_path: str, reason: str, code: str | None = None):
        self.storage_path = storage_path
        self.code = code
        super().__init__(f"Failed to download receipt '{storage_path}': {reason}")


class AnalysisRejectedError(ReceiptIngestionError):
    """Raised when the analysis service rejects the submitted request outright."""

    stage = "analysis"

    def __init__(self, message: str, code: str | None = None):
        self.code = code
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        if self.code:
            result["code"] = self.code
        return result


class AnalysisFailedError(ReceiptIngestionError):
    """Raised when an accepted analysis job finishes unsuccessfully."""

    stage = "analysis"


class AnalysisTimeoutError(ReceiptIngestionError):
    """Raised when the analysis job does not finish within the configured wait."""

    stage = "analysis"

    def __init__(self, timeout_seconds: float):
        self.timeout_seconds = timeout_seconds
        super().__init__(f"Document analysis did not complete within {timeout_seconds} seconds")


class BillPersistenceError(ReceiptIngestionError):
    """Raised when the bill and its items could not be committed."""

    stage = "persistence"
