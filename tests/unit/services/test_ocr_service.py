"""Tests for the document analysis service."""

from unittest.mock import Mock, patch

from azure.core.exceptions import HttpResponseError, ServiceRequestError
import pytest

from billsplit.services.exceptions import (
    AnalysisConfigurationError,
    AnalysisFailedError,
    AnalysisRejectedError,
    AnalysisTimeoutError,
)
from billsplit.services.ocr_service import RECEIPT_MODEL_ID, DocumentAnalysisConfig, DocumentAnalysisService


@pytest.fixture
def analysis_config():
    return DocumentAnalysisConfig(
        endpoint="https://test.cognitiveservices.azure.com/",
        api_key="test-key",
        timeout_seconds=5,
        polling_interval_seconds=0.1,
    )


@pytest.fixture
def mock_poller():
    poller = Mock()
    poller.done.return_value = True
    poller.result.return_value.as_dict.return_value = {"documents": [{"docType": "receipt", "fields": {}}]}
    return poller


@pytest.fixture
def mock_client(mock_poller):
    client = Mock()
    client.begin_analyze_document.return_value = mock_poller
    return client


class TestDocumentAnalysisConfig:
    """Test building the analysis configuration."""

    def test_from_mapping_reads_settings(self):
        config = DocumentAnalysisConfig.from_mapping(
            {
                "AZURE_DOCUMENT_INTELLIGENCE_ENDPOINT": "https://example.azure.com/",
                "AZURE_DOCUMENT_INTELLIGENCE_KEY": "secret",
                "DOCUMENT_ANALYSIS_TIMEOUT": 30,
                "DOCUMENT_ANALYSIS_POLLING_INTERVAL": 2,
            }
        )

        assert config.endpoint == "https://example.azure.com/"
        assert config.api_key == "secret"
        assert config.model_id == RECEIPT_MODEL_ID
        assert config.timeout_seconds == 30
        assert config.polling_interval_seconds == 2
        assert config.is_configured is True

    def test_defaults_without_credentials(self):
        config = DocumentAnalysisConfig.from_mapping({})

        assert config.timeout_seconds == 120
        assert config.is_configured is False


class TestDocumentAnalysisService:
    """Test analysis submission, polling and error mapping."""

    def test_analyze_receipt_success(self, analysis_config, mock_client, mock_poller):
        service = DocumentAnalysisService(analysis_config, client=mock_client)

        result = service.analyze_receipt(b"image-bytes")

        assert result == {"documents": [{"docType": "receipt", "fields": {}}]}
        args, kwargs = mock_client.begin_analyze_document.call_args
        assert args[0] == RECEIPT_MODEL_ID
        assert args[1].bytes_source == b"image-bytes"
        assert kwargs["polling_interval"] == 0.1
        mock_poller.wait.assert_called_once_with(timeout=5)

    def test_missing_credentials_raise_before_submitting(self, mock_client):
        service = DocumentAnalysisService(DocumentAnalysisConfig(endpoint=None, api_key="key"), client=mock_client)

        with pytest.raises(AnalysisConfigurationError, match="endpoint or key"):
            service.analyze_receipt(b"image-bytes")

        mock_client.begin_analyze_document.assert_not_called()

    def test_rejected_request(self, analysis_config, mock_client):
        error = HttpResponseError(message="(InvalidRequest) Invalid input")
        error.error = Mock(code="InvalidRequest", message="The file is corrupted or format is unsupported.")
        mock_client.begin_analyze_document.side_effect = error
        service = DocumentAnalysisService(analysis_config, client=mock_client)

        with pytest.raises(AnalysisRejectedError) as exc_info:
            service.analyze_receipt(b"not-an-image")

        assert exc_info.value.code == "InvalidRequest"
        assert exc_info.value.to_dict() == {
            "error": "The file is corrupted or format is unsupported.",
            "code": "InvalidRequest",
        }

    def test_rejected_request_without_error_details(self, analysis_config, mock_client):
        mock_client.begin_analyze_document.side_effect = HttpResponseError(message="Bad request")
        service = DocumentAnalysisService(analysis_config, client=mock_client)

        with pytest.raises(AnalysisRejectedError, match="Bad request") as exc_info:
            service.analyze_receipt(b"not-an-image")

        assert exc_info.value.code is None

    def test_submit_transport_error(self, analysis_config, mock_client):
        mock_client.begin_analyze_document.side_effect = ServiceRequestError("connection refused")
        service = DocumentAnalysisService(analysis_config, client=mock_client)

        with pytest.raises(AnalysisFailedError, match="connection refused"):
            service.analyze_receipt(b"image-bytes")

    def test_timeout(self, analysis_config, mock_client, mock_poller):
        mock_poller.done.return_value = False
        service = DocumentAnalysisService(analysis_config, client=mock_client)

        with pytest.raises(AnalysisTimeoutError) as exc_info:
            service.analyze_receipt(b"image-bytes")

        assert exc_info.value.timeout_seconds == 5
        mock_poller.result.assert_not_called()

    def test_failed_job(self, analysis_config, mock_client, mock_poller):
        mock_poller.result.side_effect = HttpResponseError(message="Analysis failed")
        service = DocumentAnalysisService(analysis_config, client=mock_client)

        with pytest.raises(AnalysisFailedError, match="Analysis failed"):
            service.analyze_receipt(b"image-bytes")

    def test_client_built_lazily_from_config(self, analysis_config, mock_client):
        with patch("billsplit.services.ocr_service.DocumentIntelligenceClient", return_value=mock_client) as client_cls:
            service = DocumentAnalysisService(analysis_config)
            client_cls.assert_not_called()

            service.analyze_receipt(b"image-bytes")

        client_cls.assert_called_once()
        assert client_cls.call_args.kwargs["endpoint"] == "https://test.cognitiveservices.azure.com/"
