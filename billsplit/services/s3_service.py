"""S3 service for reading uploaded receipt images."""

from __future__ import annotations

from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError, NoCredentialsError
from flask import current_app

from billsplit.services.exceptions import ReceiptRetrievalError

_NOT_FOUND_CODES = {"404", "NoSuchKey", "NotFound"}
_ACCESS_DENIED_CODES = {"403", "AccessDenied", "Forbidden"}


class S3Service:
    """Service for S3 receipt image operations.

    Receipts are uploaded by the client directly to the bucket; this service
    only reads them back for analysis.
    """

    def __init__(self, bucket_name: str | None = None, region: str | None = None, client: Any = None) -> None:
        """Initialize S3 service with configuration.

        Args:
            bucket_name: Receipts bucket, defaults to ``S3_RECEIPTS_BUCKET``
            region: AWS region, defaults to ``S3_REGION``
            client: Pre-built boto3 S3 client, mainly for tests
        """
        self.bucket_name: str | None = bucket_name or current_app.config.get("S3_RECEIPTS_BUCKET")
        self.region: str = region or current_app.config.get("S3_REGION", "eu-west-2")
        self.s3_client = client or boto3.client("s3", region_name=self.region)

    def download_receipt(self, storage_path: str) -> bytes:
        """Download the full content of a receipt image.

        Args:
            storage_path: Community-scoped object key produced by the upload step

        Returns:
            Raw bytes of the stored object

        Raises:
            ReceiptRetrievalError: If the bucket is not configured, the object does
                not exist, access is denied or the request fails
        """
        if not self.bucket_name:
            raise ReceiptRetrievalError(storage_path, "S3 bucket name is not configured")

        try:
            response = self.s3_client.get_object(Bucket=self.bucket_name, Key=storage_path)
            body = response["Body"].read()
        except ClientError as e:
            error_code = str(e.response.get("Error", {}).get("Code", ""))
            if error_code in _NOT_FOUND_CODES:
                current_app.logger.error(f"Receipt not found in S3: {storage_path}")
                raise ReceiptRetrievalError(storage_path, "object not found", code="not_found") from e
            if error_code in _ACCESS_DENIED_CODES:
                current_app.logger.error(f"Access denied to receipt in S3: {storage_path}")
                raise ReceiptRetrievalError(storage_path, "access denied", code="access_denied") from e
            current_app.logger.error(f"S3 error downloading receipt: {str(e)}")
            raise ReceiptRetrievalError(storage_path, str(e), code=error_code or None) from e
        except NoCredentialsError as e:
            current_app.logger.error("AWS credentials not found")
            raise ReceiptRetrievalError(storage_path, "AWS credentials not found") from e
        except BotoCoreError as e:
            current_app.logger.error(f"Unexpected error downloading receipt: {str(e)}")
            raise ReceiptRetrievalError(storage_path, str(e)) from e

        current_app.logger.info(f"Downloaded receipt from S3: {storage_path} ({len(body)} bytes)")
        return bytes(body)


def get_s3_service() -> S3Service:
    """Get an S3 service bound to the current application's configuration."""
    return S3Service()
