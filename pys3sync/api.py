"""S3 client used by the sync engine."""

from __future__ import annotations

import logging
from typing import IO, Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from .config import config
from .exceptions import ConfigurationError, ListingError, TransferError
from .models import ListPage
from .utils import DEFAULT_ACL, DEFAULT_PAGE_LIMIT, DEFAULT_REGION

logger = logging.getLogger(__name__)


def _error_code(e: Exception) -> str | None:
    """Extract the S3 error code from a botocore ClientError."""
    if isinstance(e, ClientError):
        return e.response.get("Error", {}).get("Code")
    return None


def available_regions() -> list[str]:
    """Regions boto3 knows an S3 endpoint for."""
    return sorted(boto3.session.Session().get_available_regions("s3"))


def validate_region(region: str) -> None:
    """Raise ConfigurationError if ``region`` is not a known S3 region.

    Raises:
        ConfigurationError: With the list of valid regions in the message
    """
    regions = available_regions()
    if region not in regions:
        raise ConfigurationError(
            f"'{region}' is not a valid AWS region. Please select one of: "
            + ", ".join(regions)
        )


class ObjectStream:
    """Readable object body that reports read failures as TransferError."""

    def __init__(self, key: str, body: Any):
        self.key = key
        self._body = body

    def read(self, amt: int | None = None) -> bytes:
        try:
            return self._body.read(amt)
        except (BotoCoreError, OSError) as e:
            raise TransferError(f"Error reading '{self.key}': {e}") from e

    def close(self) -> None:
        self._body.close()


class S3Client:
    """Client for one bucket of an S3-compatible object store.

    Wraps the boto3 client and translates botocore failures into the
    sync error taxonomy:

    - per-object operations raise ``TransferError``
    - listing raises ``ListingError``
    - bucket and credential checks raise ``ConfigurationError``
    """

    def __init__(
        self,
        bucket: str,
        region: str | None = None,
        access_key: str | None = None,
        secret_key: str | None = None,
        endpoint_url: str | None = None,
    ):
        """Initialize the S3 client.

        Args:
            bucket: Bucket name
            region: AWS region (uses config if not provided)
            access_key: Access key id (uses config/env if not provided)
            secret_key: Secret access key (uses config/env if not provided)
            endpoint_url: Custom endpoint for S3-compatible services
        """
        if not bucket:
            raise ConfigurationError("Bucket name is required")
        self.bucket = bucket
        self.region = region or config.region or DEFAULT_REGION
        self.access_key = access_key or config.access_key
        self.secret_key = secret_key or config.secret_key
        self.endpoint_url = endpoint_url or config.endpoint_url

        self._session: boto3.session.Session | None = None
        self._client: Any = None

    def _get_session(self) -> boto3.session.Session:
        if self._session is None:
            kwargs: dict[str, Any] = {"region_name": self.region}
            if self.access_key and self.secret_key:
                kwargs["aws_access_key_id"] = self.access_key
                kwargs["aws_secret_access_key"] = self.secret_key
            self._session = boto3.session.Session(**kwargs)
        return self._session

    @property
    def client(self) -> Any:
        """Get the boto3 S3 client (lazy initialization)."""
        if self._client is None:
            kwargs: dict[str, Any] = {}
            if self.endpoint_url:
                kwargs["endpoint_url"] = self.endpoint_url
            self._client = self._get_session().client("s3", **kwargs)
        return self._client

    def check_credentials(self) -> None:
        """Make sure credentials are available before anything is submitted.

        Raises:
            ConfigurationError: If only one key was given or none resolve
        """
        if bool(self.access_key) != bool(self.secret_key):
            raise ConfigurationError("Please specify both of your AWS keys")
        if self._get_session().get_credentials() is None:
            raise ConfigurationError(
                "No AWS credentials found. Pass --access-key/--secret-key or set "
                "AWS_ACCESS_KEY_ID and AWS_SECRET_ACCESS_KEY."
            )

    # =========================
    # Bucket operations
    # =========================

    def bucket_exists(self) -> bool:
        """Check whether the bucket is among the account's buckets."""
        try:
            response = self.client.list_buckets()
        except (ClientError, BotoCoreError) as e:
            raise ConfigurationError(f"Error attempting to list buckets: {e}") from e
        return any(b.get("Name") == self.bucket for b in response.get("Buckets", []))

    def ensure_bucket(self) -> bool:
        """Get the bucket, creating a private one if it doesn't exist.

        Returns:
            True if the bucket was created, False if it already existed
        """
        logger.debug("Searching for bucket '%s'", self.bucket)
        if self.bucket_exists():
            return False

        logger.info("Bucket '%s' not found: creating", self.bucket)
        kwargs: dict[str, Any] = {"Bucket": self.bucket, "ACL": DEFAULT_ACL}
        if self.region and self.region != DEFAULT_REGION:
            kwargs["CreateBucketConfiguration"] = {"LocationConstraint": self.region}
        try:
            self.client.create_bucket(**kwargs)
        except (ClientError, BotoCoreError) as e:
            raise ConfigurationError(
                f"Error attempting to create bucket '{self.bucket}': {e}"
            ) from e
        return True

    # =========================
    # Object operations
    # =========================

    def list_objects(
        self,
        prefix: str = "",
        marker: str = "",
        max_keys: int = DEFAULT_PAGE_LIMIT,
    ) -> ListPage:
        """List one page of keys under ``prefix``.

        Args:
            prefix: Key prefix to list
            marker: Continuation marker (last key of the previous page)
            max_keys: Page size limit

        Returns:
            ListPage with entries in lexical key order

        Raises:
            ListingError: If the bucket cannot be listed
        """
        kwargs: dict[str, Any] = {
            "Bucket": self.bucket,
            "Prefix": prefix,
            "MaxKeys": max_keys,
        }
        if marker:
            kwargs["Marker"] = marker
        try:
            response = self.client.list_objects(**kwargs)
        except (ClientError, BotoCoreError) as e:
            raise ListingError(
                f"Could not list bucket '{self.bucket}' in region "
                f"'{self.region}': {e}"
            ) from e
        return ListPage.from_api_response(response)

    def head_object(self, key: str) -> str:
        """Get the content tag (ETag) of an object.

        Raises:
            TransferError: If the object doesn't exist or the request fails
        """
        try:
            response = self.client.head_object(Bucket=self.bucket, Key=key)
        except (ClientError, BotoCoreError) as e:
            raise TransferError(f"Head request for '{key}' failed: {e}") from e
        return response.get("ETag", "")

    def get_object(self, key: str, request_key: str | None = None) -> Any:
        """Open a streaming body for an object.

        Args:
            key: Object key, sent to the store unchanged
            request_key: Key as shown in the request line and error messages
                (spaces as ``+``); defaults to ``key``

        Returns:
            ObjectStream over the response body; the caller closes it
        """
        request_key = request_key or key
        logger.debug("GET %s", request_key)
        try:
            response = self.client.get_object(Bucket=self.bucket, Key=key)
        except (ClientError, BotoCoreError) as e:
            raise TransferError(f"Error making request for {request_key}: {e}") from e
        return ObjectStream(key, response["Body"])

    def put_object(
        self,
        key: str,
        body: IO[bytes],
        length: int,
        content_type: str,
        acl: str = DEFAULT_ACL,
    ) -> None:
        """Upload ``length`` bytes read from ``body`` to ``key``."""
        try:
            self.client.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=body,
                ContentLength=length,
                ContentType=content_type,
                ACL=acl,
            )
        except (ClientError, BotoCoreError) as e:
            raise TransferError(f"Error uploading '{key}': {e}") from e

    def delete_object(self, key: str) -> None:
        """Delete an object.

        A missing key is reported like any other failure.
        """
        try:
            self.client.delete_object(Bucket=self.bucket, Key=key)
        except (ClientError, BotoCoreError) as e:
            code = _error_code(e)
            detail = f" ({code})" if code else ""
            raise TransferError(f"Error deleting key '{key}'{detail}: {e}") from e
