"""
Bucket sizes from listing every object in S3.

Exact but slow: every object (or object version, or multipart upload part)
is listed and its size added up. Listings are consumed page by page and only
running totals are kept.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

from botocore.exceptions import BotoCoreError, ClientError

from s3du.errors import BucketAccessDeniedError, TransportError
from s3du.models import Bucket, VersionMode
from s3du.pagination import (
    PageCursor,
    list_buckets,
    list_current_objects,
    list_multipart_uploads,
    list_object_versions,
    list_upload_parts,
)
from s3du.version_filter import sum_included

# GetBucketLocation reports these legacy constraints instead of region names.
LEGACY_LOCATIONS = {None: "us-east-1", "": "us-east-1", "EU": "eu-west-1"}

ACCESS_DENIED_CODES = {"403", "404", "AccessDenied", "NoSuchBucket", "Forbidden", "NotFound"}


def _error_code(exc: Exception) -> Optional[str]:
    if isinstance(exc, ClientError):
        return exc.response.get("Error", {}).get("Code")
    return None


class S3Sizer:
    """Resolve bucket sizes by enumerating objects, versions and multipart uploads."""

    def __init__(
        self,
        client_factory: Callable[..., object],
        *,
        region: str,
        endpoint_url: Optional[str] = None,
        should_stop: Optional[Callable[[], bool]] = None,
    ):
        self._client_factory = client_factory
        self.region = region
        self.endpoint_url = endpoint_url
        self._should_stop = should_stop
        self._clients: dict[tuple[str, Optional[str]], object] = {}
        self._clients_lock = threading.Lock()

    def _endpoint_for(self, bucket: Bucket) -> Optional[str]:
        return bucket.endpoint_url or self.endpoint_url

    def client_for(self, region: str, endpoint_url: Optional[str] = None):
        """Return the run's S3 client for ``region`` and endpoint, creating it on first use."""
        endpoint_url = endpoint_url or self.endpoint_url
        with self._clients_lock:
            client = self._clients.get((region, endpoint_url))
            if client is None:
                client = self._client_factory(region, endpoint_url)
                self._clients[(region, endpoint_url)] = client
            return client

    def discover(self) -> list[Bucket]:
        """Return every bucket visible to the caller."""
        cursor = list_buckets(self.client_for(self.region), should_stop=self._should_stop)
        buckets = [
            Bucket(name=name, endpoint_url=self.endpoint_url)
            for page in cursor
            for name in page
        ]
        logging.info("S3 lists %d bucket(s)", len(buckets))
        return buckets

    def bucket_region(self, bucket: Bucket) -> str:
        """Find the region a bucket lives in.

        Buckets behind a custom endpoint keep the configured region.

        Raises:
            TransportError: If the location lookup fails
        """
        if bucket.region:
            return bucket.region
        if self._endpoint_for(bucket):
            return self.region
        try:
            response = self.client_for(self.region).get_bucket_location(Bucket=bucket.name)
        except (ClientError, BotoCoreError) as exc:
            raise TransportError(
                f"Could not determine region of {bucket.name}: {exc}",
                code=_error_code(exc),
                operation="GetBucketLocation",
            ) from exc
        location = response.get("LocationConstraint")
        region = LEGACY_LOCATIONS.get(location, location)
        logging.debug("%s: region %s", bucket.name, region)
        return region

    def check_access(self, client, bucket_name: str) -> None:
        """Fail fast when the bucket cannot be read.

        Raises:
            BucketAccessDeniedError: If S3 refuses access or the bucket is gone
            TransportError: For any other API failure
        """
        try:
            client.head_bucket(Bucket=bucket_name)
        except ClientError as exc:
            code = _error_code(exc)
            if code in ACCESS_DENIED_CODES:
                raise BucketAccessDeniedError(bucket_name, f"Bucket {bucket_name} is inaccessible ({code})") from exc
            raise TransportError(f"HeadBucket failed for {bucket_name}: {exc}", code=code, operation="HeadBucket") from exc
        except BotoCoreError as exc:
            raise TransportError(f"HeadBucket failed for {bucket_name}: {exc}", operation="HeadBucket") from exc

    def _sum_pages(self, cursor: PageCursor, mode: VersionMode) -> int:
        total = 0
        for page in cursor:
            total += sum_included(page, mode)
        return total

    def _upload_parts_size(self, client, bucket_name: str, key: str, upload_id: str) -> int:
        cursor = list_upload_parts(client, bucket_name, key, upload_id, should_stop=self._should_stop)
        try:
            return self._sum_pages(cursor, VersionMode.MULTIPART)
        except TransportError as exc:
            # Completed or aborted between ListMultipartUploads and ListParts.
            if exc.code == "NoSuchUpload":
                logging.debug("%s: upload %s of %s vanished while listing parts", bucket_name, upload_id, key)
                return 0
            raise

    def multipart_size(self, client, bucket_name: str) -> int:
        """Total size of the parts of every in-progress multipart upload."""
        total = 0
        for page in list_multipart_uploads(client, bucket_name, should_stop=self._should_stop):
            for key, upload_id in page:
                total += self._upload_parts_size(client, bucket_name, key, upload_id)
        return total

    def resolve(self, bucket: Bucket, mode: VersionMode) -> int:
        """Return the size of ``bucket`` counting only what ``mode`` selects."""
        name = bucket.name
        logging.debug("%s: calculating size (%s)", name, mode.value)

        client = self.client_for(self.bucket_region(bucket), self._endpoint_for(bucket))
        self.check_access(client, name)

        size = 0
        if mode is VersionMode.CURRENT:
            size += self._sum_pages(list_current_objects(client, name, should_stop=self._should_stop), mode)
        elif mode in (VersionMode.NON_CURRENT, VersionMode.ALL):
            size += self._sum_pages(list_object_versions(client, name, should_stop=self._should_stop), mode)
        if mode in (VersionMode.MULTIPART, VersionMode.ALL):
            size += self.multipart_size(client, name)

        logging.debug("%s: calculated size is %d byte(s)", name, size)
        return size
