"""
Lazy iteration over paged AWS listing APIs.

Continuation tokens are followed by botocore paginators. A ``PageCursor``
wraps one paginator's page iterator: it pulls one page per ``next()`` call,
maps the raw response to the records the backends consume, checks for
cancellation between pages and turns botocore failures into s3du errors.
The listing helpers below build a cursor for each operation the backends use.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Iterable, Iterator, Optional

from botocore.exceptions import BotoCoreError, ClientError, PaginationError

from s3du.errors import PaginationLoopError, RunCancelledError, TransportError
from s3du.models import ObjectRecord, RecordOrigin

# Largest page S3 hands back for object, version, upload and part listings.
S3_MAX_KEYS = 1000
S3_MAX_PARTS = 1000
S3_MAX_UPLOADS = 1000

PageExtractor = Callable[[dict], list]


def _client_error_code(exc: Exception) -> Optional[str]:
    if isinstance(exc, ClientError):
        return exc.response.get("Error", {}).get("Code")
    return None


class PageCursor:
    """Iterate over the pages of one listing operation.

    ``pages`` is usually a botocore ``PageIterator``; nothing is requested
    until the cursor is first advanced. Every page the API returns is
    yielded, including an empty last page. The cursor is single-use: once
    exhausted (or failed) it stays exhausted and a fresh cursor has to be
    built for another pass.

    Raises:
        TransportError: when a page pull fails at the API or network level.
        PaginationLoopError: when the API returns the token it was just given.
        RunCancelledError: when ``should_stop`` reports a cancellation before a pull.
    """

    def __init__(
        self,
        pages: Iterable[Any],
        extract: Optional[PageExtractor] = None,
        *,
        operation: str = "listing",
        should_stop: Optional[Callable[[], bool]] = None,
    ):
        self._pages = pages
        self._page_iter: Optional[Iterator[Any]] = None
        self._extract = extract
        self.operation = operation
        self._should_stop = should_stop
        self._exhausted = False
        self.pages_fetched = 0

    def __iter__(self) -> Iterator[list]:
        return self

    def __next__(self) -> list:
        if self._exhausted:
            raise StopIteration
        if self._should_stop is not None and self._should_stop():
            self._exhausted = True
            raise RunCancelledError(f"{self.operation} cancelled after {self.pages_fetched} page(s)")

        page = self._pull()
        self.pages_fetched += 1
        items = self._extract(page) if self._extract is not None else page
        logging.debug("%s: page %d with %d item(s)", self.operation, self.pages_fetched, len(items))
        return items

    def _pull(self) -> Any:
        try:
            if self._page_iter is None:
                self._page_iter = iter(self._pages)
            return next(self._page_iter)
        except StopIteration:
            self._exhausted = True
            raise
        except PaginationError as exc:
            self._exhausted = True
            raise PaginationLoopError(
                f"{self.operation} returned the same continuation token twice: {exc}",
                operation=self.operation,
            ) from exc
        except (ClientError, BotoCoreError) as exc:
            self._exhausted = True
            raise TransportError(
                f"{self.operation} failed: {exc}",
                code=_client_error_code(exc),
                operation=self.operation,
            ) from exc


def _bucket_names(page: dict) -> list[str]:
    return [bucket["Name"] for bucket in page.get("Buckets", []) if bucket.get("Name")]


def _current_objects(page: dict) -> list[ObjectRecord]:
    return [
        ObjectRecord(size=obj.get("Size", 0), origin=RecordOrigin.OBJECT_LISTING, is_latest=True)
        for obj in page.get("Contents", [])
    ]


def _object_versions(page: dict) -> list[ObjectRecord]:
    # Delete markers occupy no storage.
    return [
        ObjectRecord(
            size=version.get("Size", 0),
            origin=RecordOrigin.VERSION_LISTING,
            is_latest=bool(version.get("IsLatest", False)),
            version_id=version.get("VersionId"),
        )
        for version in page.get("Versions", [])
    ]


def _uploads(page: dict) -> list[tuple[str, str]]:
    return [
        (upload["Key"], upload["UploadId"])
        for upload in page.get("Uploads", [])
        if upload.get("Key") is not None and upload.get("UploadId")
    ]


def _upload_parts(page: dict) -> list[ObjectRecord]:
    return [
        ObjectRecord(size=part.get("Size", 0), origin=RecordOrigin.MULTIPART_PART, is_latest=False)
        for part in page.get("Parts", [])
    ]


def _bucket_listing_pages(s3_client):
    yield s3_client.list_buckets()


def list_buckets(s3_client, *, should_stop=None) -> PageCursor:
    """Cursor over ``ListBuckets``; each item is a bucket name."""
    return PageCursor(
        _bucket_listing_pages(s3_client), _bucket_names, operation="ListBuckets", should_stop=should_stop
    )


def list_current_objects(s3_client, bucket: str, *, page_size: int = S3_MAX_KEYS, should_stop=None) -> PageCursor:
    """Cursor over ``ListObjectsV2``; S3 only returns current versions here."""
    paginator = s3_client.get_paginator("list_objects_v2")
    pages = paginator.paginate(Bucket=bucket, PaginationConfig={"PageSize": page_size})
    return PageCursor(pages, _current_objects, operation="ListObjectsV2", should_stop=should_stop)


def list_object_versions(s3_client, bucket: str, *, page_size: int = S3_MAX_KEYS, should_stop=None) -> PageCursor:
    """Cursor over ``ListObjectVersions``, every version of every key."""
    paginator = s3_client.get_paginator("list_object_versions")
    pages = paginator.paginate(Bucket=bucket, PaginationConfig={"PageSize": page_size})
    return PageCursor(pages, _object_versions, operation="ListObjectVersions", should_stop=should_stop)


def list_multipart_uploads(
    s3_client, bucket: str, *, page_size: int = S3_MAX_UPLOADS, should_stop=None
) -> PageCursor:
    """Cursor over ``ListMultipartUploads``; each item is a ``(key, upload_id)`` pair."""
    paginator = s3_client.get_paginator("list_multipart_uploads")
    pages = paginator.paginate(Bucket=bucket, PaginationConfig={"PageSize": page_size})
    return PageCursor(pages, _uploads, operation="ListMultipartUploads", should_stop=should_stop)


def list_upload_parts(
    s3_client, bucket: str, key: str, upload_id: str, *, page_size: int = S3_MAX_PARTS, should_stop=None
) -> PageCursor:
    """Cursor over ``ListParts`` for one in-progress multipart upload."""
    paginator = s3_client.get_paginator("list_parts")
    pages = paginator.paginate(
        Bucket=bucket, Key=key, UploadId=upload_id, PaginationConfig={"PageSize": page_size}
    )
    return PageCursor(pages, _upload_parts, operation="ListParts", should_stop=should_stop)


def list_metrics(
    cloudwatch_client,
    namespace: str,
    metric_name: str,
    dimensions: Optional[list[dict]] = None,
    *,
    should_stop=None,
) -> PageCursor:
    """Cursor over ``ListMetrics``; CloudWatch returns up to 500 series per page."""
    params = {"Namespace": namespace, "MetricName": metric_name}
    if dimensions:
        params["Dimensions"] = dimensions
    pages = cloudwatch_client.get_paginator("list_metrics").paginate(**params)
    return PageCursor(
        pages, lambda page: list(page.get("Metrics", [])), operation="ListMetrics", should_stop=should_stop
    )


def get_metric_data(cloudwatch_client, *, should_stop=None, **params) -> PageCursor:
    """Cursor over ``GetMetricData``; each item is one entry of ``MetricDataResults``."""
    pages = cloudwatch_client.get_paginator("get_metric_data").paginate(**params)
    return PageCursor(
        pages,
        lambda page: list(page.get("MetricDataResults", [])),
        operation="GetMetricData",
        should_stop=should_stop,
    )
