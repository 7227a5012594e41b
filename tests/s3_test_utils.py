"""Fake S3 and CloudWatch clients that page through synthetic listings.

``get_paginator`` hands out real botocore paginators built from botocore's
bundled service models, so continuation tokens are followed exactly as they
are against AWS.
"""

from __future__ import annotations

from functools import lru_cache
from unittest.mock import MagicMock

import botocore.session
from botocore import xform_name
from botocore.exceptions import ClientError
from botocore.paginate import Paginator


def client_error(code: str, operation: str) -> ClientError:
    """Build a botocore ClientError carrying ``code``."""
    return ClientError({"Error": {"Code": code, "Message": f"{code} raised by test"}}, operation)


@lru_cache(maxsize=None)
def _service_models(service_name: str):
    session = botocore.session.get_session()
    return session.get_service_model(service_name), session.get_paginator_model(service_name)


def paginator_for(service_name: str, operation_name: str, method) -> Paginator:
    """Botocore paginator for ``operation_name`` (e.g. ``list_objects_v2``) calling ``method``."""
    service_model, paginator_model = _service_models(service_name)
    api_names = {xform_name(name): name for name in service_model.operation_names}
    api_name = api_names[operation_name]
    return Paginator(method, paginator_model.get_paginator(api_name), service_model.operation_model(api_name))


def _page(items: list, token, page_size: int):
    start = int(token) if token else 0
    end = start + page_size
    chunk = items[start:end]
    next_token = str(end) if end < len(items) else None
    return chunk, next_token


class FakeS3Client:
    """Serve paged S3 listings for a single synthetic bucket.

    ``current`` and ``noncurrent`` are object sizes; ``uploads`` maps
    ``(key, upload_id)`` to the sizes of the upload's parts. Every call is
    recorded in ``calls`` as ``(operation, kwargs)``.
    """

    def __init__(
        self,
        current=(),
        noncurrent=(),
        uploads=None,
        page_size: int = 1000,
        buckets=("test-bucket",),
        location=None,
    ):
        self.current = list(current)
        self.noncurrent = list(noncurrent)
        self.uploads = dict(uploads or {})
        self.page_size = page_size
        self.buckets = list(buckets)
        self.location = location
        self.calls: list[tuple[str, dict]] = []
        self.errors: dict[str, Exception] = {}

    def _record(self, operation: str, kwargs: dict):
        self.calls.append((operation, kwargs))
        if operation in self.errors:
            raise self.errors[operation]

    def get_paginator(self, operation_name: str) -> Paginator:
        return paginator_for("s3", operation_name, getattr(self, operation_name))

    def operations(self) -> list[str]:
        return [operation for operation, _ in self.calls]

    def list_buckets(self, **kwargs):
        self._record("list_buckets", kwargs)
        return {"Buckets": [{"Name": name} for name in self.buckets]}

    def get_bucket_location(self, **kwargs):
        self._record("get_bucket_location", kwargs)
        return {"LocationConstraint": self.location}

    def head_bucket(self, **kwargs):
        self._record("head_bucket", kwargs)
        return {}

    def list_objects_v2(self, **kwargs):
        self._record("list_objects_v2", kwargs)
        chunk, next_token = _page(self.current, kwargs.get("ContinuationToken"), self.page_size)
        response = {"IsTruncated": next_token is not None, "KeyCount": len(chunk)}
        if chunk:
            response["Contents"] = [
                {"Key": f"object-{index}", "Size": size, "StorageClass": "STANDARD"}
                for index, size in enumerate(chunk)
            ]
        if next_token:
            response["NextContinuationToken"] = next_token
        return response

    def list_object_versions(self, **kwargs):
        self._record("list_object_versions", kwargs)
        versions = [(size, True) for size in self.current] + [(size, False) for size in self.noncurrent]
        chunk, next_token = _page(versions, kwargs.get("KeyMarker"), self.page_size)
        response = {
            "IsTruncated": next_token is not None,
            "Versions": [
                {"Key": f"object-{index}", "VersionId": f"v{index}", "IsLatest": latest, "Size": size}
                for index, (size, latest) in enumerate(chunk)
            ],
            "DeleteMarkers": [{"Key": "deleted-object", "VersionId": "dm", "IsLatest": True}],
        }
        if next_token:
            response["NextKeyMarker"] = next_token
            response["NextVersionIdMarker"] = f"v{next_token}"
        return response

    def list_multipart_uploads(self, **kwargs):
        self._record("list_multipart_uploads", kwargs)
        uploads = list(self.uploads)
        chunk, next_token = _page(uploads, kwargs.get("KeyMarker"), self.page_size)
        response = {"IsTruncated": next_token is not None}
        if chunk:
            response["Uploads"] = [{"Key": key, "UploadId": upload_id} for key, upload_id in chunk]
        if next_token:
            response["NextKeyMarker"] = next_token
            response["NextUploadIdMarker"] = f"u{next_token}"
        return response

    def list_parts(self, **kwargs):
        self._record("list_parts", kwargs)
        parts = self.uploads[(kwargs["Key"], kwargs["UploadId"])]
        chunk, next_token = _page(parts, kwargs.get("PartNumberMarker"), self.page_size)
        response = {
            "IsTruncated": next_token is not None,
            "Parts": [{"PartNumber": index + 1, "Size": size} for index, size in enumerate(chunk)],
        }
        if next_token:
            response["NextPartNumberMarker"] = int(next_token)
        return response


def bucket_size_metric(bucket: str, *storage_types: str) -> list[dict]:
    """ListMetrics entries for ``bucket``, one per storage type."""
    return [
        {
            "Namespace": "AWS/S3",
            "MetricName": "BucketSizeBytes",
            "Dimensions": [
                {"Name": "StorageType", "Value": storage_type},
                {"Name": "BucketName", "Value": bucket},
            ],
        }
        for storage_type in storage_types
    ]


class FakeCloudWatchClient:
    """Serve ListMetrics pages and GetMetricData values from fixed data.

    ``values`` maps ``(bucket, storage_type)`` to datapoints, newest first.
    """

    def __init__(self, metrics=(), values=None, page_size: int = 500):
        self.metrics = list(metrics)
        self.values = dict(values or {})
        self.page_size = page_size
        self.calls: list[tuple[str, dict]] = []

    def get_paginator(self, operation_name: str) -> Paginator:
        return paginator_for("cloudwatch", operation_name, getattr(self, operation_name))

    def list_metrics(self, **kwargs):
        self.calls.append(("list_metrics", kwargs))
        metrics = self.metrics
        for wanted in kwargs.get("Dimensions", []):
            metrics = [
                metric
                for metric in metrics
                if any(
                    dimension["Name"] == wanted["Name"] and dimension["Value"] == wanted["Value"]
                    for dimension in metric["Dimensions"]
                )
            ]
        chunk, next_token = _page(metrics, kwargs.get("NextToken"), self.page_size)
        response = {"Metrics": chunk}
        if next_token:
            response["NextToken"] = next_token
        return response

    def get_metric_data(self, **kwargs):
        self.calls.append(("get_metric_data", kwargs))
        results = []
        for query in kwargs["MetricDataQueries"]:
            dimensions = {
                dimension["Name"]: dimension["Value"]
                for dimension in query["MetricStat"]["Metric"]["Dimensions"]
            }
            values = self.values.get((dimensions["BucketName"], dimensions["StorageType"]), [])
            results.append({"Id": query["Id"], "Label": query["Label"], "Values": list(values)})
        return {"MetricDataResults": results}


def paged_mock_client(service_name: str) -> MagicMock:
    """MagicMock client whose ``get_paginator`` drives the mocked listing methods through botocore."""
    client = MagicMock()
    client.get_paginator.side_effect = lambda operation_name: paginator_for(
        service_name, operation_name, getattr(client, operation_name)
    )
    return client
