"""
Bucket sizes from the CloudWatch ``AWS/S3`` ``BucketSizeBytes`` metric.

S3 publishes one series per bucket and storage type, once a day. The metric
already combines current and non-current versions, so the requested version
mode cannot be honoured and the combined total is always returned.
CloudWatch is regional: only buckets in the client's region are visible.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Iterable, Optional

from s3du.models import Bucket, VersionMode
from s3du.pagination import get_metric_data, list_metrics

S3_NAMESPACE = "AWS/S3"
BUCKET_SIZE_BYTES = "BucketSizeBytes"
BUCKET_NAME_DIMENSION = "BucketName"
STORAGE_TYPE_DIMENSION = "StorageType"
ONE_DAY_SECONDS = 86400


def bucket_storage_types(metrics: Iterable[dict]) -> dict[str, list[str]]:
    """Group the StorageType dimension values of each bucket's series by bucket name.

    A ``ListMetrics`` entry resembles::

        {
            "Namespace": "AWS/S3",
            "MetricName": "BucketSizeBytes",
            "Dimensions": [
                {"Name": "StorageType", "Value": "StandardStorage"},
                {"Name": "BucketName", "Value": "some-bucket-name"},
            ],
        }

    Series without a bucket name are ignored.
    """
    storage_types: dict[str, list[str]] = {}
    for metric in metrics:
        name = None
        types = []
        for dimension in metric.get("Dimensions") or []:
            if dimension.get("Name") == BUCKET_NAME_DIMENSION:
                name = dimension.get("Value")
            elif dimension.get("Name") == STORAGE_TYPE_DIMENSION:
                types.append(dimension.get("Value"))
        if not name:
            continue
        known = storage_types.setdefault(name, [])
        for storage_type in types:
            if storage_type and storage_type not in known:
                known.append(storage_type)
    return storage_types


class CloudWatchSizer:
    """Resolve bucket sizes from pre-aggregated daily CloudWatch statistics."""

    def __init__(
        self,
        client,
        *,
        region: Optional[str] = None,
        lookback_days: int = 2,
        should_stop: Optional[Callable[[], bool]] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.client = client
        self.region = region
        self.lookback = timedelta(days=lookback_days)
        self._should_stop = should_stop
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def _list_metrics(self, dimensions: Optional[list[dict]] = None) -> list[dict]:
        cursor = list_metrics(
            self.client, S3_NAMESPACE, BUCKET_SIZE_BYTES, dimensions, should_stop=self._should_stop
        )
        metrics: list[dict] = []
        for page in cursor:
            metrics.extend(page)
        return metrics

    def discover(self) -> list[Bucket]:
        """Return every bucket with a BucketSizeBytes series in this region."""
        storage_types = bucket_storage_types(self._list_metrics())
        logging.info("CloudWatch lists BucketSizeBytes for %d bucket(s)", len(storage_types))
        return [
            Bucket(name=name, region=self.region, storage_types=tuple(types))
            for name, types in sorted(storage_types.items())
        ]

    def storage_types_for(self, bucket_name: str) -> list[str]:
        """List the storage types reported for one bucket."""
        dimensions = [{"Name": BUCKET_NAME_DIMENSION, "Value": bucket_name}]
        return bucket_storage_types(self._list_metrics(dimensions)).get(bucket_name, [])

    def _metric_queries(self, bucket_name: str, storage_types: list[str]) -> list[dict]:
        return [
            {
                "Id": f"size{index}",
                "Label": storage_type,
                "MetricStat": {
                    "Metric": {
                        "Namespace": S3_NAMESPACE,
                        "MetricName": BUCKET_SIZE_BYTES,
                        "Dimensions": [
                            {"Name": BUCKET_NAME_DIMENSION, "Value": bucket_name},
                            {"Name": STORAGE_TYPE_DIMENSION, "Value": storage_type},
                        ],
                    },
                    "Period": ONE_DAY_SECONDS,
                    "Stat": "Average",
                    "Unit": "Bytes",
                },
                "ReturnData": True,
            }
            for index, storage_type in enumerate(storage_types)
        ]

    def _latest_values(self, queries: list[dict]) -> dict[str, float]:
        """Return the newest datapoint of each query id that has one."""
        end_time = self._clock()
        cursor = get_metric_data(
            self.client,
            should_stop=self._should_stop,
            MetricDataQueries=queries,
            StartTime=end_time - self.lookback,
            EndTime=end_time,
            ScanBy="TimestampDescending",
        )
        latest: dict[str, float] = {}
        for page in cursor:
            for result in page:
                values = result.get("Values") or []
                if values and result["Id"] not in latest:
                    latest[result["Id"]] = values[0]
        return latest

    def resolve(self, bucket: Bucket, mode: VersionMode = VersionMode.ALL) -> int:
        """Return the latest BucketSizeBytes of ``bucket`` summed over its storage types.

        ``mode`` is accepted for interface compatibility and ignored. A bucket
        without any datapoint in the look-back window (new or empty) is 0 bytes.
        """
        storage_types = list(bucket.storage_types or self.storage_types_for(bucket.name))
        if not storage_types:
            logging.debug("%s: no BucketSizeBytes series, reporting 0", bucket.name)
            return 0

        latest = self._latest_values(self._metric_queries(bucket.name, storage_types))
        size = sum(int(value) for value in latest.values())
        logging.debug(
            "%s: %d byte(s) across %d storage type(s) (%s)",
            bucket.name,
            size,
            len(storage_types),
            ", ".join(storage_types),
        )
        return size
