"""
Sizing backends.

The set of backends is closed: ``Backend`` names each one and ``create_sizer``
builds the matching implementation. Both implement the ``BucketSizer``
protocol and one is chosen per run; they are never mixed.
"""

from __future__ import annotations

from enum import Enum
from typing import Callable, Optional, Protocol

from s3du.backends.cloudwatch import CloudWatchSizer
from s3du.backends.s3 import S3Sizer
from s3du.common.aws_client_factory import create_cloudwatch_client, create_s3_client
from s3du.models import Bucket, VersionMode


class Backend(Enum):
    """Where bucket sizes come from."""

    CLOUDWATCH = "cloudwatch"
    S3 = "s3"

    @classmethod
    def from_name(cls, name: str) -> "Backend":
        normalized = name.strip().lower()
        for backend in cls:
            if backend.value == normalized:
                return backend
        valid = ", ".join(backend.value for backend in cls)
        raise ValueError(f"Unknown backend: {name!r} (expected one of: {valid})")


class BucketSizer(Protocol):
    """Capabilities shared by every backend."""

    def discover(self) -> list[Bucket]:
        """Return every bucket this backend can size."""

    def resolve(self, bucket: Bucket, mode: VersionMode) -> int:
        """Return the size of ``bucket`` in bytes."""


def create_sizer(config, should_stop: Optional[Callable[[], bool]] = None) -> BucketSizer:
    """Build the backend selected by ``config`` (a :class:`s3du.config.SizerConfig`)."""
    if config.backend is Backend.CLOUDWATCH:
        return CloudWatchSizer(
            create_cloudwatch_client(config.region),
            region=config.region,
            lookback_days=config.lookback_days,
            should_stop=should_stop,
        )
    if config.backend is Backend.S3:
        return S3Sizer(
            create_s3_client,
            region=config.region,
            endpoint_url=config.endpoint_url,
            should_stop=should_stop,
        )
    raise ValueError(f"Unsupported backend: {config.backend!r}")


__all__ = ["Backend", "BucketSizer", "CloudWatchSizer", "S3Sizer", "create_sizer"]
