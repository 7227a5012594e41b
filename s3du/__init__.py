"""
s3du: report the space used by S3 buckets.

Sizes come either from the daily ``BucketSizeBytes`` CloudWatch metric (fast,
up to a day stale) or from listing every object, version and multipart upload
part in each bucket (slow, exact).
"""

from s3du.engine import BucketSizeEngine, compute_bucket_sizes
from s3du.models import Bucket, RunState, SizeReport, VersionMode

__version__ = "1.2.0"

__all__ = [
    "Bucket",
    "BucketSizeEngine",
    "RunState",
    "SizeReport",
    "VersionMode",
    "compute_bucket_sizes",
]
