"""
Error types raised while sizing buckets.

Discovery and configuration errors abort a run before any bucket is sized.
Resolution errors are attributed to a single bucket and recorded by the engine.
"""

from typing import Optional


class S3duError(Exception):
    """Base class for every error raised by s3du."""


class TransportError(S3duError):
    """A remote API call failed (access denied, throttling, bad page token...)."""

    def __init__(self, message: str, code: Optional[str] = None, operation: Optional[str] = None):
        super().__init__(message)
        self.code = code
        self.operation = operation


class PaginationLoopError(TransportError):
    """A listing API handed back the same continuation token twice in a row."""


class ConfigurationError(S3duError):
    """The requested run cannot be performed with the given settings."""


class DiscoveryError(S3duError):
    """The set of buckets could not be enumerated at all."""


class ResolutionError(S3duError):
    """The size of one bucket could not be determined."""

    def __init__(self, bucket: str, message: str):
        super().__init__(message)
        self.bucket = bucket


class BucketAccessDeniedError(ResolutionError):
    """The caller cannot list the contents of a bucket."""


class RunCancelledError(S3duError):
    """The run was cancelled before every bucket was sized."""
