"""
Run configuration for s3du.

Defaults can be overridden from the environment (after the credential .env
file has been loaded) and then by explicit command-line values:

- S3DU_BACKEND: cloudwatch | s3
- S3DU_OBJECT_VERSIONS: all | current | multipart | non-current
- S3DU_REGION: region for clients (falls back to AWS_REGION / AWS_DEFAULT_REGION)
- S3DU_ENDPOINT: endpoint URL of an S3-compatible store (s3 backend only)
- S3DU_WORKERS: number of buckets sized concurrently
"""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from typing import Mapping, Optional

from dotenv import load_dotenv

from s3du.backends import Backend
from s3du.common.aws_client_factory import _resolve_env_path
from s3du.errors import ConfigurationError
from s3du.models import VersionMode

DEFAULT_REGION: str = "us-east-1"
DEFAULT_BACKEND: Backend = Backend.CLOUDWATCH
DEFAULT_OBJECT_VERSIONS: VersionMode = VersionMode.CURRENT

# Sizing is bound by network latency, not CPU, so run a few workers per core.
WORKERS_PER_CPU: int = 4

# BucketSizeBytes is published once a day and can lag by up to ~24h.
CLOUDWATCH_LOOKBACK_DAYS: int = 2


def default_workers() -> int:
    return (os.cpu_count() or 1) * WORKERS_PER_CPU


def default_region(environ: Optional[Mapping[str, str]] = None) -> str:
    env = os.environ if environ is None else environ
    return env.get("AWS_REGION") or env.get("AWS_DEFAULT_REGION") or DEFAULT_REGION


@dataclass(frozen=True)
class SizerConfig:
    """Everything a single run needs to know."""

    backend: Backend = DEFAULT_BACKEND
    object_versions: VersionMode = DEFAULT_OBJECT_VERSIONS
    region: str = DEFAULT_REGION
    endpoint_url: Optional[str] = None
    workers: int = 0
    buckets: Optional[tuple[str, ...]] = None
    lookback_days: int = CLOUDWATCH_LOOKBACK_DAYS

    def __post_init__(self):
        if not self.workers:
            object.__setattr__(self, "workers", default_workers())

    def validate(self) -> "SizerConfig":
        """Reject settings that cannot produce a run.

        Raises:
            ConfigurationError: on any unusable value
        """
        if not isinstance(self.backend, Backend):
            raise ConfigurationError(f"No usable backend selected: {self.backend!r}")
        if not isinstance(self.object_versions, VersionMode):
            raise ConfigurationError(f"Unknown object version mode: {self.object_versions!r}")
        if self.workers < 1:
            raise ConfigurationError(f"workers must be at least 1, got {self.workers}")
        if self.lookback_days < 1:
            raise ConfigurationError(f"lookback_days must be at least 1, got {self.lookback_days}")
        if not self.region:
            raise ConfigurationError("A region is required")
        if self.endpoint_url and self.backend is Backend.CLOUDWATCH:
            raise ConfigurationError("--endpoint can only be used with the s3 backend")
        if self.buckets is not None and any(not name for name in self.buckets):
            raise ConfigurationError("Bucket names cannot be empty")
        return self


def parse_backend(value: str) -> Backend:
    try:
        return Backend.from_name(value)
    except ValueError as exc:
        raise ConfigurationError(str(exc)) from exc


def parse_object_versions(value: str) -> VersionMode:
    try:
        return VersionMode.from_name(value)
    except ValueError as exc:
        raise ConfigurationError(str(exc)) from exc


def parse_workers(value: str) -> int:
    try:
        workers = int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid worker count: {value!r}") from exc
    if workers < 1:
        raise ConfigurationError(f"workers must be at least 1, got {workers}")
    return workers


def load_config_from_env(
    env_path: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> SizerConfig:
    """
    Build a SizerConfig from S3DU_* environment variables.

    The .env file is resolved the same way as for credentials (explicit path,
    then AWS_ENV_FILE, then ~/.env) and loaded first, so it may carry these
    settings too. Passing ``environ`` skips the .env file entirely.

    Raises:
        ConfigurationError: if a variable holds an invalid value
    """
    if environ is None:
        load_dotenv(_resolve_env_path(env_path))
        environ = os.environ

    config = SizerConfig(region=environ.get("S3DU_REGION") or default_region(environ))
    if environ.get("S3DU_BACKEND"):
        config = replace(config, backend=parse_backend(environ["S3DU_BACKEND"]))
    if environ.get("S3DU_OBJECT_VERSIONS"):
        config = replace(config, object_versions=parse_object_versions(environ["S3DU_OBJECT_VERSIONS"]))
    if environ.get("S3DU_ENDPOINT"):
        config = replace(config, endpoint_url=environ["S3DU_ENDPOINT"])
    if environ.get("S3DU_WORKERS"):
        config = replace(config, workers=parse_workers(environ["S3DU_WORKERS"]))
    return config
