"""
Size many buckets concurrently with one backend.

A run walks ``IDLE -> DISCOVERING -> DISPATCHING -> COLLECTING`` and ends in
``DONE`` or ``PARTIAL_FAILURE``. Every bucket is attempted: a failure is
recorded against its bucket and never stops the others. Results are gathered
by the calling thread as tasks complete, so worker threads share no state.
"""

from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from threading import Event
from typing import Iterable, Optional

from botocore.exceptions import BotoCoreError, ClientError

from s3du.backends import Backend, BucketSizer, create_sizer
from s3du.config import SizerConfig, default_workers
from s3du.errors import DiscoveryError, ResolutionError, RunCancelledError, S3duError
from s3du.models import Bucket, RunState, SizeReport, VersionMode


def _unique(names: Iterable[str]) -> list[str]:
    seen = set()
    ordered = []
    for name in names:
        if name not in seen:
            seen.add(name)
            ordered.append(name)
    return ordered


class BucketSizeEngine:
    """Discover buckets, size them on a bounded worker pool and collect the results."""

    def __init__(
        self,
        sizer: BucketSizer,
        *,
        object_versions: VersionMode = VersionMode.CURRENT,
        workers: Optional[int] = None,
        endpoint_url: Optional[str] = None,
        cancel_event: Optional[Event] = None,
    ):
        self.sizer = sizer
        self.object_versions = object_versions
        self.workers = workers or default_workers()
        self.endpoint_url = endpoint_url
        self._cancel_event = cancel_event or Event()
        self.state = RunState.IDLE

    @property
    def cancelled(self) -> bool:
        return self._cancel_event.is_set()

    def cancel(self) -> None:
        """Stop the run: pages already being fetched finish, nothing new starts."""
        self._cancel_event.set()

    def discover(self, bucket_names: Optional[Iterable[str]] = None) -> list[Bucket]:
        """Return the buckets to size: the given names, or whatever the backend finds.

        Raises:
            DiscoveryError: If the backend cannot enumerate buckets
        """
        self.state = RunState.DISCOVERING
        if bucket_names is not None:
            return [Bucket(name=name, endpoint_url=self.endpoint_url) for name in _unique(bucket_names)]
        try:
            return self.sizer.discover()
        except RunCancelledError:
            raise
        except (S3duError, ClientError, BotoCoreError) as exc:
            raise DiscoveryError(f"Unable to list buckets: {exc}") from exc

    def _size_bucket(self, bucket: Bucket) -> int:
        if self.cancelled:
            raise RunCancelledError(f"Run cancelled before {bucket.name} was started")
        return self.sizer.resolve(bucket, self.object_versions)

    def _collect(self, futures: dict[Future, Bucket], report: SizeReport) -> None:
        for future in as_completed(futures):
            bucket = futures[future]
            if future.cancelled():
                continue
            try:
                report.sizes[bucket.name] = future.result()
            except RunCancelledError:
                continue
            except (S3duError, ClientError, BotoCoreError) as exc:
                if not isinstance(exc, ResolutionError):
                    exc = ResolutionError(bucket.name, str(exc))
                logging.warning("Could not size bucket %s: %s", bucket.name, exc)
                report.failures[bucket.name] = str(exc)
            except Exception as exc:  # pylint: disable=broad-exception-caught
                logging.exception("Unexpected error while sizing bucket %s", bucket.name)
                error = ResolutionError(bucket.name, f"Unexpected {type(exc).__name__}: {exc}")
                report.failures[bucket.name] = str(error)
            if self.cancelled:
                for pending in futures:
                    pending.cancel()

    def run(self, bucket_names: Optional[Iterable[str]] = None) -> SizeReport:
        """Size every bucket and return the successes together with the failures.

        Raises:
            DiscoveryError: If buckets could not be enumerated
            RunCancelledError: If the run was cancelled; partial results are dropped
        """
        buckets = self.discover(bucket_names)
        report = SizeReport()

        if buckets and not self.cancelled:
            self.state = RunState.DISPATCHING
            max_workers = max(1, min(self.workers, len(buckets)))
            logging.info("Sizing %d bucket(s) with %d worker(s)", len(buckets), max_workers)
            with ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="s3du") as executor:
                futures = {executor.submit(self._size_bucket, bucket): bucket for bucket in buckets}
                self.state = RunState.COLLECTING
                self._collect(futures, report)

        if self.cancelled:
            raise RunCancelledError("Run cancelled; partial results discarded")

        self.state = RunState.PARTIAL_FAILURE if report.failures else RunState.DONE
        report.state = self.state
        logging.info(
            "Sized %d bucket(s), %d failure(s), %d byte(s) in total",
            len(report.sizes),
            len(report.failures),
            report.total_bytes,
        )
        return report


def compute_bucket_sizes(config: SizerConfig, cancel_event: Optional[Event] = None) -> SizeReport:
    """
    Run a complete sizing pass described by ``config``.

    Args:
        config: backend, version mode, optional bucket names, worker count,
            region and endpoint override
        cancel_event: set it to stop the run early

    Returns:
        SizeReport: sizes of resolved buckets plus failed buckets with reasons

    Raises:
        ConfigurationError: If the configuration is unusable
        DiscoveryError: If buckets could not be enumerated
        RunCancelledError: If ``cancel_event`` was set during the run
    """
    config.validate()
    cancel_event = cancel_event or Event()

    if config.backend is Backend.CLOUDWATCH and config.object_versions is not VersionMode.ALL:
        logging.info(
            "The cloudwatch backend reports current and non-current versions together; "
            "object version mode '%s' is ignored",
            config.object_versions.value,
        )

    sizer = create_sizer(config, should_stop=cancel_event.is_set)
    engine = BucketSizeEngine(
        sizer,
        object_versions=config.object_versions,
        workers=config.workers,
        endpoint_url=config.endpoint_url,
        cancel_event=cancel_event,
    )
    return engine.run(config.buckets)
