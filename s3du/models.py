"""Data models shared by the sizing backends and the engine."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class VersionMode(Enum):
    """Which object versions count towards a bucket's size."""

    ALL = "all"
    CURRENT = "current"
    MULTIPART = "multipart"
    NON_CURRENT = "non-current"

    @classmethod
    def from_name(cls, name: str) -> "VersionMode":
        """Parse a mode name as used on the command line or in the environment."""
        normalized = name.strip().lower().replace("_", "-")
        for mode in cls:
            if mode.value == normalized:
                return mode
        valid = ", ".join(mode.value for mode in cls)
        raise ValueError(f"Unknown object version mode: {name!r} (expected one of: {valid})")


class RecordOrigin(Enum):
    """Listing operation a record was produced by."""

    OBJECT_LISTING = "object"
    VERSION_LISTING = "version"
    MULTIPART_PART = "multipart-part"


class RunState(Enum):
    """Lifecycle of a single engine run."""

    IDLE = "idle"
    DISCOVERING = "discovering"
    DISPATCHING = "dispatching"
    COLLECTING = "collecting"
    DONE = "done"
    PARTIAL_FAILURE = "partial-failure"


@dataclass(frozen=True)
class Bucket:
    """A bucket to be sized.

    ``region`` is filled in lazily by backends that need it. ``storage_types``
    is only known to the CloudWatch backend once its metric series have been
    listed.
    """

    name: str
    region: Optional[str] = None
    endpoint_url: Optional[str] = None
    storage_types: Optional[tuple[str, ...]] = None


@dataclass(frozen=True)
class ObjectRecord:
    """A single object, object version or upload part seen in a listing page."""

    size: int
    origin: RecordOrigin
    is_latest: bool = True
    version_id: Optional[str] = None


@dataclass
class SizeReport:
    """Outcome of a run: sizes of resolved buckets and reasons for the rest."""

    sizes: dict[str, int] = field(default_factory=dict)
    failures: dict[str, str] = field(default_factory=dict)
    state: RunState = RunState.IDLE

    @property
    def ok(self) -> bool:
        """True when every bucket was sized."""
        return not self.failures

    @property
    def total_bytes(self) -> int:
        return sum(self.sizes.values())

    def sorted_sizes(self) -> list[tuple[str, int]]:
        """Sizes ordered alphabetically by bucket name."""
        return sorted(self.sizes.items())
