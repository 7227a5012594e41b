"""
Attribute object bytes to a version mode.

S3 listing calls cannot filter on whether a version is current, so every
version is fetched and the decision is made here, one record at a time.
"""

from typing import Optional

from s3du.models import ObjectRecord, RecordOrigin, VersionMode

_LISTED_OBJECTS = (RecordOrigin.OBJECT_LISTING, RecordOrigin.VERSION_LISTING)


def decide(record: ObjectRecord, mode: VersionMode) -> Optional[int]:
    """Return the bytes ``record`` contributes under ``mode``, or None when excluded.

    A return of ``0`` means the record is included but empty, which is not the
    same as being excluded.
    """
    if mode is VersionMode.ALL:
        return record.size
    if mode is VersionMode.MULTIPART:
        return record.size if record.origin is RecordOrigin.MULTIPART_PART else None
    if record.origin not in _LISTED_OBJECTS:
        return None
    if mode is VersionMode.CURRENT:
        return record.size if record.is_latest else None
    if mode is VersionMode.NON_CURRENT:
        return None if record.is_latest else record.size
    raise ValueError(f"Unhandled version mode: {mode!r}")


def sum_included(records, mode: VersionMode) -> int:
    """Total the bytes of every record in ``records`` that ``mode`` includes."""
    total = 0
    for record in records:
        size = decide(record, mode)
        if size is not None:
            total += size
    return total
