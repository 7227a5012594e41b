"""Tests for s3du/common/format_utils.py"""

from __future__ import annotations

import pytest

from s3du.common.format_utils import format_bytes, format_size


@pytest.mark.parametrize(
    "num_bytes, expected",
    [
        (None, "n/a"),
        (0, "0 B"),
        (512, "512 B"),
        (1023, "1023 B"),
        (1024, "1.00 KiB"),
        (1536, "1.50 KiB"),
        (5 * 1024**3, "5.00 GiB"),
    ],
)
def test_format_bytes_binary(num_bytes, expected):
    assert format_bytes(num_bytes) == expected


def test_format_bytes_decimal():
    assert format_bytes(1500, binary_units=False) == "1.50 KB"
    assert format_bytes(999, binary_units=False) == "999 B"


def test_format_bytes_precision():
    assert format_bytes(1024**2 + 1024**2 // 3, decimal_places=1) == "1.3 MiB"


def test_format_bytes_caps_at_largest_unit():
    assert format_bytes(1024**8).endswith(" EiB")


@pytest.mark.parametrize(
    "unit, expected",
    [("binary", "2.93 KiB"), ("decimal", "3.00 KB"), ("bytes", "3000")],
)
def test_format_size_units(unit, expected):
    assert format_size(3000, unit) == expected
