"""
Byte formatting for command-line output.
"""

from typing import Optional

BINARY_UNITS = ["B", "KiB", "MiB", "GiB", "TiB", "PiB", "EiB"]
DECIMAL_UNITS = ["B", "KB", "MB", "GB", "TB", "PB", "EB"]


def format_bytes(num_bytes: Optional[int], decimal_places: int = 2, binary_units: bool = True) -> str:
    """
    Format byte count as human-readable string with appropriate units.

    Args:
        num_bytes: Number of bytes to format (None returns "n/a")
        decimal_places: Number of decimal places to display (default: 2)
        binary_units: Use binary units (KiB, base 1024) vs decimal (KB, base 1000)

    Returns:
        Formatted string like "1.23 MiB" or "456.78 MB"

    Examples:
        >>> format_bytes(1024)
        '1.00 KiB'
        >>> format_bytes(1500, binary_units=False)
        '1.50 KB'
        >>> format_bytes(512)
        '512 B'
        >>> format_bytes(None)
        'n/a'
    """
    if num_bytes is None:
        return "n/a"

    units = BINARY_UNITS if binary_units else DECIMAL_UNITS
    divisor = 1024 if binary_units else 1000

    if num_bytes < divisor:
        return f"{num_bytes} B"

    value = float(num_bytes)
    for unit in units:
        if value < divisor or unit == units[-1]:
            return f"{value:.{decimal_places}f} {unit}"
        value /= divisor
    return f"{value:.{decimal_places}f} {units[-1]}"


def format_size(num_bytes: int, unit: str = "binary") -> str:
    """Format ``num_bytes`` for the ``--unit`` choice of the CLI ('binary', 'decimal' or 'bytes')."""
    if unit == "bytes":
        return str(num_bytes)
    return format_bytes(num_bytes, binary_units=unit != "decimal")
