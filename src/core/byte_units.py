"""Human-readable byte size helpers.

This module converts between byte counts and strings like "1.5 MB".
It is used by disk-space messages and size-valued configuration.
"""

from __future__ import annotations

import math
import re

_UNITS = ("B", "KB", "MB", "GB", "TB", "PB")
_SIZE_PATTERN = re.compile(r"^([\d.]+)\s*([A-Za-z]+)$")


def bytes_to_human_readable(byte_count: int) -> str:
    """Render a byte count with a binary unit suffix.

    Args:
        byte_count: Non-negative number of bytes.

    Returns:
        Rounded size string, e.g. "1.5 MB".
    """
    if byte_count <= 0:
        return "0 B"
    exponent = min(int(math.log(byte_count, 1024)), len(_UNITS) - 1)
    value = round(byte_count / 1024**exponent, 2)
    return f"{value:g} {_UNITS[exponent]}"


def human_readable_to_bytes(size_text: str) -> int:
    """Parse a size string such as "100MB" or "1.5 GB" into bytes.

    Args:
        size_text: Size string with a unit suffix.

    Returns:
        Byte count rounded to the nearest integer.

    Raises:
        ValueError: If the string or its unit cannot be parsed.
    """
    match = _SIZE_PATTERN.match(size_text.strip())
    if match is None:
        raise ValueError(
            f"Invalid size format: {size_text!r}. Expected a value like '2MB' or '1.5 GB'."
        )
    unit = match.group(2).upper()
    if unit not in _UNITS:
        raise ValueError(f"Unknown size unit: {unit}. Supported units: {', '.join(_UNITS)}.")
    try:
        value = float(match.group(1))
    except ValueError as error:
        raise ValueError(f"Invalid size value in {size_text!r}.") from error
    return round(value * 1024 ** _UNITS.index(unit))
