"""Memory size parsing for compose resource values.

Accepts docker's human-readable sizes ("512m", "1.5G", "256MiB", "1024")
with binary multiples.
"""

import re

_MEMORY_MULTIPLIERS = {
    "": 1,
    "k": 1024,
    "m": 1024**2,
    "g": 1024**3,
    "t": 1024**4,
    "p": 1024**5,
}

_SIZE_PATTERN = re.compile(r"^(\d+(?:\.\d+)?) ?([kmgtp])?i?b?$", re.IGNORECASE)


def ram_in_bytes(size: str) -> int:
    """Parse a memory size string to bytes.

    Raises:
        ValueError: if the string is not a valid size.
    """
    match = _SIZE_PATTERN.match(str(size).strip())
    if not match:
        raise ValueError(f"invalid size: {size!r}")

    number, unit = match.groups()
    return int(float(number) * _MEMORY_MULTIPLIERS[(unit or "").lower()])


def ram_in_mb(size: str) -> float:
    """Parse a memory size string to MiB"""
    return ram_in_bytes(size) / (1024 * 1024)
