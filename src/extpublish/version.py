"""
Version ordering helpers.

Extension versions are compared through a monotonic integer projection: the
first four runs of digits found in the version string, each taken as a base-1000
digit. The projection is only ever used for ordering, never for display.
"""

import re

_DIGITS_RX = re.compile(r"\d+")

VERSION_COMPONENTS = 4
COMPONENT_BASE = 1000


def int_from_version(version: str) -> int:
    """
    Project a version string onto an integer that preserves dotted-numeric order.

    Missing components count as zero, so "1.2" and "1.2.0.0" project to the same
    value; anything past the fourth component is ignored.

    Parameters:
        version (str): Version string such as "1.65.2" or "2025.1117.1b3".

    Returns:
        int: The projection.
    """
    components = [int(m) for m in _DIGITS_RX.findall(version or "")]
    value = 0
    for i in range(VERSION_COMPONENTS):
        n = components[i] if i < len(components) else 0
        value = value * COMPONENT_BASE + n
    return value


def is_not_older(new_version: str, recorded_version: str) -> bool:
    """Return True when `new_version` projects at or above `recorded_version`."""
    return int_from_version(new_version) >= int_from_version(recorded_version)
