"""Small shared helpers."""

import math
from typing import Any


def round1(value: float) -> float:
    """Round half-up to one decimal place."""
    return math.floor(value * 10 + 0.5) / 10


def round2(value: float) -> float:
    """Round half-up to two decimal places."""
    return math.floor(value * 100 + 0.5) / 100


def dig(data: Any, *path, default=None):
    """Walk nested dicts/lists, returning default on any missing step.

    dig(after, "versioning", 0, "enabled") mirrors after.versioning[0].enabled.
    """
    current = data
    for key in path:
        if isinstance(key, int):
            if not isinstance(current, (list, tuple)) or not -len(current) <= key < len(current):
                return default
            current = current[key]
        else:
            if not isinstance(current, dict) or key not in current:
                return default
            current = current[key]
    return current
