"""ID generation utilities.

IDs have the form ``<prefix>-<epoch-ms>-<6 base36 chars>`` so they sort
roughly by creation time and carry their own timestamp.
"""

from __future__ import annotations

import re
import secrets
import time
from datetime import datetime, timezone

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"
_SUFFIX_LENGTH = 6
_TIMESTAMP_RE = re.compile(r"^(?:run|conv|traj)-(\d+)-")


def _generate_id(prefix: str) -> str:
    suffix = "".join(secrets.choice(_BASE36) for _ in range(_SUFFIX_LENGTH))
    return f"{prefix}-{time.time_ns() // 1_000_000}-{suffix}"


def generate_run_id() -> str:
    return _generate_id("run")


def generate_conversation_id() -> str:
    return _generate_id("conv")


def generate_trajectory_id() -> str:
    return _generate_id("traj")


def extract_timestamp_from_id(id_: str) -> datetime | None:
    """Recover the creation time embedded in a generated ID.

    Args:
        id_: A run, conversation or trajectory ID.

    Returns:
        An aware UTC datetime, or None if the ID does not follow the
        generated format.
    """
    match = _TIMESTAMP_RE.match(id_)
    if match is None:
        return None
    try:
        return datetime.fromtimestamp(int(match.group(1)) / 1000, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return None
