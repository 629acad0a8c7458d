"""
duration.py — "HH:MM" clock/duration arithmetic used by the attendance records.

Durations (presence, retard) and clock times (entry, exit) share the same
"HH:MM" text form. Absent or empty values mean zero minutes.
"""

import logging
import math
import re
from typing import Optional

from opsboard.services.errors import KPIValidationError

logger = logging.getLogger("opsboard-kpi.duration")

MINUTES_PER_DAY: int = 24 * 60

_HHMM_RE = re.compile(r"^\s*(\d{1,3}):(\d{1,2})\s*$")


def round_half_up(value: float) -> int:
    """Round halves away from zero for positives (77.5 → 78, 76.5 → 77)."""
    return int(math.floor(value + 0.5))


def is_valid_hhmm(value: str) -> bool:
    match = _HHMM_RE.match(value or "")
    return bool(match) and int(match.group(2)) < 60


def parse_duration(value: Optional[str], *, strict: bool = False) -> int:
    """
    Parse an "HH:MM" string into minutes.

    ``None`` and blank strings are 0. A malformed string is also 0 unless
    ``strict`` is set, in which case ``KPIValidationError`` is raised.
    A bare integer string ("8") is read as hours.
    """
    if value is None:
        return 0
    text = str(value).strip()
    if not text:
        return 0

    match = _HHMM_RE.match(text)
    if match:
        hours, minutes = int(match.group(1)), int(match.group(2))
        if minutes < 60:
            return hours * 60 + minutes
    elif text.isdigit():
        return int(text) * 60

    if strict:
        raise KPIValidationError(f"Malformed duration {value!r}; expected HH:MM")
    logger.warning("Unparseable duration %r treated as 00:00", value)
    return 0


def format_duration(minutes: int) -> str:
    """Format minutes as zero-padded "HH:MM"."""
    if minutes < 0:
        raise KPIValidationError(f"Duration cannot be negative; received {minutes}")
    hours, mins = divmod(int(minutes), 60)
    return f"{hours:02d}:{mins:02d}"


def elapsed_minutes(entry: Optional[str], exit_: Optional[str], *, overnight: bool = False) -> int:
    """
    Minutes between two same-day clock times.

    An exit earlier than the entry is rejected unless ``overnight`` is set,
    in which case the exit is taken on the following day.
    """
    start = parse_duration(entry, strict=True)
    end = parse_duration(exit_, strict=True)
    if end < start:
        if not overnight:
            raise KPIValidationError(
                f"Exit {exit_!r} is before entry {entry!r}; pass overnight=True for night shifts"
            )
        end += MINUTES_PER_DAY
    return end - start
