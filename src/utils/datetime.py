# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""UTC datetime helpers and duration parsing.

Every datetime the service creates is timezone-aware UTC. SQLite hands
timestamps back without an offset; ``ensure_utc`` reads those as UTC so that
license windows, reset-token expiries and class start times compare the same
way on every backend.

Token lifetimes are configured as human-readable durations ("15m", "7d") and
parsed with ``parse_duration``.
"""

import re
from datetime import datetime, timedelta, timezone

_DURATION_RE = re.compile(r"^\s*(\d+)\s*([a-zA-Z]*)\s*$")

_SECOND = timedelta(seconds=1)
_MINUTE = timedelta(minutes=1)
_HOUR = timedelta(hours=1)
_DAY = timedelta(days=1)
_WEEK = timedelta(weeks=1)

_DURATION_UNITS: dict[str, timedelta] = {
    "": _SECOND,
    **dict.fromkeys(("s", "sec", "secs", "second", "seconds"), _SECOND),
    **dict.fromkeys(("m", "min", "mins", "minute", "minutes"), _MINUTE),
    **dict.fromkeys(("h", "hr", "hrs", "hour", "hours"), _HOUR),
    **dict.fromkeys(("d", "day", "days"), _DAY),
    **dict.fromkeys(("w", "week", "weeks"), _WEEK),
}


def utc_now() -> datetime:
    """Current time, timezone-aware UTC."""
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime | None) -> datetime | None:
    """Return ``dt`` as aware UTC. Naive values are taken to be UTC."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def minutes_from_now(minutes: int) -> datetime:
    return utc_now() + timedelta(minutes=minutes)


def is_expired(expiry: datetime | None) -> bool:
    """Whether ``expiry`` has passed. A missing expiry counts as expired."""
    if expiry is None:
        return True
    return utc_now() > ensure_utc(expiry)


def parse_duration(value: str | int) -> timedelta:
    """Parse a human-readable duration.

    Accepts a bare number of seconds or a number followed by a unit,
    e.g. ``"900"``, ``"15m"``, ``"12h"``, ``"7d"``, ``"7 days"``, ``"2w"``.

    Raises:
        ValueError: If the value cannot be parsed or is not positive.
    """
    if isinstance(value, int):
        amount, unit = value, ""
    else:
        match = _DURATION_RE.match(value)
        if not match:
            raise ValueError(f"Invalid duration: {value!r}")
        amount, unit = int(match.group(1)), match.group(2).lower()

    if unit not in _DURATION_UNITS:
        raise ValueError(f"Unknown duration unit in {value!r}")

    duration = amount * _DURATION_UNITS[unit]
    if duration <= timedelta(0):
        raise ValueError(f"Duration must be positive: {value!r}")

    return duration
