"""Duration-string parsing for token lifetimes.

Accepts the compact notation used throughout the configuration
(``"15m"``, ``"1h"``, ``"30d"``, ``"2.5 hours"``). A bare number is read as
milliseconds.
"""

from __future__ import annotations

import logging
import re
import warnings
from datetime import timedelta
from typing import Final

logger = logging.getLogger(__name__)

DEFAULT_DURATION: Final[str] = "1h"

_SECOND = 1000
_MINUTE = 60 * _SECOND
_HOUR = 60 * _MINUTE
_DAY = 24 * _HOUR
_WEEK = 7 * _DAY
_YEAR = int(365.25 * _DAY)

_UNITS: Final[dict[str, int]] = {
    "years": _YEAR, "year": _YEAR, "yrs": _YEAR, "yr": _YEAR, "y": _YEAR,
    "weeks": _WEEK, "week": _WEEK, "w": _WEEK,
    "days": _DAY, "day": _DAY, "d": _DAY,
    "hours": _HOUR, "hour": _HOUR, "hrs": _HOUR, "hr": _HOUR, "h": _HOUR,
    "minutes": _MINUTE, "minute": _MINUTE, "mins": _MINUTE, "min": _MINUTE, "m": _MINUTE,
    "seconds": _SECOND, "second": _SECOND, "secs": _SECOND, "sec": _SECOND, "s": _SECOND,
    "milliseconds": 1, "millisecond": 1, "msecs": 1, "msec": 1, "ms": 1,
}

_PATTERN = re.compile(r"^\s*(?P<value>-?(?:\d+)?\.?\d+)\s*(?P<unit>[a-z]+)?\s*$", re.IGNORECASE)


class DurationFallbackWarning(UserWarning):
    """Emitted when a configured duration cannot be used and the default applies.

    :ivar raw: The offending configuration value.
    :ivar fallback_ms: Milliseconds used instead.
    """

    def __init__(self, raw: object, fallback_ms: int) -> None:
        super().__init__(f"Unable to parse duration {raw!r}; defaulting to {fallback_ms} ms")
        self.raw = raw
        self.fallback_ms = fallback_ms


def try_parse_duration_ms(value: str | int | float | None) -> int | None:
    """Parse ``value`` into milliseconds, returning ``None`` when it is unusable.

    :param value: Duration string or number of milliseconds.
    :returns: Positive millisecond count, or ``None`` when invalid, zero or negative.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int | float):
        millis = int(value)
        return millis if millis > 0 else None

    match = _PATTERN.match(str(value))
    if match is None:
        return None
    unit = (match.group("unit") or "ms").lower()
    factor = _UNITS.get(unit)
    if factor is None:
        return None
    millis = int(float(match.group("value")) * factor)
    return millis if millis > 0 else None


def parse_duration_ms(value: str | int | float | None, *, setting: str | None = None) -> int:
    """Parse a duration, falling back to one hour instead of failing.

    The fallback is never silent: a :class:`DurationFallbackWarning` is issued
    and a structured warning is logged so misconfiguration stays visible.

    :param value: Duration string (``"30d"``) or milliseconds.
    :param setting: Configuration key the value came from (for the log record).
    :returns: Positive duration in milliseconds.
    """
    millis = try_parse_duration_ms(value)
    if millis is not None:
        return millis

    fallback = try_parse_duration_ms(DEFAULT_DURATION)
    assert fallback is not None
    logger.warning(
        "Unable to parse duration; defaulting to %s",
        DEFAULT_DURATION,
        extra={"event": "config.duration_fallback", "setting": setting, "value": repr(value)},
    )
    warnings.warn(DurationFallbackWarning(value, fallback), stacklevel=2)
    return fallback


def parse_duration(value: str | int | float | None, *, setting: str | None = None) -> timedelta:
    """Return :func:`parse_duration_ms` as a :class:`~datetime.timedelta`."""
    return timedelta(milliseconds=parse_duration_ms(value, setting=setting))
