"""
Normalize A_TIMSTAMP values into ISO-8601 instants.

A_TIMSTAMP is not ISO-8601: it is ``yyyy-MM-dd HH:mm:ss.SSSSSSSSSSSS`` with
no zone, the fraction usually carrying 12 digits. It is read as wall-clock
time in the configured zone.

Example:
    "2025-01-22 11:17:14.123456789012" in Asia/Taipei
    -> "2025-01-22T11:17:14.123456789+08:00"
"""

import re
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError
from core.exceptions import NormalizationError
import logging

logger = logging.getLogger(__name__)

NANOS_DIGITS = 9

_BASE_PATTERN = re.compile(r"^(\d{4})-(\d{2})-(\d{2}) (\d{2}):(\d{2}):(\d{2})$")
_OFFSET_PATTERN = re.compile(r"^([+-])(\d{1,2})(?::?(\d{2}))?(?::?(\d{2}))?$")


def parse_timezone(name: Optional[str]) -> tzinfo:
    """
    Resolve a configured zone: a region id (Asia/Taipei), a signed offset
    (+08:00, -0500, +8) or UTC. Blank or unparseable values fall back to UTC.
    """
    if name is None or not name.strip():
        return timezone.utc

    tz = name.strip()

    if tz[0] in "+-":
        match = _OFFSET_PATTERN.match(tz)
        if match:
            sign = -1 if match.group(1) == "-" else 1
            hours = int(match.group(2))
            minutes = int(match.group(3) or 0)
            seconds = int(match.group(4) or 0)
            offset = timedelta(hours=hours, minutes=minutes, seconds=seconds)
            if minutes < 60 and seconds < 60 and offset <= timedelta(hours=18):
                return timezone(sign * offset)
        logger.warning(f"Failed to parse timezone offset '{tz}', defaulting to UTC")
        return timezone.utc

    if tz.upper() in ("Z", "UTC"):
        return timezone.utc

    try:
        return ZoneInfo(tz)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning(f"Failed to parse timezone '{tz}', defaulting to UTC")
        return timezone.utc


def split_fraction(timestamp: str) -> Tuple[str, str]:
    """
    Split off the fractional seconds and fix them at nanosecond width.

    Longer fractions are truncated (never rounded), shorter ones are
    right-padded with zeros; no fraction at all means zero nanoseconds.
    """
    dot = timestamp.rfind(".")
    if dot == -1:
        return timestamp, "0" * NANOS_DIGITS

    base, fraction = timestamp[:dot], timestamp[dot + 1:]
    return base, fraction[:NANOS_DIGITS].ljust(NANOS_DIGITS, "0")


def render_fraction(nanos: str) -> str:
    """Shortest of millis/micros/nanos that keeps every significant digit"""
    if nanos == "0" * NANOS_DIGITS:
        return ""
    if nanos.endswith("000000"):
        return "." + nanos[:3]
    if nanos.endswith("000"):
        return "." + nanos[:6]
    return "." + nanos


class TimestampNormalizer:
    """
    Converts A_TIMSTAMP strings to zone-qualified ISO-8601 strings.

    The result is advisory: anything unparseable is reported as None and
    never fails the record it came with.
    """

    def __init__(self, timezone_name: Optional[str] = None):
        self.timezone_name = timezone_name
        self.zone = parse_timezone(timezone_name)
        logger.info(f"TimestampNormalizer initialized with timezone: {timezone_name} ({self.zone})")

    def to_datetime(self, timestamp: str) -> Tuple[datetime, str]:
        """
        Parse into a zone-aware datetime (whole seconds) plus the 9-digit
        fraction, which datetime cannot hold at nanosecond precision.

        Raises:
            NormalizationError: If the value does not match the format
        """
        base, nanos = split_fraction(timestamp.strip())

        match = _BASE_PATTERN.match(base)
        if not match or not nanos.isdigit():
            raise NormalizationError(
                "Timestamp does not match 'yyyy-MM-dd HH:mm:ss[.fraction]'",
                context={"raw_timestamp": timestamp}
            )

        try:
            local = datetime(*(int(part) for part in match.groups()))
        except ValueError as e:
            raise NormalizationError(
                "Timestamp has out-of-range fields",
                context={"raw_timestamp": timestamp},
                original_exception=e
            )

        return local.replace(tzinfo=self.zone), nanos

    def normalize(self, timestamp: Optional[str]) -> Optional[str]:
        """
        Convert an A_TIMSTAMP value to ISO-8601 with offset.

        Returns:
            e.g. "2025-01-22 11:17:14.5" -> "2025-01-22T11:17:14.500+08:00",
            or None if absent/unparseable
        """
        if timestamp is None or not timestamp.strip():
            return None

        try:
            aware, nanos = self.to_datetime(timestamp)
        except NormalizationError as e:
            logger.warning(f"Failed to parse A_TIMSTAMP '{timestamp}': {e.message}")
            return None

        rendered = aware.isoformat()
        # isoformat() of a whole-second datetime is "YYYY-MM-DDTHH:MM:SS" + offset
        return rendered[:19] + render_fraction(nanos) + rendered[19:]
