"""
Log line model.

Raw lines from a ``timestamps=true`` log stream carry an RFC3339 prefix
followed by whitespace. Parsing is applied on demand and never changes the
raw line stored in a session.
"""

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, List, Optional


TIMESTAMP_PATTERN = re.compile(
    r"^(\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(\.\d+)?Z?)\s+(.*)$"
)

_FRACTION = re.compile(r"\.(\d+)")


@dataclass(frozen=True)
class LogLine:
    """A raw line split into its optional timestamp and message."""
    original: str
    message: str
    timestamp: Optional[str] = None

    def timestamp_datetime(self) -> Optional[datetime]:
        """
        Parse the timestamp into an aware datetime.

        Fractions beyond microseconds (the API server emits nanoseconds) are
        truncated. A timestamp without ``Z`` is read as UTC.
        """
        if self.timestamp is None:
            return None

        value = self.timestamp.rstrip("Z")
        value = _FRACTION.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), value)
        parsed = datetime.fromisoformat(value)
        return parsed.replace(tzinfo=timezone.utc)


def parse_log_line(line: str) -> LogLine:
    """Split a raw line into timestamp and message."""
    match = TIMESTAMP_PATTERN.match(line)
    if match:
        return LogLine(original=line, message=match.group(3), timestamp=match.group(1))
    return LogLine(original=line, message=line)


def filter_lines(
    lines: Iterable[str],
    search: Optional[str] = None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None
) -> List[LogLine]:
    """
    Client-side filtering of buffered lines.

    Args:
        lines: Raw lines in arrival order
        search: Case-insensitive substring matched against the message
        start: Drop lines stamped before this instant
        end: Drop lines stamped after this instant

    Returns:
        Parsed lines that pass every filter, in input order. When a date
        bound is given, lines without a timestamp are dropped.
    """
    needle = search.lower() if search else None
    if start is not None and start.tzinfo is None:
        start = start.replace(tzinfo=timezone.utc)
    if end is not None and end.tzinfo is None:
        end = end.replace(tzinfo=timezone.utc)

    result = []
    for raw in lines:
        parsed = parse_log_line(raw)

        if needle and needle not in parsed.message.lower():
            continue

        if start is not None or end is not None:
            stamp = parsed.timestamp_datetime()
            if stamp is None:
                continue
            if start is not None and stamp < start:
                continue
            if end is not None and stamp > end:
                continue

        result.append(parsed)

    return result
