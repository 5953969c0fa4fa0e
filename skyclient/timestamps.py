"""ISO-8601 timestamp helpers used on the wire and in resource paths."""
import re
from datetime import datetime, timedelta, timezone

from .errors import ValidationError

_TIMESTAMP_RE = re.compile(
    r"^(?P<base>\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2})"
    r"(?:\.(?P<fraction>\d{1,9}))?"
    r"(?P<tz>Z|z|[+-]\d{2}:\d{2})$"
)


def format_timestamp(timestamp: datetime) -> str:
    """
    Format a datetime as UTC ISO-8601 with fractional seconds.

    Naive datetimes are taken to be UTC already. The fraction is always
    emitted with microsecond precision, e.g. ``2026-10-19T08:00:00.000000Z``.
    """
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)
    return timestamp.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


def parse_timestamp(value: str) -> datetime:
    """
    Parse an ISO-8601 timestamp with or without fractional seconds.

    Accepts a ``Z`` suffix or a numeric offset. Fractions beyond microseconds
    are truncated. The result is always an aware datetime in UTC.

    Raises:
        ValidationError: If the string is not a supported timestamp
    """
    match = _TIMESTAMP_RE.match(value) if isinstance(value, str) else None
    if match is None:
        raise ValidationError(f"Invalid timestamp: {value!r}")

    try:
        parsed = datetime.strptime(match.group("base"), "%Y-%m-%dT%H:%M:%S")
    except ValueError as e:
        raise ValidationError(f"Invalid timestamp: {value!r}") from e

    fraction = match.group("fraction")
    if fraction:
        parsed = parsed.replace(microsecond=int(fraction[:6].ljust(6, "0")))

    tz = match.group("tz")
    if tz in ("Z", "z"):
        offset = timezone.utc
    else:
        sign = 1 if tz[0] == "+" else -1
        hours, minutes = int(tz[1:3]), int(tz[4:6])
        try:
            offset = timezone(sign * timedelta(hours=hours, minutes=minutes))
        except ValueError as e:
            raise ValidationError(f"Invalid timestamp offset: {value!r}") from e

    return parsed.replace(tzinfo=offset).astimezone(timezone.utc)
