"""Decoders for the two date encodings used by the Things database.

``creationDate``, ``userModificationDate`` and ``stopDate`` hold Unix epoch
seconds as floats. ``startDate`` and ``deadline`` hold a packed integer laid
out as ``YYYYYYYYYYYMMMMDDDDD0000000``: eleven bits of year, four of month,
five of day and seven unused low bits.
"""

from __future__ import annotations

from datetime import date, datetime, timezone

YEAR_MASK = 0b111111111110000000000000000
MONTH_MASK = 0b000000000001111000000000000
DAY_MASK = 0b000000000000000111110000000

YEAR_SHIFT = 16
MONTH_SHIFT = 12
DAY_SHIFT = 7

_NULL_MARKERS = {"", "null", "none"}


def _clean(raw: object) -> str | None:
    if raw is None:
        return None
    text = str(raw).strip()
    if text.lower() in _NULL_MARKERS:
        return None
    return text


def decode_epoch(raw: object) -> datetime | None:
    """Decode epoch seconds into an aware UTC datetime, or None."""
    text = _clean(raw)
    if text is None:
        return None
    try:
        seconds = float(text)
        if seconds == 0:
            return None
        return datetime.fromtimestamp(seconds, tz=timezone.utc)
    except (ValueError, OverflowError, OSError):
        return None


def decode_packed(raw: object) -> date | None:
    """Decode a packed Things date into a calendar date, or None."""
    text = _clean(raw)
    if text is None:
        return None
    try:
        value = int(float(text))
    except (ValueError, OverflowError):
        return None
    if value <= 0:
        return None

    year = (value & YEAR_MASK) >> YEAR_SHIFT
    month = (value & MONTH_MASK) >> MONTH_SHIFT
    day = (value & DAY_MASK) >> DAY_SHIFT
    try:
        return date(year, month, day)
    except ValueError:
        return None


def encode_packed(value: date) -> int:
    """Pack a calendar date into the Things integer layout."""
    return (
        (value.year << YEAR_SHIFT)
        | (value.month << MONTH_SHIFT)
        | (value.day << DAY_SHIFT)
    )


def format_epoch_date(raw: object) -> str:
    decoded = decode_epoch(raw)
    return decoded.date().isoformat() if decoded else ""


def format_epoch_datetime(raw: object) -> str:
    decoded = decode_epoch(raw)
    return decoded.isoformat() if decoded else ""


def format_packed_date(raw: object) -> str:
    decoded = decode_packed(raw)
    return decoded.isoformat() if decoded else ""


def parse_iso_date(value: str) -> date:
    """Parse a ``YYYY-MM-DD`` string; raises ValueError on malformed input."""
    return date.fromisoformat(value.strip())
