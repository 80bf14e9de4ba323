"""Raw value → canonical value normalizers (dates, amounts, names).

All three functions are total: they never raise for a malformed value and
always return something of the right type. Dates and amounts report whether
the returned value is a fallback so the pipeline's validity gate can drop the
row instead of storing a made-up value.

Fallback policy
---------------
- Dates: unparseable or empty input returns the current UTC time with
  ``was_fallback=True``.
- Amounts: unparseable input returns ``Decimal(0)`` with ``was_fallback=True``.
  A genuine ``"0"`` parses normally and is not a fallback.
- Names: empty input returns ``"N/A"``.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from datetime import UTC, date, datetime, time
from decimal import Decimal, InvalidOperation
from typing import Any, NamedTuple

NAME_FALLBACK = "N/A"

# Formats seen in bank/scheduling exports, tried after ISO-8601. US month-first
# ordering wins for ambiguous slash dates.
_DATE_FORMATS: tuple[str, ...] = (
    "%m/%d/%Y",
    "%m/%d/%y",
    "%m/%d/%Y %H:%M",
    "%m/%d/%Y %H:%M:%S",
    "%m/%d/%Y %I:%M %p",
    "%Y/%m/%d",
    "%m-%d-%Y",
    "%d %b %Y",
    "%d %B %Y",
    "%b %d, %Y",
    "%B %d, %Y",
    "%b %d %Y",
    "%Y-%m-%dT%H:%M:%S%z",
    "%a, %d %b %Y %H:%M:%S %z",
)

_NON_NUMERIC_RE = re.compile(r"[^0-9.\-]+")
# Leading numeric prefix, e.g. "12.5-3" -> "12.5"
_NUMBER_PREFIX_RE = re.compile(r"-?(?:\d+\.?\d*|\.\d+)")


class NormalizedDate(NamedTuple):
    value: datetime
    was_fallback: bool


class NormalizedAmount(NamedTuple):
    value: Decimal
    was_fallback: bool


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _to_utc(dt: datetime) -> datetime:
    # Naive timestamps are taken as UTC
    return dt.replace(tzinfo=UTC) if dt.tzinfo is None else dt.astimezone(UTC)


def _parse_date_text(s: str) -> datetime | None:
    try:
        return datetime.fromisoformat(s)
    except ValueError:
        pass
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(s, fmt)
        except ValueError:
            continue
    return None


def normalize_date(
    raw: Any, *, now: Callable[[], datetime] = _utcnow
) -> NormalizedDate:
    """Parse ``raw`` into an aware UTC ``datetime``.

    Accepts ``datetime``/``date`` instances, ISO-8601 strings (``2024-01-05``,
    ``2024-01-05T10:30:00Z``) and the formats in ``_DATE_FORMATS``. Anything
    else, including ``None``, empty strings and numbers, yields ``now()`` with
    ``was_fallback=True``.
    """

    if isinstance(raw, datetime):
        return NormalizedDate(_to_utc(raw), False)
    if isinstance(raw, date):
        return NormalizedDate(datetime.combine(raw, time.min, tzinfo=UTC), False)
    if isinstance(raw, str) and raw.strip():
        parsed = _parse_date_text(raw.strip())
        if parsed is not None:
            return NormalizedDate(_to_utc(parsed), False)
    return NormalizedDate(now(), True)


def normalize_amount(raw: Any) -> NormalizedAmount:
    """Convert ``raw`` into a signed ``Decimal``.

    - Numbers (``int``, ``float``, ``Decimal``) are returned unchanged; floats go
      through ``str`` so ``0.1`` stays ``Decimal("0.1")``. NaN and infinities
      are treated as unparseable.
    - Strings are stripped of every character other than digits, ``.`` and
      ``-`` and the leading numeric prefix is parsed: ``"$1,234.56"`` gives
      ``1234.56``, ``"-50"`` gives ``-50``, ``"abc"`` falls back to ``0``.
    """

    if isinstance(raw, bool):
        return NormalizedAmount(Decimal(0), True)
    if isinstance(raw, Decimal):
        return NormalizedAmount(raw, False) if raw.is_finite() else NormalizedAmount(Decimal(0), True)
    if isinstance(raw, int):
        return NormalizedAmount(Decimal(raw), False)
    if isinstance(raw, float):
        d = Decimal(str(raw))
        return NormalizedAmount(d, False) if d.is_finite() else NormalizedAmount(Decimal(0), True)
    if isinstance(raw, str):
        cleaned = _NON_NUMERIC_RE.sub("", raw)
        m = _NUMBER_PREFIX_RE.match(cleaned)
        if m:
            try:
                return NormalizedAmount(Decimal(m.group(0)), False)
            except InvalidOperation:  # pragma: no cover - regex guarantees a valid literal
                pass
    return NormalizedAmount(Decimal(0), True)


def normalize_name(raw: Any) -> str:
    """Return ``raw`` as a trimmed string, or ``"N/A"`` when empty."""

    if raw is None:
        return NAME_FALLBACK
    s = str(raw).strip()
    return s if s else NAME_FALLBACK


__all__ = [
    "NAME_FALLBACK",
    "NormalizedDate",
    "NormalizedAmount",
    "normalize_date",
    "normalize_amount",
    "normalize_name",
]
