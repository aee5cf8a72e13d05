"""
Lenient coercion helpers for loosely-typed request bodies.

Form posts arrive with numbers as strings and booleans as "true"/"on"; these
helpers turn them into the typed values the routes work with.
"""
from datetime import date, datetime, time, timezone
from typing import Any, Optional

_TRUE = {"true", "1", "yes", "on"}
_FALSE = {"false", "0", "no", "off"}


def to_int(value: Any, default: Optional[int] = None) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    try:
        return int(float(str(value).strip()))
    except (TypeError, ValueError, OverflowError):
        return default


def clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))


def clamp_int(value: Any, lo: int, hi: int, default: int) -> int:
    n = to_int(value, default)
    return int(clamp(n, lo, hi))


def clamp_float(value: Any, lo: float, hi: float, default: float) -> float:
    try:
        n = float(value)
    except (TypeError, ValueError):
        n = default
    return float(clamp(n, lo, hi))


def parse_bool(value: Any) -> Optional[bool]:
    """Return True/False for recognisable values, None otherwise."""
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value != 0
    if isinstance(value, str):
        v = value.strip().lower()
        if v in _TRUE:
            return True
        if v in _FALSE:
            return False
    return None


def _naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def parse_match_date(value: Any, now: Optional[datetime] = None) -> datetime:
    """
    Normalize a match date.

    Accepts a datetime/date, "YYYY-MM-DD", ISO-8601 or a datetime-local
    string ("YYYY-MM-DDTHH:MM"). Anything else falls back to now.
    """
    now = now or datetime.utcnow()
    if isinstance(value, datetime):
        return _naive_utc(value)
    if isinstance(value, date):
        return datetime.combine(value, time())
    if not isinstance(value, str) or not value.strip():
        return now
    raw = value.strip()
    if raw.endswith("Z"):
        raw = raw[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(raw)
    except ValueError:
        return now
    return _naive_utc(parsed)
