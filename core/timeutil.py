"""
Time normalization for upstream publication times.

Sources report time in many shapes: epoch seconds, epoch milliseconds,
"3小时前", "昨天 08:15", "11月22日", "2025-11-22T22:26:04", RSS pubDate...
normalize_time() turns all of them into epoch milliseconds, resolving
anything without an explicit offset in the canonical timezone (UTC+8).
Unrecognized input yields None, never an exception.
"""
import logging
import math
import re
from datetime import datetime, timedelta, timezone
from email.utils import parsedate_to_datetime
from typing import Callable, Optional, Union

logger = logging.getLogger(__name__)

CANONICAL_TZ = timezone(timedelta(hours=8), "Asia/Shanghai")

# 2000-01-01T00:00:00Z in milliseconds. Anything above is already in ms.
MILLIS_THRESHOLD = 946684800000

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
CANONICAL_FORMAT = "%Y-%m-%d %H:%M:%S"

Clock = Callable[[], datetime]


def system_clock() -> datetime:
    return datetime.now(CANONICAL_TZ)


def to_millis(dt: datetime) -> int:
    """Epoch milliseconds of `dt`. Naive datetimes are read as UTC+8."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=CANONICAL_TZ)
    return (dt - EPOCH) // timedelta(milliseconds=1)


def from_millis(ms: Union[int, float]) -> datetime:
    return (EPOCH + timedelta(milliseconds=ms)).astimezone(CANONICAL_TZ)


def format_canonical(value: Union[datetime, int, float]) -> str:
    """Format a datetime or epoch-ms value as 'YYYY-MM-DD HH:MM:SS' in UTC+8."""
    if isinstance(value, datetime):
        dt = value if value.tzinfo else value.replace(tzinfo=CANONICAL_TZ)
        dt = dt.astimezone(CANONICAL_TZ)
    else:
        dt = from_millis(value)
    return dt.strftime(CANONICAL_FORMAT)


def _now(clock: Optional[Clock]) -> datetime:
    now = (clock or system_clock)()
    if now.tzinfo is None:
        now = now.replace(tzinfo=CANONICAL_TZ)
    return now.astimezone(CANONICAL_TZ)


def _int(value: Optional[str], default: int = 0) -> int:
    return int(value) if value else default


_UNIT_SECONDS = {
    "秒": 1,
    "second": 1,
    "sec": 1,
    "分钟": 60,
    "minute": 60,
    "min": 60,
    "小时": 3600,
    "hour": 3600,
    "hr": 3600,
    "天": 86400,
    "day": 86400,
}

_NUMERIC = re.compile(r"^\d+(?:\.\d+)?$")
_JUST_NOW = re.compile(r"^(?:刚刚|just now)$", re.I)
_RELATIVE = re.compile(
    r"^(\d+)\s*(秒|分钟|小时|天|seconds?|secs?|minutes?|mins?|hours?|hrs?|days?)\s*(?:前|ago)$",
    re.I,
)
_TODAY_CLOCK = re.compile(r"^(?:今天|today)?\s*(\d{1,2}):(\d{2})(?::(\d{2}))?$", re.I)
_YESTERDAY_CLOCK = re.compile(r"^(?:昨日|昨天|yesterday)\s*(\d{1,2}):(\d{2})(?::(\d{2}))?$", re.I)
_MONTH_DAY_ZH = re.compile(r"^(\d{1,2})月(\d{1,2})日(?:\s*(\d{1,2}):(\d{2})(?::(\d{2}))?)?$")
_MONTH_DAY_DASH = re.compile(r"^(\d{1,2})-(\d{1,2})\s+(\d{1,2}):(\d{2})(?::(\d{2}))?$")
_FULL_DATE_ZH = re.compile(
    r"^(\d{4})年(\d{1,2})月(\d{1,2})日(?:\s*(\d{1,2}):(\d{2})(?::(\d{2}))?)?$"
)
_DELIMITED = re.compile(
    r"^(\d{4})[-/.](\d{1,2})[-/.](\d{1,2})"
    r"(?:(?:[T\s]+|-)(\d{1,2})(?::?(\d{2}))?(?::?(\d{2}))?(?:\.\d+)?)?"
    r"\s*(Z|[+-]\d{2}:?\d{2})?$",
    re.I,
)


def _relative(m: re.Match, now: datetime) -> datetime:
    if m.re is _JUST_NOW:
        return now
    amount = int(m.group(1))
    unit = m.group(2).lower()
    if unit not in _UNIT_SECONDS:
        unit = unit[:-1]
    return now - timedelta(seconds=amount * _UNIT_SECONDS[unit])


def _today_clock(m: re.Match, now: datetime) -> datetime:
    return now.replace(
        hour=int(m.group(1)), minute=int(m.group(2)), second=_int(m.group(3)), microsecond=0
    )


def _yesterday_clock(m: re.Match, now: datetime) -> datetime:
    return _today_clock(m, now - timedelta(days=1))


def _month_day(m: re.Match, now: datetime) -> datetime:
    return datetime(
        now.year,
        int(m.group(1)),
        int(m.group(2)),
        _int(m.group(3)),
        _int(m.group(4)),
        _int(m.group(5)),
        tzinfo=CANONICAL_TZ,
    )


def _full_date(m: re.Match, now: datetime) -> datetime:
    return datetime(
        int(m.group(1)),
        int(m.group(2)),
        int(m.group(3)),
        _int(m.group(4)),
        _int(m.group(5)),
        _int(m.group(6)),
        tzinfo=CANONICAL_TZ,
    )


def _offset(token: Optional[str]) -> timezone:
    if not token:
        return CANONICAL_TZ
    if token.upper() == "Z":
        return timezone.utc
    sign = -1 if token[0] == "-" else 1
    digits = token[1:].replace(":", "")
    return timezone(sign * timedelta(hours=int(digits[:2]), minutes=int(digits[2:])))


def _delimited(m: re.Match, now: datetime) -> datetime:
    return _full_date(m, now).replace(tzinfo=_offset(m.group(7)))


# Ordered: the first pattern that matches decides the result.
_RECOGNIZERS = (
    (_JUST_NOW, _relative),
    (_RELATIVE, _relative),
    (_TODAY_CLOCK, _today_clock),
    (_YESTERDAY_CLOCK, _yesterday_clock),
    (_MONTH_DAY_ZH, _month_day),
    (_MONTH_DAY_DASH, _month_day),
    (_FULL_DATE_ZH, _full_date),
    (_DELIMITED, _delimited),
)


def _from_number(num: Union[int, float]) -> Optional[int]:
    if not math.isfinite(num):
        return None
    if num > MILLIS_THRESHOLD:
        return int(num)
    return int(num * 1000)


def _from_rfc2822(text: str) -> Optional[datetime]:
    try:
        dt = parsedate_to_datetime(text)
    except (TypeError, ValueError, IndexError):
        return None
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def normalize_time(value: Union[str, int, float, None], clock: Optional[Clock] = None) -> Optional[int]:
    """
    Convert a heterogeneous time value to epoch milliseconds.

    Numbers above MILLIS_THRESHOLD are milliseconds, anything else is seconds.
    Strings go through the recognizers in order; digit-only strings are
    numbers. Returns None when nothing matches.
    """
    if value is None or isinstance(value, bool):
        return None
    text = None
    try:
        if isinstance(value, (int, float)):
            return _from_number(value)

        text = str(value).strip()
        if not text:
            return None
        if _NUMERIC.match(text):
            return _from_number(float(text) if "." in text else int(text))

        now = _now(clock)
        for pattern, handler in _RECOGNIZERS:
            m = pattern.match(text)
            if m:
                return to_millis(handler(m, now))
        dt = _from_rfc2822(text)
        if dt is not None:
            return to_millis(dt)
    except (ValueError, OverflowError) as e:
        logger.debug(f"Out of range time value {value!r}: {e}")
        return None

    logger.debug(f"Unrecognized time value: {text!r}")
    return None
