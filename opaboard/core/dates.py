# opaboard/core/dates.py

import math
import re
import time
from datetime import datetime, timezone, tzinfo
from functools import lru_cache
from typing import Any, Callable, Optional, Union
from zoneinfo import ZoneInfo

Clock = Callable[[], int]
TzLike = Union[str, tzinfo, None]

ZERO_DATETIME = "0000-00-00 00:00:00"
_COMPONENT_SPLIT_RE = re.compile(r"[-\sT:]+")


@lru_cache(maxsize=32)
def _zone(name: str) -> tzinfo:
    if name.upper() in ("UTC", "Z"):
        return timezone.utc
    return ZoneInfo(name)


def resolve_tz(tz: TzLike) -> tzinfo:
    if tz is None:
        return timezone.utc
    if isinstance(tz, tzinfo):
        return tz
    return _zone(str(tz).strip())


def _epoch_ms(dt: datetime, tz: tzinfo) -> int:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=tz)
    return int(dt.timestamp() * 1000)


def _parse_components(text: str) -> Optional[datetime]:
    """
    Build a datetime from explicit Y/M/D h:m:s parts.

    Used when the generic ISO parser rejects the string, e.g. unpadded
    fields like "2024-1-5 9:03:00". Offsets and fractions are ignored.
    """
    head = text.split(".", 1)[0].split("+", 1)[0].rstrip("Z")
    parts = [p for p in _COMPONENT_SPLIT_RE.split(head) if p]
    if len(parts) < 3 or not all(p.isdigit() for p in parts[:6]):
        return None
    nums = [int(p) for p in parts[:6]]
    nums += [0] * (6 - len(nums))
    try:
        return datetime(*nums)
    except ValueError:
        return None


def to_timestamp(value: Any, tz: TzLike = None) -> int:
    """
    Convert an upstream date value to epoch milliseconds.

    Returns 0 for anything missing or unparseable; never raises.
    Naive values are interpreted in `tz` (UTC by default), not the host zone.
    """
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        return int(value) if math.isfinite(value) else 0

    zone = resolve_tz(tz)
    if isinstance(value, datetime):
        return _epoch_ms(value, zone)

    s = str(value).strip()
    if not s or s == ZERO_DATETIME:
        return 0

    iso = s.replace(" ", "T", 1)
    if iso.endswith("Z"):
        iso = iso[:-1] + "+00:00"
    try:
        return _epoch_ms(datetime.fromisoformat(iso), zone)
    except (OverflowError, OSError, ValueError):
        pass

    dt = _parse_components(s)
    if dt is None:
        return 0
    try:
        return _epoch_ms(dt, zone)
    except (OverflowError, OSError, ValueError):
        return 0


def system_clock() -> int:
    return int(time.time() * 1000)


class FixedClock:
    """
    Clock pinned to a single instant; accepts anything to_timestamp accepts.
    """

    def __init__(self, instant: Any, tz: TzLike = None) -> None:
        self.now_ms = to_timestamp(instant, tz)

    def __call__(self) -> int:
        return self.now_ms


def duration(
    start: Any,
    end: Any = None,
    *,
    clock: Optional[Clock] = None,
    tz: TzLike = None,
    max_seconds: Optional[int] = None,
) -> int:
    """
    Whole seconds elapsed from `start` to `end` (or to clock() when end is empty).

    Never negative: unparseable inputs and clock drift both yield 0.
    """
    start_ms = to_timestamp(start, tz)
    if start_ms == 0:
        return 0

    if end is None or (isinstance(end, str) and not end.strip()):
        end_ms = (clock or system_clock)()
    else:
        end_ms = to_timestamp(end, tz)
    if end_ms == 0:
        return 0

    seconds = (end_ms - start_ms) // 1000
    if seconds <= 0:
        return 0
    if max_seconds is not None and seconds > max_seconds:
        return int(max_seconds)
    return int(seconds)
