from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable, List, Optional, Union

from core.timeutil import CANONICAL_TZ, Clock, system_clock, to_millis

TODAY = "today"

# Windows advertised to callers; any positive day count is accepted.
WINDOW_LABELS = {
    "today": "今天",
    "3": "近三天",
    "7": "近一周",
    "30": "近一月",
}


@dataclass(frozen=True)
class RecencyWindow:
    days: Optional[int] = None  # None means "since local midnight"

    def cutoff(self, now: datetime) -> int:
        """Earliest timestamp (epoch ms) still inside the window."""
        if now.tzinfo is None:
            now = now.replace(tzinfo=CANONICAL_TZ)
        now = now.astimezone(CANONICAL_TZ)
        if self.days is None:
            return to_millis(now.replace(hour=0, minute=0, second=0, microsecond=0))
        return to_millis(now - timedelta(days=self.days))

    def __str__(self) -> str:
        return TODAY if self.days is None else str(self.days)


def parse_window(value: Union[str, int, None]) -> RecencyWindow:
    """
    'today' or a positive day count. Anything else, including zero and
    negative counts, means today.
    """
    if isinstance(value, bool):
        return RecencyWindow()
    if isinstance(value, int):
        return RecencyWindow(value) if value > 0 else RecencyWindow()
    if value is None:
        return RecencyWindow()
    text = str(value).strip()
    if text.isdigit() and int(text) > 0:
        return RecencyWindow(int(text))
    return RecencyWindow()


def filter_recent(items: Iterable, window: Union[RecencyWindow, str, int, None], clock: Optional[Clock] = None) -> List:
    """
    Keep items published at or after the window's cutoff. Items whose
    timestamp is unknown cannot be excluded and are kept.
    """
    if not isinstance(window, RecencyWindow):
        window = parse_window(window)
    cutoff = window.cutoff((clock or system_clock)())
    return [item for item in items if item.timestamp is None or item.timestamp >= cutoff]
