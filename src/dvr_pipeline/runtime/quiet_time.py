from __future__ import annotations

import re
from dataclasses import dataclass

_QUIET_RE = re.compile(r"^(\d{2})-(\d{2})$")


@dataclass(frozen=True, slots=True)
class QuietWindow:
    """
    Hour-of-day window [start, end) on the 24-hour clock.

    start == end means no quiet time; start > end wraps past midnight.
    """

    start: int
    end: int

    def __post_init__(self) -> None:
        for h in (self.start, self.end):
            if not 0 <= int(h) <= 23:
                raise ValueError(f"quiet-time hour out of range: {h}")

    @property
    def empty(self) -> bool:
        return self.start == self.end

    @property
    def wraps(self) -> bool:
        return self.start > self.end

    def is_quiet(self, hour: int) -> bool:
        if self.start > self.end:
            return hour >= self.start or hour < self.end
        if self.start < self.end:
            return self.start <= hour < self.end
        return False

    def __str__(self) -> str:
        return f"{self.start:02d}-{self.end:02d}"


def parse_quiet_time(value: str | None) -> QuietWindow | None:
    """
    Parse "SS-EE" (two zero-padded hours).

    Returns None when nothing usable is configured: missing or malformed input,
    hours outside 0-23, or equal start and end.
    """
    if not value:
        return None
    m = _QUIET_RE.match(str(value).strip())
    if m is None:
        return None
    try:
        window = QuietWindow(int(m.group(1)), int(m.group(2)))
    except ValueError:
        return None
    if window.empty:
        return None
    return window
