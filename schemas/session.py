"""
Session Window

Daily trading session interval. Trades are valid only strictly inside it.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta

DAY = timedelta(hours=24)


@dataclass
class SessionWindow:
    """Open interval ``(start, end)`` with ``end = start + length``"""
    start: datetime
    length: timedelta

    def __post_init__(self):
        if self.length <= timedelta(0) or self.length > DAY:
            raise ValueError(f"Session length must be in (0, 24h], got {self.length}")

    @property
    def end(self) -> datetime:
        return self.start + self.length

    def contains(self, timestamp: datetime) -> bool:
        """Boundaries are exclusive"""
        return self.start < timestamp < self.end

    def advance_to(self, timestamp: datetime) -> int:
        """
        Move the window forward in whole days until ``timestamp <= end``.

        Returns:
            Number of days advanced (0 if the window already covers it)
        """
        if timestamp <= self.end:
            return 0

        days = -((self.end - timestamp) // DAY)
        self.start += days * DAY
        return days
