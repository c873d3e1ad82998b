"""
Redemption blackout windows.

A product may restrict when its allowance can be redeemed. Each window is
``{"day": ..., "start_time": "HH:MM", "end_time": "HH:MM"}`` where ``day``
is a weekday name, its three letter abbreviation, or ``daily``. Windows
cover ``[start_time, end_time)`` in local time; an end at or before the
start runs past midnight into the next day.
"""

from dataclasses import dataclass
from datetime import datetime, time, timedelta
from typing import Iterable, List, Optional

from django.utils import timezone

DAILY = 'daily'

WEEKDAYS = ('monday', 'tuesday', 'wednesday', 'thursday', 'friday', 'saturday', 'sunday')

_DAY_ALIASES = {name: index for index, name in enumerate(WEEKDAYS)}
_DAY_ALIASES.update({name[:3]: index for index, name in enumerate(WEEKDAYS)})


@dataclass(frozen=True)
class BlackoutWindow:
    weekday: Optional[int]  # None means every day
    start: time
    end: time

    @property
    def wraps(self) -> bool:
        return self.end <= self.start

    def covers(self, moment: datetime) -> bool:
        clock = moment.time()
        today = moment.weekday()
        yesterday = (moment - timedelta(days=1)).weekday()

        if not self.wraps:
            return self._on(today) and self.start <= clock < self.end
        # Evening part belongs to the window's own day, the early hours to
        # the day after.
        return (
            (self._on(today) and clock >= self.start)
            or (self._on(yesterday) and clock < self.end)
        )

    def _on(self, weekday: int) -> bool:
        return self.weekday is None or self.weekday == weekday


def _parse_time(value) -> time:
    try:
        return datetime.strptime(str(value).strip(), '%H:%M').time()
    except ValueError:
        raise ValueError(f"Invalid time {value!r}, expected HH:MM")


def parse_window(entry: dict) -> BlackoutWindow:
    """
    Raises:
        ValueError: If the entry is not a valid blackout window
    """
    if not isinstance(entry, dict):
        raise ValueError("Blackout window must be an object")

    day = str(entry.get('day', '')).strip().lower()
    if day == DAILY:
        weekday = None
    elif day in _DAY_ALIASES:
        weekday = _DAY_ALIASES[day]
    else:
        raise ValueError(f"Invalid blackout day {entry.get('day')!r}")

    start = _parse_time(entry.get('start_time'))
    end = _parse_time(entry.get('end_time'))
    if start == end:
        raise ValueError("Blackout window start and end must differ")

    return BlackoutWindow(weekday=weekday, start=start, end=end)


def parse_windows(entries: Iterable[dict]) -> List[BlackoutWindow]:
    return [parse_window(entry) for entry in entries or []]


def normalize_windows(entries: Iterable[dict]) -> List[dict]:
    """Validate windows and return them in stored form."""
    normalized = []
    for entry in entries or []:
        window = parse_window(entry)
        normalized.append({
            'day': DAILY if window.weekday is None else WEEKDAYS[window.weekday],
            'start_time': window.start.strftime('%H:%M'),
            'end_time': window.end.strftime('%H:%M'),
        })
    return normalized


def active_window(entries: Iterable[dict], at: datetime) -> Optional[BlackoutWindow]:
    """The window covering ``at`` (converted to local time), if any."""
    local = timezone.localtime(at) if timezone.is_aware(at) else at
    for window in parse_windows(entries):
        if window.covers(local):
            return window
    return None
