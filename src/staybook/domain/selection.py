"""Guest date selection.

The selection is a sorted set of distinct dates. Contiguity is not enforced
by the set itself: a range selection skips days that are not selectable,
which can leave gaps inside the dragged span.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import date, timedelta

from staybook.domain.models import SelectionChanged

SelectablePredicate = Callable[[date], bool]
SelectionListener = Callable[[SelectionChanged], None]


class NotSelectableError(Exception):
    """Raised when a single date toggle targets a non-selectable day."""

    def __init__(self, day: date):
        self.day = day
        super().__init__(f"Date {day.isoformat()} is not available for booking")


class Selection:
    """In-progress date selection of one guest session.

    Args:
        is_selectable: Predicate deciding whether a date may be added.
            Evaluated on every add, so it sees the latest availability.
    """

    def __init__(self, is_selectable: SelectablePredicate) -> None:
        self._is_selectable = is_selectable
        self._dates: list[date] = []
        self._listeners: list[SelectionListener] = []

    @property
    def dates(self) -> tuple[date, ...]:
        return tuple(self._dates)

    def __len__(self) -> int:
        return len(self._dates)

    def __contains__(self, day: object) -> bool:
        return day in self._dates

    @property
    def checkin(self) -> date | None:
        return self._dates[0] if self._dates else None

    @property
    def checkout(self) -> date | None:
        """Day after the last selected night."""
        if not self._dates:
            return None
        return self._dates[-1] + timedelta(days=1)

    def subscribe(self, listener: SelectionListener) -> None:
        self._listeners.append(listener)

    def toggle(self, day: date) -> bool:
        """Add *day* if absent, remove it if present.

        Returns:
            True if the date is selected after the call.

        Raises:
            NotSelectableError: If adding a date that is not selectable.
        """
        if day in self._dates:
            self._dates.remove(day)
            self._changed()
            return False

        if not self._is_selectable(day):
            raise NotSelectableError(day)

        self._dates.append(day)
        self._changed()
        return True

    def select_range(self, start: date, end: date) -> int:
        """Replace the selection with the selectable days of [start, end).

        Non-selectable days are skipped silently.

        Returns:
            Number of nights added.
        """
        self._dates = []
        current = start
        while current < end:
            if self._is_selectable(current):
                self._dates.append(current)
            current += timedelta(days=1)
        self._changed()
        return len(self._dates)

    def clear(self) -> None:
        self._dates = []
        self._changed()

    def snapshot(self) -> SelectionChanged:
        return SelectionChanged(
            dates=self.dates, checkin=self.checkin, checkout=self.checkout
        )

    def _changed(self) -> None:
        self._dates.sort()
        event = self.snapshot()
        for listener in self._listeners:
            listener(event)
