"""
Date navigation state.

Keeps the selected date valid while records stream in:
    - first load with data selects the latest date;
    - a selection that disappears from the known dates snaps to the latest;
    - a user sitting on the latest date follows newer dates forward;
    - a user who navigated to an older date stays where they are.
"""

import bisect
import logging

logger = logging.getLogger(__name__)


class DateNavigator:
    def __init__(self):
        self.dates: list[str] = []
        self.selected: str | None = None
        self._initialised = False

    @property
    def latest(self) -> str | None:
        return self.dates[-1] if self.dates else None

    @property
    def is_latest(self) -> bool:
        return self.selected is not None and self.selected == self.latest

    def sync(self, dates: list[str]) -> str | None:
        """Replace the known dates and re-validate the selection."""
        known = sorted(set(dates))
        if self._initialised and known == self.dates:
            return self.selected

        previous_latest = self.latest
        self.dates = known

        if not self.dates:
            return self.selected

        if not self._initialised:
            self.selected = self.latest
            self._initialised = True
        elif self.selected not in self.dates:
            logger.debug("Selected date %s no longer has data; snapping to %s", self.selected, self.latest)
            self.selected = self.latest
        elif self.selected == previous_latest and self.latest != previous_latest:
            self.selected = self.latest

        return self.selected

    def select(self, date: str) -> str:
        """Jump to an arbitrary date picked by the user, with or without data."""
        self.selected = date
        self._initialised = True
        return date

    def previous(self) -> str | None:
        """Step to the closest earlier date that has data; no-op at the start."""
        if self.selected is None:
            return None
        idx = bisect.bisect_left(self.dates, self.selected) - 1
        if idx >= 0:
            self.selected = self.dates[idx]
        return self.selected

    def next(self) -> str | None:
        """Step to the closest later date that has data; no-op at the end."""
        if self.selected is None:
            return None
        idx = bisect.bisect_right(self.dates, self.selected)
        if idx < len(self.dates):
            self.selected = self.dates[idx]
        return self.selected

    def has_previous(self) -> bool:
        return self.selected is not None and bisect.bisect_left(self.dates, self.selected) > 0

    def has_next(self) -> bool:
        return self.selected is not None and bisect.bisect_right(self.dates, self.selected) < len(self.dates)
