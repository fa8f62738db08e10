"""Calendar engine: running-day bitfields, exceptions and holidays."""

import logging
from collections.abc import Iterator, Sequence
from datetime import date, timedelta

from hrdf_pipeline.hrdf.errors import DateOutOfRange
from hrdf_pipeline.hrdf.models import Bitfield, Holiday, Journey, KeyDates

logger = logging.getLogger(__name__)


class CalendarEngine:
    """Answer running-day questions relative to the dataset's validity window.

    Day ``i`` of the window is ``start + i``; a bitfield's mask has bit ``i``
    set when it is active on that day. The engine holds no mutable state
    and is safe to share between threads.
    """

    def __init__(
        self,
        key_dates: KeyDates,
        bitfields: Sequence[Bitfield],
        holidays: Sequence[Holiday] = (),
    ) -> None:
        self.key_dates = key_dates
        self.start = key_dates.start
        self.end = key_dates.end
        self.day_count = key_dates.day_count
        self.full_mask = (1 << self.day_count) - 1
        self._bitfields = tuple(bitfields)
        self._holidays = {holiday.day: holiday for holiday in holidays}
        holiday_mask = 0
        for index, day in enumerate(self.dates()):
            if day in self._holidays:
                holiday_mask |= 1 << index
        self.holiday_mask = holiday_mask

    def day_index(self, day: date) -> int:
        """Offset of ``day`` from the window start; raises outside the window."""
        if not self.start <= day <= self.end:
            raise DateOutOfRange(f"{day} is outside the validity window {self.start} - {self.end}")
        return (day - self.start).days

    def date_at(self, index: int) -> date:
        if not 0 <= index < self.day_count:
            raise DateOutOfRange(f"Day index {index} is outside the validity window")
        return self.start + timedelta(days=index)

    def dates(self) -> Iterator[date]:
        for index in range(self.day_count):
            yield self.start + timedelta(days=index)

    def bitfield_mask(self, handle: int | None) -> int:
        """Mask of a bitfield clipped to the window. ``None`` means every day."""
        if handle is None:
            return self.full_mask
        return self._bitfields[handle].mask & self.full_mask

    def decode(self, handle: int) -> list[date]:
        """Explicit dates on which a bitfield is active."""
        return self.mask_dates(self.bitfield_mask(handle))

    def mask_dates(self, mask: int) -> list[date]:
        return [self.date_at(i) for i in range(self.day_count) if mask >> i & 1]

    def is_active(self, handle: int | None, day: date) -> bool:
        return bool(self.bitfield_mask(handle) >> self.day_index(day) & 1)

    def is_holiday(self, day: date) -> bool:
        return day in self._holidays

    def holiday(self, day: date) -> Holiday | None:
        return self._holidays.get(day)

    def operating_mask(self, journey: Journey) -> int:
        """Days a journey runs on.

        The union of its base patterns (every day when it has none), minus
        the union of its exception patterns, minus holidays for journeys
        that opted into holiday-sensitive running.
        """
        if journey.running_days:
            mask = 0
            for handle in journey.running_days:
                mask |= self.bitfield_mask(handle)
        else:
            mask = self.full_mask
        for handle in journey.exception_days:
            mask &= ~self.bitfield_mask(handle)
        if journey.holiday_sensitive:
            mask &= ~self.holiday_mask
        return mask & self.full_mask

    def runs_on(self, journey: Journey, day: date) -> bool:
        return bool(self.operating_mask(journey) >> self.day_index(day) & 1)

    def operating_days(self, journey: Journey) -> list[date]:
        return self.mask_dates(self.operating_mask(journey))

    def operating_weekdays(self, journey: Journey) -> tuple[bool, ...]:
        return self.weekday_pattern(self.operating_mask(journey))

    def weekday_pattern(self, mask: int) -> tuple[bool, ...]:
        """Monday..Sunday flags: True when the mask hits that weekday at least once."""
        seen = [False] * 7
        for day in self.mask_dates(mask):
            seen[day.weekday()] = True
        return tuple(seen)
