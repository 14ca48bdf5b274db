#!/usr/bin/env python3
"""
Calendar handling for model time coordinates.

Climate model files store time as numeric offsets from an epoch
("days since 1850-01-01") in one of several CF calendars. Models running
a 365-day calendar never have a 29 February, so converting their offsets
with a Gregorian date library drifts by one day for every leap year in the
run. Conversion here tracks the day of year modulo the declared calendar's
year length instead.
"""

import logging
import re
from dataclasses import dataclass
from datetime import date
from typing import List, Optional, Sequence

import numpy as np

from climate_timeseries.exceptions import MalformedTimeUnits
from climate_timeseries.shared.contracts.climate_data import CalendarKind

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 86400

UNIT_SECONDS = {
    'days': 86400,
    'hours': 3600,
    'minutes': 60,
    'seconds': 1,
}

CALENDAR_ALIASES = {
    'standard': CalendarKind.STANDARD,
    'gregorian': CalendarKind.STANDARD,
    'proleptic_gregorian': CalendarKind.STANDARD,
    'noleap': CalendarKind.NO_LEAP,
    'no_leap': CalendarKind.NO_LEAP,
    '365_day': CalendarKind.NO_LEAP,
    'all_leap': CalendarKind.ALL_LEAP,
    '366_day': CalendarKind.ALL_LEAP,
    '360_day': CalendarKind.DAY_360,
}

_MONTH_LENGTHS = {
    CalendarKind.NO_LEAP: (31, 28, 31, 30, 31, 30, 31, 31, 30, 31, 30, 31),
    CalendarKind.ALL_LEAP: (31, 29, 31, 30, 31, 30, 31, 31, 30, 31, 30, 31),
    CalendarKind.DAY_360: (30,) * 12,
}

_TIME_UNITS_PATTERN = re.compile(
    r'^\s*(?P<unit>days?|hours?|minutes?|seconds?)\s+since\s+'
    r'(?P<year>\d{1,4})-(?P<month>\d{1,2})-(?P<day>\d{1,2})'
    r'(?:[ T](?P<hour>\d{1,2}):(?P<minute>\d{2})(?::(?P<second>\d{2}(?:\.\d+)?))?)?'
    r'\s*(?:Z|UTC)?\s*$',
    re.IGNORECASE
)


@dataclass(frozen=True, order=True)
class ModelDate:
    """A calendar date in a model calendar (may not exist in the Gregorian calendar)."""
    year: int
    month: int
    day: int

    def isoformat(self) -> str:
        return f"{self.year:04d}-{self.month:02d}-{self.day:02d}"

    def to_date(self) -> date:
        """Convert to a Python date; fails for dates such as 30 February."""
        return date(self.year, self.month, self.day)

    def __str__(self) -> str:
        return self.isoformat()


@dataclass(frozen=True)
class TimeEncoding:
    """Decoded form of a CF time-units string plus calendar attribute."""
    unit: str
    epoch_year: int
    epoch_month: int
    epoch_day: int
    calendar_kind: CalendarKind = CalendarKind.STANDARD
    epoch_seconds: float = 0.0  # time of day of the epoch

    @property
    def epoch(self) -> ModelDate:
        return ModelDate(self.epoch_year, self.epoch_month, self.epoch_day)

    @property
    def seconds_per_unit(self) -> int:
        return UNIT_SECONDS[self.unit]


def parse_calendar(calendar: Optional[str]) -> CalendarKind:
    """
    Map a CF calendar attribute onto a supported calendar kind.

    A missing attribute means the CF default, the standard calendar.
    """
    if calendar is None:
        return CalendarKind.STANDARD
    if isinstance(calendar, CalendarKind):
        return calendar

    key = str(calendar).strip().lower()
    if key in CALENDAR_ALIASES:
        return CALENDAR_ALIASES[key]
    raise MalformedTimeUnits(
        f"Unsupported calendar '{calendar}'. Supported: {sorted(CALENDAR_ALIASES)}"
    )


def parse_time_units(units: str, calendar: Optional[str] = None) -> TimeEncoding:
    """
    Parse a CF time-units string such as ``"days since 1850-01-01"``.

    Args:
        units: Units attribute of the time coordinate
        calendar: Calendar attribute of the time coordinate (optional)

    Returns:
        TimeEncoding describing the epoch, unit and calendar

    Raises:
        MalformedTimeUnits: If the string does not follow
            ``"<unit> since <YYYY>-<MM>-<DD>"`` or the calendar is unknown
    """
    match = _TIME_UNITS_PATTERN.match(units or "")
    if not match:
        raise MalformedTimeUnits(
            f"Time units '{units}' do not match '<unit> since <YYYY>-<MM>-<DD>'"
        )

    kind = parse_calendar(calendar)

    unit = match.group('unit').lower()
    if not unit.endswith('s'):
        unit += 's'

    year = int(match.group('year'))
    month = int(match.group('month'))
    day = int(match.group('day'))
    if not 1 <= month <= 12 or not 1 <= day <= days_in_month(kind, year, month):
        raise MalformedTimeUnits(
            f"Epoch {year:04d}-{month:02d}-{day:02d} in '{units}' is not a valid "
            f"{kind.value} calendar date"
        )

    epoch_seconds = 0.0
    if match.group('hour') is not None:
        epoch_seconds = (int(match.group('hour')) * 3600
                         + int(match.group('minute')) * 60
                         + float(match.group('second') or 0))

    return TimeEncoding(
        unit=unit,
        epoch_year=year,
        epoch_month=month,
        epoch_day=day,
        calendar_kind=kind,
        epoch_seconds=epoch_seconds,
    )


def is_leap_year(year: int) -> bool:
    """Gregorian leap-year rule."""
    return year % 4 == 0 and (year % 100 != 0 or year % 400 == 0)


def days_in_year(kind: CalendarKind, year: int) -> int:
    """Number of days in ``year`` under the given calendar."""
    if kind == CalendarKind.STANDARD:
        return 366 if is_leap_year(year) else 365
    return sum(_MONTH_LENGTHS[kind])


def days_in_month(kind: CalendarKind, year: int, month: int) -> int:
    """Number of days in ``month`` of ``year`` under the given calendar."""
    if kind == CalendarKind.STANDARD:
        if month == 2:
            return 29 if is_leap_year(year) else 28
        return _MONTH_LENGTHS[CalendarKind.NO_LEAP][month - 1]
    return _MONTH_LENGTHS[kind][month - 1]


def _seconds_since_epoch_date(offsets: np.ndarray, encoding: TimeEncoding) -> np.ndarray:
    if not np.all(np.isfinite(offsets)):
        raise MalformedTimeUnits("Time coordinate contains non-finite offsets")
    return offsets * encoding.seconds_per_unit + encoding.epoch_seconds


def _whole_days(offsets: np.ndarray, encoding: TimeEncoding) -> np.ndarray:
    """Convert raw offsets to whole days elapsed since the epoch date."""
    seconds = _seconds_since_epoch_date(offsets, encoding)
    return np.floor(seconds / SECONDS_PER_DAY).astype(np.int64)


def seconds_of_day(time_offsets: Sequence[float], encoding: TimeEncoding) -> np.ndarray:
    """
    Time of day, in seconds after midnight, of each offset.

    Dates from :func:`normalize` have day resolution; pairing them with this
    keeps sub-daily steps (6-hourly, hourly) distinct and ordered.
    """
    offsets = np.asarray(time_offsets, dtype=np.float64).ravel()
    return np.mod(_seconds_since_epoch_date(offsets, encoding), SECONDS_PER_DAY)


def _fixed_length_dates(days: np.ndarray, encoding: TimeEncoding) -> List[ModelDate]:
    """Date arithmetic for calendars where every year has the same length."""
    month_lengths = np.array(_MONTH_LENGTHS[encoding.calendar_kind], dtype=np.int64)
    year_length = int(month_lengths.sum())
    month_starts = np.concatenate(([0], np.cumsum(month_lengths)[:-1]))

    epoch_doy = month_starts[encoding.epoch_month - 1] + encoding.epoch_day - 1
    absolute = encoding.epoch_year * year_length + epoch_doy + days

    years = absolute // year_length
    day_of_year = absolute % year_length
    month_index = np.searchsorted(month_starts, day_of_year, side='right') - 1
    month_days = day_of_year - month_starts[month_index] + 1

    return [ModelDate(int(y), int(m) + 1, int(d))
            for y, m, d in zip(years, month_index, month_days)]


def _standard_dates(days: np.ndarray, encoding: TimeEncoding) -> List[ModelDate]:
    """Proleptic Gregorian arithmetic through day ordinals."""
    try:
        epoch_ordinal = date(encoding.epoch_year, encoding.epoch_month, encoding.epoch_day).toordinal()
        dates = [date.fromordinal(epoch_ordinal + int(d)) for d in days]
    except (ValueError, OverflowError) as e:
        raise MalformedTimeUnits(f"Time offsets fall outside the representable date range: {e}") from e

    return [ModelDate(d.year, d.month, d.day) for d in dates]


def normalize(time_offsets: Sequence[float], encoding: TimeEncoding) -> List[ModelDate]:
    """
    Convert raw time offsets to calendar dates.

    Fractional days truncate to the day that contains them, so a monthly
    mid-point stamp of 15.5 days lands on the 16th.

    Args:
        time_offsets: Numeric offsets from the epoch, in ``encoding.unit``
        encoding: Parsed time encoding of the source

    Returns:
        One ModelDate per offset, same order as the input
    """
    offsets = np.asarray(time_offsets, dtype=np.float64).ravel()
    if offsets.size == 0:
        return []

    days = _whole_days(offsets, encoding)

    if encoding.calendar_kind == CalendarKind.STANDARD:
        dates = _standard_dates(days, encoding)
    else:
        dates = _fixed_length_dates(days, encoding)

    logger.debug(f"Normalized {len(dates)} time steps ({encoding.calendar_kind.value}): "
                 f"{dates[0]} to {dates[-1]}")
    return dates


def is_strictly_increasing(dates: Sequence[ModelDate]) -> bool:
    """True when every date is later than the one before it."""
    return all(earlier < later for earlier, later in zip(dates, dates[1:]))


class CalendarNormalizer:
    """Object form of :func:`normalize` for callers that pass components around."""

    def parse(self, units: str, calendar: Optional[str] = None) -> TimeEncoding:
        return parse_time_units(units, calendar)

    def normalize(self, time_offsets: Sequence[float], encoding: TimeEncoding) -> List[ModelDate]:
        return normalize(time_offsets, encoding)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(calendars={[k.value for k in CalendarKind]})"
