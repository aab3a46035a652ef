"""
CL allocation engine.

Approved Casual Leave (CL) is spent against a fixed annual allowance in
chronological order. Whatever does not fit is the tail of the interval that
crossed the limit plus every later interval in full; those days are treated
as Leave Without Pay (LWP) by the balance and scholarship calculators.
"""
from __future__ import annotations

import calendar
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Iterable, List, Optional, Tuple, Union

from leavedesk.exceptions import InvalidIntervalError

logger = logging.getLogger(__name__)

DATE_FMT = "%Y-%m-%d"

DateLike = Union[date, datetime, str]


def normalize_date(value: DateLike) -> date:
    """Return the calendar date of ``value``, dropping any time of day."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        return datetime.strptime(value.strip()[:10], DATE_FMT).date()
    raise TypeError(f"Unsupported type for date: {type(value)}")


def inclusive_days(start: DateLike, end: DateLike) -> int:
    start_d = normalize_date(start)
    end_d = normalize_date(end)
    if end_d < start_d:
        raise InvalidIntervalError(start_d, end_d)
    return (end_d - start_d).days + 1


def overlapping_days(start: DateLike, end: DateLike, window_start: DateLike, window_end: DateLike) -> int:
    """Number of days of ``[start, end]`` that fall inside ``[window_start, window_end]``."""
    overlap_start = max(normalize_date(start), normalize_date(window_start))
    overlap_end = min(normalize_date(end), normalize_date(window_end))
    if overlap_end < overlap_start:
        return 0
    return (overlap_end - overlap_start).days + 1


def month_bounds(year: int, month: int) -> Tuple[date, date, int]:
    """First day, last day and length of a calendar month."""
    if not 1 <= month <= 12:
        raise ValueError(f"Invalid month: {month}")
    days_in_month = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, days_in_month), days_in_month


@dataclass(frozen=True)
class LeaveInterval:
    """One approved leave record, dates normalized to calendar days."""

    start_date: date
    end_date: date
    leave_type: str = 'CL'

    def __post_init__(self):
        start = normalize_date(self.start_date)
        end = normalize_date(self.end_date)
        if end < start:
            raise InvalidIntervalError(start, end)
        object.__setattr__(self, 'start_date', start)
        object.__setattr__(self, 'end_date', end)
        object.__setattr__(self, 'leave_type', str(self.leave_type or '').strip().upper())

    @classmethod
    def from_record(cls, record) -> 'LeaveInterval':
        return cls(record.start_date, record.end_date, getattr(record, 'leave_type', 'CL'))

    @property
    def days(self) -> int:
        return (self.end_date - self.start_date).days + 1

    def overlap_with(self, window_start: DateLike, window_end: DateLike) -> int:
        return overlapping_days(self.start_date, self.end_date, window_start, window_end)


@dataclass(frozen=True)
class OverflowSegment:
    """Tail of an approved CL interval that did not fit in the allowance."""

    start_date: date
    end_date: date
    days: int

    def overlap_with(self, window_start: DateLike, window_end: DateLike) -> int:
        return overlapping_days(self.start_date, self.end_date, window_start, window_end)

    def to_dict(self) -> dict:
        return {
            'startDate': self.start_date.strftime(DATE_FMT),
            'endDate': self.end_date.strftime(DATE_FMT),
            'days': self.days,
        }


@dataclass(frozen=True)
class AllocationResult:
    allocated_days: int
    overflow_segments: List[OverflowSegment] = field(default_factory=list)

    @property
    def overflow_days(self) -> int:
        return sum(s.days for s in self.overflow_segments)


def as_interval(item) -> LeaveInterval:
    if isinstance(item, LeaveInterval):
        return item
    if isinstance(item, dict):
        return LeaveInterval(item['startDate'] if 'startDate' in item else item['start_date'],
                             item['endDate'] if 'endDate' in item else item['end_date'],
                             item.get('type', item.get('leave_type', 'CL')))
    return LeaveInterval.from_record(item)


def allocate_cl_overflow(cl_intervals: Iterable, allowance: Optional[int] = 30) -> AllocationResult:
    """
    Spend ``allowance`` CL days over ``cl_intervals`` in start-date order.

    Intervals may arrive in any order. Same-day starts keep their input order.
    Overlapping intervals are not merged, so shared days are charged twice.
    Each interval that does not fit yields one overflow segment covering its
    last ``duration - allocatable`` days.
    """
    intervals = [as_interval(i) for i in cl_intervals]
    remaining = max(int(allowance or 0), 0)
    allocated = 0
    segments = []

    for interval in sorted(intervals, key=lambda i: i.start_date):
        duration = interval.days
        allocatable = min(duration, max(remaining, 0))
        remaining -= allocatable
        allocated += allocatable

        overflow = duration - allocatable
        if overflow > 0:
            segments.append(OverflowSegment(
                start_date=interval.start_date + timedelta(days=allocatable),
                end_date=interval.end_date,
                days=overflow,
            ))

    logger.debug(f"Allocated {allocated} CL day(s), {len(segments)} overflow segment(s)")
    return AllocationResult(allocated_days=allocated, overflow_segments=segments)
