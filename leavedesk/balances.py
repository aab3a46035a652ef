"""
Leave balances derived from a student's approved leave.

CL overflow produced by :func:`allocate_cl_overflow` counts as LWP
everywhere: in the overall LWP total and in month-scoped day counts.
DL is counted in applications, not days.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List, Sequence, Tuple

from leavedesk.allocation import (
    LeaveInterval, OverflowSegment, allocate_cl_overflow, overlapping_days, as_interval,
)


@dataclass(frozen=True)
class LeaveBalances:
    allowance: int
    total_approved_cl_days: int
    total_overflow_days: int
    cl_allocated_days: int
    remaining_cl: int
    direct_lwp_days: int
    total_lwp_days: int
    dl_count: int
    overflow_segments: List[OverflowSegment] = field(default_factory=list)

    @property
    def cl_label(self) -> str:
        return f"{self.remaining_cl}/{self.allowance}"

    @property
    def dl_label(self) -> str:
        return f"{self.dl_count}"

    @property
    def lwp_label(self) -> str:
        if self.total_overflow_days > 0:
            return f"{self.total_lwp_days} (CL overflow: {self.total_overflow_days})"
        return f"{self.total_lwp_days}"

    def to_dict(self) -> dict:
        return {
            'remainingCL': self.cl_label,
            'dlCount': self.dl_count,
            'totalLwpDays': self.total_lwp_days,
        }


def compute_leave_balances(cl_intervals: Iterable, dl_intervals: Iterable, lwp_intervals: Iterable,
                           allowance: int = 30) -> LeaveBalances:
    cl = [as_interval(i) for i in cl_intervals]
    dl = [as_interval(i) for i in dl_intervals]
    lwp = [as_interval(i) for i in lwp_intervals]
    allowance = max(int(allowance or 0), 0)

    result = allocate_cl_overflow(cl, allowance)
    total_overflow_days = result.overflow_days
    total_approved_cl_days = sum(i.days for i in cl)
    # Overflow-complement form of result.allocated_days
    cl_allocated_days = min(allowance, max(0, total_approved_cl_days - total_overflow_days))
    direct_lwp_days = sum(i.days for i in lwp)

    return LeaveBalances(
        allowance=allowance,
        total_approved_cl_days=total_approved_cl_days,
        total_overflow_days=total_overflow_days,
        cl_allocated_days=cl_allocated_days,
        remaining_cl=max(0, allowance - cl_allocated_days),
        direct_lwp_days=direct_lwp_days,
        total_lwp_days=direct_lwp_days + total_overflow_days,
        dl_count=len(dl),
        overflow_segments=list(result.overflow_segments),
    )


def month_lwp_days(lwp_intervals: Iterable, overflow_segments: Iterable[OverflowSegment],
                   month_start, month_end) -> Tuple[int, int]:
    """LWP days inside the month as ``(from_records, from_overflow)``."""
    from_records = sum(as_interval(i).overlap_with(month_start, month_end) for i in lwp_intervals)
    from_overflow = sum(s.overlap_with(month_start, month_end) for s in overflow_segments)
    return from_records, from_overflow


def month_cl_days(cl_intervals: Iterable, month_start, month_end) -> int:
    return sum(as_interval(i).overlap_with(month_start, month_end) for i in cl_intervals)


def month_dl_count(dl_intervals: Iterable, month_start, month_end) -> int:
    return sum(1 for i in dl_intervals if as_interval(i).overlap_with(month_start, month_end) > 0)


def converted_days(interval: LeaveInterval, overflow_segments: Sequence[OverflowSegment]) -> int:
    """Days of ``interval`` that were converted to LWP by any overflow segment."""
    return sum(
        overlapping_days(interval.start_date, interval.end_date, s.start_date, s.end_date)
        for s in overflow_segments
    )


def annotate_status(status: str, converted: int) -> str:
    if converted > 0:
        return f"{status} ({converted} day(s) converted to LWP)"
    return status
