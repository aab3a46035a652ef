"""
Monthly scholarship deduction.

LWP days inside a month (direct LWP plus CL overflow) are charged at
``base_amount / days_in_month`` each. A persisted figure with a positive
final amount is authoritative for its month and is returned unchanged.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Iterable, Optional

from leavedesk.allocation import OverflowSegment, month_bounds
from leavedesk.balances import month_lwp_days

logger = logging.getLogger(__name__)

DEFAULT_SCHOLARSHIP_AMOUNT = 30000.0


@dataclass(frozen=True)
class Deduction:
    per_day_rate: float
    lwp_deduction: float
    final_amount: float


@dataclass(frozen=True)
class MonthlyDeduction:
    lwp_days_in_month: int
    lwp_days_from_records: int
    lwp_days_from_overflow: int
    per_day_rate: float
    lwp_deduction: float
    final_amount: float

    def to_dict(self) -> dict:
        return {
            'lwpDaysInMonth': self.lwp_days_in_month,
            'perDayRate': self.per_day_rate,
            'lwpDeduction': self.lwp_deduction,
            'finalAmount': self.final_amount,
        }


@dataclass(frozen=True)
class ScholarshipFigures:
    """Per student, per month. ``frozen`` is set when a persisted final amount was used."""

    base_amount: float
    per_day_rate: float
    lwp_days: int
    lwp_days_from_records: int
    lwp_days_from_overflow: int
    lwp_deduction: float
    final_amount: float
    days_in_month: int
    contingency_amount: float = 0.0
    frozen: bool = False

    def to_dict(self) -> dict:
        return {
            'baseAmount': self.base_amount,
            'lwpDeduction': self.lwp_deduction,
            'finalAmount': self.final_amount,
            'contingencyAmount': self.contingency_amount,
            'perDayRate': round(self.per_day_rate, 2),
            'lwpDays': self.lwp_days,
            'lwpDaysFromRecords': self.lwp_days_from_records,
            'lwpDaysFromOverflow': self.lwp_days_from_overflow,
            'daysInMonth': self.days_in_month,
        }


def compute_deduction(base_amount: float, lwp_days_in_month: int, days_in_month: int) -> Deduction:
    per_day_rate = base_amount / days_in_month if days_in_month > 0 else 0.0
    lwp_deduction = round(per_day_rate * lwp_days_in_month, 2)
    final_amount = max(0.0, round(base_amount - lwp_deduction, 2))
    return Deduction(per_day_rate=per_day_rate, lwp_deduction=lwp_deduction, final_amount=final_amount)


def compute_monthly_deduction(base_amount: float, lwp_intervals: Iterable,
                              overflow_segments: Iterable[OverflowSegment],
                              month_start, month_end, days_in_month: int) -> MonthlyDeduction:
    from_records, from_overflow = month_lwp_days(lwp_intervals, overflow_segments, month_start, month_end)
    lwp_days = from_records + from_overflow
    deduction = compute_deduction(base_amount, lwp_days, days_in_month)
    return MonthlyDeduction(
        lwp_days_in_month=lwp_days,
        lwp_days_from_records=from_records,
        lwp_days_from_overflow=from_overflow,
        per_day_rate=deduction.per_day_rate,
        lwp_deduction=deduction.lwp_deduction,
        final_amount=deduction.final_amount,
    )


def parse_amount(value) -> Optional[float]:
    """``value`` as a float, or None when missing or not numeric."""
    if value is None:
        return None
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(parsed):
        return None
    return parsed


def _positive(value) -> Optional[float]:
    parsed = parse_amount(value)
    if parsed is not None and parsed > 0:
        return parsed
    return None


def resolve_base_amount(persisted=None, profile=None, student=None,
                        default: float = DEFAULT_SCHOLARSHIP_AMOUNT) -> float:
    """First positive amount of: persisted record, profile, student record, default."""
    for candidate in (persisted, profile, student):
        amount = _positive(candidate)
        if amount is not None:
            return amount
    return float(default)


def resolve_lwp_deduction(computed: float, persisted=None) -> float:
    if computed:
        return computed
    return _positive(persisted) or 0.0


def resolve_final_amount(computed: float, persisted=None) -> float:
    frozen = _positive(persisted)
    return frozen if frozen is not None else computed


def resolve_contingency(profile=None, persisted=None) -> float:
    return _positive(profile) or parse_amount(persisted) or 0.0


def monthly_figures(lwp_intervals: Iterable, overflow_segments: Iterable[OverflowSegment],
                    year: int, month: int, record=None, profile_amount=None, student_amount=None,
                    profile_contingency=None,
                    default_amount: float = DEFAULT_SCHOLARSHIP_AMOUNT) -> ScholarshipFigures:
    """
    Scholarship figures for one student and month.

    ``record`` is the persisted scholarship row for the month, if any; only its
    ``base_amount``, ``lwp_deduction``, ``final_amount`` and
    ``contingency_amount`` attributes are read.
    """
    month_start, month_end, days_in_month = month_bounds(year, month)
    base_amount = resolve_base_amount(
        getattr(record, 'base_amount', None), profile_amount, student_amount, default_amount,
    )
    computed = compute_monthly_deduction(
        base_amount, lwp_intervals, overflow_segments, month_start, month_end, days_in_month,
    )
    lwp_deduction = resolve_lwp_deduction(computed.lwp_deduction, getattr(record, 'lwp_deduction', None))
    final_computed = max(0.0, round(base_amount - lwp_deduction, 2))
    persisted_final = getattr(record, 'final_amount', None)
    final_amount = resolve_final_amount(final_computed, persisted_final)
    frozen = _positive(persisted_final) is not None
    if frozen:
        logger.debug(f"Using persisted final amount {final_amount} for {year}-{month:02d}")

    return ScholarshipFigures(
        base_amount=base_amount,
        per_day_rate=computed.per_day_rate,
        lwp_days=computed.lwp_days_in_month,
        lwp_days_from_records=computed.lwp_days_from_records,
        lwp_days_from_overflow=computed.lwp_days_from_overflow,
        lwp_deduction=lwp_deduction,
        final_amount=final_amount,
        days_in_month=days_in_month,
        contingency_amount=resolve_contingency(profile_contingency, getattr(record, 'contingency_amount', None)),
        frozen=frozen,
    )
