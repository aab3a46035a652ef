"""
Per-student leave and scholarship views.

Every view that needs CL overflow (leave summary, scholarship page, the
operator/guide/dean monthly reports and the dean overview) goes through
:func:`student_snapshot` or :func:`approved_snapshot`, so they all agree on
the numbers.
"""
import calendar
import logging
from collections import namedtuple

from leavedesk.allocation import DATE_FMT, LeaveInterval, month_bounds
from leavedesk.balances import (
    annotate_status, compute_leave_balances, converted_days, month_cl_days, month_dl_count,
)
from leavedesk.models import Scholarship
from leavedesk.scholarship import DEFAULT_SCHOLARSHIP_AMOUNT, monthly_figures, parse_amount
from leavedesk.store import (
    approved_leaves, normalize_leave_type, partition_approved, persisted_scholarship, previous_scholarships,
    save, student_leaves,
)

logger = logging.getLogger(__name__)

ROUTING_REMARK_PREFIX = 'Leave request automatically routed to'

StudentSnapshot = namedtuple('StudentSnapshot', ['leaves', 'approved', 'balances'])


def cl_allowance(settings):
    return int(settings.get('CL_ANNUAL_ALLOWANCE', 30))


def student_snapshot(student, settings, leaves=None):
    """All leave of one student, the approved subset, and the balances derived from it."""
    if leaves is None:
        leaves = student_leaves(student.id)
    approved = partition_approved(leaves)
    balances = compute_leave_balances(approved.cl, approved.dl, approved.lwp, cl_allowance(settings))
    return StudentSnapshot(leaves=leaves, approved=approved, balances=balances)


def approved_snapshot(student, settings):
    """Same as :func:`student_snapshot` for views that need no history; ``leaves`` is empty."""
    approved = approved_leaves(student.id)
    balances = compute_leave_balances(approved.cl, approved.dl, approved.lwp, cl_allowance(settings))
    return StudentSnapshot(leaves=[], approved=approved, balances=balances)


def scholarship_figures(student, snapshot, year, month, settings):
    profile = student.profile
    return monthly_figures(
        snapshot.approved.lwp,
        snapshot.balances.overflow_segments,
        year,
        month,
        record=persisted_scholarship(student.id, year, month),
        profile_amount=profile.scholarship_amount if profile else None,
        student_amount=student.scholarship_amount,
        profile_contingency=profile.contingency_amount if profile else None,
        default_amount=settings.get('DEFAULT_SCHOLARSHIP_AMOUNT', DEFAULT_SCHOLARSHIP_AMOUNT),
    )


def student_reason(leave):
    """The student's own reason, skipping the routing remark added on submission."""
    remarks = [r for r in leave.remarks if r.role == 'STUDENT']
    for r in remarks:
        if ROUTING_REMARK_PREFIX not in r.remark:
            return r.remark
    return remarks[-1].remark if remarks else ''


def _history_row(start, end, days, status):
    return {
        'dates': f"{start.strftime(DATE_FMT)} to {end.strftime(DATE_FMT)}",
        'duration': f"{days} days",
        'status': status,
    }


# --- Leave summary ---
def leave_summary(student, settings, leaves=None):
    snapshot = student_snapshot(student, settings, leaves)
    balances = snapshot.balances
    segments = balances.overflow_segments
    buckets = {'CL': [], 'DL': [], 'LWP': []}

    for leave in snapshot.leaves:
        leave_type = normalize_leave_type(leave.leave_type)
        if not leave_type:
            continue
        interval = LeaveInterval(leave.start_date, leave.end_date, leave_type)
        status = str(leave.status or '')
        row = _history_row(interval.start_date, interval.end_date, interval.days, status)
        if leave_type == 'CL' and status == 'APPROVED':
            converted = converted_days(interval, segments)
            if converted > 0:
                row['convertedToLWP'] = converted
                row['status'] = annotate_status(status, converted)
        buckets[leave_type].append((interval.start_date, row))

    for segment in segments:
        row = _history_row(segment.start_date, segment.end_date, segment.days, 'Converted from CL overflow')
        buckets['LWP'].append((segment.start_date, row))

    history = {
        key: [row for _, row in sorted(rows, key=lambda r: r[0], reverse=True)]
        for key, rows in buckets.items()
    }
    return {
        'CL': {'balance': balances.cl_label, 'history': history['CL']},
        'DL': {'balance': balances.dl_label, 'history': history['DL']},
        'LWP': {
            'balance': balances.lwp_label,
            'overflowFromCL': balances.total_overflow_days,
            'overflowSegments': [s.to_dict() for s in segments],
            'history': history['LWP'],
        },
    }


# --- Scholarships ---
def student_scholarship(student, year, month, settings):
    snapshot = approved_snapshot(student, settings)
    figures = scholarship_figures(student, snapshot, year, month, settings)
    limit = int(settings.get('SCHOLARSHIP_HISTORY_MONTHS', 3))
    previous = [
        {
            'month': calendar.month_abbr[s.month],
            'year': str(s.year)[-2:],
            'amount': s.final_amount or 0,
        }
        for s in previous_scholarships(student.id, year, month, limit)
    ]
    return {'currentMonth': figures.to_dict(), 'previousMonths': previous}


def finalize_scholarship(student, year, month, settings):
    """
    Persist this month's figures for ``student``.

    Returns ``(record, outcome)`` where outcome is ``'created'``, ``'updated'``
    or ``'frozen'``. A month that already has a positive final amount is left
    untouched; an existing row without one is refreshed in place.
    """
    existing = persisted_scholarship(student.id, year, month)
    if existing is not None and (parse_amount(existing.final_amount) or 0) > 0:
        return existing, 'frozen'

    snapshot = approved_snapshot(student, settings)
    figures = scholarship_figures(student, snapshot, year, month, settings)
    if existing is None:
        record = Scholarship(student_id=student.id, year=year, month=month)
        outcome = 'created'
    else:
        record = existing
        outcome = 'updated'
    record.base_amount = figures.base_amount
    record.contingency_amount = figures.contingency_amount
    record.lwp_deduction = figures.lwp_deduction
    record.final_amount = figures.final_amount
    save(record)
    logger.info(f"Finalized scholarship ({outcome}) for student_id={student.id} {year}-{month:02d}: {figures.final_amount}")
    return record, outcome


# --- Monthly reports ---
def monthly_report_row(student, year, month, settings):
    snapshot = approved_snapshot(student, settings)
    month_start, month_end, _ = month_bounds(year, month)
    figures = scholarship_figures(student, snapshot, year, month, settings)
    user = student.user
    profile = student.profile
    return {
        'studentId': student.id,
        'name': (user.name if user else None) or 'Unknown',
        'email': user.username if user else None,
        'ugcId': (profile.ugc_id if profile else None) or 'N/A',
        'department': student.department or 'Unknown',
        'clDays': month_cl_days(snapshot.approved.cl, month_start, month_end),
        'dlDays': month_dl_count(snapshot.approved.dl, month_start, month_end),
        'lwpDays': figures.lwp_days,
        'baseAmount': figures.base_amount,
        'lwpDeduction': figures.lwp_deduction,
        'finalAmount': figures.final_amount,
    }


def monthly_report(students, year, month, settings):
    return {
        'year': year,
        'month': month,
        'monthName': calendar.month_name[month],
        'students': [monthly_report_row(s, year, month, settings) for s in students],
    }


# --- Dean overview ---
def dean_overview_row(student, today, settings):
    snapshot = student_snapshot(student, settings)
    balances = snapshot.balances
    figures = scholarship_figures(student, snapshot, today.year, today.month, settings)
    dl_total = int(settings.get('DL_ANNUAL_LIMIT', 10))
    user = student.user
    guide_name = student.guide.name if student.guide else None
    if not guide_name and student.profile:
        guide_name = student.profile.name_of_guide

    previous_leaves = []
    for leave in snapshot.leaves:
        if leave.status != 'APPROVED':
            continue
        interval = LeaveInterval(leave.start_date, leave.end_date, leave.leave_type)
        previous_leaves.append({
            'type': interval.leave_type,
            'days': interval.days,
            'date': interval.start_date.strftime(DATE_FMT),
            'status': leave.status,
            'reason': student_reason(leave) or 'N/A',
        })

    return {
        'id': student.id,
        'name': (user.name if user else None) or 'Unknown',
        'email': user.username if user else None,
        'guideName': guide_name or 'No Guide Assigned',
        'department': student.department or 'Unknown',
        'clTaken': balances.cl_allocated_days,
        'clTotal': balances.allowance,
        'dlTaken': balances.dl_count,
        'dlTotal': dl_total,
        'lwpTaken': balances.total_lwp_days,
        'lwpTotal': 0,
        'totalLeaves': balances.cl_allocated_days + balances.dl_count + balances.total_lwp_days,
        'previousLeaves': previous_leaves,
        'enrollmentYear': student.enrollment_year,
        'scholarshipType': student.scholarship_type,
        'scholarshipAmount': student.scholarship_amount,
        'scholarshipCut': figures.lwp_deduction,
        'finalAmount': figures.final_amount,
        'baseAmount': figures.base_amount,
        'remainingCL': balances.remaining_cl,
        'remainingDL': dl_total - balances.dl_count,
    }
