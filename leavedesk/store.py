"""
Read access to persisted leave and scholarship records.
"""
from collections import namedtuple

from sqlalchemy import or_, and_

from leavedesk import db
from leavedesk.allocation import LeaveInterval
from leavedesk.models import Leave, LEAVE_TYPES, Scholarship, Student, User

ApprovedLeaves = namedtuple('ApprovedLeaves', ['cl', 'dl', 'lwp'])


def normalize_leave_type(value):
    leave_type = str(value or '').upper().strip()
    return leave_type if leave_type in LEAVE_TYPES else None


def student_leaves(student_id):
    return Leave.query.filter_by(student_id=student_id).\
        order_by(Leave.start_date.asc(), Leave.application_date.asc()).all()


def partition_approved(leaves):
    buckets = {'CL': [], 'DL': [], 'LWP': []}
    for leave in leaves:
        if leave.status != 'APPROVED':
            continue
        leave_type = normalize_leave_type(leave.leave_type)
        if not leave_type:
            continue
        buckets[leave_type].append(LeaveInterval(leave.start_date, leave.end_date, leave_type))
    return ApprovedLeaves(cl=buckets['CL'], dl=buckets['DL'], lwp=buckets['LWP'])


def approved_leaves(student_id):
    leaves = Leave.query.filter_by(student_id=student_id, status='APPROVED').\
        order_by(Leave.start_date.asc(), Leave.application_date.asc()).all()
    return partition_approved(leaves)


def persisted_scholarship(student_id, year, month):
    return Scholarship.query.filter_by(student_id=student_id, year=year, month=month).\
        order_by(Scholarship.id.desc()).first()


def previous_scholarships(student_id, year, month, limit=3):
    return Scholarship.query.filter(Scholarship.student_id == student_id).\
        filter(or_(and_(Scholarship.year == year, Scholarship.month < month), Scholarship.year < year)).\
        order_by(Scholarship.year.desc(), Scholarship.month.desc(), Scholarship.id.desc()).\
        limit(limit).all()


def student_for_user(username):
    user = User.query.filter_by(username=username).first()
    if not user:
        return None
    return Student.query.filter_by(user_id=user.id).first()


def reportable_students(guide_id=None, active_only=True):
    """Students ordered by name; approved and active ones only unless active_only is False."""
    q = Student.query.join(User, Student.user_id == User.id)
    if active_only:
        q = q.filter(User.role == 'student', User.is_approved.is_(True), User.is_active.is_(True))
    if guide_id is not None:
        q = q.filter(or_(Student.guide_id == guide_id, Student.co_guide_id == guide_id))
    return q.order_by(User.name.asc()).all()


def save(obj):
    db.session.add(obj)
    db.session.commit()
    return obj
