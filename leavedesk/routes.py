from flask import request, jsonify, session
from leavedesk import app, db
import logging
logger = logging.getLogger(__name__)
logging.basicConfig(level=logging.INFO)
from leavedesk.models import User, Student, Leave, Remark, AuditLog, LEAVE_TYPES, student_display_name
from leavedesk.exceptions import InvalidIntervalError
from leavedesk.reports import (
    ROUTING_REMARK_PREFIX, dean_overview_row, finalize_scholarship, leave_summary, monthly_report,
    student_scholarship,
)
from leavedesk.store import reportable_students, student_for_user
from werkzeug.exceptions import HTTPException
from functools import wraps
from datetime import datetime, date

# --- Role-based CRUD policy ---
CRUD_PERMISSIONS = {
    'leave': {
        'create': ['student'],
        'read':   ['student'],
    },
    'leave_review': {
        'update': ['guide'],
    },
    'lwp_review': {
        'update': ['operator'],
    },
    'scholarship': {
        'create': ['operator', 'admin'],
        'read':   ['student'],
    },
    'operator_report': {
        'read':   ['operator', 'admin'],
    },
    'dean_report': {
        'read':   ['dean', 'admin'],
    },
    'guide_report': {
        'read':   ['guide'],
    },
    'student_overview': {
        'read':   ['dean', 'admin'],
    },
}

def crud_required(resource: str, action: str):
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            if not session.get('logged_in'):
                return jsonify({'error': 'Please log in to access this resource.'}), 401
            role = session.get('role')
            allowed = CRUD_PERMISSIONS.get(resource, {}).get(action, [])
            if role not in allowed:
                logger.warning(f"Role '{role}' denied {action} on {resource} for {session.get('user')}")
                return jsonify({'error': 'You are not authorized to perform this action.'}), 403
            return fn(*args, **kwargs)
        return wrapper
    return decorator

# --- Error handling ---
@app.errorhandler(InvalidIntervalError)
def handle_invalid_interval(e):
    logger.warning(f"Rejected leave interval: {e.message}")
    return jsonify({'error': e.message, 'details': e.details}), 422

@app.errorhandler(HTTPException)
def handle_http_exception(e):
    return jsonify({'error': e.description}), e.code

# --- Helper Functions ---
def current_user():
    return User.query.filter_by(username=session.get('user')).first()

def write_audit(action, target, details):
    try:
        log = AuditLog(
            action=action,
            actor_username=session.get('user'),
            actor_role=session.get('role'),
            target=target,
            details=details,
        )
        db.session.add(log)
        db.session.commit()
    except Exception as _e:
        db.session.rollback()
        logger.warning(f"Failed to write audit log for {action}: {_e}")

def parse_year_month(source, default_today=False):
    """Return (year, month, error). Falls back to the current month when default_today is set."""
    year_str = str(source.get('year', '') or '').strip()
    month_str = str(source.get('month', '') or '').strip()
    if not year_str or not month_str:
        if default_today:
            today = date.today()
            return today.year, today.month, None
        return None, None, 'Year and month are required'
    try:
        year = int(year_str)
        month = int(month_str)
    except ValueError:
        return None, None, 'Invalid year or month'
    if month < 1 or month > 12 or year < date.min.year or year > date.max.year:
        return None, None, 'Invalid year or month'
    return year, month, None

# --- Leave applications ---
@app.route('/api/leaves', methods=['POST'])
@crud_required('leave', 'create')
def submit_leave():
    user = current_user()
    student = Student.query.filter_by(user_id=user.id).first() if user else None
    if not student:
        return jsonify({'error': 'Student record not found'}), 404

    data = request.get_json(silent=True) or request.form
    leave_type = str(data.get('leaveType', '') or '').strip().upper()
    start_str = str(data.get('startDate', '') or '').strip()
    end_str = str(data.get('endDate', '') or '').strip()
    reason = str(data.get('reason', '') or '').strip()

    if not leave_type or not start_str or not end_str or not reason:
        return jsonify({'error': 'All fields are required'}), 400
    if leave_type not in LEAVE_TYPES:
        return jsonify({'error': 'Invalid leave type'}), 400
    try:
        start_d = datetime.strptime(start_str[:10], '%Y-%m-%d').date()
        end_d = datetime.strptime(end_str[:10], '%Y-%m-%d').date()
    except ValueError:
        return jsonify({'error': 'Invalid dates'}), 400

    today = date.today()
    if not app.config.get('ALLOW_FUTURE_LEAVE_DATES', False):
        if start_d > today:
            return jsonify({'error': 'Start date cannot be in the future'}), 400
        if end_d > today:
            return jsonify({'error': 'End date cannot be in the future'}), 400
    if end_d < start_d:
        return jsonify({'error': 'End date cannot be before start date'}), 400

    try:
        leave = Leave(student_id=student.id, leave_type=leave_type, start_date=start_d, end_date=end_d,
                      status='PENDING', application_date=datetime.utcnow())
        db.session.add(leave)
        db.session.flush()
        # CL and DL go to the guide, LWP to the operator
        if leave_type != 'LWP':
            db.session.add(Remark(leave_id=leave.id, user_id=user.id, role='STUDENT',
                                  remark=f"{ROUTING_REMARK_PREFIX} GUIDE for approval"))
        db.session.add(Remark(leave_id=leave.id, user_id=user.id, role='STUDENT', remark=reason))
        db.session.commit()
    except Exception:
        db.session.rollback()
        logger.exception("Unexpected error submitting leave")
        return jsonify({'error': 'Internal server error'}), 500

    logger.info(f"Leave submitted: student_id={student.id} {leave_type} {start_d}->{end_d}")
    return jsonify({'message': 'Leave application submitted successfully', 'leaveId': leave.id}), 201

def review_leave(leave_id, allowed_types, remark_role, label):
    data = request.get_json(silent=True) or request.form
    action = str(data.get('action', '') or '').strip().upper()
    reason = str(data.get('reason', '') or '').strip()
    if not action or not reason:
        return jsonify({'error': 'Action and reason are required'}), 400
    if action not in ('APPROVED', 'REJECTED'):
        return jsonify({'error': 'Invalid action. Must be APPROVED or REJECTED'}), 400

    leave = Leave.query.get_or_404(leave_id, description='Leave application not found')
    if leave.leave_type not in allowed_types:
        return jsonify({'error': f"Only {' and '.join(allowed_types)} leave applications can be processed by {label}s"}), 400

    user = current_user()
    if not user:
        return jsonify({'error': 'User not found'}), 404
    if remark_role == 'GUIDE' and not leave.student.is_guided_by(user.id):
        return jsonify({'error': 'Access denied. This student is not assigned to you.'}), 403

    try:
        leave.status = action
        db.session.add(Remark(leave_id=leave.id, user_id=user.id, role=remark_role, remark=reason))
        db.session.commit()
    except Exception:
        db.session.rollback()
        logger.exception(f"Unexpected error reviewing leave id={leave_id}")
        return jsonify({'error': 'Internal server error'}), 500

    logger.info(f"Leave id={leave.id} {action.lower()} by {user.username} ({remark_role})")
    write_audit(f"leave_{action.lower()}", f"leave:{leave.id}",
                f"{leave.leave_type} {leave.start_date}->{leave.end_date} for {student_display_name(leave.student)}: {reason}")
    return jsonify({
        'message': f"Leave application {action.lower()} successfully",
        'leaveId': leave.id,
        'status': action,
        'reason': reason,
    }), 200

@app.route('/api/guide/leaves/<int:leave_id>/action', methods=['POST'])
@crud_required('leave_review', 'update')
def guide_action_on_leave(leave_id):
    return review_leave(leave_id, ('CL', 'DL'), 'GUIDE', 'guide')

@app.route('/api/operator/leaves/<int:leave_id>/action', methods=['POST'])
@crud_required('lwp_review', 'update')
def operator_action_on_leave(leave_id):
    return review_leave(leave_id, ('LWP',), 'OPERATOR', 'operator')

# --- Student views ---
@app.route('/api/students/me/leave-summary')
@crud_required('leave', 'read')
def my_leave_summary():
    student = student_for_user(session.get('user'))
    if not student:
        return jsonify({'error': 'Student record not found'}), 404
    return jsonify(leave_summary(student, app.config)), 200

@app.route('/api/students/me/scholarships')
@crud_required('scholarship', 'read')
def my_scholarships():
    student = student_for_user(session.get('user'))
    if not student:
        return jsonify({'error': 'Student record not found'}), 404
    year, month, error = parse_year_month(request.args, default_today=True)
    if error:
        return jsonify({'error': error}), 400
    return jsonify(student_scholarship(student, year, month, app.config)), 200

# --- Monthly reports ---
@app.route('/api/operator/monthly-report')
@crud_required('operator_report', 'read')
def monthly_report_operator():
    return monthly_report_all()

@app.route('/api/dean/monthly-report')
@crud_required('dean_report', 'read')
def monthly_report_dean():
    return monthly_report_all()

def monthly_report_all():
    year, month, error = parse_year_month(request.args)
    if error:
        return jsonify({'error': error}), 400
    return jsonify(monthly_report(reportable_students(), year, month, app.config)), 200

@app.route('/api/guide/monthly-report')
@crud_required('guide_report', 'read')
def monthly_report_guide():
    year, month, error = parse_year_month(request.args)
    if error:
        return jsonify({'error': error}), 400
    user = current_user()
    if not user:
        return jsonify({'error': 'User not found'}), 404
    students = reportable_students(guide_id=user.id)
    return jsonify(monthly_report(students, year, month, app.config)), 200

# --- Dean overview ---
@app.route('/api/dean/students')
@crud_required('student_overview', 'read')
def dean_students():
    guide_id = request.args.get('guideId', type=int)
    students = reportable_students(guide_id=guide_id, active_only=False)
    today = date.today()
    return jsonify([dean_overview_row(s, today, app.config) for s in students]), 200

# --- Scholarship finalization ---
@app.route('/api/operator/scholarships/finalize', methods=['POST'])
@crud_required('scholarship', 'create')
def finalize_student_scholarship():
    data = request.get_json(silent=True) or request.form
    year, month, error = parse_year_month(data)
    if error:
        return jsonify({'error': error}), 400
    try:
        student_id = int(data.get('studentId'))
    except (TypeError, ValueError):
        return jsonify({'error': 'studentId is required'}), 400
    student = Student.query.get_or_404(student_id, description='Student record not found')

    try:
        record, outcome = finalize_scholarship(student, year, month, app.config)
    except InvalidIntervalError:
        raise
    except Exception:
        db.session.rollback()
        logger.exception(f"Unexpected error finalizing scholarship for student_id={student_id}")
        return jsonify({'error': 'Internal server error'}), 500

    if outcome != 'frozen':
        write_audit('scholarship_finalize', f"student:{student.id}",
                    f"{student_display_name(student)} {year}-{month:02d} final={record.final_amount}")
    return jsonify({
        'studentId': student.id,
        'year': year,
        'month': month,
        'baseAmount': record.base_amount,
        'lwpDeduction': record.lwp_deduction,
        'finalAmount': record.final_amount,
        'created': outcome == 'created',
        'outcome': outcome,
    }), 201 if outcome == 'created' else 200
