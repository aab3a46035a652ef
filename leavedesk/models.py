from leavedesk import db
from datetime import datetime

LEAVE_TYPES = ('CL', 'DL', 'LWP')
LEAVE_STATUSES = ('PENDING', 'APPROVED', 'REJECTED')

class User(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(120), unique=True, nullable=False)
    name = db.Column(db.String(100))
    role = db.Column(db.String(20), nullable=False, default='student')  # student, guide, operator, dean, admin
    is_approved = db.Column(db.Boolean, nullable=False, default=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    student = db.relationship('Student', backref='user', uselist=False, lazy=True,
                              foreign_keys='Student.user_id')

    def __repr__(self):
        return f"User('{self.username}', role='{self.role}')"

class Student(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), unique=True, nullable=False)
    department = db.Column(db.String(100))
    enrollment_year = db.Column(db.Integer)
    scholarship_type = db.Column(db.String(50))
    scholarship_amount = db.Column(db.Float)
    guide_id = db.Column(db.Integer, db.ForeignKey('user.id'))
    co_guide_id = db.Column(db.Integer, db.ForeignKey('user.id'))

    guide = db.relationship('User', foreign_keys=[guide_id], lazy=True)
    co_guide = db.relationship('User', foreign_keys=[co_guide_id], lazy=True)
    profile = db.relationship('StudentProfile', backref='student', uselist=False, lazy=True, cascade="all, delete-orphan")
    leaves = db.relationship('Leave', backref='student', lazy=True, cascade="all, delete-orphan")
    scholarships = db.relationship('Scholarship', backref='student', lazy=True, cascade="all, delete-orphan")

    def is_guided_by(self, user_id):
        return user_id is not None and user_id in (self.guide_id, self.co_guide_id)

    def __repr__(self):
        return f"Student(id={self.id}, user_id={self.user_id})"

class StudentProfile(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    student_id = db.Column(db.Integer, db.ForeignKey('student.id'), unique=True, nullable=False)
    ugc_id = db.Column(db.String(50))
    # Entered by students as free text; parsed leniently when computing scholarships
    scholarship_amount = db.Column(db.String(50))
    contingency_amount = db.Column(db.String(50))
    name_of_guide = db.Column(db.String(100))

class Leave(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    student_id = db.Column(db.Integer, db.ForeignKey('student.id'), nullable=False, index=True)
    leave_type = db.Column(db.String(10), nullable=False)  # CL, DL, LWP
    start_date = db.Column(db.Date, nullable=False)
    end_date = db.Column(db.Date, nullable=False)
    status = db.Column(db.String(20), nullable=False, default='PENDING')
    application_date = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    leave_source = db.Column(db.String(20), nullable=False, default='MANUAL')  # MANUAL, AUTO
    document_path = db.Column(db.String(255))
    remarks = db.relationship('Remark', backref='leave', lazy=True, cascade="all, delete-orphan",
                              order_by='Remark.action_date')

    def __repr__(self):
        return f"Leave(student_id={self.student_id}, {self.leave_type} {self.start_date}->{self.end_date}, status='{self.status}')"

class Remark(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    leave_id = db.Column(db.Integer, db.ForeignKey('leave.id'), nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False)
    role = db.Column(db.String(20), nullable=False)
    remark = db.Column(db.Text, nullable=False)
    action_date = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    def __repr__(self):
        return f"Remark(leave_id={self.leave_id}, role='{self.role}')"

class Scholarship(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    student_id = db.Column(db.Integer, db.ForeignKey('student.id'), nullable=False, index=True)
    year = db.Column(db.Integer, nullable=False)
    month = db.Column(db.Integer, nullable=False)
    base_amount = db.Column(db.Float)
    contingency_amount = db.Column(db.Float)
    lwp_deduction = db.Column(db.Float)
    final_amount = db.Column(db.Float)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    def __repr__(self):
        return f"Scholarship(student_id={self.student_id}, {self.year}-{self.month:02d}, final={self.final_amount})"

class SystemSetting(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    key = db.Column(db.String(100), unique=True, nullable=False)
    value = db.Column(db.String(200), nullable=False)
    group = db.Column(db.String(50), nullable=True)

    def __repr__(self):
        return f"SystemSetting('{self.key}')"

class AuditLog(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    action = db.Column(db.String(50), nullable=False)
    actor_username = db.Column(db.String(120), nullable=True)
    actor_role = db.Column(db.String(20), nullable=True)
    target = db.Column(db.String(120), nullable=True)
    details = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    def __repr__(self):
        return f"AuditLog(action='{self.action}', actor='{self.actor_username}', target='{self.target}')"

# Convenience display helpers
def student_display_name(student: Student) -> str:
    user = student.user
    name = (user.name if user else None) or 'Unknown Student'
    ugc_id = student.profile.ugc_id if student.profile else None
    if ugc_id:
        return f"{name} ({ugc_id})"
    return name
