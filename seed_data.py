from leavedesk import app, db
from leavedesk.models import User, Student, StudentProfile, Leave, Remark
from leavedesk.reports import ROUTING_REMARK_PREFIX
from datetime import datetime, timedelta, date
import random

def seed():
    with app.app_context():
        print("Seeding database...")

        # Staff accounts
        staff = [
            ('dean@university.edu', 'Dean of Research', 'dean'),
            ('operator@university.edu', 'Scholarship Operator', 'operator'),
        ]
        for username, name, role in staff:
            if not User.query.filter_by(username=username).first():
                db.session.add(User(username=username, name=name, role=role, is_approved=True))
        db.session.commit()
        print("Created staff users.")

        # Create Guides
        departments = ['Computer Engineering', 'Mathematics', 'Physics']
        for i in range(1, 4):
            username = f"guide{i}@university.edu"
            if not User.query.filter_by(username=username).first():
                db.session.add(User(username=username, name=f"Dr. Guide {i}", role='guide', is_approved=True))
        db.session.commit()
        guides = User.query.filter_by(role='guide').all()
        print(f"Created {len(guides)} guides.")

        # Create Students
        students = []
        for i in range(1, 13):
            username = f"23phd{100+i}@university.edu"
            if User.query.filter_by(username=username).first():
                continue
            guide = guides[(i - 1) % len(guides)]
            user = User(username=username, name=f"Scholar {i}", role='student', is_approved=True)
            db.session.add(user)
            db.session.flush()
            s = Student(
                user_id=user.id,
                department=departments[(i - 1) % len(departments)],
                enrollment_year=random.choice([2022, 2023, 2024]),
                scholarship_type=random.choice(['JRF', 'SRF', 'Institute']),
                guide_id=guide.id,
            )
            db.session.add(s)
            db.session.flush()
            db.session.add(StudentProfile(
                student_id=s.id,
                ugc_id=f"UGC-{2000+i}",
                scholarship_amount=random.choice(['31000', '35000', '37000']),
                contingency_amount='10000',
                name_of_guide=guide.name,
            ))
            students.append(s)
        db.session.commit()
        print(f"Created {len(students)} students.")

        # Create Leaves; long CL runs push some scholars past the annual allowance
        today = date.today()
        for s in students:
            cursor = date(today.year, 1, 2)
            for _ in range(random.randint(2, 6)):
                leave_type = random.choice(['CL', 'CL', 'CL', 'DL', 'LWP'])
                length = random.randint(1, 12)
                start = cursor
                end = start + timedelta(days=length - 1)
                if end >= today:
                    break
                status = random.choice(['APPROVED', 'APPROVED', 'APPROVED', 'PENDING', 'REJECTED'])
                leave = Leave(student_id=s.id, leave_type=leave_type, start_date=start, end_date=end,
                              status=status, application_date=datetime.utcnow())
                db.session.add(leave)
                db.session.flush()
                if leave_type != 'LWP':
                    db.session.add(Remark(leave_id=leave.id, user_id=s.user_id, role='STUDENT',
                                          remark=f"{ROUTING_REMARK_PREFIX} GUIDE for approval"))
                db.session.add(Remark(leave_id=leave.id, user_id=s.user_id, role='STUDENT',
                                      remark=random.choice(['Family function', 'Medical', 'Conference', 'Travel home'])))
                cursor = end + timedelta(days=random.randint(3, 20))
        db.session.commit()
        print("Created leave applications.")

        print("Seeding complete.")

if __name__ == "__main__":
    seed()
