import unittest
import sys
import os
from datetime import date

os.environ['FLASK_ENV'] = 'testing'
os.environ['SQLALCHEMY_DATABASE_URI'] = 'sqlite:///:memory:'

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from leavedesk import app, db, load_policy_settings
from leavedesk.models import User, Student, StudentProfile, Leave, Scholarship, SystemSetting, AuditLog

class ReportTests(unittest.TestCase):
    """
    One student with 35 approved CL days (5 overflow in February), two
    direct LWP days in February, one DL and a pending CL. February 2025 has
    28 days and the profile amount is 28000, so a day costs 1000.
    """

    def setUp(self):
        self.app = app
        self.app.config['TESTING'] = True
        self.client = self.app.test_client()
        self.ctx = self.app.app_context()
        self.ctx.push()
        db.create_all()

        self.guide = User(username='guide@uni.edu', name='Dr. Guide', role='guide', is_approved=True)
        self.other_guide = User(username='other@uni.edu', name='Dr. Other', role='guide', is_approved=True)
        self.operator = User(username='ops@uni.edu', name='Operator', role='operator', is_approved=True)
        self.dean = User(username='dean@uni.edu', name='Dean', role='dean', is_approved=True)
        self.asha_user = User(username='asha@uni.edu', name='Asha', role='student', is_approved=True)
        self.ravi_user = User(username='ravi@uni.edu', name='Ravi', role='student', is_approved=True)
        db.session.add_all([self.guide, self.other_guide, self.operator, self.dean, self.asha_user, self.ravi_user])
        db.session.flush()

        self.asha = Student(user_id=self.asha_user.id, department='Physics', guide_id=self.guide.id,
                            scholarship_amount=18000)
        self.ravi = Student(user_id=self.ravi_user.id, department='Chemistry', guide_id=self.other_guide.id)
        db.session.add_all([self.asha, self.ravi])
        db.session.flush()
        db.session.add(StudentProfile(student_id=self.asha.id, ugc_id='UGC-7', scholarship_amount='28000',
                                      contingency_amount='1000'))
        db.session.add_all([
            Leave(student_id=self.asha.id, leave_type='CL', start_date=date(2025, 1, 1), end_date=date(2025, 1, 20), status='APPROVED'),
            Leave(student_id=self.asha.id, leave_type='CL', start_date=date(2025, 2, 1), end_date=date(2025, 2, 15), status='APPROVED'),
            Leave(student_id=self.asha.id, leave_type='LWP', start_date=date(2025, 2, 20), end_date=date(2025, 2, 21), status='APPROVED'),
            Leave(student_id=self.asha.id, leave_type='DL', start_date=date(2025, 3, 3), end_date=date(2025, 3, 4), status='APPROVED'),
            Leave(student_id=self.asha.id, leave_type='CL', start_date=date(2025, 3, 10), end_date=date(2025, 3, 10), status='PENDING'),
            Leave(student_id=self.ravi.id, leave_type='CL', start_date=date(2025, 2, 3), end_date=date(2025, 2, 4), status='APPROVED'),
        ])
        db.session.commit()

    def tearDown(self):
        self.app.config['CL_ANNUAL_ALLOWANCE'] = 30
        db.session.remove()
        db.drop_all()
        self.ctx.pop()

    def login(self, user, role):
        with self.client.session_transaction() as sess:
            sess['logged_in'] = True
            sess['user'] = user.username
            sess['role'] = role

    # --- Leave summary ---
    def test_leave_summary_balances(self):
        self.login(self.asha_user, 'student')
        resp = self.client.get('/api/students/me/leave-summary')
        self.assertEqual(resp.status_code, 200)
        data = resp.get_json()
        self.assertEqual(data['CL']['balance'], '0/30')
        self.assertEqual(data['DL']['balance'], '1')
        self.assertEqual(data['LWP']['balance'], '7 (CL overflow: 5)')
        self.assertEqual(data['LWP']['overflowFromCL'], 5)
        self.assertEqual(data['LWP']['overflowSegments'], [{'startDate': '2025-02-11', 'endDate': '2025-02-15', 'days': 5}])

    def test_leave_summary_history(self):
        self.login(self.asha_user, 'student')
        data = self.client.get('/api/students/me/leave-summary').get_json()
        cl_history = data['CL']['history']
        self.assertEqual([row['dates'] for row in cl_history], [
            '2025-03-10 to 2025-03-10', '2025-02-01 to 2025-02-15', '2025-01-01 to 2025-01-20',
        ])
        self.assertEqual(cl_history[0]['status'], 'PENDING')
        self.assertEqual(cl_history[1]['status'], 'APPROVED (5 day(s) converted to LWP)')
        self.assertEqual(cl_history[1]['convertedToLWP'], 5)
        self.assertEqual(cl_history[1]['duration'], '15 days')
        self.assertNotIn('convertedToLWP', cl_history[2])

        lwp_history = data['LWP']['history']
        self.assertEqual(len(lwp_history), 2)
        self.assertEqual(lwp_history[0]['dates'], '2025-02-20 to 2025-02-21')
        self.assertEqual(lwp_history[1], {
            'dates': '2025-02-11 to 2025-02-15', 'duration': '5 days', 'status': 'Converted from CL overflow',
        })

    def test_allowance_from_system_setting(self):
        db.session.add(SystemSetting(key='CL_ANNUAL_ALLOWANCE', value='40', group='leave'))
        db.session.commit()
        load_policy_settings()
        self.assertEqual(self.app.config['CL_ANNUAL_ALLOWANCE'], 40)
        self.login(self.asha_user, 'student')
        data = self.client.get('/api/students/me/leave-summary').get_json()
        self.assertEqual(data['CL']['balance'], '5/40')
        self.assertEqual(data['LWP']['balance'], '2')

    def test_summary_requires_student_record(self):
        self.login(self.operator, 'student')
        resp = self.client.get('/api/students/me/leave-summary')
        self.assertEqual(resp.status_code, 404)

    # --- Scholarships ---
    def test_student_scholarship_for_month(self):
        db.session.add(Scholarship(student_id=self.asha.id, year=2025, month=1, base_amount=28000, final_amount=28000))
        db.session.commit()
        self.login(self.asha_user, 'student')
        resp = self.client.get('/api/students/me/scholarships?year=2025&month=2')
        self.assertEqual(resp.status_code, 200)
        current = resp.get_json()['currentMonth']
        self.assertEqual(current['baseAmount'], 28000)
        self.assertEqual(current['daysInMonth'], 28)
        self.assertEqual(current['perDayRate'], 1000)
        self.assertEqual(current['lwpDays'], 7)
        self.assertEqual(current['lwpDaysFromRecords'], 2)
        self.assertEqual(current['lwpDaysFromOverflow'], 5)
        self.assertEqual(current['lwpDeduction'], 7000)
        self.assertEqual(current['finalAmount'], 21000)
        self.assertEqual(current['contingencyAmount'], 1000)
        self.assertEqual(resp.get_json()['previousMonths'], [{'month': 'Jan', 'year': '25', 'amount': 28000}])

    def test_scholarship_rejects_bad_month(self):
        self.login(self.asha_user, 'student')
        resp = self.client.get('/api/students/me/scholarships?year=2025&month=13')
        self.assertEqual(resp.status_code, 400)
        resp = self.client.get('/api/students/me/scholarships?year=0&month=2')
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.get_json()['error'], 'Invalid year or month')

    # --- Monthly reports ---
    def test_operator_monthly_report(self):
        self.login(self.operator, 'operator')
        resp = self.client.get('/api/operator/monthly-report?year=2025&month=2')
        self.assertEqual(resp.status_code, 200)
        data = resp.get_json()
        self.assertEqual(data['monthName'], 'February')
        self.assertEqual([s['name'] for s in data['students']], ['Asha', 'Ravi'])
        asha = data['students'][0]
        self.assertEqual(asha['ugcId'], 'UGC-7')
        self.assertEqual(asha['clDays'], 15)
        self.assertEqual(asha['dlDays'], 0)
        self.assertEqual(asha['lwpDays'], 7)
        self.assertEqual(asha['lwpDeduction'], 7000)
        self.assertEqual(asha['finalAmount'], 21000)
        ravi = data['students'][1]
        self.assertEqual(ravi['clDays'], 2)
        self.assertEqual(ravi['baseAmount'], 30000)
        self.assertEqual(ravi['finalAmount'], 30000)

    def test_monthly_report_requires_year_and_month(self):
        self.login(self.operator, 'operator')
        self.assertEqual(self.client.get('/api/operator/monthly-report').status_code, 400)
        self.assertEqual(self.client.get('/api/operator/monthly-report?year=x&month=2').status_code, 400)
        self.assertEqual(self.client.get('/api/operator/monthly-report?year=10000&month=2').status_code, 400)

    def test_monthly_reports_are_split_by_role(self):
        self.login(self.dean, 'dean')
        self.assertEqual(self.client.get('/api/operator/monthly-report?year=2025&month=2').status_code, 403)
        self.assertEqual(self.client.get('/api/dean/monthly-report?year=2025&month=2').status_code, 200)
        self.login(self.operator, 'operator')
        self.assertEqual(self.client.get('/api/dean/monthly-report?year=2025&month=2').status_code, 403)
        self.login(self.dean, 'admin')
        self.assertEqual(self.client.get('/api/operator/monthly-report?year=2025&month=2').status_code, 200)
        self.assertEqual(self.client.get('/api/dean/monthly-report?year=2025&month=2').status_code, 200)

    def test_inactive_students_are_left_out(self):
        self.ravi_user.is_active = False
        db.session.commit()
        self.login(self.dean, 'dean')
        data = self.client.get('/api/dean/monthly-report?year=2025&month=3').get_json()
        self.assertEqual([s['name'] for s in data['students']], ['Asha'])
        self.assertEqual(data['students'][0]['dlDays'], 1)
        self.assertEqual(data['students'][0]['clDays'], 0)

    def test_guide_report_only_lists_own_students(self):
        self.login(self.guide, 'guide')
        data = self.client.get('/api/guide/monthly-report?year=2025&month=2').get_json()
        self.assertEqual([s['name'] for s in data['students']], ['Asha'])
        self.login(self.guide, 'student')
        self.assertEqual(self.client.get('/api/guide/monthly-report?year=2025&month=2').status_code, 403)

    # --- Dean overview ---
    def test_dean_overview(self):
        self.login(self.dean, 'dean')
        resp = self.client.get(f'/api/dean/students?guideId={self.guide.id}')
        self.assertEqual(resp.status_code, 200)
        rows = resp.get_json()
        self.assertEqual(len(rows), 1)
        row = rows[0]
        self.assertEqual(row['guideName'], 'Dr. Guide')
        self.assertEqual(row['clTaken'], 30)
        self.assertEqual(row['clTotal'], 30)
        self.assertEqual(row['remainingCL'], 0)
        self.assertEqual(row['dlTaken'], 1)
        self.assertEqual(row['remainingDL'], 9)
        self.assertEqual(row['lwpTaken'], 7)
        self.assertEqual(row['totalLeaves'], 38)
        self.assertEqual(len(row['previousLeaves']), 4)
        self.assertEqual(row['baseAmount'], 28000)

    # --- Finalization ---
    def test_finalized_month_is_frozen(self):
        self.login(self.operator, 'operator')
        resp = self.client.post('/api/operator/scholarships/finalize', json={'studentId': self.asha.id, 'year': 2025, 'month': 2})
        self.assertEqual(resp.status_code, 201)
        self.assertEqual(resp.get_json()['finalAmount'], 21000)
        self.assertEqual(AuditLog.query.filter_by(action='scholarship_finalize').count(), 1)

        db.session.add(Leave(student_id=self.asha.id, leave_type='LWP', start_date=date(2025, 2, 24),
                             end_date=date(2025, 2, 25), status='APPROVED'))
        db.session.commit()

        data = self.client.get('/api/operator/monthly-report?year=2025&month=2').get_json()
        self.assertEqual(data['students'][0]['lwpDays'], 9)
        self.assertEqual(data['students'][0]['finalAmount'], 21000)

        resp = self.client.post('/api/operator/scholarships/finalize', json={'studentId': self.asha.id, 'year': 2025, 'month': 2})
        self.assertEqual(resp.status_code, 200)
        self.assertFalse(resp.get_json()['created'])
        self.assertEqual(resp.get_json()['outcome'], 'frozen')
        self.assertEqual(Scholarship.query.filter_by(student_id=self.asha.id, year=2025, month=2).count(), 1)

    def test_finalize_validation(self):
        self.login(self.operator, 'operator')
        resp = self.client.post('/api/operator/scholarships/finalize', json={'year': 2025, 'month': 2})
        self.assertEqual(resp.status_code, 400)
        resp = self.client.post('/api/operator/scholarships/finalize', json={'studentId': 999, 'year': 2025, 'month': 2})
        self.assertEqual(resp.status_code, 404)
        resp = self.client.post('/api/operator/scholarships/finalize', json={'studentId': self.asha.id, 'year': 0, 'month': 2})
        self.assertEqual(resp.status_code, 400)

    def test_refinalizing_unpaid_month_keeps_one_row(self):
        db.session.add(Leave(student_id=self.ravi.id, leave_type='LWP', start_date=date(2025, 2, 1),
                             end_date=date(2025, 2, 28), status='APPROVED'))
        db.session.commit()
        self.login(self.operator, 'operator')
        payload = {'studentId': self.ravi.id, 'year': 2025, 'month': 2}
        resp = self.client.post('/api/operator/scholarships/finalize', json=payload)
        self.assertEqual(resp.status_code, 201)
        self.assertEqual(resp.get_json()['finalAmount'], 0)
        for _ in range(2):
            resp = self.client.post('/api/operator/scholarships/finalize', json=payload)
            self.assertEqual(resp.status_code, 200)
            self.assertEqual(resp.get_json()['outcome'], 'updated')
        self.assertEqual(Scholarship.query.filter_by(student_id=self.ravi.id, year=2025, month=2).count(), 1)

        self.login(self.ravi_user, 'student')
        data = self.client.get('/api/students/me/scholarships?year=2025&month=3').get_json()
        self.assertEqual(data['previousMonths'], [{'month': 'Feb', 'year': '25', 'amount': 0}])

    def test_corrupt_interval_is_reported(self):
        db.session.add(Leave(student_id=self.ravi.id, leave_type='CL', start_date=date(2025, 4, 10),
                             end_date=date(2025, 4, 1), status='APPROVED'))
        db.session.commit()
        self.login(self.operator, 'operator')
        resp = self.client.get('/api/operator/monthly-report?year=2025&month=4')
        self.assertEqual(resp.status_code, 422)
        self.assertIn('details', resp.get_json())

if __name__ == '__main__':
    unittest.main()
