import unittest
import sys
import os
from datetime import date

os.environ['FLASK_ENV'] = 'testing'

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from leavedesk.allocation import LeaveInterval, OverflowSegment
from leavedesk.balances import (
    annotate_status, compute_leave_balances, converted_days, month_cl_days, month_dl_count, month_lwp_days,
)

def cl(start, end):
    return LeaveInterval(start, end, 'CL')

def lwp(start, end):
    return LeaveInterval(start, end, 'LWP')

def dl(start, end):
    return LeaveInterval(start, end, 'DL')

class LeaveBalanceTests(unittest.TestCase):

    def setUp(self):
        self.cl = [cl(date(2025, 1, 1), date(2025, 1, 20)), cl(date(2025, 2, 1), date(2025, 2, 15))]
        self.dl = [dl(date(2025, 3, 3), date(2025, 3, 4)), dl(date(2025, 4, 7), date(2025, 4, 7))]
        self.lwp = [lwp(date(2025, 2, 20), date(2025, 2, 21))]

    def test_balances_with_overflow(self):
        b = compute_leave_balances(self.cl, self.dl, self.lwp, 30)
        self.assertEqual(b.total_approved_cl_days, 35)
        self.assertEqual(b.total_overflow_days, 5)
        self.assertEqual(b.cl_allocated_days, 30)
        self.assertEqual(b.remaining_cl, 0)
        self.assertEqual(b.direct_lwp_days, 2)
        self.assertEqual(b.total_lwp_days, 7)
        self.assertEqual(b.dl_count, 2)
        self.assertEqual(b.cl_label, '0/30')
        self.assertEqual(b.dl_label, '2')
        self.assertEqual(b.lwp_label, '7 (CL overflow: 5)')
        self.assertEqual(b.to_dict(), {'remainingCL': '0/30', 'dlCount': 2, 'totalLwpDays': 7})

    def test_balances_without_overflow(self):
        b = compute_leave_balances(self.cl[:1], [], [], 30)
        self.assertEqual(b.remaining_cl, 10)
        self.assertEqual(b.cl_label, '10/30')
        self.assertEqual(b.total_lwp_days, 0)
        self.assertEqual(b.lwp_label, '0')

    def test_dl_counts_applications_not_days(self):
        b = compute_leave_balances([], [dl(date(2025, 1, 1), date(2025, 1, 10))], [], 30)
        self.assertEqual(b.dl_count, 1)
        self.assertEqual(b.remaining_cl, 30)

    def test_custom_allowance(self):
        b = compute_leave_balances(self.cl, [], [], 12)
        self.assertEqual(b.cl_allocated_days, 12)
        self.assertEqual(b.total_overflow_days, 23)
        self.assertEqual(b.cl_label, '0/12')

class MonthScopedTests(unittest.TestCase):

    def test_lwp_days_combine_records_and_overflow(self):
        records = [lwp(date(2025, 1, 28), date(2025, 2, 3))]
        overflow = [OverflowSegment(date(2025, 2, 11), date(2025, 2, 15), 5)]
        self.assertEqual(month_lwp_days(records, overflow, date(2025, 2, 1), date(2025, 2, 28)), (3, 5))
        self.assertEqual(month_lwp_days(records, overflow, date(2025, 1, 1), date(2025, 1, 31)), (4, 0))
        self.assertEqual(month_lwp_days(records, overflow, date(2025, 3, 1), date(2025, 3, 31)), (0, 0))

    def test_cl_days_and_dl_count_in_month(self):
        cls = [cl(date(2025, 1, 30), date(2025, 2, 2)), cl(date(2025, 2, 10), date(2025, 2, 10))]
        self.assertEqual(month_cl_days(cls, date(2025, 2, 1), date(2025, 2, 28)), 3)
        dls = [dl(date(2025, 1, 31), date(2025, 2, 1)), dl(date(2025, 3, 1), date(2025, 3, 2))]
        self.assertEqual(month_dl_count(dls, date(2025, 2, 1), date(2025, 2, 28)), 1)

class HistoryAnnotationTests(unittest.TestCase):

    def test_converted_days_and_status(self):
        interval = cl(date(2025, 2, 1), date(2025, 2, 15))
        segments = [OverflowSegment(date(2025, 2, 11), date(2025, 2, 15), 5)]
        converted = converted_days(interval, segments)
        self.assertEqual(converted, 5)
        self.assertEqual(annotate_status('APPROVED', converted), 'APPROVED (5 day(s) converted to LWP)')

    def test_no_annotation_without_overlap(self):
        interval = cl(date(2025, 1, 1), date(2025, 1, 20))
        segments = [OverflowSegment(date(2025, 2, 11), date(2025, 2, 15), 5)]
        self.assertEqual(converted_days(interval, segments), 0)
        self.assertEqual(annotate_status('APPROVED', 0), 'APPROVED')

if __name__ == "__main__":
    unittest.main()
