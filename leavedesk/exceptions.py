"""
Exceptions raised by the leave and scholarship calculators.
"""


class LeaveDeskError(Exception):
    """Base class for errors raised by leavedesk."""

    def __init__(self, message, details=None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class InvalidIntervalError(LeaveDeskError, ValueError):
    """A leave interval ends before it starts."""

    def __init__(self, start_date, end_date):
        self.start_date = start_date
        self.end_date = end_date
        super().__init__(
            f"Leave interval ends before it starts: {start_date} -> {end_date}",
            details={'startDate': str(start_date), 'endDate': str(end_date)},
        )
