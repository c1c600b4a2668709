# ===== apps/savings/schedule.py =====
"""Calendar arithmetic for savings plan occurrences."""
import calendar
import datetime


def shift_months(moment, months):
    """Same day-of-month ``months`` later, clamped to the month's last day."""
    index = moment.month - 1 + months
    year = moment.year + index // 12
    month = index % 12 + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


PERIODS = {
    'weekly': ('days', 7),
    'biweekly': ('days', 14),
    'monthly': ('months', 1),
    'quarterly': ('months', 3),
    'yearly': ('months', 12),
}


def occurrence_at(start, frequency, n):
    """The ``n``-th occurrence (0 = ``start``) of a plan anchored at ``start``."""
    unit, step = PERIODS[frequency]
    if unit == 'days':
        return start + datetime.timedelta(days=step * n)
    return shift_months(start, step * n)
