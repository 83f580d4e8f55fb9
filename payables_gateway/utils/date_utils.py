"""Date manipulation utilities"""

from datetime import date
from typing import List
from dateutil.relativedelta import relativedelta


def month_start(day: date) -> date:
    return day.replace(day=1)


def add_months(day: date, months: int) -> date:
    """Shift to the first day of the month `months` away (negative goes back)"""
    return month_start(day) + relativedelta(months=months)


def generate_month_range(start: date, end: date) -> List[date]:
    """First day of every month from start to end (inclusive)"""
    months = []
    current = month_start(start)
    while current <= end:
        months.append(current)
        current += relativedelta(months=1)
    return months


def month_key(day: date) -> str:
    return day.strftime("%Y-%m")
