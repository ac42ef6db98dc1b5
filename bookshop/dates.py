from datetime import datetime, timedelta


def current_local_date():
    """Today at noon local time, so date arithmetic never crosses midnight."""
    now = datetime.now()
    return datetime(now.year, now.month, now.day, 12, 0, 0)


def add_days(date, days):
    result = date + timedelta(days=days)
    return result.replace(hour=12, minute=0, second=0, microsecond=0)


def month_bounds(year, month):
    start = datetime(year, month, 1)
    if month == 12:
        end = datetime(year + 1, 1, 1)
    else:
        end = datetime(year, month + 1, 1)
    return start, end - timedelta(microseconds=1)


def day_bounds(day):
    start = datetime(day.year, day.month, day.day)
    return start, start + timedelta(days=1) - timedelta(microseconds=1)
