# app/utils/aging.py
from datetime import date

CURRENT = "Current"
AGING_BUCKETS = (CURRENT, "1-30", "31-60", "61-90", "90+")


def days_overdue(due_date: date | None, today: date | None = None) -> int:
    if due_date is None:
        return 0
    return max(((today or date.today()) - due_date).days, 0)


def aging_bucket(due_date: date | None, today: date | None = None) -> str:
    days = days_overdue(due_date, today)
    if days == 0:
        return CURRENT
    if days <= 30:
        return "1-30"
    if days <= 60:
        return "31-60"
    if days <= 90:
        return "61-90"
    return "90+"
