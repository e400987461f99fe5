from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from timesheet_portal.models import Employee, EmployeeRole, Project, Submission, SubmissionStatus
from timesheet_portal.services.submission_status import normalize_status

ACTIVE_WINDOW_DAYS = 30
PENDING_REVIEW_STATUSES = (SubmissionStatus.SUBMITTED, SubmissionStatus.MANAGER_APPROVED)


def list_projects(db: Session, *, include_inactive: bool = False) -> list[Project]:
    stmt = select(Project).order_by(Project.name.asc(), Project.id.asc())
    if not include_inactive:
        stmt = stmt.where(Project.is_active.is_(True))
    return list(db.scalars(stmt).all())


def list_managers(db: Session, *, include_inactive: bool = False) -> list[Employee]:
    stmt = (
        select(Employee)
        .where(Employee.role == EmployeeRole.MANAGER)
        .order_by(Employee.full_name.asc(), Employee.id.asc())
    )
    if not include_inactive:
        stmt = stmt.where(Employee.is_active.is_(True))
    return list(db.scalars(stmt).all())


def _previous_month_start(month_start: date) -> date:
    if month_start.month == 1:
        return date(month_start.year - 1, 12, 1)
    return date(month_start.year, month_start.month - 1, 1)


def _growth_percentage(current: float, previous: float) -> int:
    if previous > 0:
        return round((current - previous) / previous * 100)
    return 100 if current > 0 else 0


def submission_stats(db: Session, *, today: date | None = None) -> dict[str, Any]:
    """Dashboard totals for the admin portal.

    Paid figures are in hours (regular plus overtime) for submissions whose date
    falls in the current or previous calendar month of ``today`` (UTC by default).
    """
    today = today or datetime.now(timezone.utc).date()
    month_start = today.replace(day=1)
    last_month_start = _previous_month_start(month_start)
    active_since = today - timedelta(days=ACTIVE_WINDOW_DAYS)

    rows = db.execute(
        select(
            Submission.employee_id,
            Submission.status,
            Submission.submission_date,
            Submission.hours_submitted,
            Submission.overtime_hours,
        )
    ).all()

    by_status: dict[SubmissionStatus, dict[str, Any]] = {
        item: {"status": item, "count": 0, "hours": 0.0} for item in SubmissionStatus
    }
    active_employee_ids: set[int] = set()
    paid_this_month = 0
    paid_hours_this_month = 0.0
    paid_hours_last_month = 0.0

    for row in rows:
        hours = float(row.hours_submitted or 0) + float(row.overtime_hours or 0)
        status = normalize_status(row.status)
        bucket = by_status[status]
        bucket["count"] += 1
        bucket["hours"] += hours

        if row.submission_date >= active_since:
            active_employee_ids.add(row.employee_id)
        if status != SubmissionStatus.ADMIN_PAID:
            continue
        paid_month = row.submission_date.replace(day=1)
        if paid_month == month_start:
            paid_this_month += 1
            paid_hours_this_month += hours
        elif paid_month == last_month_start:
            paid_hours_last_month += hours

    total_employees = db.scalar(
        select(func.count(Employee.id)).where(
            Employee.role == EmployeeRole.EMPLOYEE,
            Employee.is_active.is_(True),
        )
    )

    return {
        "total_employees": int(total_employees or 0),
        "active_employees": len(active_employee_ids),
        "pending_reviews": sum(by_status[item]["count"] for item in PENDING_REVIEW_STATUSES),
        "paid_this_month": paid_this_month,
        "paid_hours_this_month": round(paid_hours_this_month, 2),
        "paid_hours_last_month": round(paid_hours_last_month, 2),
        "growth_percentage": _growth_percentage(paid_hours_this_month, paid_hours_last_month),
        "by_status": [
            {**item, "hours": round(item["hours"], 2)} for item in by_status.values()
        ],
    }
