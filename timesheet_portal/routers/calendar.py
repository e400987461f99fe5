from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Query, Request, Response
from sqlalchemy.orm import Session

from timesheet_portal.db import get_db
from timesheet_portal.errors import ApiError
from timesheet_portal.schemas import (
    BlockedDateCheckResponse,
    BlockedDayRead,
    BlockedDaysMeta,
    BlockedDaysResponse,
)
from timesheet_portal.services.blocked_dates import EmployeeContext, normalize_date_string
from timesheet_portal.services.holidays import get_blocked_days_for_employee, is_date_blocked_for_employee
from timesheet_portal.services.submissions import get_employee_or_404

router = APIRouter(tags=["calendar"])
NO_STORE_HEADERS = {
    "Cache-Control": "no-store, no-cache, must-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
}


def _require_date(value: str, field_name: str) -> str:
    normalized = normalize_date_string(value)
    if normalized is None:
        raise ApiError(
            status_code=422,
            code="INVALID_DATE",
            message=f"Invalid {field_name}. Use YYYY-MM-DD.",
        )
    return normalized


def _employee_context(
    db: Session,
    *,
    employee_id: int | None,
    project_id: str | None,
    employee_type: str | None,
    country: str | None,
    region: str | None,
) -> EmployeeContext:
    base = EmployeeContext()
    if employee_id is not None:
        base = EmployeeContext.from_employee(get_employee_or_404(db, employee_id))
    return base.merged(
        project_id=project_id,
        employee_type=employee_type,
        country=country,
        region=region,
    )


@router.get("/api/employee/calendar/blocked-days", response_model=BlockedDaysResponse)
def blocked_days_endpoint(
    request: Request,
    response: Response,
    start_date: str = Query(),
    end_date: str = Query(),
    employee_id: int | None = Query(default=None, ge=1),
    project_id: str | None = Query(default=None),
    employee_type: str | None = Query(default=None),
    country: str | None = Query(default=None),
    region: str | None = Query(default=None),
    db: Session = Depends(get_db),
) -> BlockedDaysResponse:
    start_day = _require_date(start_date, "start_date")
    end_day = _require_date(end_date, "end_date")
    if end_day < start_day:
        raise ApiError(
            status_code=422,
            code="INVALID_DATE_RANGE",
            message="end_date must be greater than or equal to start_date.",
        )

    request.state.employee_id = employee_id
    context = _employee_context(
        db,
        employee_id=employee_id,
        project_id=project_id,
        employee_type=employee_type,
        country=country,
        region=region,
    )
    blocked_days, holidays_available = get_blocked_days_for_employee(
        db,
        context=context,
        start_date=start_day,
        end_date=end_day,
    )

    response.headers.update(NO_STORE_HEADERS)
    return BlockedDaysResponse(
        blocked_days=[BlockedDayRead.model_validate(item) for item in blocked_days],
        meta=BlockedDaysMeta(
            start_date=start_day,
            end_date=end_day,
            employee_id=employee_id,
            project_id=context.project_id,
            employee_type=context.employee_type,
            country=context.country,
            region=context.region,
            total_blocked=len(blocked_days),
            holidays_available=holidays_available,
            fetched_at_utc=datetime.now(timezone.utc),
        ),
    )


@router.get("/api/employee/calendar/check-date", response_model=BlockedDateCheckResponse)
def check_date_endpoint(
    response: Response,
    date: str = Query(),
    employee_id: int | None = Query(default=None, ge=1),
    project_id: str | None = Query(default=None),
    employee_type: str | None = Query(default=None),
    country: str | None = Query(default=None),
    region: str | None = Query(default=None),
    db: Session = Depends(get_db),
) -> BlockedDateCheckResponse:
    target_day = _require_date(date, "date")
    context = _employee_context(
        db,
        employee_id=employee_id,
        project_id=project_id,
        employee_type=employee_type,
        country=country,
        region=region,
    )
    check = is_date_blocked_for_employee(db, context=context, target_date=target_day)

    response.headers.update(NO_STORE_HEADERS)
    return BlockedDateCheckResponse(
        date=target_day,
        has_blocked_dates=check.has_blocked_dates,
        blocked_dates=check.blocked_dates,
        blocked_days=[BlockedDayRead.model_validate(item) for item in check.blocked_days],
    )
