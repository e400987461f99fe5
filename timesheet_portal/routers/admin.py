from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from timesheet_portal.audit import list_entity_audit_logs, log_audit
from timesheet_portal.db import get_db
from timesheet_portal.models import AuditActorType, SubmissionStatus
from timesheet_portal.routers.submissions import to_submission_read
from timesheet_portal.schemas import (
    AdminStatsRead,
    AuditLogRead,
    HolidayCreateRequest,
    HolidayRead,
    ManagerRead,
    ManagerSyncResponse,
    ProjectRead,
    SubmissionRead,
)
from timesheet_portal.services.directory import list_managers, list_projects, submission_stats
from timesheet_portal.services.holidays import create_holiday, delete_holiday, list_holidays
from timesheet_portal.services.submissions import (
    get_submission_or_404,
    list_submissions,
    sync_submission_managers,
)

router = APIRouter(tags=["admin"])


def _request_id(request: Request) -> str | None:
    return getattr(request.state, "request_id", None)


@router.get("/api/admin/submissions", response_model=list[SubmissionRead])
def list_admin_submissions(
    status_filter: SubmissionStatus | None = Query(default=None, alias="status"),
    employee_id: int | None = Query(default=None, ge=1),
    manager_id: int | None = Query(default=None, ge=1),
    year: int | None = Query(default=None, ge=1970, le=9999),
    month: int | None = Query(default=None, ge=1, le=12),
    db: Session = Depends(get_db),
) -> list[SubmissionRead]:
    submissions = list_submissions(
        db,
        employee_id=employee_id,
        manager_id=manager_id,
        status=status_filter,
        year=year,
        month=month,
    )
    return [to_submission_read(item, "admin") for item in submissions]


@router.get("/api/admin/submissions/{submission_id}/history", response_model=list[AuditLogRead])
def submission_history(
    submission_id: int,
    db: Session = Depends(get_db),
) -> list[AuditLogRead]:
    get_submission_or_404(db, submission_id)
    logs = list_entity_audit_logs(db, entity_type="submission", entity_id=str(submission_id))
    return [AuditLogRead.model_validate(item) for item in logs]


@router.post("/api/admin/submissions/sync-managers", response_model=ManagerSyncResponse)
def sync_managers_endpoint(
    request: Request,
    db: Session = Depends(get_db),
) -> ManagerSyncResponse:
    result = sync_submission_managers(db)
    log_audit(
        db,
        actor_type=AuditActorType.ADMIN,
        actor_id="admin",
        action="SUBMISSION_MANAGERS_SYNCED",
        success=True,
        entity_type="submission",
        details=result,
        request_id=_request_id(request),
    )
    return ManagerSyncResponse(**result)


@router.get("/api/admin/holidays", response_model=list[HolidayRead])
def list_holidays_endpoint(
    is_active: bool | None = Query(default=None),
    db: Session = Depends(get_db),
) -> list[HolidayRead]:
    return [HolidayRead.model_validate(item) for item in list_holidays(db, is_active=is_active)]


@router.post(
    "/api/admin/holidays",
    response_model=HolidayRead,
    status_code=status.HTTP_201_CREATED,
)
def create_holiday_endpoint(
    payload: HolidayCreateRequest,
    request: Request,
    db: Session = Depends(get_db),
) -> HolidayRead:
    holiday = create_holiday(db, payload)
    log_audit(
        db,
        actor_type=AuditActorType.ADMIN,
        actor_id=payload.created_by or "admin",
        action="HOLIDAY_CREATED",
        success=True,
        entity_type="holiday",
        entity_id=str(holiday.id),
        details={"type": holiday.type.value, "dates": list(holiday.dates)},
        request_id=_request_id(request),
    )
    return HolidayRead.model_validate(holiday)


@router.delete("/api/admin/holidays/{holiday_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_holiday_endpoint(
    holiday_id: int,
    request: Request,
    db: Session = Depends(get_db),
) -> None:
    delete_holiday(db, holiday_id)
    log_audit(
        db,
        actor_type=AuditActorType.ADMIN,
        actor_id="admin",
        action="HOLIDAY_DELETED",
        success=True,
        entity_type="holiday",
        entity_id=str(holiday_id),
        request_id=_request_id(request),
    )


@router.get("/api/admin/projects", response_model=list[ProjectRead])
def list_projects_endpoint(
    include_inactive: bool = Query(default=False),
    db: Session = Depends(get_db),
) -> list[ProjectRead]:
    return [ProjectRead.model_validate(item) for item in list_projects(db, include_inactive=include_inactive)]


@router.get("/api/admin/managers", response_model=list[ManagerRead])
def list_managers_endpoint(
    include_inactive: bool = Query(default=False),
    db: Session = Depends(get_db),
) -> list[ManagerRead]:
    return [ManagerRead.model_validate(item) for item in list_managers(db, include_inactive=include_inactive)]


@router.get("/api/admin/stats", response_model=AdminStatsRead)
def admin_stats_endpoint(db: Session = Depends(get_db)) -> AdminStatsRead:
    return AdminStatsRead(**submission_stats(db))
