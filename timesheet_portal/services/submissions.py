from __future__ import annotations

import logging
from calendar import monthrange
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any

from sqlalchemy import delete, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from timesheet_portal.errors import ApiError
from timesheet_portal.models import Employee, Project, Submission, SubmissionStatus
from timesheet_portal.schemas import SubmissionCreateRequest, SubmissionUpdateRequest
from timesheet_portal.services.blocked_dates import EmployeeContext, normalize_date_string
from timesheet_portal.services.holidays import is_date_blocked_for_employee
from timesheet_portal.services.submission_status import (
    ActorRole,
    SubmissionAction,
    employee_can_delete,
    employee_can_edit,
    normalize_status,
    resubmission_status,
    transition_actor,
    validate_action_note,
    validate_transition,
)

logger = logging.getLogger("timesheet_portal.submissions")


@dataclass(frozen=True, slots=True)
class TransitionOutcome:
    submission: Submission
    previous_status: SubmissionStatus
    new_status: SubmissionStatus


@dataclass(frozen=True, slots=True)
class UpdateOutcome:
    submission: Submission
    previous_status: SubmissionStatus
    resubmitted: bool


def _month_start(value: date) -> date:
    return value.replace(day=1)


def _duplicate_month_error(value: date) -> ApiError:
    return ApiError(
        status_code=400,
        code="DUPLICATE_MONTH_YEAR",
        message=(
            f"You already have a submission for {value:%B %Y}. "
            "Please edit that submission instead of creating a new one."
        ),
    )


def _overtime_fields(overtime_hours: float | None, overtime_description: str | None) -> tuple[float | None, str | None]:
    if overtime_hours is None or overtime_hours <= 0:
        return None, None
    return overtime_hours, (overtime_description or "").strip() or None


def parse_submission_date(value: str | date) -> date:
    try:
        return date.fromisoformat(normalize_date_string(value) or "")
    except ValueError as exc:
        raise ApiError(
            status_code=422,
            code="INVALID_DATE",
            message="Invalid submission_date. Use YYYY-MM-DD.",
        ) from exc


def get_employee_or_404(db: Session, employee_id: int) -> Employee:
    employee = db.get(Employee, employee_id)
    if employee is None:
        raise ApiError(status_code=404, code="EMPLOYEE_NOT_FOUND", message="Employee not found.")
    return employee


def get_submission_or_404(db: Session, submission_id: int) -> Submission:
    submission = db.get(Submission, submission_id)
    if submission is None:
        raise ApiError(status_code=404, code="SUBMISSION_NOT_FOUND", message="Submission not found.")
    return submission


def _ensure_date_not_blocked(db: Session, employee: Employee, target_date: date) -> None:
    check = is_date_blocked_for_employee(
        db,
        context=EmployeeContext.from_employee(employee),
        target_date=target_date,
    )
    if not check.has_blocked_dates:
        return

    raise ApiError(
        status_code=400,
        code="DATE_BLOCKED",
        message=f"Hours cannot be submitted for {', '.join(check.blocked_dates)}.",
        details={
            **check.to_dict(),
            "blocked_days": [
                {
                    "date": item.date,
                    "type": item.type,
                    "name": item.name,
                    "reason": item.reason,
                    "is_paid": item.is_paid,
                }
                for item in check.blocked_days
            ],
        },
    )


def _ensure_month_available(
    db: Session,
    *,
    employee_id: int,
    target_date: date,
    exclude_submission_id: int | None = None,
) -> None:
    stmt = select(Submission.id).where(
        Submission.employee_id == employee_id,
        Submission.submission_month == _month_start(target_date),
    )
    if exclude_submission_id is not None:
        stmt = stmt.where(Submission.id != exclude_submission_id)
    if db.scalar(stmt.limit(1)) is not None:
        raise _duplicate_month_error(target_date)


def _conditional_update(
    db: Session,
    submission: Submission,
    *,
    expected_status: SubmissionStatus,
    values: dict[str, Any],
) -> None:
    result = db.execute(
        update(Submission)
        .where(
            Submission.id == submission.id,
            Submission.status == expected_status,
        )
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        db.rollback()
        logger.warning(
            "submission_stale_state",
            extra={"submission_id": submission.id, "expected_status": expected_status.value},
        )
        raise ApiError(
            status_code=409,
            code="STALE_SUBMISSION_STATE",
            message="Submission was modified by another action. Reload it and try again.",
        )


def create_submission(db: Session, payload: SubmissionCreateRequest) -> Submission:
    submission_date = parse_submission_date(payload.submission_date)
    employee = get_employee_or_404(db, payload.employee_id)
    _ensure_date_not_blocked(db, employee, submission_date)
    _ensure_month_available(db, employee_id=employee.id, target_date=submission_date)

    manager_id = payload.manager_id or employee.manager_id
    if manager_id is None:
        logger.info("submission_without_manager", extra={"employee_id": employee.id})

    overtime_hours, overtime_description = _overtime_fields(payload.overtime_hours, payload.overtime_description)
    submission = Submission(
        employee_id=employee.id,
        manager_id=manager_id,
        submission_date=submission_date,
        submission_month=_month_start(submission_date),
        hours_submitted=payload.hours_submitted,
        overtime_hours=overtime_hours,
        description=payload.description.strip(),
        overtime_description=overtime_description,
        status=SubmissionStatus.SUBMITTED,
    )
    db.add(submission)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise _duplicate_month_error(submission_date) from exc
    db.refresh(submission)
    return submission


def update_submission(db: Session, submission_id: int, payload: SubmissionUpdateRequest) -> UpdateOutcome:
    submission_date = parse_submission_date(payload.submission_date)
    submission = get_submission_or_404(db, submission_id)
    if submission.employee_id != payload.employee_id:
        raise ApiError(
            status_code=403,
            code="SUBMISSION_NOT_OWNED",
            message="Unauthorized to edit this submission.",
        )

    previous_status = normalize_status(submission.status)
    if not employee_can_edit(previous_status):
        raise ApiError(
            status_code=400,
            code="SUBMISSION_NOT_EDITABLE",
            message="This submission cannot be edited in its current status.",
        )

    employee = get_employee_or_404(db, submission.employee_id)
    _ensure_date_not_blocked(db, employee, submission_date)
    if _month_start(submission_date) != submission.submission_month:
        _ensure_month_available(
            db,
            employee_id=submission.employee_id,
            target_date=submission_date,
            exclude_submission_id=submission.id,
        )

    new_status = resubmission_status(previous_status)
    overtime_hours, overtime_description = _overtime_fields(payload.overtime_hours, payload.overtime_description)
    _conditional_update(
        db,
        submission,
        expected_status=submission.status,
        values={
            "submission_date": submission_date,
            "submission_month": _month_start(submission_date),
            "hours_submitted": payload.hours_submitted,
            "overtime_hours": overtime_hours,
            "description": payload.description.strip(),
            "overtime_description": overtime_description,
            "status": new_status,
            "updated_at": datetime.now(timezone.utc),
        },
    )
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise _duplicate_month_error(submission_date) from exc
    db.refresh(submission)
    return UpdateOutcome(
        submission=submission,
        previous_status=previous_status,
        resubmitted=new_status != previous_status,
    )


def delete_submission(db: Session, submission_id: int, *, employee_id: int) -> None:
    submission = get_submission_or_404(db, submission_id)
    if submission.employee_id != employee_id:
        raise ApiError(
            status_code=403,
            code="SUBMISSION_NOT_OWNED",
            message="Submission does not belong to this employee.",
        )
    if not employee_can_delete(submission.status):
        raise ApiError(
            status_code=400,
            code="SUBMISSION_NOT_DELETABLE",
            message='Cannot delete submission: status is not "SUBMITTED".',
        )

    result = db.execute(
        delete(Submission)
        .where(
            Submission.id == submission.id,
            Submission.status == SubmissionStatus.SUBMITTED,
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        db.rollback()
        raise ApiError(
            status_code=409,
            code="STALE_SUBMISSION_STATE",
            message="Submission was modified by another action. Reload it and try again.",
        )
    db.commit()


def apply_submission_action(
    db: Session,
    submission_id: int,
    action: SubmissionAction,
    *,
    actor_id: int,
    note: str | None = None,
) -> TransitionOutcome:
    cleaned_note, note_error = validate_action_note(action, note)
    if note_error is not None:
        raise ApiError(status_code=400, code="REASON_REQUIRED", message=note_error)

    submission = get_submission_or_404(db, submission_id)
    previous_status = normalize_status(submission.status)
    transition = validate_transition(action, previous_status)
    if not transition.valid or transition.new_status is None:
        raise ApiError(
            status_code=400,
            code="INVALID_STATUS_TRANSITION",
            message=transition.error or "Invalid status transition.",
            details={"current_status": previous_status.value, "action": action.value},
        )

    comment_field = "manager_comment" if transition_actor(action) == ActorRole.MANAGER else "admin_comment"
    now_utc = datetime.now(timezone.utc)
    _conditional_update(
        db,
        submission,
        expected_status=submission.status,
        values={
            "status": transition.new_status,
            comment_field: cleaned_note,
            "acted_by_id": actor_id,
            "acted_at": now_utc,
            "updated_at": now_utc,
        },
    )
    db.commit()
    db.refresh(submission)
    logger.info(
        "submission_transition_applied",
        extra={
            "submission_id": submission_id,
            "action": action.value,
            "actor_id": actor_id,
            "from_status": previous_status.value,
            "to_status": transition.new_status.value,
        },
    )
    return TransitionOutcome(
        submission=submission,
        previous_status=previous_status,
        new_status=transition.new_status,
    )


def list_submissions(
    db: Session,
    *,
    employee_id: int | None = None,
    manager_id: int | None = None,
    status: SubmissionStatus | None = None,
    year: int | None = None,
    month: int | None = None,
) -> list[Submission]:
    if (year is None) != (month is None):
        raise ApiError(
            status_code=422,
            code="INVALID_DATE_RANGE",
            message="year and month must be provided together.",
        )

    stmt = select(Submission).order_by(Submission.submission_date.desc(), Submission.id.desc())
    if employee_id is not None:
        stmt = stmt.where(Submission.employee_id == employee_id)
    if manager_id is not None:
        stmt = stmt.where(Submission.manager_id == manager_id)
    if status is not None:
        stmt = stmt.where(Submission.status == status)
    if year is not None and month is not None:
        stmt = stmt.where(
            Submission.submission_date >= date(year, month, 1),
            Submission.submission_date <= date(year, month, monthrange(year, month)[1]),
        )
    return list(db.scalars(stmt).all())


def sync_submission_managers(db: Session) -> dict[str, int]:
    employees = list(
        db.scalars(
            select(Employee).where(Employee.manager_id.is_not(None)).order_by(Employee.id.asc())
        ).all()
    )

    updated = 0
    for employee in employees:
        result = db.execute(
            update(Submission)
            .where(
                Submission.employee_id == employee.id,
                or_(
                    Submission.manager_id.is_(None),
                    Submission.manager_id != employee.manager_id,
                ),
            )
            .values(manager_id=employee.manager_id, updated_at=datetime.now(timezone.utc))
            .execution_options(synchronize_session=False)
        )
        updated += result.rowcount or 0
    db.commit()

    logger.info(
        "submission_managers_synced",
        extra={"employees_processed": len(employees), "submissions_updated": updated},
    )
    return {"employees_processed": len(employees), "submissions_updated": updated}


def assign_team_member(
    db: Session,
    *,
    manager_id: int,
    employee_id: int,
    project_id: int | None = None,
) -> Employee:
    if manager_id == employee_id:
        raise ApiError(
            status_code=422,
            code="INVALID_TEAM_MEMBER",
            message="A manager cannot be added to their own team.",
        )
    get_employee_or_404(db, manager_id)
    employee = get_employee_or_404(db, employee_id)
    if employee.manager_id == manager_id:
        raise ApiError(
            status_code=400,
            code="ALREADY_ON_TEAM",
            message="This employee is already on your team.",
        )
    if project_id is not None and db.get(Project, project_id) is None:
        raise ApiError(status_code=404, code="PROJECT_NOT_FOUND", message="Project not found.")

    employee.manager_id = manager_id
    if project_id is not None:
        employee.project_id = project_id
    db.commit()
    db.refresh(employee)
    return employee


def remove_team_member(db: Session, *, manager_id: int, employee_id: int) -> Employee:
    employee = get_employee_or_404(db, employee_id)
    if employee.manager_id != manager_id:
        raise ApiError(
            status_code=404,
            code="TEAM_MEMBER_NOT_FOUND",
            message="This employee is not on your team.",
        )
    employee.manager_id = None
    db.commit()
    db.refresh(employee)
    return employee


def list_team_members(db: Session, *, manager_id: int) -> list[Employee]:
    return list(
        db.scalars(
            select(Employee)
            .where(Employee.manager_id == manager_id)
            .order_by(Employee.full_name.asc(), Employee.id.asc())
        ).all()
    )
