from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from timesheet_portal.audit import log_audit
from timesheet_portal.db import get_db
from timesheet_portal.models import AuditActorType, SubmissionStatus
from timesheet_portal.routers.submissions import to_submission_read
from timesheet_portal.schemas import SubmissionRead, TeamMemberAssignRequest, TeamMemberRead
from timesheet_portal.services.submissions import (
    assign_team_member,
    list_submissions,
    list_team_members,
    remove_team_member,
)

router = APIRouter(tags=["manager"])


@router.get("/api/manager/submissions", response_model=list[SubmissionRead])
def list_manager_submissions(
    manager_id: int = Query(ge=1),
    status: SubmissionStatus | None = Query(default=None),
    year: int | None = Query(default=None, ge=1970, le=9999),
    month: int | None = Query(default=None, ge=1, le=12),
    db: Session = Depends(get_db),
) -> list[SubmissionRead]:
    submissions = list_submissions(db, manager_id=manager_id, status=status, year=year, month=month)
    return [to_submission_read(item, "manager") for item in submissions]


@router.get("/api/team", response_model=list[TeamMemberRead])
def list_team_endpoint(
    manager_id: int = Query(ge=1),
    db: Session = Depends(get_db),
) -> list[TeamMemberRead]:
    return [TeamMemberRead.model_validate(item) for item in list_team_members(db, manager_id=manager_id)]


@router.post("/api/team", response_model=TeamMemberRead)
def add_team_member_endpoint(
    payload: TeamMemberAssignRequest,
    request: Request,
    db: Session = Depends(get_db),
) -> TeamMemberRead:
    request.state.actor = "manager"
    request.state.actor_id = str(payload.manager_id)
    employee = assign_team_member(
        db,
        manager_id=payload.manager_id,
        employee_id=payload.employee_id,
        project_id=payload.project_id,
    )
    log_audit(
        db,
        actor_type=AuditActorType.MANAGER,
        actor_id=str(payload.manager_id),
        action="TEAM_MEMBER_ADDED",
        success=True,
        entity_type="employee",
        entity_id=str(employee.id),
        details={"project_id": payload.project_id},
        request_id=getattr(request.state, "request_id", None),
    )
    return TeamMemberRead.model_validate(employee)


@router.delete("/api/team/{employee_id}", response_model=TeamMemberRead)
def remove_team_member_endpoint(
    employee_id: int,
    request: Request,
    manager_id: int = Query(ge=1),
    db: Session = Depends(get_db),
) -> TeamMemberRead:
    request.state.actor = "manager"
    request.state.actor_id = str(manager_id)
    employee = remove_team_member(db, manager_id=manager_id, employee_id=employee_id)
    log_audit(
        db,
        actor_type=AuditActorType.MANAGER,
        actor_id=str(manager_id),
        action="TEAM_MEMBER_REMOVED",
        success=True,
        entity_type="employee",
        entity_id=str(employee.id),
        request_id=getattr(request.state, "request_id", None),
    )
    return TeamMemberRead.model_validate(employee)
