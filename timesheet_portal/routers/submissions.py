from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from timesheet_portal.audit import log_audit
from timesheet_portal.db import get_db
from timesheet_portal.models import AuditActorType, Submission
from timesheet_portal.schemas import (
    AdminClarificationRequest,
    AdminProcessPaymentRequest,
    ManagerApproveRequest,
    SubmissionCreateRequest,
    SubmissionRead,
    SubmissionRejectRequest,
    SubmissionUpdateRequest,
    SubmissionUpdateResponse,
)
from timesheet_portal.services.submission_status import (
    ActorRole,
    StatusAudience,
    SubmissionAction,
    status_label,
    transition_actor,
)
from timesheet_portal.services.submissions import (
    TransitionOutcome,
    apply_submission_action,
    create_submission,
    delete_submission,
    get_submission_or_404,
    list_submissions,
    update_submission,
)

router = APIRouter(tags=["submissions"])

_AUDIT_ACTOR_BY_ROLE: dict[ActorRole, AuditActorType] = {
    ActorRole.EMPLOYEE: AuditActorType.EMPLOYEE,
    ActorRole.MANAGER: AuditActorType.MANAGER,
    ActorRole.ADMIN: AuditActorType.ADMIN,
}


def to_submission_read(submission: Submission, audience: StatusAudience = "employee") -> SubmissionRead:
    read = SubmissionRead.model_validate(submission)
    read.status_label = status_label(submission.status, audience)
    return read


def _request_id(request: Request) -> str | None:
    return getattr(request.state, "request_id", None)


def _mark_actor(request: Request, role: ActorRole, actor_id: int) -> None:
    request.state.actor = role.value.lower()
    request.state.actor_id = str(actor_id)


def _audit_transition(
    db: Session,
    request: Request,
    outcome: TransitionOutcome,
    action: SubmissionAction,
    *,
    actor_id: int,
    note: str | None,
) -> None:
    log_audit(
        db,
        actor_type=_AUDIT_ACTOR_BY_ROLE[transition_actor(action)],
        actor_id=str(actor_id),
        action=f"SUBMISSION_{action.value}",
        success=True,
        entity_type="submission",
        entity_id=str(outcome.submission.id),
        details={
            "from_status": outcome.previous_status.value,
            "to_status": outcome.new_status.value,
            "note": note,
        },
        request_id=_request_id(request),
    )


@router.post(
    "/api/submissions",
    response_model=SubmissionRead,
    status_code=status.HTTP_201_CREATED,
)
def create_submission_endpoint(
    payload: SubmissionCreateRequest,
    request: Request,
    db: Session = Depends(get_db),
) -> SubmissionRead:
    _mark_actor(request, ActorRole.EMPLOYEE, payload.employee_id)
    request.state.employee_id = payload.employee_id
    submission = create_submission(db, payload)
    log_audit(
        db,
        actor_type=AuditActorType.EMPLOYEE,
        actor_id=str(payload.employee_id),
        action="SUBMISSION_CREATED",
        success=True,
        entity_type="submission",
        entity_id=str(submission.id),
        details={
            "submission_date": submission.submission_date.isoformat(),
            "manager_id": submission.manager_id,
        },
        request_id=_request_id(request),
    )
    return to_submission_read(submission)


@router.get("/api/submissions/{submission_id}", response_model=SubmissionRead)
def get_submission_endpoint(
    submission_id: int,
    audience: StatusAudience = Query(default="employee"),
    db: Session = Depends(get_db),
) -> SubmissionRead:
    return to_submission_read(get_submission_or_404(db, submission_id), audience)


@router.put("/api/submissions/{submission_id}", response_model=SubmissionUpdateResponse)
def update_submission_endpoint(
    submission_id: int,
    payload: SubmissionUpdateRequest,
    request: Request,
    db: Session = Depends(get_db),
) -> SubmissionUpdateResponse:
    _mark_actor(request, ActorRole.EMPLOYEE, payload.employee_id)
    request.state.employee_id = payload.employee_id
    outcome = update_submission(db, submission_id, payload)
    log_audit(
        db,
        actor_type=AuditActorType.EMPLOYEE,
        actor_id=str(payload.employee_id),
        action="SUBMISSION_RESUBMITTED" if outcome.resubmitted else "SUBMISSION_UPDATED",
        success=True,
        entity_type="submission",
        entity_id=str(submission_id),
        details={
            "from_status": outcome.previous_status.value,
            "to_status": outcome.submission.status.value,
        },
        request_id=_request_id(request),
    )
    message = (
        "Submission updated and resubmitted for review"
        if outcome.resubmitted
        else "Submission updated successfully"
    )
    return SubmissionUpdateResponse(message=message, submission=to_submission_read(outcome.submission))


@router.delete("/api/submissions/{submission_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_submission_endpoint(
    submission_id: int,
    request: Request,
    employee_id: int = Query(ge=1),
    db: Session = Depends(get_db),
) -> None:
    _mark_actor(request, ActorRole.EMPLOYEE, employee_id)
    delete_submission(db, submission_id, employee_id=employee_id)
    log_audit(
        db,
        actor_type=AuditActorType.EMPLOYEE,
        actor_id=str(employee_id),
        action="SUBMISSION_DELETED",
        success=True,
        entity_type="submission",
        entity_id=str(submission_id),
        request_id=_request_id(request),
    )


@router.get("/api/employee/submissions", response_model=list[SubmissionRead])
def list_employee_submissions(
    employee_id: int = Query(ge=1),
    year: int | None = Query(default=None, ge=1970, le=9999),
    month: int | None = Query(default=None, ge=1, le=12),
    db: Session = Depends(get_db),
) -> list[SubmissionRead]:
    submissions = list_submissions(db, employee_id=employee_id, year=year, month=month)
    return [to_submission_read(item, "employee") for item in submissions]


@router.post("/api/submissions/{submission_id}/approve", response_model=SubmissionRead)
def approve_submission_endpoint(
    submission_id: int,
    payload: ManagerApproveRequest,
    request: Request,
    db: Session = Depends(get_db),
) -> SubmissionRead:
    action = SubmissionAction.MANAGER_APPROVE
    _mark_actor(request, ActorRole.MANAGER, payload.manager_id)
    outcome = apply_submission_action(
        db,
        submission_id,
        action,
        actor_id=payload.manager_id,
        note=payload.comment,
    )
    _audit_transition(db, request, outcome, action, actor_id=payload.manager_id, note=payload.comment)
    return to_submission_read(outcome.submission, "manager")


@router.post("/api/submissions/{submission_id}/reject", response_model=SubmissionRead)
def reject_submission_endpoint(
    submission_id: int,
    payload: SubmissionRejectRequest,
    request: Request,
    db: Session = Depends(get_db),
) -> SubmissionRead:
    if payload.is_admin_action:
        action = SubmissionAction.ADMIN_REJECT
        audience: StatusAudience = "admin"
    else:
        action = SubmissionAction.MANAGER_REJECT
        audience = "manager"
    _mark_actor(request, transition_actor(action), payload.actor_id)
    outcome = apply_submission_action(
        db,
        submission_id,
        action,
        actor_id=payload.actor_id,
        note=payload.rejection_reason,
    )
    _audit_transition(db, request, outcome, action, actor_id=payload.actor_id, note=payload.rejection_reason)
    return to_submission_read(outcome.submission, audience)


@router.post("/api/submissions/{submission_id}/process-payment", response_model=SubmissionRead)
def process_payment_endpoint(
    submission_id: int,
    payload: AdminProcessPaymentRequest,
    request: Request,
    db: Session = Depends(get_db),
) -> SubmissionRead:
    action = SubmissionAction.ADMIN_PROCESS_PAYMENT
    _mark_actor(request, ActorRole.ADMIN, payload.admin_id)
    outcome = apply_submission_action(
        db,
        submission_id,
        action,
        actor_id=payload.admin_id,
        note=payload.payment_reference,
    )
    _audit_transition(db, request, outcome, action, actor_id=payload.admin_id, note=payload.payment_reference)
    return to_submission_read(outcome.submission, "admin")


@router.post("/api/submissions/{submission_id}/request-clarification", response_model=SubmissionRead)
def request_clarification_endpoint(
    submission_id: int,
    payload: AdminClarificationRequest,
    request: Request,
    db: Session = Depends(get_db),
) -> SubmissionRead:
    action = SubmissionAction.ADMIN_REQUEST_CLARIFICATION
    _mark_actor(request, ActorRole.ADMIN, payload.admin_id)
    outcome = apply_submission_action(
        db,
        submission_id,
        action,
        actor_id=payload.admin_id,
        note=payload.message,
    )
    _audit_transition(db, request, outcome, action, actor_id=payload.admin_id, note=payload.message)
    return to_submission_read(outcome.submission, "admin")
