from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any, Literal

from timesheet_portal.models import SubmissionStatus


class ActorRole(str, enum.Enum):
    EMPLOYEE = "EMPLOYEE"
    MANAGER = "MANAGER"
    ADMIN = "ADMIN"


class SubmissionAction(str, enum.Enum):
    MANAGER_APPROVE = "MANAGER_APPROVE"
    MANAGER_REJECT = "MANAGER_REJECT"
    ADMIN_PROCESS_PAYMENT = "ADMIN_PROCESS_PAYMENT"
    ADMIN_REJECT = "ADMIN_REJECT"
    ADMIN_REQUEST_CLARIFICATION = "ADMIN_REQUEST_CLARIFICATION"


StatusAudience = Literal["employee", "manager", "admin"]


@dataclass(frozen=True, slots=True)
class _TransitionRule:
    actor: ActorRole
    required_status: SubmissionStatus
    new_status: SubmissionStatus
    verb: str
    requires_reason: bool
    reason_label: str


_TRANSITIONS: dict[SubmissionAction, _TransitionRule] = {
    SubmissionAction.MANAGER_APPROVE: _TransitionRule(
        actor=ActorRole.MANAGER,
        required_status=SubmissionStatus.SUBMITTED,
        new_status=SubmissionStatus.MANAGER_APPROVED,
        verb="approve",
        requires_reason=False,
        reason_label="Comment",
    ),
    SubmissionAction.MANAGER_REJECT: _TransitionRule(
        actor=ActorRole.MANAGER,
        required_status=SubmissionStatus.SUBMITTED,
        new_status=SubmissionStatus.MANAGER_REJECTED,
        verb="reject",
        requires_reason=True,
        reason_label="Rejection reason",
    ),
    SubmissionAction.ADMIN_PROCESS_PAYMENT: _TransitionRule(
        actor=ActorRole.ADMIN,
        required_status=SubmissionStatus.MANAGER_APPROVED,
        new_status=SubmissionStatus.ADMIN_PAID,
        verb="process payment",
        requires_reason=False,
        reason_label="Payment reference",
    ),
    SubmissionAction.ADMIN_REJECT: _TransitionRule(
        actor=ActorRole.ADMIN,
        required_status=SubmissionStatus.MANAGER_APPROVED,
        new_status=SubmissionStatus.ADMIN_REJECTED,
        verb="reject",
        requires_reason=True,
        reason_label="Rejection reason",
    ),
    SubmissionAction.ADMIN_REQUEST_CLARIFICATION: _TransitionRule(
        actor=ActorRole.ADMIN,
        required_status=SubmissionStatus.MANAGER_APPROVED,
        new_status=SubmissionStatus.NEEDS_CLARIFICATION,
        verb="request clarification",
        requires_reason=True,
        reason_label="Clarification message",
    ),
}

_EDITABLE_STATUSES = frozenset(
    {
        SubmissionStatus.SUBMITTED,
        SubmissionStatus.MANAGER_REJECTED,
        SubmissionStatus.ADMIN_REJECTED,
    }
)
_RESUBMIT_ON_EDIT_STATUSES = frozenset(
    {
        SubmissionStatus.MANAGER_REJECTED,
        SubmissionStatus.ADMIN_REJECTED,
    }
)

_LEGACY_STATUS_MAP: dict[str, SubmissionStatus] = {
    "APPROVED": SubmissionStatus.MANAGER_APPROVED,
    "REJECTED": SubmissionStatus.MANAGER_REJECTED,
    "PAYMENT_DONE": SubmissionStatus.ADMIN_PAID,
}

_STATUS_LABELS: dict[StatusAudience, dict[SubmissionStatus, str]] = {
    "employee": {
        SubmissionStatus.SUBMITTED: "Submitted",
        SubmissionStatus.MANAGER_REJECTED: "Rejected - Please Revise",
        SubmissionStatus.MANAGER_APPROVED: "Approved (Pending Payment)",
        SubmissionStatus.ADMIN_PAID: "Paid",
        SubmissionStatus.ADMIN_REJECTED: "Rejected - Please Revise",
        SubmissionStatus.NEEDS_CLARIFICATION: "Under Review",
    },
    "manager": {
        SubmissionStatus.SUBMITTED: "Pending Your Review",
        SubmissionStatus.MANAGER_REJECTED: "Rejected - Awaiting Employee Update",
        SubmissionStatus.MANAGER_APPROVED: "Approved - Awaiting Admin",
        SubmissionStatus.ADMIN_PAID: "Paid",
        SubmissionStatus.ADMIN_REJECTED: "Admin Rejected - Awaiting Employee Update",
        SubmissionStatus.NEEDS_CLARIFICATION: "Clarification Requested",
    },
    "admin": {
        SubmissionStatus.SUBMITTED: "Pending Manager Review",
        SubmissionStatus.MANAGER_REJECTED: "Manager Rejected",
        SubmissionStatus.MANAGER_APPROVED: "Ready for Payment",
        SubmissionStatus.ADMIN_PAID: "Paid",
        SubmissionStatus.ADMIN_REJECTED: "Rejected",
        SubmissionStatus.NEEDS_CLARIFICATION: "Awaiting Clarification",
    },
}


@dataclass(frozen=True, slots=True)
class TransitionResult:
    valid: bool
    new_status: SubmissionStatus | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"valid": self.valid}
        if self.new_status is not None:
            payload["newStatus"] = self.new_status.value
        if self.error is not None:
            payload["error"] = self.error
        return payload


def normalize_status(value: SubmissionStatus | str | None) -> SubmissionStatus:
    """Map stored status values, including legacy lowercase ones, to the canonical enum.

    Missing or unrecognised values fall back to SUBMITTED, the status every
    submission is created with.
    """
    if isinstance(value, SubmissionStatus):
        return value
    raw = str(value or "").strip().upper()
    if raw in SubmissionStatus.__members__:
        return SubmissionStatus(raw)
    return _LEGACY_STATUS_MAP.get(raw, SubmissionStatus.SUBMITTED)


def transition_actor(action: SubmissionAction) -> ActorRole:
    return _TRANSITIONS[action].actor


def action_requires_reason(action: SubmissionAction) -> bool:
    return _TRANSITIONS[action].requires_reason


def validate_action_note(action: SubmissionAction, note: str | None) -> tuple[str | None, str | None]:
    """Return ``(cleaned_note, error)`` for the free-text field attached to an action."""
    rule = _TRANSITIONS[action]
    cleaned = (note or "").strip() or None
    if rule.requires_reason and cleaned is None:
        return None, f"{rule.reason_label} is required"
    return cleaned, None


def validate_transition(
    action: SubmissionAction,
    current_status: SubmissionStatus | str | None,
    *,
    actor_role: ActorRole | None = None,
) -> TransitionResult:
    rule = _TRANSITIONS[action]
    if actor_role is not None and actor_role != rule.actor:
        article = "an" if rule.actor == ActorRole.ADMIN else "a"
        return TransitionResult(
            valid=False,
            error=f"Only {article} {rule.actor.value.lower()} can {rule.verb}",
        )

    status = normalize_status(current_status)
    if status != rule.required_status:
        return TransitionResult(
            valid=False,
            error=f"Submission must be {rule.required_status.value} status to {rule.verb}",
        )
    return TransitionResult(valid=True, new_status=rule.new_status)


def validate_manager_approve(current_status: SubmissionStatus | str | None) -> TransitionResult:
    return validate_transition(SubmissionAction.MANAGER_APPROVE, current_status)


def validate_manager_reject(current_status: SubmissionStatus | str | None) -> TransitionResult:
    return validate_transition(SubmissionAction.MANAGER_REJECT, current_status)


def validate_admin_process_payment(current_status: SubmissionStatus | str | None) -> TransitionResult:
    return validate_transition(SubmissionAction.ADMIN_PROCESS_PAYMENT, current_status)


def validate_admin_reject(current_status: SubmissionStatus | str | None) -> TransitionResult:
    return validate_transition(SubmissionAction.ADMIN_REJECT, current_status)


def validate_admin_request_clarification(current_status: SubmissionStatus | str | None) -> TransitionResult:
    return validate_transition(SubmissionAction.ADMIN_REQUEST_CLARIFICATION, current_status)


def employee_can_edit(status: SubmissionStatus | str | None) -> bool:
    return normalize_status(status) in _EDITABLE_STATUSES


def employee_can_delete(status: SubmissionStatus | str | None) -> bool:
    return normalize_status(status) == SubmissionStatus.SUBMITTED


def resubmission_status(status: SubmissionStatus | str | None) -> SubmissionStatus:
    normalized = normalize_status(status)
    if normalized in _RESUBMIT_ON_EDIT_STATUSES:
        return SubmissionStatus.SUBMITTED
    return normalized


def status_label(status: SubmissionStatus | str | None, audience: StatusAudience = "employee") -> str:
    return _STATUS_LABELS[audience][normalize_status(status)]
