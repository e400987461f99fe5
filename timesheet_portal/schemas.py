from datetime import date, datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from timesheet_portal.models import AuditActorType, HolidayType, SubmissionStatus
from timesheet_portal.services.blocked_dates import normalize_date_string


class _SubmissionFields(BaseModel):
    employee_id: int = Field(ge=1)
    submission_date: str
    hours_submitted: float = Field(gt=0, le=1000)
    overtime_hours: float | None = Field(default=None, ge=0, le=1000)
    description: str = Field(min_length=1)
    overtime_description: str | None = None

    @field_validator("submission_date", mode="before")
    @classmethod
    def trim_submission_date(cls, value: Any) -> Any:
        # Timestamps keep their calendar prefix; anything else is rejected by the service.
        if isinstance(value, (str, date)):
            return normalize_date_string(value) or str(value).strip()
        return value

    @model_validator(mode="after")
    def validate_text_fields(self) -> "_SubmissionFields":
        if not self.description.strip():
            raise ValueError("Work description is required")
        if (self.overtime_hours or 0) > 0 and not (self.overtime_description or "").strip():
            raise ValueError("overtime_description is required when overtime_hours is greater than 0")
        return self


class SubmissionCreateRequest(_SubmissionFields):
    manager_id: int | None = Field(default=None, ge=1)


class SubmissionUpdateRequest(_SubmissionFields):
    pass


class SubmissionRead(BaseModel):
    id: int
    employee_id: int
    manager_id: int | None
    submission_date: date
    hours_submitted: float
    overtime_hours: float | None = None
    description: str
    overtime_description: str | None = None
    status: SubmissionStatus
    status_label: str | None = None
    manager_comment: str | None = None
    admin_comment: str | None = None
    acted_by_id: int | None = None
    acted_at: datetime | None = None
    invoice_id: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class SubmissionUpdateResponse(BaseModel):
    success: bool = True
    message: str
    submission: SubmissionRead


class ManagerApproveRequest(BaseModel):
    manager_id: int = Field(ge=1)
    comment: str | None = Field(default=None, max_length=2000)


class SubmissionRejectRequest(BaseModel):
    actor_id: int = Field(ge=1)
    rejection_reason: str | None = Field(default=None, max_length=2000)
    is_admin_action: bool = False


class AdminProcessPaymentRequest(BaseModel):
    admin_id: int = Field(ge=1)
    payment_reference: str | None = Field(default=None, max_length=255)


class AdminClarificationRequest(BaseModel):
    admin_id: int = Field(ge=1)
    message: str | None = Field(default=None, max_length=2000)


class TeamMemberAssignRequest(BaseModel):
    manager_id: int = Field(ge=1)
    employee_id: int = Field(ge=1)
    project_id: int | None = Field(default=None, ge=1)


class TeamMemberRead(BaseModel):
    id: int
    full_name: str
    email: str | None = None
    manager_id: int | None = None
    contract_type: str | None = None
    country: str | None = None
    region: str | None = None
    project_id: int | None = None

    model_config = ConfigDict(from_attributes=True)


class ProjectRead(BaseModel):
    id: int
    name: str
    is_active: bool = True

    model_config = ConfigDict(from_attributes=True)


class ManagerRead(BaseModel):
    id: int
    full_name: str
    email: str | None = None
    project_id: int | None = None
    is_active: bool = True

    model_config = ConfigDict(from_attributes=True)


class StatusTotalsRead(BaseModel):
    status: SubmissionStatus
    count: int
    hours: float


class AdminStatsRead(BaseModel):
    total_employees: int
    active_employees: int
    pending_reviews: int
    paid_this_month: int
    paid_hours_this_month: float
    paid_hours_last_month: float
    growth_percentage: int
    by_status: list[StatusTotalsRead]


class ManagerSyncResponse(BaseModel):
    success: bool = True
    employees_processed: int
    submissions_updated: int


class HolidayCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    description: str | None = None
    type: HolidayType = HolidayType.HOLIDAY
    dates: list[str] = Field(min_length=1)
    projects: list[str] = Field(default_factory=list)
    employee_types: list[str] = Field(default_factory=list)
    countries: list[str] = Field(default_factory=list)
    regions: list[str] = Field(default_factory=list)
    is_active: bool = True
    is_paid: bool = True
    applies_to_all_projects: bool = True
    applies_to_all_employee_types: bool = True
    applies_to_all_locations: bool = True
    created_by: str | None = Field(default=None, max_length=255)

    @model_validator(mode="before")
    @classmethod
    def normalize_type(cls, data: Any) -> Any:
        if isinstance(data, dict) and isinstance(data.get("type"), str):
            data = {**data, "type": data["type"].strip().upper()}
        return data


class HolidayRead(BaseModel):
    id: int
    name: str
    description: str | None = None
    type: HolidayType
    dates: list[str]
    projects: list[str] = Field(default_factory=list)
    employee_types: list[str] = Field(default_factory=list)
    countries: list[str] = Field(default_factory=list)
    regions: list[str] = Field(default_factory=list)
    is_active: bool
    is_paid: bool
    applies_to_all_projects: bool | None = None
    applies_to_all_employee_types: bool | None = None
    applies_to_all_locations: bool | None = None
    created_by: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class BlockedDayRead(BaseModel):
    date: str
    type: Literal["HOLIDAY", "SPECIAL_DAY_OFF"]
    name: str
    reason: str
    is_paid: bool

    model_config = ConfigDict(from_attributes=True)


class BlockedDaysMeta(BaseModel):
    start_date: str
    end_date: str
    employee_id: int | None = None
    project_id: str | None = None
    employee_type: str | None = None
    country: str | None = None
    region: str | None = None
    total_blocked: int
    holidays_available: bool
    fetched_at_utc: datetime


class BlockedDaysResponse(BaseModel):
    success: bool = True
    blocked_days: list[BlockedDayRead]
    meta: BlockedDaysMeta


class BlockedDateCheckResponse(BaseModel):
    date: str
    has_blocked_dates: bool
    blocked_dates: list[str]
    blocked_days: list[BlockedDayRead] = Field(default_factory=list)


class AuditLogRead(BaseModel):
    id: int
    ts_utc: datetime
    actor_type: AuditActorType
    actor_id: str
    action: str
    entity_type: str | None
    entity_id: str | None
    success: bool
    details: dict[str, Any]

    model_config = ConfigDict(from_attributes=True)
