from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from timesheet_portal.errors import ApiError
from timesheet_portal.models import Holiday
from timesheet_portal.schemas import HolidayCreateRequest
from timesheet_portal.services.blocked_dates import (
    BlockedDateCheck,
    BlockedDay,
    EmployeeContext,
    HolidayRule,
    check_date_blocked,
    normalize_date_string,
    resolve_blocked_days,
)
from timesheet_portal.settings import get_settings

logger = logging.getLogger("timesheet_portal.holidays")


@dataclass(frozen=True, slots=True)
class HolidayRuleSet:
    rules: list[HolidayRule] = field(default_factory=list)
    available: bool = True


def load_holiday_rules(db: Session) -> HolidayRuleSet:
    """Load every holiday row; scope filtering happens in memory.

    A storage failure yields an empty, unavailable rule set so that timesheet
    entry keeps working without holiday enforcement.
    """
    try:
        holidays = list(db.scalars(select(Holiday).order_by(Holiday.id.asc())).all())
    except SQLAlchemyError as exc:
        db.rollback()
        if not get_settings().holiday_fail_open:
            raise
        logger.warning(
            "holiday_rules_unavailable",
            extra={"error_type": exc.__class__.__name__, "error": str(exc)},
        )
        return HolidayRuleSet(rules=[], available=False)

    return HolidayRuleSet(rules=[HolidayRule.from_record(item) for item in holidays], available=True)


def get_blocked_days_for_employee(
    db: Session,
    *,
    context: EmployeeContext,
    start_date: str | date,
    end_date: str | date,
) -> tuple[list[BlockedDay], bool]:
    rule_set = load_holiday_rules(db)
    blocked_days = resolve_blocked_days(rule_set.rules, context, start_date, end_date)
    return blocked_days, rule_set.available


def is_date_blocked_for_employee(
    db: Session,
    *,
    context: EmployeeContext,
    target_date: str | date,
) -> BlockedDateCheck:
    rule_set = load_holiday_rules(db)
    return check_date_blocked(rule_set.rules, context, target_date)


def normalize_holiday_dates(values: list[str]) -> list[str]:
    normalized: list[str] = []
    seen: set[str] = set()
    for raw_value in values:
        value = normalize_date_string(raw_value)
        if value is None:
            logger.warning("holiday_date_dropped", extra={"raw_value": raw_value})
            continue
        if value in seen:
            continue
        seen.add(value)
        normalized.append(value)
    return normalized


def _clean_items(values: list[str]) -> list[str]:
    return [item.strip() for item in values if item and item.strip()]


def create_holiday(db: Session, payload: HolidayCreateRequest) -> Holiday:
    dates = normalize_holiday_dates(payload.dates)
    if not dates:
        raise ApiError(
            status_code=422,
            code="INVALID_DATE",
            message="At least one date in YYYY-MM-DD format is required.",
        )

    holiday = Holiday(
        name=payload.name.strip(),
        description=(payload.description or "").strip() or None,
        type=payload.type,
        dates=dates,
        projects=_clean_items(payload.projects),
        employee_types=_clean_items(payload.employee_types),
        countries=_clean_items(payload.countries),
        regions=_clean_items(payload.regions),
        is_active=payload.is_active,
        is_paid=payload.is_paid,
        applies_to_all_projects=payload.applies_to_all_projects,
        applies_to_all_employee_types=payload.applies_to_all_employee_types,
        applies_to_all_locations=payload.applies_to_all_locations,
        created_by=payload.created_by,
    )
    db.add(holiday)
    db.commit()
    db.refresh(holiday)
    logger.info(
        "holiday_created",
        extra={"holiday_id": holiday.id, "type": holiday.type.value, "date_count": len(dates)},
    )
    return holiday


def list_holidays(db: Session, *, is_active: bool | None = None) -> list[Holiday]:
    stmt = select(Holiday).order_by(Holiday.created_at.desc(), Holiday.id.desc())
    if is_active is not None:
        stmt = stmt.where(Holiday.is_active.is_(is_active))
    return list(db.scalars(stmt).all())


def delete_holiday(db: Session, holiday_id: int) -> None:
    holiday = db.get(Holiday, holiday_id)
    if holiday is None:
        raise ApiError(status_code=404, code="HOLIDAY_NOT_FOUND", message="Holiday not found.")

    db.delete(holiday)
    db.commit()
