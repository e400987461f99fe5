from __future__ import annotations

import json
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Literal

from timesheet_portal.models import HolidayType


BlockedDayType = Literal["HOLIDAY", "SPECIAL_DAY_OFF"]

_DATE_PREFIX_RE = re.compile(r"^(\d{4}-\d{2}-\d{2})")

_EMPLOYEE_TYPE_ALIASES: dict[str, str] = {
    "employee": "employee",
    "full-time": "employee",
    "full_time": "employee",
    "fulltime": "employee",
    "contractor": "contractor",
    "freelancer": "contractor",
    "part-time": "part_time",
    "part_time": "part_time",
    "parttime": "part_time",
    "intern": "intern",
}


def normalize_date_string(value: str | date | datetime | None) -> str | None:
    """Reduce a date-ish value to ``YYYY-MM-DD`` without any timezone conversion.

    Strings are cut to their leading calendar-date prefix, so
    ``"2025-12-25T00:00:00.000Z"`` becomes ``"2025-12-25"``. Values without such a
    prefix return ``None`` and are treated as invalid by callers.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    match = _DATE_PREFIX_RE.match(str(value).strip())
    if match is None:
        return None
    return match.group(1)


def parse_json_array(value: Any) -> list[str]:
    if not value:
        return []
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except ValueError:
            return []
    if isinstance(value, (list, tuple, set, frozenset)):
        return [str(item) for item in value if item is not None]
    return []


def normalize_employee_type(value: str | None) -> str | None:
    normalized = (value or "").strip().lower()
    if not normalized:
        return None
    return _EMPLOYEE_TYPE_ALIASES.get(normalized, normalized)


def _clean(value: Any) -> str | None:
    if value is None:
        return None
    text_value = str(value).strip()
    return text_value or None


def _read(record: Any, key: str, default: Any = None) -> Any:
    if isinstance(record, Mapping):
        return record.get(key, default)
    return getattr(record, key, default)


@dataclass(frozen=True, slots=True)
class EmployeeContext:
    project_id: str | None = None
    employee_type: str | None = None
    country: str | None = None
    region: str | None = None

    @classmethod
    def build(
        cls,
        *,
        project_id: Any = None,
        employee_type: str | None = None,
        country: str | None = None,
        region: str | None = None,
    ) -> EmployeeContext:
        return cls(
            project_id=_clean(project_id),
            employee_type=normalize_employee_type(employee_type),
            country=_clean(country),
            region=_clean(region),
        )

    @classmethod
    def from_employee(cls, employee: Any) -> EmployeeContext:
        return cls.build(
            project_id=_read(employee, "project_id"),
            employee_type=_read(employee, "contract_type") or _read(employee, "employee_type"),
            country=_read(employee, "country"),
            region=_read(employee, "region"),
        )

    def merged(
        self,
        *,
        project_id: Any = None,
        employee_type: str | None = None,
        country: str | None = None,
        region: str | None = None,
    ) -> EmployeeContext:
        override = EmployeeContext.build(
            project_id=project_id,
            employee_type=employee_type,
            country=country,
            region=region,
        )
        return EmployeeContext(
            project_id=override.project_id or self.project_id,
            employee_type=override.employee_type or self.employee_type,
            country=override.country or self.country,
            region=override.region or self.region,
        )


@dataclass(frozen=True, slots=True)
class HolidayRule:
    name: str
    dates: tuple[str, ...]
    type: HolidayType = HolidayType.HOLIDAY
    description: str | None = None
    is_active: bool | None = True
    is_paid: bool | None = True
    applies_to_all_projects: bool | None = True
    projects: tuple[str, ...] = ()
    applies_to_all_employee_types: bool | None = True
    employee_types: tuple[str, ...] = ()
    applies_to_all_locations: bool | None = True
    countries: tuple[str, ...] = ()
    regions: tuple[str, ...] = ()
    id: Any = None

    @classmethod
    def from_record(cls, record: Any) -> HolidayRule:
        """Build a rule from an ORM row or a raw mapping (JSON text columns accepted)."""
        raw_type = _read(record, "type")
        if isinstance(raw_type, HolidayType):
            holiday_type = raw_type
        elif str(raw_type or "").strip().upper() == HolidayType.SPECIAL_TIME_OFF.value:
            holiday_type = HolidayType.SPECIAL_TIME_OFF
        else:
            holiday_type = HolidayType.HOLIDAY

        locations_flag = _read(record, "applies_to_all_locations")
        if locations_flag is None:
            locations_flag = _read(record, "applies_to_all_countries")

        return cls(
            id=_read(record, "id"),
            name=str(_read(record, "name") or ""),
            description=_read(record, "description"),
            type=holiday_type,
            dates=tuple(parse_json_array(_read(record, "dates"))),
            is_active=_read(record, "is_active", True),
            is_paid=_read(record, "is_paid", True),
            applies_to_all_projects=_read(record, "applies_to_all_projects"),
            projects=tuple(parse_json_array(_read(record, "projects"))),
            applies_to_all_employee_types=_read(record, "applies_to_all_employee_types"),
            employee_types=tuple(parse_json_array(_read(record, "employee_types"))),
            applies_to_all_locations=locations_flag,
            countries=tuple(parse_json_array(_read(record, "countries"))),
            regions=tuple(parse_json_array(_read(record, "regions"))),
        )


@dataclass(frozen=True, slots=True)
class BlockedDay:
    date: str
    type: BlockedDayType
    name: str
    reason: str
    is_paid: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.date,
            "type": self.type,
            "name": self.name,
            "reason": self.reason,
            "isPaid": self.is_paid,
        }


@dataclass(frozen=True, slots=True)
class BlockedDateCheck:
    has_blocked_dates: bool
    blocked_dates: list[str] = field(default_factory=list)
    blocked_days: list[BlockedDay] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "hasBlockedDates": self.has_blocked_dates,
            "blockedDates": list(self.blocked_dates),
        }


def is_scope_restricted(applies_to_all: bool | None, items: Iterable[str]) -> bool:
    # Only an explicit False with a non-empty list narrows a holiday.
    if applies_to_all is not False:
        return False
    return any(True for _ in items)


def _lowered(items: Iterable[str]) -> set[str]:
    return {item.strip().lower() for item in items if item and item.strip()}


def holiday_applies(rule: HolidayRule, context: EmployeeContext) -> bool:
    # Blank entries do not count towards a restriction.
    project_ids = {item.strip() for item in rule.projects if item and item.strip()}
    if is_scope_restricted(rule.applies_to_all_projects, project_ids):
        if context.project_id and context.project_id not in project_ids:
            return False

    employee_types = {normalize_employee_type(item) for item in rule.employee_types if item and item.strip()}
    if is_scope_restricted(rule.applies_to_all_employee_types, employee_types):
        if context.employee_type and context.employee_type not in employee_types:
            return False

    countries = _lowered(rule.countries)
    if is_scope_restricted(rule.applies_to_all_locations, countries):
        if context.country:
            if context.country.lower() not in countries:
                return False
            regions = _lowered(rule.regions)
            if regions and context.region and context.region.lower() not in regions:
                return False

    return True


def _blocked_day_for(rule: HolidayRule, day: str) -> BlockedDay:
    if rule.type == HolidayType.SPECIAL_TIME_OFF:
        day_type: BlockedDayType = "SPECIAL_DAY_OFF"
        default_reason = "Special Day Off"
    else:
        day_type = "HOLIDAY"
        default_reason = "Holiday"
    return BlockedDay(
        date=day,
        type=day_type,
        name=rule.name,
        reason=(rule.description or "").strip() or default_reason,
        is_paid=rule.is_paid is not False,
    )


def resolve_blocked_days(
    rules: Iterable[HolidayRule],
    context: EmployeeContext,
    start: str | date | datetime | None,
    end: str | date | datetime | None,
) -> list[BlockedDay]:
    start_day = normalize_date_string(start)
    end_day = normalize_date_string(end)
    if start_day is None or end_day is None or start_day > end_day:
        return []

    by_date: dict[str, BlockedDay] = {}
    for rule in rules:
        if rule.is_active is False:
            continue
        if not holiday_applies(rule, context):
            continue
        for raw_day in rule.dates:
            day = normalize_date_string(raw_day)
            if day is None or day in by_date:
                continue
            if start_day <= day <= end_day:
                by_date[day] = _blocked_day_for(rule, day)

    return [by_date[day] for day in sorted(by_date)]


def check_date_blocked(
    rules: Iterable[HolidayRule],
    context: EmployeeContext,
    target: str | date | datetime | None,
) -> BlockedDateCheck:
    blocked_days = resolve_blocked_days(rules, context, target, target)
    return BlockedDateCheck(
        has_blocked_dates=bool(blocked_days),
        blocked_dates=[item.date for item in blocked_days],
        blocked_days=blocked_days,
    )
