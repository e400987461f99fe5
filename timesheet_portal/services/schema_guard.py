from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import inspect, text
from sqlalchemy.engine import Engine


@dataclass(frozen=True, slots=True)
class SchemaGuardResult:
    ok: bool
    checked_at_utc: datetime
    issues: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "ok": self.ok,
            "checked_at_utc": self.checked_at_utc.isoformat(),
            "issues": list(self.issues),
            "warnings": list(self.warnings),
            "issue_count": len(self.issues),
            "warning_count": len(self.warnings),
        }


REQUIRED_TABLE_COLUMNS: dict[str, set[str]] = {
    "employees": {"id", "manager_id", "contract_type", "country", "region", "project_id"},
    "submissions": {"id", "employee_id", "submission_month", "status", "acted_by_id"},
    "holidays": {
        "id",
        "dates",
        "is_active",
        "applies_to_all_projects",
        "applies_to_all_employee_types",
        "applies_to_all_locations",
    },
    "alembic_version": {"version_num"},
}

REQUIRED_ENUM_VALUES: dict[str, set[str]] = {
    "submission_status": {
        "SUBMITTED",
        "MANAGER_APPROVED",
        "MANAGER_REJECTED",
        "ADMIN_PAID",
        "ADMIN_REJECTED",
        "NEEDS_CLARIFICATION",
    },
    "holiday_type": {"HOLIDAY", "SPECIAL_TIME_OFF"},
}

# Backs the one-submission-per-month rule.
REQUIRED_UNIQUE_COLUMNS: dict[str, tuple[str, ...]] = {
    "submissions": ("employee_id", "submission_month"),
}


def _check_columns(inspector: Any, issues: list[str]) -> set[str]:
    readable_tables: set[str] = set()
    for table_name, required_columns in REQUIRED_TABLE_COLUMNS.items():
        try:
            column_names = {str(item.get("name")) for item in inspector.get_columns(table_name)}
        except Exception as exc:  # pragma: no cover
            issues.append(f"TABLE_UNREADABLE:{table_name}:{exc.__class__.__name__}")
            continue

        readable_tables.add(table_name)
        missing_columns = sorted(item for item in required_columns if item not in column_names)
        if missing_columns:
            issues.append(f"MISSING_COLUMNS:{table_name}:{','.join(missing_columns)}")
    return readable_tables


def _check_enums(inspector: Any, issues: list[str], warnings: list[str]) -> None:
    try:
        enums = inspector.get_enums() or []
    except Exception as exc:  # pragma: no cover
        warnings.append(f"ENUM_INSPECTION_FAILED:{exc.__class__.__name__}")
        return

    enum_values_by_name: dict[str, set[str]] = {}
    for enum_item in enums:
        name = str(enum_item.get("name") or "").strip()
        labels = enum_item.get("labels")
        if name and isinstance(labels, list):
            enum_values_by_name[name] = {str(label) for label in labels}

    for enum_name, required_values in REQUIRED_ENUM_VALUES.items():
        if enum_name not in enum_values_by_name:
            warnings.append(f"ENUM_NOT_FOUND:{enum_name}")
            continue
        missing_values = sorted(item for item in required_values if item not in enum_values_by_name[enum_name])
        if missing_values:
            issues.append(f"MISSING_ENUM_VALUES:{enum_name}:{','.join(missing_values)}")


def _check_unique_constraints(
    inspector: Any,
    readable_tables: set[str],
    issues: list[str],
    warnings: list[str],
) -> None:
    for table_name, columns in REQUIRED_UNIQUE_COLUMNS.items():
        if table_name not in readable_tables:
            continue
        try:
            constraints = inspector.get_unique_constraints(table_name) or []
        except Exception as exc:  # pragma: no cover
            warnings.append(f"UNIQUE_INSPECTION_FAILED:{table_name}:{exc.__class__.__name__}")
            continue

        expected = set(columns)
        if not any(set(item.get("column_names") or []) == expected for item in constraints):
            issues.append(f"MISSING_UNIQUE:{table_name}:{','.join(columns)}")


def _check_alembic_version(engine: Engine, issues: list[str]) -> None:
    try:
        with engine.connect() as connection:
            row = connection.execute(text("SELECT version_num FROM alembic_version LIMIT 1")).scalar()
    except Exception as exc:  # pragma: no cover
        issues.append(f"ALEMBIC_VERSION_CHECK_FAILED:{exc.__class__.__name__}")
        return

    version = str(row).strip() if row is not None else ""
    if not version:
        issues.append("ALEMBIC_VERSION_EMPTY")


def verify_runtime_schema(engine: Engine) -> SchemaGuardResult:
    issues: list[str] = []
    warnings: list[str] = []
    checked_at_utc = datetime.now(timezone.utc)
    inspector = inspect(engine)

    readable_tables = _check_columns(inspector, issues)
    _check_enums(inspector, issues, warnings)
    _check_unique_constraints(inspector, readable_tables, issues, warnings)
    _check_alembic_version(engine, issues)

    return SchemaGuardResult(
        ok=len(issues) == 0,
        checked_at_utc=checked_at_utc,
        issues=issues,
        warnings=warnings,
    )
