from __future__ import annotations

import unittest
from unittest.mock import patch

from timesheet_portal.services.schema_guard import verify_runtime_schema


class _FakeResult:
    def __init__(self, value):
        self._value = value

    def scalar(self):  # type: ignore[no-untyped-def]
        return self._value


class _FakeConnection:
    def __init__(self, version_value):
        self._version_value = version_value

    def __enter__(self):  # type: ignore[no-untyped-def]
        return self

    def __exit__(self, exc_type, exc, tb):  # type: ignore[no-untyped-def]
        return False

    def execute(self, _statement):  # type: ignore[no-untyped-def]
        return _FakeResult(self._version_value)


class _FakeEngine:
    def __init__(self, version_value):
        self._version_value = version_value

    def connect(self):  # type: ignore[no-untyped-def]
        return _FakeConnection(self._version_value)


class _FakeInspector:
    def __init__(
        self,
        *,
        columns_by_table: dict[str, set[str]],
        enums: list[dict[str, object]],
        unique_constraints: dict[str, list[dict[str, object]]] | None = None,
    ):
        self._columns_by_table = columns_by_table
        self._enums = enums
        self._unique_constraints = unique_constraints or {}

    def get_columns(self, table_name: str):  # type: ignore[no-untyped-def]
        columns = self._columns_by_table[table_name]
        return [{"name": item} for item in columns]

    def get_enums(self):  # type: ignore[no-untyped-def]
        return self._enums

    def get_unique_constraints(self, table_name: str):  # type: ignore[no-untyped-def]
        return self._unique_constraints.get(table_name, [])


FULL_COLUMNS = {
    "employees": {"id", "manager_id", "contract_type", "country", "region", "project_id", "full_name"},
    "submissions": {"id", "employee_id", "submission_month", "status", "acted_by_id", "manager_id"},
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
FULL_ENUMS: list[dict[str, object]] = [
    {
        "name": "submission_status",
        "labels": [
            "SUBMITTED",
            "MANAGER_APPROVED",
            "MANAGER_REJECTED",
            "ADMIN_PAID",
            "ADMIN_REJECTED",
            "NEEDS_CLARIFICATION",
        ],
    },
    {"name": "holiday_type", "labels": ["HOLIDAY", "SPECIAL_TIME_OFF"]},
]
MONTH_UNIQUE = {
    "submissions": [
        {"name": "uq_submissions_employee_month", "column_names": ["employee_id", "submission_month"]},
    ],
}


class SchemaGuardTests(unittest.TestCase):
    def test_verify_runtime_schema_ok_when_required_columns_exist(self) -> None:
        fake_inspector = _FakeInspector(
            columns_by_table=FULL_COLUMNS,
            enums=FULL_ENUMS,
            unique_constraints=MONTH_UNIQUE,
        )
        fake_engine = _FakeEngine("0002_holidays")

        with patch("timesheet_portal.services.schema_guard.inspect", return_value=fake_inspector):
            result = verify_runtime_schema(fake_engine)  # type: ignore[arg-type]

        self.assertTrue(result.ok)
        self.assertEqual(result.issues, [])
        self.assertEqual(result.warnings, [])
        self.assertEqual(result.to_dict()["issue_count"], 0)

    def test_verify_runtime_schema_reports_missing_columns(self) -> None:
        fake_inspector = _FakeInspector(
            columns_by_table={
                "employees": {"id", "full_name"},
                "submissions": {"id", "employee_id", "status"},
                "holidays": {"id", "dates", "is_active"},
                "alembic_version": {"version_num"},
            },
            enums=[
                {"name": "submission_status", "labels": ["SUBMITTED", "APPROVED", "REJECTED"]},
            ],
        )
        fake_engine = _FakeEngine("")

        with patch("timesheet_portal.services.schema_guard.inspect", return_value=fake_inspector):
            result = verify_runtime_schema(fake_engine)  # type: ignore[arg-type]

        self.assertFalse(result.ok)
        self.assertTrue(any(item.startswith("MISSING_COLUMNS:employees:contract_type") for item in result.issues))
        self.assertTrue(any(item.startswith("MISSING_COLUMNS:submissions:acted_by_id") for item in result.issues))
        self.assertTrue(any(item.startswith("MISSING_COLUMNS:holidays:applies_to_all") for item in result.issues))
        self.assertTrue(any(item.startswith("MISSING_ENUM_VALUES:submission_status:ADMIN_PAID") for item in result.issues))
        self.assertIn("ENUM_NOT_FOUND:holiday_type", result.warnings)
        self.assertIn("ALEMBIC_VERSION_EMPTY", result.issues)

    def test_missing_month_unique_constraint_is_an_issue(self) -> None:
        fake_inspector = _FakeInspector(
            columns_by_table=FULL_COLUMNS,
            enums=FULL_ENUMS,
            unique_constraints={
                "submissions": [{"name": "uq_other", "column_names": ["employee_id"]}],
            },
        )

        with patch("timesheet_portal.services.schema_guard.inspect", return_value=fake_inspector):
            result = verify_runtime_schema(_FakeEngine("0002_holidays"))  # type: ignore[arg-type]

        self.assertFalse(result.ok)
        self.assertEqual(result.issues, ["MISSING_UNIQUE:submissions:employee_id,submission_month"])


if __name__ == "__main__":
    unittest.main()
