from __future__ import annotations

import unittest
from datetime import date
from types import SimpleNamespace

from timesheet_portal.models import Employee, EmployeeRole, Project, SubmissionStatus
from timesheet_portal.services.directory import list_managers, list_projects, submission_stats


class _ScalarResult:
    def __init__(self, rows):
        self._rows = rows

    def all(self):  # type: ignore[no-untyped-def]
        return self._rows


class _RowResult:
    def __init__(self, rows):
        self._rows = rows

    def all(self):  # type: ignore[no-untyped-def]
        return self._rows


class _FakeDirectoryDB:
    def __init__(self, *, rows=None, scalar_rows=None, employee_count: int | None = 0):  # type: ignore[no-untyped-def]
        self.rows = rows or []
        self.scalar_rows = scalar_rows or []
        self.employee_count = employee_count
        self.statements: list[str] = []

    def scalars(self, statement):  # type: ignore[no-untyped-def]
        self.statements.append(str(statement))
        return _ScalarResult(self.scalar_rows)

    def execute(self, statement):  # type: ignore[no-untyped-def]
        self.statements.append(str(statement))
        return _RowResult(self.rows)

    def scalar(self, statement):  # type: ignore[no-untyped-def]
        self.statements.append(str(statement))
        return self.employee_count


def _row(employee_id: int, status, submission_date: date, hours: float, overtime: float | None = None):  # type: ignore[no-untyped-def]
    return SimpleNamespace(
        employee_id=employee_id,
        status=status,
        submission_date=submission_date,
        hours_submitted=hours,
        overtime_hours=overtime,
    )


class DirectoryListTests(unittest.TestCase):
    def test_list_projects_hides_inactive_by_default(self) -> None:
        project = Project(id=1, name="Atlas", is_active=True)
        fake_db = _FakeDirectoryDB(scalar_rows=[project])

        self.assertEqual(list_projects(fake_db), [project])  # type: ignore[arg-type]
        list_projects(fake_db, include_inactive=True)  # type: ignore[arg-type]

        self.assertIn("projects.is_active IS", fake_db.statements[0])
        self.assertNotIn("projects.is_active", fake_db.statements[1])
        self.assertIn("ORDER BY projects.name ASC", fake_db.statements[0])

    def test_list_managers_filters_on_role(self) -> None:
        manager = Employee(id=3, full_name="Sam Ortiz", role=EmployeeRole.MANAGER, is_active=True)
        fake_db = _FakeDirectoryDB(scalar_rows=[manager])

        self.assertEqual(list_managers(fake_db), [manager])  # type: ignore[arg-type]
        self.assertIn("employees.role", fake_db.statements[0])
        self.assertIn("employees.is_active IS", fake_db.statements[0])


class SubmissionStatsTests(unittest.TestCase):
    def test_counts_hours_and_growth(self) -> None:
        rows = [
            _row(7, SubmissionStatus.SUBMITTED, date(2025, 7, 10), 160),
            _row(8, SubmissionStatus.MANAGER_APPROVED, date(2025, 7, 2), 150),
            _row(9, SubmissionStatus.ADMIN_PAID, date(2025, 7, 1), 100, 20),
            _row(10, SubmissionStatus.ADMIN_PAID, date(2025, 6, 3), 80),
            _row(11, SubmissionStatus.ADMIN_PAID, date(2025, 8, 1), 40),
            _row(12, "approved", date(2025, 5, 1), 10),
        ]
        fake_db = _FakeDirectoryDB(rows=rows, employee_count=14)

        stats = submission_stats(fake_db, today=date(2025, 7, 20))  # type: ignore[arg-type]

        self.assertEqual(stats["total_employees"], 14)
        self.assertEqual(stats["pending_reviews"], 3)
        self.assertEqual(stats["paid_this_month"], 1)
        self.assertEqual(stats["paid_hours_this_month"], 120.0)
        self.assertEqual(stats["paid_hours_last_month"], 80.0)
        self.assertEqual(stats["growth_percentage"], 50)
        self.assertEqual(stats["active_employees"], 4)

        totals = {item["status"]: item for item in stats["by_status"]}
        self.assertEqual(len(totals), len(SubmissionStatus))
        self.assertEqual(totals[SubmissionStatus.ADMIN_PAID]["count"], 3)
        self.assertEqual(totals[SubmissionStatus.ADMIN_PAID]["hours"], 240.0)
        self.assertEqual(totals[SubmissionStatus.MANAGER_APPROVED]["count"], 2)
        self.assertEqual(totals[SubmissionStatus.NEEDS_CLARIFICATION]["count"], 0)
        self.assertIn("employees.role", fake_db.statements[-1])

    def test_growth_without_previous_month(self) -> None:
        fake_db = _FakeDirectoryDB(rows=[_row(7, SubmissionStatus.ADMIN_PAID, date(2025, 1, 5), 8)], employee_count=None)

        stats = submission_stats(fake_db, today=date(2025, 1, 31))  # type: ignore[arg-type]

        self.assertEqual(stats["growth_percentage"], 100)
        self.assertEqual(stats["paid_hours_last_month"], 0.0)
        self.assertEqual(stats["total_employees"], 0)

        empty = submission_stats(_FakeDirectoryDB(), today=date(2025, 1, 31))  # type: ignore[arg-type]
        self.assertEqual(empty["growth_percentage"], 0)
        self.assertEqual(empty["pending_reviews"], 0)


if __name__ == "__main__":
    unittest.main()
