from __future__ import annotations

import unittest
from collections.abc import Generator
from datetime import date
from types import SimpleNamespace
from unittest.mock import patch

from fastapi.testclient import TestClient

from timesheet_portal.db import get_db
from timesheet_portal.main import app
from timesheet_portal.models import AuditLog, Employee, Holiday, HolidayType, Submission, SubmissionStatus
from timesheet_portal.services.submission_status import SubmissionAction
from timesheet_portal.services.submissions import TransitionOutcome


class _ScalarResult:
    def __init__(self, rows):
        self._rows = rows

    def all(self):  # type: ignore[no-untyped-def]
        return self._rows


class FakeDB:
    def __init__(
        self,
        *,
        employees: list[Employee] | None = None,
        submissions: list[Submission] | None = None,
        holidays: list[Holiday] | None = None,
        existing_month_id: int | None = None,
    ):
        self.employees = {item.id: item for item in employees or []}
        self.submissions = {item.id: item for item in submissions or []}
        self.holidays = holidays or []
        self.existing_month_id = existing_month_id
        self.added: list[object] = []
        self.executed_params: list[dict[str, object]] = []
        self.commit_count = 0

    def get(self, model, pk):  # type: ignore[no-untyped-def]
        if model is Employee:
            return self.employees.get(pk)
        if model is Submission:
            return self.submissions.get(pk)
        return None

    def scalars(self, statement):  # type: ignore[no-untyped-def]
        if "FROM holidays" in str(statement):
            return _ScalarResult(self.holidays)
        return _ScalarResult(list(self.submissions.values()))

    def scalar(self, _statement):  # type: ignore[no-untyped-def]
        return self.existing_month_id

    def execute(self, statement):  # type: ignore[no-untyped-def]
        self.executed_params.append(dict(statement.compile().params))
        return SimpleNamespace(rowcount=1)

    def add(self, obj: object) -> None:
        self.added.append(obj)

    def commit(self) -> None:
        self.commit_count += 1

    def rollback(self) -> None:
        return

    def refresh(self, obj: object) -> None:
        if getattr(obj, "id", None) is None:
            obj.id = 501  # type: ignore[attr-defined]
        if not self.executed_params:
            return
        for key, value in self.executed_params[-1].items():
            if not key.endswith("_1"):
                setattr(obj, key, value)

    def audit_actions(self) -> list[str]:
        return [item.action for item in self.added if isinstance(item, AuditLog)]


def override_get_db(fake_db: FakeDB):
    def _override() -> Generator[FakeDB, None, None]:
        yield fake_db

    return _override


def _employee(**overrides) -> Employee:  # type: ignore[no-untyped-def]
    values = {"id": 7, "full_name": "Dana Reyes", "manager_id": 3, "country": "US", "is_active": True}
    values.update(overrides)
    return Employee(**values)


def _submission(**overrides) -> Submission:  # type: ignore[no-untyped-def]
    values = {
        "id": 11,
        "employee_id": 7,
        "manager_id": 3,
        "submission_date": date(2025, 7, 15),
        "submission_month": date(2025, 7, 1),
        "hours_submitted": 160.0,
        "description": "Platform migration",
        "status": SubmissionStatus.SUBMITTED,
    }
    values.update(overrides)
    return Submission(**values)


class SubmissionEndpointTests(unittest.TestCase):
    def tearDown(self) -> None:
        app.dependency_overrides.clear()

    def _client(self, fake_db: FakeDB) -> TestClient:
        app.dependency_overrides[get_db] = override_get_db(fake_db)
        return TestClient(app)

    def test_create_submission(self) -> None:
        fake_db = FakeDB(employees=[_employee()])
        client = self._client(fake_db)

        response = client.post(
            "/api/submissions",
            json={
                "employee_id": 7,
                "submission_date": "2025-07-15",
                "hours_submitted": 160,
                "overtime_hours": 6,
                "overtime_description": "Cutover weekend",
                "description": "Platform migration",
            },
            headers={"X-Request-Id": "req-create"},
        )

        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.headers["X-Request-Id"], "req-create")
        body = response.json()
        self.assertEqual(body["id"], 501)
        self.assertEqual(body["status"], "SUBMITTED")
        self.assertEqual(body["status_label"], "Submitted")
        self.assertEqual(body["manager_id"], 3)
        self.assertEqual(body["overtime_hours"], 6)
        self.assertEqual(fake_db.audit_actions(), ["SUBMISSION_CREATED"])

    def test_create_on_blocked_date_returns_structured_error(self) -> None:
        holiday = Holiday(
            id=1,
            name="Independence Day",
            type=HolidayType.HOLIDAY,
            dates=["2025-07-04"],
            is_active=True,
            is_paid=True,
        )
        client = self._client(FakeDB(employees=[_employee()], holidays=[holiday]))

        response = client.post(
            "/api/submissions",
            json={
                "employee_id": 7,
                "submission_date": "2025-07-04",
                "hours_submitted": 8,
                "description": "Support rotation",
            },
        )

        self.assertEqual(response.status_code, 400)
        error = response.json()["error"]
        self.assertEqual(error["code"], "DATE_BLOCKED")
        self.assertEqual(error["details"]["blockedDates"], ["2025-07-04"])
        self.assertEqual(error["details"]["blocked_days"][0]["name"], "Independence Day")

    def test_create_duplicate_month(self) -> None:
        client = self._client(FakeDB(employees=[_employee()], existing_month_id=9))

        response = client.post(
            "/api/submissions",
            json={
                "employee_id": 7,
                "submission_date": "2025-07-20",
                "hours_submitted": 10,
                "description": "Second entry",
            },
        )

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"]["code"], "DUPLICATE_MONTH_YEAR")

    def test_overtime_without_description_is_validation_error(self) -> None:
        client = self._client(FakeDB(employees=[_employee()]))

        response = client.post(
            "/api/submissions",
            json={
                "employee_id": 7,
                "submission_date": "2025-07-20",
                "hours_submitted": 10,
                "overtime_hours": 2,
                "description": "Work",
            },
        )

        self.assertEqual(response.status_code, 422)
        self.assertEqual(response.json()["error"]["code"], "VALIDATION_ERROR")

    def test_update_rejected_submission_resubmits(self) -> None:
        fake_db = FakeDB(
            employees=[_employee()],
            submissions=[_submission(status=SubmissionStatus.MANAGER_REJECTED)],
        )
        client = self._client(fake_db)

        response = client.put(
            "/api/submissions/11",
            json={
                "employee_id": 7,
                "submission_date": "2025-07-18",
                "hours_submitted": 150,
                "description": "Platform migration, revised",
            },
        )

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertTrue(body["success"])
        self.assertEqual(body["message"], "Submission updated and resubmitted for review")
        self.assertEqual(body["submission"]["status"], "SUBMITTED")
        self.assertEqual(body["submission"]["hours_submitted"], 150)
        self.assertEqual(fake_db.audit_actions(), ["SUBMISSION_RESUBMITTED"])

    def test_create_trims_timestamped_submission_date(self) -> None:
        fake_db = FakeDB(employees=[_employee()])
        client = self._client(fake_db)

        response = client.post(
            "/api/submissions",
            json={
                "employee_id": 7,
                "submission_date": "2025-07-15T10:30:00.000Z",
                "hours_submitted": 160,
                "description": "Platform migration",
            },
        )

        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()["submission_date"], "2025-07-15")
        created = fake_db.added[0]
        self.assertIsInstance(created, Submission)
        self.assertEqual(created.submission_month, date(2025, 7, 1))  # type: ignore[attr-defined]

    def test_update_trims_timestamped_submission_date(self) -> None:
        fake_db = FakeDB(employees=[_employee()], submissions=[_submission()])
        client = self._client(fake_db)

        response = client.put(
            "/api/submissions/11",
            json={
                "employee_id": 7,
                "submission_date": "2025-07-18T23:45:00+02:00",
                "hours_submitted": 150,
                "description": "Platform migration, revised",
            },
        )

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["submission"]["submission_date"], "2025-07-18")
        self.assertEqual(fake_db.executed_params[-1]["submission_date"], date(2025, 7, 18))

    def test_unparseable_submission_date_is_invalid_date(self) -> None:
        client = self._client(FakeDB(employees=[_employee()]))

        for raw_value in ("07/15/2025", "2025-02-30"):
            response = client.post(
                "/api/submissions",
                json={
                    "employee_id": 7,
                    "submission_date": raw_value,
                    "hours_submitted": 8,
                    "description": "Support rotation",
                },
            )

            self.assertEqual(response.status_code, 422)
            self.assertEqual(response.json()["error"]["code"], "INVALID_DATE")

    def test_get_missing_submission(self) -> None:
        client = self._client(FakeDB())

        response = client.get("/api/submissions/404")

        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["error"]["code"], "SUBMISSION_NOT_FOUND")

    def test_get_submission_label_for_audience(self) -> None:
        client = self._client(FakeDB(submissions=[_submission(status=SubmissionStatus.MANAGER_APPROVED)]))

        response = client.get("/api/submissions/11", params={"audience": "admin"})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["status_label"], "Ready for Payment")

    def test_delete_submission(self) -> None:
        fake_db = FakeDB(submissions=[_submission()])
        client = self._client(fake_db)

        response = client.delete("/api/submissions/11", params={"employee_id": 7})

        self.assertEqual(response.status_code, 204)
        self.assertEqual(fake_db.audit_actions(), ["SUBMISSION_DELETED"])

    def test_manager_approve(self) -> None:
        fake_db = FakeDB(submissions=[_submission()])
        client = self._client(fake_db)

        response = client.post("/api/submissions/11/approve", json={"manager_id": 3, "comment": "Thanks"})

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["status"], "MANAGER_APPROVED")
        self.assertEqual(body["status_label"], "Approved - Awaiting Admin")
        self.assertEqual(body["manager_comment"], "Thanks")
        self.assertEqual(fake_db.audit_actions(), ["SUBMISSION_MANAGER_APPROVE"])

    def test_approve_twice_is_invalid_transition(self) -> None:
        client = self._client(FakeDB(submissions=[_submission(status=SubmissionStatus.MANAGER_APPROVED)]))

        response = client.post("/api/submissions/11/approve", json={"manager_id": 3})

        self.assertEqual(response.status_code, 400)
        error = response.json()["error"]
        self.assertEqual(error["code"], "INVALID_STATUS_TRANSITION")
        self.assertEqual(error["message"], "Submission must be SUBMITTED status to approve")

    def test_reject_requires_reason(self) -> None:
        client = self._client(FakeDB(submissions=[_submission()]))

        response = client.post("/api/submissions/11/reject", json={"actor_id": 3, "rejection_reason": " "})

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"]["code"], "REASON_REQUIRED")

    def test_admin_reject_routes_to_admin_action(self) -> None:
        submission = _submission(status=SubmissionStatus.ADMIN_REJECTED, admin_comment="Wrong rate")
        outcome = TransitionOutcome(
            submission=submission,
            previous_status=SubmissionStatus.MANAGER_APPROVED,
            new_status=SubmissionStatus.ADMIN_REJECTED,
        )
        fake_db = FakeDB()
        client = self._client(fake_db)

        with patch(
            "timesheet_portal.routers.submissions.apply_submission_action",
            return_value=outcome,
        ) as apply_mock:
            response = client.post(
                "/api/submissions/11/reject",
                json={"actor_id": 1, "rejection_reason": "Wrong rate", "is_admin_action": True},
            )

        self.assertEqual(response.status_code, 200)
        self.assertEqual(apply_mock.call_args.args[2], SubmissionAction.ADMIN_REJECT)
        self.assertEqual(response.json()["status_label"], "Rejected")
        self.assertEqual(fake_db.audit_actions(), ["SUBMISSION_ADMIN_REJECT"])

    def test_process_payment_and_clarification(self) -> None:
        fake_db = FakeDB(submissions=[_submission(status=SubmissionStatus.MANAGER_APPROVED)])
        client = self._client(fake_db)

        response = client.post(
            "/api/submissions/11/request-clarification",
            json={"admin_id": 1, "message": "Which project were the overtime hours for?"},
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["status"], "NEEDS_CLARIFICATION")

        response = client.post("/api/submissions/11/process-payment", json={"admin_id": 1})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(
            response.json()["error"]["message"],
            "Submission must be MANAGER_APPROVED status to process payment",
        )

    def test_employee_submission_list_filters_require_pair(self) -> None:
        client = self._client(FakeDB(submissions=[_submission()]))

        ok_response = client.get("/api/employee/submissions", params={"employee_id": 7, "year": 2025, "month": 7})
        bad_response = client.get("/api/employee/submissions", params={"employee_id": 7, "month": 7})

        self.assertEqual(ok_response.status_code, 200)
        self.assertEqual([item["id"] for item in ok_response.json()], [11])
        self.assertEqual(bad_response.status_code, 422)

    def test_list_rejects_out_of_range_year(self) -> None:
        client = self._client(FakeDB(submissions=[_submission()]))

        paths = ("/api/employee/submissions", "/api/manager/submissions", "/api/admin/submissions")
        params = {"employee_id": 7, "manager_id": 3, "year": 10000, "month": 7}
        for path in paths:
            response = client.get(path, params=params)

            self.assertEqual(response.status_code, 422)
            self.assertEqual(response.json()["error"]["code"], "VALIDATION_ERROR")


if __name__ == "__main__":
    unittest.main()
