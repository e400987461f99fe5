#!/usr/bin/env python
from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import create_engine, text

from timesheet_portal.settings import get_settings

EXPECTED_HEAD = "0002_holidays"
REQUIRED_TABLES = ("projects", "employees", "submissions", "audit_logs", "holidays")


def _sample_ids(conn: Any, sql: str) -> list[Any]:
    return [row[0] for row in conn.execute(text(sql)).fetchall()]


def run() -> dict[str, Any]:
    engine = create_engine(get_settings().database_url)
    report: dict[str, Any] = {
        "generated_at_utc": datetime.now(timezone.utc).isoformat(),
        "checks": [],
    }

    def add(name: str, status: str, details: dict[str, Any]) -> None:
        report["checks"].append({"name": name, "status": status, "details": details})

    with engine.connect() as conn:
        tables = set(
            conn.execute(
                text(
                    """
                    select table_name
                    from information_schema.tables
                    where table_schema='public'
                    """
                )
            ).scalars()
        )

        current_versions: list[str] = []
        if "alembic_version" in tables:
            current_versions = list(conn.execute(text("select version_num from alembic_version")).scalars())
        add("alembic_version", "ok" if current_versions else "fail", {"current": current_versions})
        add(
            "migration_up_to_date",
            "ok" if EXPECTED_HEAD in current_versions else "warn",
            {"expected_head": EXPECTED_HEAD, "current": current_versions},
        )

        missing_tables = [table for table in REQUIRED_TABLES if table not in tables]
        add("missing_tables", "fail" if missing_tables else "ok", {"tables": missing_tables})

        if "submissions" in tables:
            duplicate_months = conn.execute(
                text(
                    """
                    select employee_id, submission_month, count(*)
                    from submissions
                    group by employee_id, submission_month
                    having count(*) > 1
                    """
                )
            ).fetchall()
            add(
                "duplicate_submission_month",
                "fail" if duplicate_months else "ok",
                {"rows": [[row[0], str(row[1]), row[2]] for row in duplicate_months]},
            )

            orphan_submissions = _sample_ids(
                conn,
                """
                select s.id
                from submissions s
                left join employees e on e.id = s.employee_id
                where e.id is null
                limit 20
                """,
            )
            add(
                "submission_orphan_employee",
                "fail" if orphan_submissions else "ok",
                {"sample_ids": orphan_submissions},
            )

            stale_managers = _sample_ids(
                conn,
                """
                select s.id
                from submissions s
                join employees e on e.id = s.employee_id
                where e.manager_id is not null
                  and s.manager_id is distinct from e.manager_id
                limit 20
                """,
            )
            add(
                "submission_manager_out_of_sync",
                "warn" if stale_managers else "ok",
                {"sample_ids": stale_managers},
            )

        if "holidays" in tables:
            empty_holidays = _sample_ids(
                conn,
                """
                select id
                from holidays
                where is_active = true and jsonb_array_length(dates) = 0
                limit 20
                """,
            )
            add(
                "active_holiday_without_dates",
                "warn" if empty_holidays else "ok",
                {"sample_ids": empty_holidays},
            )

    return report


if __name__ == "__main__":
    print(json.dumps(run(), ensure_ascii=False, indent=2))
