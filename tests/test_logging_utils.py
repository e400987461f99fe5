import json
import logging
import sys
import unittest

from timesheet_portal.logging_utils import JsonFormatter


class JsonFormatterTests(unittest.TestCase):
    def _record(self, **extra) -> logging.LogRecord:  # type: ignore[no-untyped-def]
        logger = logging.getLogger("timesheet_portal.test")
        return logger.makeRecord(
            "timesheet_portal.test",
            logging.WARNING,
            __file__,
            10,
            "holiday_rules_unavailable",
            (),
            None,
            extra=extra,
        )

    def test_extra_fields_are_flattened(self) -> None:
        formatter = JsonFormatter(service="TimesheetPortal")

        payload = json.loads(formatter.format(self._record(request_id="req-1", submission_id=11)))

        self.assertEqual(payload["level"], "WARNING")
        self.assertEqual(payload["logger"], "timesheet_portal.test")
        self.assertEqual(payload["message"], "holiday_rules_unavailable")
        self.assertEqual(payload["service"], "TimesheetPortal")
        self.assertEqual(payload["request_id"], "req-1")
        self.assertEqual(payload["submission_id"], 11)
        self.assertNotIn("args", payload)
        self.assertNotIn("exception", payload)

    def test_exception_is_rendered(self) -> None:
        formatter = JsonFormatter()
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            record = self._record()
            record.exc_info = sys.exc_info()

        payload = json.loads(formatter.format(record))

        self.assertIn("RuntimeError: boom", payload["exception"])
        self.assertNotIn("service", payload)


if __name__ == "__main__":
    unittest.main()
