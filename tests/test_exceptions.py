"""
NITRALINK - Exception Tests
tests/test_exceptions.py
"""

import unittest

from nitralink.utils.exceptions import (
    AnalysisError,
    InvalidGeometryError,
    InvalidInputError,
    WorkerCrashedError,
    error_payload,
)


class TestExceptions(unittest.TestCase):

    def test_invalid_input_prefix(self):
        err = InvalidInputError("regions: Field required", errors=[{"loc": "regions", "msg": "Field required"}])

        self.assertEqual(err.message, "Invalid input data: regions: Field required")
        self.assertEqual(err.details["errors"][0]["loc"], "regions")

    def test_geometry_error_details(self):
        err = InvalidGeometryError("bad ring", geometry_type="Polygon")

        self.assertEqual(err.details, {"geometry_type": "Polygon", "operation": "geometry_validation"})
        self.assertIn("bad ring", str(err))

    def test_payload_for_own_errors(self):
        payload = error_payload(AnalysisError("regression failed: boom", stage="regression"))

        self.assertEqual(payload["error"], "AnalysisError")
        self.assertEqual(payload["details"]["stage"], "regression")

    def test_payload_for_foreign_errors(self):
        self.assertEqual(
            error_payload(ZeroDivisionError("division by zero")),
            {"error": "ZeroDivisionError", "message": "division by zero", "details": {}},
        )
        self.assertEqual(error_payload(KeyError())["message"], "KeyError")

    def test_crash_carries_exit_code(self):
        err = WorkerCrashedError(-9)

        self.assertEqual(err.details["exitcode"], -9)
        self.assertIn("-9", err.message)


if __name__ == "__main__":
    unittest.main()
