"""
NITRALINK - Message Schema Tests
tests/test_schemas.py

WHY THESE TESTS:
- The caller reads camelCase keys (interpolatedGrid, updatedRegions, ...)
- A dumped notification must parse back into the same message type
"""

import unittest

from nitralink.schemas.analysis import (
    CompleteMessage,
    ErrorMessage,
    ProgressMessage,
    RegionDetail,
    parse_worker_message,
)


class TestWireMessages(unittest.TestCase):

    def test_complete_message_keys(self):
        message = CompleteMessage(
            interpolated_grid={"type": "FeatureCollection", "features": []},
            updated_regions={"type": "FeatureCollection", "features": []},
        )

        self.assertEqual(
            sorted(message.model_dump(by_alias=True)),
            ["interpolatedGrid", "kind", "regression", "updatedRegions"],
        )

    def test_error_message_keys(self):
        wire = ErrorMessage(message="Invalid input data: regions: Field required").model_dump(by_alias=True)

        self.assertEqual(wire["kind"], "error")
        self.assertIsNone(wire["interpolatedGrid"])
        self.assertIsNone(wire["updatedRegions"])
        self.assertIsNone(wire["regression"])

    def test_region_detail_keys(self):
        wire = RegionDetail(tract_id="A", nitrate=2.0, cancer_rate=0.1, point_count=4).model_dump(by_alias=True)

        self.assertEqual(wire, {"tractId": "A", "nitrate": 2.0, "cancerRate": 0.1, "pointCount": 4})

    def test_round_trip_through_wire(self):
        for message in (
            ProgressMessage(message="Starting IDW interpolation...", percent=10),
            ErrorMessage(message="boom", error={"error": "ValueError", "message": "boom", "details": {}}),
        ):
            parsed = parse_worker_message(message.model_dump(by_alias=True))
            self.assertEqual(parsed, message)

    def test_snake_case_still_accepted(self):
        parsed = parse_worker_message(
            {"kind": "complete", "interpolated_grid": {"features": []}, "updated_regions": {"features": []}}
        )

        self.assertIsInstance(parsed, CompleteMessage)
        self.assertEqual(parsed.updated_regions, {"features": []})


if __name__ == "__main__":
    unittest.main()
