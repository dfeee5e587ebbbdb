"""
NITRALINK - Analysis Pipeline Tests
tests/core/test_pipeline.py

WHY THESE TESTS:
- run() is the whole contract: progress notifications, then one terminal
  message, and never an exception
- Invalid input must fail fast with no progress emitted
"""

import copy
import unittest

from loguru import logger

from nitralink.config import Settings
from nitralink.core.pipeline import AnalysisPipeline
from nitralink.schemas.analysis import CompleteMessage, ErrorMessage
from nitralink.utils.exceptions import InvalidInputError
from nitralink.utils.logger import setup_logging


def well(lon, lat, value):
    return {
        "type": "Feature",
        "geometry": {"type": "Point", "coordinates": [lon, lat]},
        "properties": {"nitr_ran": value},
    }


def square(x0, y0, x1, y1, **properties):
    return {
        "type": "Feature",
        "geometry": {
            "type": "Polygon",
            "coordinates": [[[x0, y0], [x1, y0], [x1, y1], [x0, y1], [x0, y0]]],
        },
        "properties": properties,
    }


def collection(*features):
    return {"type": "FeatureCollection", "features": list(features)}


class TestAnalysisPipeline(unittest.TestCase):
    """Test suite for AnalysisPipeline"""

    def setUp(self):
        self.config = Settings(GRID_CELL_SIZE=0.5, IDW_SEARCH_RADIUS=2.0)
        self.pipeline = AnalysisPipeline(config=self.config)
        self.progress = []

    def run_pipeline(self, payload):
        return self.pipeline.run(payload, emit=self.progress.append)

    def two_well_payload(self, **overrides):
        payload = {
            "measurementPoints": collection(well(0, 0, 10), well(1, 0, 20)),
            "regions": collection(square(0, 0, 1, 1, GEOID="A", canrate=0.2)),
            "interpolationPower": 2,
            "boundingBox": [0, 0, 1, 1],
        }
        payload.update(overrides)
        return payload

    def test_two_well_example_end_to_end(self):
        result = self.run_pipeline(self.two_well_payload())

        self.assertIsInstance(result, CompleteMessage)
        grid = {
            tuple(f["geometry"]["coordinates"]): f["properties"]["idw"]
            for f in result.interpolated_grid["features"]
        }
        self.assertEqual(len(grid), 9)
        self.assertEqual(grid[(0.0, 0.0)], 10.0)
        self.assertEqual(grid[(1.0, 0.0)], 20.0)
        self.assertAlmostEqual(grid[(0.5, 0.0)], 15.0)
        self.assertAlmostEqual(grid[(0.0, 0.5)], (4 * 10 + 0.8 * 20) / 4.8)

        props = result.updated_regions["features"][0]["properties"]
        self.assertEqual(props["nitrate_point_count"], 9)
        self.assertAlmostEqual(props["avg_nitrate"], sum(grid.values()) / 9)
        self.assertIsNone(result.regression)

    def test_progress_milestones_in_order(self):
        self.run_pipeline(self.two_well_payload())

        self.assertEqual([p.percent for p in self.progress], [10, 40, 90, 100])
        self.assertEqual(self.progress[0].message, "Starting IDW interpolation...")
        self.assertEqual(self.progress[-1].message, "Analysis complete!")

    def test_two_regions_give_no_regression(self):
        payload = self.two_well_payload(
            regions=collection(
                square(0, 0, 0.5, 1, GEOID="A", canrate=0.1),
                square(0.5, 0, 1, 1, GEOID="B", canrate=0.3),
            )
        )

        result = self.run_pipeline(payload)

        self.assertIsInstance(result, CompleteMessage)
        self.assertIsNone(result.regression)
        for feature in result.updated_regions["features"]:
            self.assertGreater(feature["properties"]["avg_nitrate"], 0)
            self.assertEqual(feature["properties"]["nitrate_point_count"], 6)

    def test_regression_with_three_tracts(self):
        payload = {
            "measurementPoints": collection(well(0, 0.5, 2.0), well(3, 0.5, 8.0)),
            "regions": collection(
                square(0, 0, 1, 1, GEOID="A", canrate=0.1),
                square(1, 0, 2, 1, GEOID="B", canrate=0.2),
                square(2, 0, 3, 1, GEOID="C", canrate=0.35),
            ),
            "interpolationPower": 2,
            "boundingBox": [0, 0, 3, 1],
        }
        pipeline = AnalysisPipeline(config=Settings(GRID_CELL_SIZE=0.5, IDW_SEARCH_RADIUS=5.0))

        result = pipeline.run(payload)

        self.assertIsInstance(result, CompleteMessage)
        self.assertEqual(result.regression.n, 3)
        self.assertGreater(result.regression.slope, 0)
        self.assertEqual([d.tract_id for d in result.regression.tract_data], ["A", "B", "C"])

    def test_missing_bbox_is_invalid_input(self):
        payload = self.two_well_payload()
        del payload["boundingBox"]

        result = self.run_pipeline(payload)

        self.assertIsInstance(result, ErrorMessage)
        self.assertTrue(result.message.startswith("Invalid input data"))
        self.assertEqual(result.error["error"], "InvalidInputError")
        self.assertIsNone(result.interpolated_grid)
        self.assertIsNone(result.updated_regions)
        self.assertIsNone(result.regression)
        self.assertEqual(self.progress, [])

    def test_empty_collections_are_invalid_input(self):
        result = self.run_pipeline(self.two_well_payload(regions=collection()))

        self.assertIsInstance(result, ErrorMessage)
        self.assertIn("regions", result.message)
        self.assertEqual(self.progress, [])

    def test_non_positive_power_is_invalid_input(self):
        result = self.run_pipeline(self.two_well_payload(interpolationPower=0))

        self.assertIsInstance(result, ErrorMessage)
        self.assertTrue(result.message.startswith("Invalid input data"))

    def test_non_mapping_payload(self):
        result = self.run_pipeline(["not", "a", "request"])

        self.assertIsInstance(result, ErrorMessage)
        self.assertEqual(result.message, "Invalid input data: request payload must be a mapping")

    def test_legacy_field_names(self):
        payload = {
            "wellData": collection(well(0, 0, 10), well(1, 0, 20)),
            "tractData": collection(square(0, 0, 1, 1)),
            "k": 2,
            "bbox": [0, 0, 1, 1],
        }

        result = self.run_pipeline(payload)

        self.assertIsInstance(result, CompleteMessage)

    def test_stage_failure_is_reported(self):
        polygon_well = {
            "type": "Feature",
            "geometry": {"type": "Polygon", "coordinates": [[[0, 0], [1, 0], [1, 1], [0, 0]]]},
            "properties": {"nitr_ran": 1.0},
        }
        payload = self.two_well_payload(measurementPoints=collection(polygon_well))

        result = self.run_pipeline(payload)

        self.assertIsInstance(result, ErrorMessage)
        self.assertEqual(result.error["error"], "InvalidGeometryError")
        self.assertEqual(result.error["details"]["stage"], "interpolation")
        # The stage started, so its opening notification went out
        self.assertEqual([p.percent for p in self.progress], [10])

    def test_malformed_tract_properties_do_not_abort_run(self):
        listed = square(0, 0, 1, 1)
        listed["properties"] = []
        payload = self.two_well_payload(
            regions=collection(listed, square(0, 0, 1, 1, GEOID="B", canrate=1.0))
        )

        result = self.run_pipeline(payload)

        self.assertIsInstance(result, CompleteMessage)
        features = result.updated_regions["features"]
        self.assertEqual(features[0]["properties"]["nitrate_point_count"], 0)
        self.assertEqual(features[1]["properties"]["nitrate_point_count"], 9)

    def test_failed_tracts_are_summarised_in_logs(self):
        setup_logging("testing")
        records = []
        sink_id = logger.add(lambda message: records.append(message.record), level="WARNING", format="{message}")
        try:
            broken = {"type": "Feature", "geometry": None, "properties": {"GEOID": "X"}}
            self.run_pipeline(self.two_well_payload(regions=collection(broken, square(0, 0, 1, 1))))
        finally:
            logger.remove(sink_id)

        summary = [r for r in records if r["message"] == "Tracts defaulted to zero statistics"]
        self.assertEqual(len(summary), 1)
        self.assertEqual(summary[0]["extra"]["failed_tracts"], 1)
        self.assertEqual(summary[0]["extra"]["failures"][0]["tract_index"], 0)
        self.assertIn("InvalidGeometryError", summary[0]["extra"]["failures"][0]["reason"])
        self.assertEqual(summary[0]["extra"]["logger"], "nitralink.core.pipeline")

    def test_input_is_not_mutated(self):
        payload = self.two_well_payload()
        before = copy.deepcopy(payload)

        self.run_pipeline(payload)

        self.assertEqual(payload, before)

    def test_validate_collects_field_errors(self):
        with self.assertRaises(InvalidInputError) as ctx:
            AnalysisPipeline.validate({"boundingBox": [0, 0, 1]})

        locations = {err["loc"] for err in ctx.exception.details["errors"]}
        self.assertIn("measurement_points", locations)
        self.assertIn("regions", locations)


if __name__ == "__main__":
    unittest.main()
