"""
Gaze analysis tests: iris ratios from landmarks and the yaw-compensated
gaze-away decision.
"""

import unittest

from focus_engine.config import EngineConfig
from focus_engine.gaze import GazeAnalyzer
from focus_engine.models import CalibrationProfile, GazeRatio
from tests.fixtures.synthetic_faces import make_landmarks


def make_profile(base_gaze_x=0.5, std_gaze_x=0.01, base_yaw=0.0):
    return CalibrationProfile(
        base_yaw=base_yaw, base_pitch=0.0, base_roll=0.0,
        base_gaze_x=base_gaze_x, base_gaze_y=0.0,
        std_gaze_x=std_gaze_x, std_gaze_y=0.0,
        avg_eye_height=0.03, gaze_y_weight_factor=1.0,
    )


def ratio(x):
    return GazeRatio(left_x=x, right_x=x, left_y=0.0, right_y=0.0, avg_eye_height=0.03)


class TestGazeRatio(unittest.TestCase):

    def setUp(self):
        self.analyzer = GazeAnalyzer(EngineConfig())

    def test_centered_iris(self):
        r = self.analyzer.gaze_ratio(make_landmarks(gaze_x=0.5))
        self.assertAlmostEqual(r.left_x, 0.5, places=6)
        self.assertAlmostEqual(r.right_x, 0.5, places=6)
        self.assertAlmostEqual(r.avg_eye_height, 0.03, places=6)

    def test_shifted_iris(self):
        r = self.analyzer.gaze_ratio(make_landmarks(gaze_x=0.3, gaze_y=0.2))
        self.assertAlmostEqual(r.avg_x, 0.3, places=6)
        self.assertAlmostEqual(r.avg_y, 0.2, places=6)

    def test_closed_eye_height_is_floored(self):
        r = self.analyzer.gaze_ratio(make_landmarks(gaze_x=0.5, eye_height=0.0))
        self.assertEqual(r.avg_eye_height, 0.0)
        self.assertEqual(r.avg_y, 0.0)

    def test_zero_width_eye_stays_finite(self):
        lm = make_landmarks(gaze_x=0.5).copy()
        lm[133, 0] = lm[33, 0]
        lm[263, 0] = lm[362, 0]
        r = self.analyzer.gaze_ratio(lm)
        self.assertTrue(abs(r.avg_x) < float("inf"))


class TestGazeAway(unittest.TestCase):

    def setUp(self):
        self.analyzer = GazeAnalyzer(EngineConfig(GAZE_AWAY_THRESHOLD=0.05))
        self.profile = make_profile()

    def test_large_offset_is_away(self):
        # diff 0.10 > max(0.05, 3 * 0.01)
        self.assertTrue(self.analyzer.is_gaze_away(ratio(0.60), 0.0, self.profile))

    def test_small_offset_is_not_away(self):
        # diff 0.02 <= 0.05
        self.assertFalse(self.analyzer.is_gaze_away(ratio(0.52), 0.0, self.profile))

    def test_threshold_grows_with_calibration_noise(self):
        noisy = make_profile(std_gaze_x=0.03)
        self.assertAlmostEqual(self.analyzer.threshold(noisy), 0.09)
        self.assertFalse(self.analyzer.is_gaze_away(ratio(0.58), 0.0, noisy))

    def test_head_turn_shifts_expected_gaze(self):
        # 10 degrees to the right moves the expected iris position 0.04 left
        away, expected, _ = self.analyzer.evaluate(ratio(0.46), 10.0, self.profile)
        self.assertAlmostEqual(expected, 0.46)
        self.assertFalse(away)
        self.assertTrue(self.analyzer.is_gaze_away(ratio(0.56), 10.0, self.profile))

    def test_compensation_can_be_disabled(self):
        analyzer = GazeAnalyzer(EngineConfig(GAZE_AWAY_THRESHOLD=0.05, GAZE_YAW_COMPENSATION=False))
        self.assertEqual(analyzer.expected_gaze_x(10.0, self.profile), 0.5)
        self.assertFalse(analyzer.is_gaze_away(ratio(0.52), 10.0, self.profile))
        self.assertTrue(analyzer.is_gaze_away(ratio(0.44), 10.0, self.profile))

    def test_legacy_profile_is_more_tolerant(self):
        analyzer = GazeAnalyzer(EngineConfig.for_profile("legacy"))
        self.assertFalse(analyzer.is_gaze_away(ratio(0.60), 0.0, self.profile))


if __name__ == "__main__":
    unittest.main()
