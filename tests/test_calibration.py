"""
Calibration tests.

Calibration must accept only frames carrying pose, landmarks and
expressions, finish after exactly the configured count, and derive the
baseline with population statistics.
"""

import unittest

from focus_engine.calibration import CalibrationCollector, is_usable_frame
from focus_engine.config import EngineConfig
from focus_engine.models import EngineStatus, FrameObservation
from tests.fixtures.synthetic_faces import make_blendshapes, make_frame, make_landmarks, rotation_matrix


class TestUsableFrames(unittest.TestCase):

    def test_complete_frame_is_usable(self):
        self.assertTrue(is_usable_frame(make_frame(0.0)))

    def test_missing_pose_is_rejected(self):
        self.assertFalse(is_usable_frame(make_frame(0.0, pose=False)))

    def test_missing_expressions_is_rejected(self):
        self.assertFalse(is_usable_frame(make_frame(0.0, blendshapes={})))

    def test_mesh_without_iris_points_is_rejected(self):
        frame = FrameObservation(timestamp=0.0, landmarks=make_landmarks(points=468),
                                 expressions=make_blendshapes(), pose_matrix=rotation_matrix())
        self.assertFalse(is_usable_frame(frame))


class TestCalibrationCollector(unittest.TestCase):

    def setUp(self):
        self.collector = CalibrationCollector(EngineConfig())

    def test_completes_after_exactly_target_frames(self):
        for i in range(29):
            self.assertIsNone(self.collector.observe(make_frame(i * 0.1)))
        self.assertFalse(self.collector.is_calibrated)
        self.assertEqual(self.collector.status, EngineStatus.CALIBRATING)

        profile = self.collector.observe(make_frame(2.9))
        self.assertIsNotNone(profile)
        self.assertTrue(self.collector.is_calibrated)
        self.assertEqual(profile.sample_count, 30)
        self.assertEqual(self.collector.status, EngineStatus.CALIBRATED)

    def test_invalid_frames_never_complete_calibration(self):
        for i in range(100):
            self.assertIsNone(self.collector.observe(make_frame(i * 0.1, pose=False)))
        self.assertFalse(self.collector.is_calibrated)
        self.assertEqual(self.collector.progress, 0)
        self.assertEqual(self.collector.status, EngineStatus.SHOW_FACE)

    def test_invalid_frames_do_not_count(self):
        for i in range(15):
            self.collector.observe(make_frame(i * 0.1))
            self.collector.observe(FrameObservation(timestamp=i * 0.1 + 0.05))
        self.assertEqual(self.collector.progress, 50)
        self.assertFalse(self.collector.is_calibrated)

    def test_profile_statistics(self):
        for i in range(30):
            gaze = 0.48 if i % 2 == 0 else 0.52
            self.collector.observe(make_frame(i * 0.1, gaze_x=gaze, yaw=10.0,
                                              browDownLeft=0.1, browDownRight=0.2))
        profile = self.collector.profile
        self.assertAlmostEqual(profile.base_gaze_x, 0.5, places=6)
        # Population std of an even 0.48/0.52 split
        self.assertAlmostEqual(profile.std_gaze_x, 0.02, places=6)
        self.assertAlmostEqual(profile.base_yaw, 10.0, places=6)
        self.assertAlmostEqual(profile.base_pitch, 0.0, places=6)
        self.assertAlmostEqual(profile.avg_eye_height, 0.03, places=6)
        self.assertAlmostEqual(profile.gaze_y_weight_factor, 1.0, places=6)
        self.assertAlmostEqual(profile.baseline("brow_down"), 0.15, places=6)
        self.assertEqual(profile.baseline("smile"), 0.0)

    def test_narrow_eyes_compress_weight_factor(self):
        for i in range(30):
            self.collector.observe(FrameObservation(
                timestamp=i * 0.1,
                landmarks=make_landmarks(eye_height=0.015),
                expressions=make_blendshapes(),
                pose_matrix=rotation_matrix(),
            ))
        self.assertAlmostEqual(self.collector.profile.gaze_y_weight_factor, 0.75, places=6)

    def test_reset_clears_profile(self):
        for i in range(30):
            self.collector.observe(make_frame(i * 0.1))
        self.collector.reset()
        self.assertFalse(self.collector.is_calibrated)
        self.assertEqual(self.collector.samples, [])
        self.assertEqual(self.collector.progress, 0)
        self.assertEqual(self.collector.status, EngineStatus.SHOW_FACE)

    def test_configured_frame_count(self):
        collector = CalibrationCollector(EngineConfig(CALIBRATION_FRAME_COUNT=5))
        for i in range(4):
            collector.observe(make_frame(i * 0.1))
        self.assertEqual(collector.progress, 80)
        self.assertIsNotNone(collector.observe(make_frame(0.5)))


if __name__ == "__main__":
    unittest.main()
