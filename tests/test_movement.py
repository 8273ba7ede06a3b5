"""
Restless movement tests.
"""

import unittest

from focus_engine.config import EngineConfig
from focus_engine.movement import MovementAnalyzer
from tests.fixtures.synthetic_faces import make_landmarks


class TestMovementAnalyzer(unittest.TestCase):

    def setUp(self):
        self.analyzer = MovementAnalyzer(EngineConfig())

    def test_still_face_is_never_restless(self):
        for _ in range(60):
            self.assertFalse(self.analyzer.update(make_landmarks(nose=(0.5, 0.5))))

    def test_jitter_needs_half_full_history(self):
        results = []
        for i in range(20):
            x = 0.4 if i % 2 == 0 else 0.6
            results.append(self.analyzer.update(make_landmarks(nose=(x, 0.5))))
        # std 0.1 > 0.07, but only reported from the 15th sample on
        self.assertEqual(results[:14], [False] * 14)
        self.assertTrue(all(results[14:]))

    def test_vertical_movement_counts(self):
        for i in range(30):
            y = 0.3 if i % 2 == 0 else 0.7
            restless = self.analyzer.update(make_landmarks(nose=(0.5, y)))
        self.assertTrue(restless)

    def test_small_sway_is_tolerated(self):
        for i in range(30):
            x = 0.48 if i % 2 == 0 else 0.52
            self.assertFalse(self.analyzer.update(make_landmarks(nose=(x, 0.5))))

    def test_history_is_bounded_and_resettable(self):
        for _ in range(50):
            self.analyzer.update(make_landmarks())
        self.assertEqual(len(self.analyzer.history), 30)
        self.analyzer.reset()
        self.assertEqual(len(self.analyzer.history), 0)


if __name__ == "__main__":
    unittest.main()
