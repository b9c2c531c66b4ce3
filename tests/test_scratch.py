from __future__ import annotations

import unittest

from scratchpromo.config import DEFAULT_CAMPAIGN
from scratchpromo.scratch import RevealState, ScratchRevealDetector


class ScratchRevealDetectorTests(unittest.TestCase):
    def _strip(self, on_reveal=None) -> ScratchRevealDetector:
        # 25 samples in a row; a radius of 0.5 clears exactly one sample per drag.
        return ScratchRevealDetector(
            25, 1, radius=0.5, threshold=0.75, on_reveal=on_reveal
        )

    def test_reveals_once_after_crossing_threshold(self) -> None:
        calls = []
        detector = self._strip(on_reveal=lambda: calls.append(detector.cleared_fraction))
        detector.press()

        transitions = []
        for i in range(18):
            transitions.append(detector.drag(i + 0.5, 0.5))
        self.assertAlmostEqual(detector.cleared_fraction, 0.72)
        self.assertIs(detector.state, RevealState.ACTIVE)

        transitions.append(detector.drag(18.5, 0.5))
        self.assertAlmostEqual(detector.cleared_fraction, 0.76)
        self.assertIs(detector.state, RevealState.REVEALED)

        for i in range(19, 25):
            transitions.append(detector.drag(i + 0.5, 0.5))
        transitions.append(detector.release())

        self.assertEqual(transitions.count(True), 1)
        self.assertEqual(calls, [0.76])
        self.assertAlmostEqual(detector.cleared_fraction, 0.76)

    def test_exact_threshold_does_not_reveal(self) -> None:
        detector = ScratchRevealDetector(4, 1, radius=0.5, threshold=0.75)
        detector.press()
        for i in range(3):
            detector.drag(i + 0.5, 0.5)
        self.assertAlmostEqual(detector.cleared_fraction, 0.75)
        self.assertFalse(detector.release())
        self.assertFalse(detector.revealed)

    def test_drag_without_press_is_ignored(self) -> None:
        detector = self._strip()
        self.assertFalse(detector.drag(0.5, 0.5))
        self.assertEqual(detector.cleared_samples, 0)

        detector.press()
        detector.drag(0.5, 0.5)
        detector.release()
        detector.drag(1.5, 0.5)
        self.assertEqual(detector.cleared_samples, 1)

    def test_repeated_strokes_do_not_double_count(self) -> None:
        detector = self._strip()
        detector.press()
        for _ in range(5):
            detector.drag(3.5, 0.5)
        self.assertEqual(detector.cleared_samples, 1)
        self.assertTrue(detector.is_cleared(3, 0))
        self.assertFalse(detector.is_cleared(4, 0))

    def test_eraser_is_circular_and_clipped(self) -> None:
        detector = ScratchRevealDetector(10, 10, radius=2.2, threshold=0.9)
        detector.press()
        detector.drag(0.0, 0.0)
        # Samples at (0.5, 0.5), (1.5, 0.5), (0.5, 1.5) and (1.5, 1.5) lie within 2.2.
        self.assertEqual(detector.cleared_samples, 4)
        self.assertTrue(detector.is_cleared(1, 1))
        self.assertFalse(detector.is_cleared(2, 0))

    def test_full_sweep_of_default_card_reveals(self) -> None:
        calls = []
        detector = ScratchRevealDetector.from_config(
            DEFAULT_CAMPAIGN, on_reveal=lambda: calls.append(True)
        )
        self.assertEqual((detector.width, detector.height), (288, 160))
        detector.press()
        for y in range(0, 160, 20):
            for x in range(0, 288, 10):
                detector.drag(x, y)
        detector.release()
        self.assertTrue(detector.revealed)
        self.assertEqual(calls, [True])

    def test_invalid_geometry_rejected(self) -> None:
        with self.assertRaises(ValueError):
            ScratchRevealDetector(0, 10)
        with self.assertRaises(ValueError):
            ScratchRevealDetector(10, 10, radius=0)
        with self.assertRaises(ValueError):
            ScratchRevealDetector(10, 10, threshold=1.0)


if __name__ == "__main__":
    unittest.main()
