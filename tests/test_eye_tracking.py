"""
Eye-tracking analyzer tests.

Uses synthetic 68-point landmarks (tests/fixtures/synthetic_landmarks.py) and explicit
tick timestamps; the session always starts at t=0.
"""

import sys
import os
import unittest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from analysis.eye_tracking import EyeTrackingAnalyzer, EyeTrackingSample
from analysis.landmark_frame import BoundingBox, eye_aspect_ratio, OPEN_EYE_EAR
from analysis.session_state import SessionState
from tests.fixtures.synthetic_landmarks import make_box, make_landmarks


class TestEyeAspectRatio(unittest.TestCase):
    """EAR geometry helpers."""

    def test_open_and_closed_eye(self):
        lm = make_landmarks()
        self.assertAlmostEqual(eye_aspect_ratio(lm[36:42]), 0.4, places=6)
        closed = make_landmarks(eyes_open=False)
        self.assertLess(eye_aspect_ratio(closed[36:42]), 0.25)

    def test_degenerate_eye_is_not_a_blink(self):
        """Collapsed eye points fall back to an open-eye EAR."""
        import numpy as np
        self.assertEqual(eye_aspect_ratio(np.zeros((6, 2))), OPEN_EYE_EAR)
        self.assertEqual(eye_aspect_ratio(np.zeros((3, 2))), OPEN_EYE_EAR)


class TestBlinkDetection(unittest.TestCase):
    """Blink events are debounced by BLINK_DEBOUNCE_SEC (0.2 s)."""

    def setUp(self):
        self.analyzer = EyeTrackingAnalyzer(blink_threshold=0.25, blink_debounce_sec=0.2)
        self.session = SessionState(session_start=0.0)
        self.closed = make_landmarks(eyes_open=False)
        self.box = make_box()

    def test_two_closed_ticks_within_debounce_count_once(self):
        self.analyzer.analyze(self.closed, self.box, self.session, now=10.0)
        self.analyzer.analyze(self.closed, self.box, self.session, now=10.1)
        self.assertEqual(self.session.blink_count, 1)

    def test_two_closed_ticks_201ms_apart_count_twice(self):
        self.analyzer.analyze(self.closed, self.box, self.session, now=10.0)
        self.analyzer.analyze(self.closed, self.box, self.session, now=10.201)
        self.assertEqual(self.session.blink_count, 2)
        self.assertEqual(self.session.last_blink_time, 10.201)

    def test_open_eyes_do_not_blink(self):
        self.analyzer.analyze(make_landmarks(), self.box, self.session, now=1.0)
        self.assertEqual(self.session.blink_count, 0)
        self.assertIsNone(self.session.last_blink_time)

    def test_blink_rate_uses_session_minutes(self):
        sample = self.analyzer.analyze(self.closed, self.box, self.session, now=60.0)
        self.assertAlmostEqual(sample.blink_rate, 1.0)

    def test_blink_rate_floor_at_session_start(self):
        """Elapsed time is floored at 0.1 minute."""
        sample = self.analyzer.analyze(self.closed, self.box, self.session, now=0.5)
        self.assertAlmostEqual(sample.blink_rate, 10.0)

    def test_pupil_proxy(self):
        sample = self.analyzer.analyze(make_landmarks(), self.box, self.session, now=1.0)
        self.assertAlmostEqual(sample.pupil_dilation, 0.8, places=6)


class TestEyeContact(unittest.TestCase):
    """Eye contact ratio over the session."""

    def setUp(self):
        self.analyzer = EyeTrackingAnalyzer()
        self.session = SessionState(session_start=0.0)
        self.box = make_box()
        self.looking = make_landmarks()
        self.away = make_landmarks(shift=(60.0, 0.0))

    def test_first_tick_has_no_contact_time(self):
        sample = self.analyzer.analyze(self.looking, self.box, self.session, now=0.0)
        self.assertEqual(sample.eye_contact_duration, 0.0)
        self.assertEqual(self.session.eye_contact_start, 0.0)

    def test_open_run_counts_toward_ratio(self):
        self.analyzer.analyze(self.looking, self.box, self.session, now=0.0)
        sample = self.analyzer.analyze(self.looking, self.box, self.session, now=30.0)
        self.assertAlmostEqual(sample.eye_contact_duration, 1.0)
        self.assertEqual(self.session.total_eye_contact_sec, 0.0)

    def test_looking_run_is_folded_when_gaze_leaves(self):
        self.analyzer.analyze(self.looking, self.box, self.session, now=0.0)
        self.analyzer.analyze(self.away, self.box, self.session, now=60.0)
        self.assertAlmostEqual(self.session.total_eye_contact_sec, 60.0)
        self.assertIsNone(self.session.eye_contact_start)
        sample = self.analyzer.analyze(self.away, self.box, self.session, now=120.0)
        self.assertAlmostEqual(sample.eye_contact_duration, 0.5)

    def test_never_looking(self):
        self.analyzer.analyze(self.away, self.box, self.session, now=0.0)
        sample = self.analyzer.analyze(self.away, self.box, self.session, now=30.0)
        self.assertEqual(sample.eye_contact_duration, 0.0)


class TestGaze(unittest.TestCase):
    """Gaze stability, movement speed and fixation from the position buffer."""

    def setUp(self):
        self.analyzer = EyeTrackingAnalyzer(gaze_normalization_px=100)
        self.session = SessionState(session_start=0.0)
        self.box = make_box()

    def test_single_tick_assumes_stable(self):
        sample = self.analyzer.analyze(make_landmarks(), self.box, self.session, now=1.0)
        self.assertEqual(sample.gaze_stability, 1.0)
        self.assertEqual(sample.eye_movement_speed, 0.0)
        self.assertEqual(sample.fixation_duration, 1.0)

    def test_drift_reduces_stability(self):
        self.analyzer.analyze(make_landmarks(), self.box, self.session, now=0.0)
        sample = self.analyzer.analyze(make_landmarks(shift=(30.0, 0.0)), self.box, self.session, now=1.0)
        self.assertAlmostEqual(sample.gaze_stability, 0.7)
        self.assertAlmostEqual(sample.eye_movement_speed, 30.0)
        self.assertAlmostEqual(sample.fixation_duration, 0.7)

    def test_large_drift_clamps_to_zero(self):
        self.analyzer.analyze(make_landmarks(), self.box, self.session, now=0.0)
        sample = self.analyzer.analyze(make_landmarks(shift=(150.0, 0.0)), self.box, self.session, now=1.0)
        self.assertEqual(sample.gaze_stability, 0.0)
        self.assertAlmostEqual(sample.fixation_duration, 0.1)

    def test_zero_elapsed_time_gives_zero_speed(self):
        self.analyzer.analyze(make_landmarks(), self.box, self.session, now=5.0)
        sample = self.analyzer.analyze(make_landmarks(shift=(20.0, 0.0)), self.box, self.session, now=5.0)
        self.assertEqual(sample.eye_movement_speed, 0.0)
        self.assertEqual(sample.fixation_duration, 1.0)

    def test_buffer_is_capped(self):
        for i in range(15):
            self.analyzer.analyze(make_landmarks(shift=(float(i), 0.0)), self.box, self.session, now=float(i))
        self.assertEqual(len(self.session.gaze_positions), 10)
        # Oldest kept entry is tick 5
        self.assertEqual(self.session.gaze_positions[0][2], 5.0)


class TestDegenerateInput(unittest.TestCase):
    """Degenerate geometry resolves to defaults instead of raising."""

    def test_zero_width_box(self):
        analyzer = EyeTrackingAnalyzer()
        session = SessionState(session_start=0.0)
        box = BoundingBox(x=100, y=100, width=0, height=0)
        analyzer.analyze(make_landmarks(), box, session, now=0.0)
        sample = analyzer.analyze(make_landmarks(shift=(40.0, 0.0)), box, session, now=1.0)
        self.assertEqual(sample.eye_contact_duration, 0.0)
        self.assertIsNone(session.eye_contact_start)
        self.assertEqual(sample.gaze_stability, 1.0)
        self.assertEqual(sample.fixation_duration, 1.0)

    def test_ranges_hold_for_extreme_input(self):
        analyzer = EyeTrackingAnalyzer()
        session = SessionState(session_start=0.0)
        box = make_box()
        samples = []
        for i, shift in enumerate([(0, 0), (500, -300), (-800, 900), (0, 0)]):
            samples.append(analyzer.analyze(
                make_landmarks(eyes_open=bool(i % 2), shift=shift), box, session, now=i * 0.3
            ))
        for s in samples:
            self.assertIsInstance(s, EyeTrackingSample)
            self.assertGreaterEqual(s.blink_rate, 0.0)
            self.assertGreaterEqual(s.eye_movement_speed, 0.0)
            for v in (s.eye_contact_duration, s.gaze_stability, s.pupil_dilation, s.fixation_duration):
                self.assertGreaterEqual(v, 0.0)
                self.assertLessEqual(v, 1.0)


if __name__ == "__main__":
    unittest.main()
