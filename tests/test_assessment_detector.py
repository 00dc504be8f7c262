"""
Assessment detector tests.

Covers the tick pipeline, the full-analysis throttle, no-face handling,
provider failures and session reset. The landmark provider is mocked.
"""

import sys
import os
import unittest
from unittest.mock import MagicMock

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from analysis.landmark_frame import LandmarkFrame
from analysis.mental_health import RiskLevel
from assessment_detector import DetectionResult, MentalHealthDetector
from tests.fixtures.synthetic_landmarks import make_box, make_frame


def _detector(**kwargs) -> MentalHealthDetector:
    kwargs.setdefault("session_start", 0.0)
    kwargs.setdefault("full_analysis_interval", 0.5)
    return MentalHealthDetector(**kwargs)


class TestProcessFrame(unittest.TestCase):
    """One tick end to end."""

    def test_face_produces_assessment(self):
        detector = _detector()
        result = detector.process_frame(make_frame(), now=1.0)
        self.assertIsInstance(result, DetectionResult)
        self.assertTrue(result.face_detected)
        self.assertFalse(result.used_cache)
        self.assertEqual(result.emotion.emotion, "neutral")
        self.assertAlmostEqual(result.emotion.confidence, 0.9)
        self.assertIsNotNone(result.assessment)
        self.assertIn(result.assessment.overall_risk, list(RiskLevel))
        self.assertEqual(result.confidence, 0.3)
        self.assertEqual(result.emotion_pattern.primary.emotion, "neutral")
        self.assertIs(detector.get_current_result(), result)

    def test_no_face_short_circuits(self):
        detector = _detector()
        result = detector.process_frame(LandmarkFrame.no_face(), now=1.0)
        self.assertFalse(result.face_detected)
        self.assertIsNone(result.assessment)
        self.assertEqual(result.confidence, 0.0)
        self.assertEqual(len(detector.session.gaze_positions), 0)
        self.assertEqual(detector.get_history(), ([], [], []))

    def test_face_without_landmarks_is_not_usable(self):
        detector = _detector()
        frame = LandmarkFrame(face_detected=True, bounding_box=make_box(), landmarks=None)
        result = detector.process_frame(frame, now=1.0)
        self.assertFalse(result.face_detected)
        self.assertIsNone(detector.session.last_analysis_time)

    def test_frame_without_expressions_has_no_emotion(self):
        detector = _detector()
        result = detector.process_frame(make_frame(expressions={}), now=1.0)
        self.assertIsNone(result.emotion)
        self.assertIsNone(result.emotion_pattern)
        self.assertIsNotNone(result.assessment)

    def test_closed_eyes_count_a_blink(self):
        detector = _detector()
        detector.process_frame(make_frame(eyes_open=False), now=1.0)
        self.assertEqual(detector.session.blink_count, 1)


class TestThrottle(unittest.TestCase):
    """Full analysis runs at most once per interval."""

    def test_cached_samples_are_reused(self):
        detector = _detector()
        first = detector.process_frame(make_frame(), now=0.0)
        second = detector.process_frame(make_frame(eyes_open=False, expressions={"happy": 0.8}), now=0.2)
        self.assertTrue(second.used_cache)
        self.assertIs(second.eye_tracking, first.eye_tracking)
        self.assertIs(second.behavioral, first.behavioral)
        self.assertEqual(second.emotion.emotion, "happy")
        # Expression-only pass: no blink or smile counted
        self.assertEqual(detector.session.blink_count, 0)
        self.assertEqual(detector.session.smile_count, 0)
        # Aggregator still runs every tick
        eye, _, emotions = detector.get_history()
        self.assertEqual(len(eye), 2)
        self.assertEqual(len(emotions), 2)

    def test_full_analysis_after_interval(self):
        detector = _detector()
        detector.process_frame(make_frame(), now=0.0)
        result = detector.process_frame(make_frame(eyes_open=False), now=0.6)
        self.assertFalse(result.used_cache)
        self.assertEqual(detector.session.blink_count, 1)
        self.assertEqual(detector.session.last_analysis_time, 0.6)

    def test_zero_interval_disables_cache(self):
        detector = _detector(full_analysis_interval=0.0)
        detector.process_frame(make_frame(), now=0.0)
        self.assertFalse(detector.process_frame(make_frame(), now=0.0).used_cache)


class TestReset(unittest.TestCase):
    """A reset session behaves like a brand-new one."""

    def test_reset_then_tick_matches_fresh_session(self):
        frame = make_frame(expressions={"happy": 0.7})

        fresh = _detector(session_start=100.0)
        expected = fresh.process_frame(frame, now=100.0)

        used = _detector(session_start=0.0)
        for i in range(8):
            used.process_frame(
                make_frame(eyes_open=bool(i % 2), expressions={"sad": 0.9}, shift=(i * 5.0, 0.0)),
                now=i * 0.6,
            )
        used.record_response_time(3.0)
        used.reset_session(now=100.0)
        self.assertIsNone(used.get_current_result())
        actual = used.process_frame(frame, now=100.0)

        self.assertEqual(actual, expected)

    def test_reset_clears_everything(self):
        detector = _detector()
        for i in range(3):
            detector.process_frame(make_frame(eyes_open=False, expressions={"happy": 0.9}), now=i * 1.5)
        detector.reset_session(now=10.0)
        s = detector.session
        self.assertEqual((s.blink_count, s.smile_count), (0, 0))
        self.assertIsNone(s.last_blink_time)
        self.assertEqual(len(s.gaze_positions) + len(s.head_positions), 0)
        self.assertFalse(s.is_cache_fresh(10.0, 0.5))
        self.assertEqual(s.session_start, 10.0)
        self.assertEqual(detector.get_history(), ([], [], []))


class TestSessionClock(unittest.TestCase):
    """Without an explicit start, the first usable tick starts the session."""

    def test_first_tick_starts_session(self):
        detector = MentalHealthDetector(full_analysis_interval=0.5)
        for t in (0.0, 60.0, 120.0):
            result = detector.process_frame(make_frame(eyes_open=False), now=t)
        self.assertEqual(detector.session.session_start, 0.0)
        self.assertEqual(detector.session.blink_count, 3)
        self.assertAlmostEqual(result.eye_tracking.blink_rate, 1.5)

    def test_no_face_tick_does_not_start_session(self):
        detector = MentalHealthDetector(full_analysis_interval=0.5)
        detector.process_frame(LandmarkFrame.no_face(), now=5.0)
        detector.process_frame(make_frame(), now=10.0)
        self.assertEqual(detector.session.session_start, 10.0)

    def test_explicit_start_is_kept(self):
        detector = _detector(session_start=0.0)
        detector.process_frame(make_frame(), now=30.0)
        self.assertEqual(detector.session.session_start, 0.0)

    def test_reset_without_time_restarts_on_next_tick(self):
        detector = _detector()
        detector.process_frame(make_frame(eyes_open=False), now=1.0)
        detector.reset_session()
        detector.process_frame(make_frame(eyes_open=False), now=500.0)
        result = detector.process_frame(make_frame(eyes_open=False), now=560.0)
        self.assertEqual(detector.session.session_start, 500.0)
        self.assertAlmostEqual(result.eye_tracking.blink_rate, 2.0)

    def test_non_finite_time_rejected(self):
        detector = _detector()
        with self.assertRaises(ValueError):
            detector.process_frame(make_frame(), now=float("nan"))
        with self.assertRaises(ValueError):
            detector.reset_session(now=float("inf"))
        self.assertIsNone(detector.session.last_analysis_time)
        self.assertEqual(detector.session.session_start, 0.0)


class TestProvider(unittest.TestCase):
    """process_image goes through the landmark provider."""

    def test_provider_frame_is_processed(self):
        provider = MagicMock()
        provider.detect.return_value = make_frame()
        detector = _detector(provider=provider)
        result = detector.process_image(object(), now=1.0)
        self.assertTrue(result.face_detected)
        provider.detect.assert_called_once()

    def test_provider_failure_is_no_face(self):
        provider = MagicMock()
        provider.detect.side_effect = RuntimeError("camera unplugged")
        provider.get_name.return_value = "mock"
        detector = _detector(provider=provider)
        with self.assertLogs("assessment_detector", level="WARNING"):
            result = detector.process_image(object(), now=1.0)
        self.assertFalse(result.face_detected)
        self.assertIsNone(result.assessment)

    def test_missing_provider_is_no_face(self):
        detector = _detector()
        with self.assertLogs("assessment_detector", level="WARNING"):
            result = detector.process_image(object(), now=1.0)
        self.assertFalse(result.face_detected)

    def test_close_releases_provider(self):
        provider = MagicMock()
        _detector(provider=provider).close()
        provider.close.assert_called_once()


class TestResponseTimeHook(unittest.TestCase):

    def test_record_and_reject(self):
        detector = _detector()
        detector.record_response_time(0.4)
        self.assertEqual(detector.session.response_times, [0.4])
        with self.assertRaises(ValueError):
            detector.record_response_time(-1.0)
        with self.assertRaises(ValueError):
            detector.record_response_time(float("nan"))


if __name__ == "__main__":
    unittest.main()
