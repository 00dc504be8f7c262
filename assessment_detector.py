"""
Mental-Health Assessment Detector.

Orchestrates one assessment session: landmark frame (from the client or a
LandmarkProvider) → eye-tracking + behavioral analysis (shared SessionState) →
mental-health aggregation → emotion pattern. The latest DetectionResult is
consumed by GET /assessment/state.

Throttle: full eye/behavioral analysis runs at most once per
FULL_ANALYSIS_INTERVAL_SEC. In between, the cached samples are reused and only the
expression is refreshed, so not every tick advances blink/smile counters.

Ticks are serialized with a lock; the bounded buffers and debounce timestamps
are mutated in place.
"""

import logging
import math
import threading
import time
from dataclasses import dataclass
from typing import Any, List, Optional, Tuple

import config
from analysis.behavioral import BehavioralAnalyzer, BehavioralSample
from analysis.emotion_patterns import EmotionPattern, analyze_emotion_pattern
from analysis.eye_tracking import EyeTrackingAnalyzer, EyeTrackingSample
from analysis.landmark_frame import LandmarkFrame, LandmarkProvider
from analysis.mental_health import EmotionSample, MentalHealthAggregator, MentalHealthAssessment
from analysis.session_state import SessionState

logger = logging.getLogger(__name__)


@dataclass
class DetectionResult:
    """Data class representing the outcome of one tick."""
    face_detected: bool  # Whether a usable face was in the frame
    timestamp: float  # Tick time in seconds
    emotion: Optional[EmotionSample] = None  # Dominant expression (None when no expressions)
    eye_tracking: Optional[EyeTrackingSample] = None
    behavioral: Optional[BehavioralSample] = None
    assessment: Optional[MentalHealthAssessment] = None  # None when no face
    emotion_pattern: Optional[EmotionPattern] = None
    used_cache: bool = False  # True when eye/behavioral samples came from the throttle cache

    @property
    def confidence(self) -> float:
        return self.assessment.confidence if self.assessment else 0.0


class MentalHealthDetector:
    """
    Main assessment detector class.

    Usage:
        detector = MentalHealthDetector()
        result = detector.process_frame(LandmarkFrame.from_dict(payload))
        if result.assessment:
            print(result.assessment.overall_risk.value)
    """

    def __init__(
        self,
        provider: Optional[LandmarkProvider] = None,
        full_analysis_interval: float = config.FULL_ANALYSIS_INTERVAL_SEC,
        eye_analyzer: Optional[EyeTrackingAnalyzer] = None,
        behavioral_analyzer: Optional[BehavioralAnalyzer] = None,
        aggregator: Optional[MentalHealthAggregator] = None,
        session_start: Optional[float] = None,
    ):
        """
        Args:
            provider: Landmark backend used by process_image() (optional; frames can be pushed directly)
            full_analysis_interval: Minimum seconds between full eye/behavioral analyses
            eye_analyzer, behavioral_analyzer, aggregator: Injected components (defaults from config)
            session_start: Session start time in seconds. When omitted, the first
                usable tick's time starts the session, so clients may send
                timestamps on their own clock.
        """
        self.provider = provider
        self.full_analysis_interval = max(0.0, float(full_analysis_interval))
        self.eye_analyzer = eye_analyzer or EyeTrackingAnalyzer()
        self.behavioral_analyzer = behavioral_analyzer or BehavioralAnalyzer()
        self.aggregator = aggregator or MentalHealthAggregator()
        self.session = SessionState(session_start=time.time() if session_start is None else float(session_start))
        self._session_anchored = session_start is not None

        self.lock = threading.Lock()
        self.current_result: Optional[DetectionResult] = None
        self._tick_count = 0

    def process_image(self, image: Any, now: Optional[float] = None) -> DetectionResult:
        """Ask the provider for landmarks, then run one tick. Provider failures count as no face."""
        if now is None:
            now = time.time()
        if self.provider is None:
            logger.warning("process_image called without a landmark provider")
            return self.process_frame(LandmarkFrame.no_face(), now)
        try:
            frame = self.provider.detect(image)
        except Exception as e:
            logger.warning("Landmark provider %s failed: %s", self.provider.get_name(), e)
            frame = LandmarkFrame.no_face()
        if frame is None:
            frame = LandmarkFrame.no_face()
        return self.process_frame(frame, now)

    def process_frame(self, frame: LandmarkFrame, now: Optional[float] = None) -> DetectionResult:
        """
        Run one tick.

        Args:
            frame: Landmark frame for this tick (not mutated)
            now: Tick time in seconds (default: time.time())

        Returns:
            DetectionResult; face_detected=False and no assessment when the frame is unusable
        """
        if now is None:
            now = time.time()
        elif not math.isfinite(now):
            raise ValueError("tick time must be a finite number of seconds")
        with self.lock:
            if not frame.is_usable():
                result = DetectionResult(face_detected=False, timestamp=now)
                self.current_result = result
                return result

            if not self._session_anchored:
                self.session.session_start = now
                self._session_anchored = True

            label, conf = frame.dominant_expression()
            emotion = EmotionSample(label, conf) if frame.expressions else None

            used_cache = self.session.is_cache_fresh(now, self.full_analysis_interval)
            if used_cache:
                eye = self.session.cached_eye_tracking
                behavioral = self.session.cached_behavioral
            else:
                landmarks = frame.landmarks
                eye = self.eye_analyzer.analyze(landmarks, frame.bounding_box, self.session, now)
                behavioral = self.behavioral_analyzer.analyze(
                    landmarks, frame.bounding_box, label, self.session, now
                )
                self.session.store_analysis(now, eye, behavioral)

            assessment = self.aggregator.assess(emotion, eye, behavioral)
            pattern = analyze_emotion_pattern(list(self.aggregator.emotion_history))

            result = DetectionResult(
                face_detected=True,
                timestamp=now,
                emotion=emotion,
                eye_tracking=eye,
                behavioral=behavioral,
                assessment=assessment,
                emotion_pattern=pattern,
                used_cache=used_cache,
            )
            self.current_result = result
            self._tick_count += 1
            self._log_diagnostics(result)
            return result

    def reset_session(self, now: Optional[float] = None) -> None:
        """
        Clear counters, buffers, cached analysis, rolling histories and the current result.

        Without now, the next usable tick starts the new session.
        """
        if now is not None and not math.isfinite(now):
            raise ValueError("session start must be a finite number of seconds")
        with self.lock:
            self.session.reset(now)
            self._session_anchored = now is not None
            self.aggregator.clear_history()
            self.current_result = None
            self._tick_count = 0

    def get_current_result(self) -> Optional[DetectionResult]:
        """
        Get the latest result (thread-safe).

        Returns:
            DetectionResult if any tick ran since the last reset, None otherwise
        """
        with self.lock:
            return self.current_result

    def get_history(self) -> Tuple[List[EyeTrackingSample], List[BehavioralSample], List[EmotionSample]]:
        with self.lock:
            return self.aggregator.get_history()

    def record_response_time(self, seconds: float) -> None:
        """Feed the response-time hook. Raises ValueError for negative or NaN values."""
        with self.lock:
            self.session.record_response_time(seconds)

    def close(self) -> None:
        if self.provider:
            self.provider.close()

    def _log_diagnostics(self, result: DetectionResult) -> None:
        if not config.ASSESSMENT_DIAGNOSTIC_LOGGING:
            return
        if self._tick_count % config.ASSESSMENT_DIAGNOSTIC_LOG_INTERVAL != 0:
            return
        a = result.assessment
        ind = a.indicators
        logger.debug(
            "tick=%d cache=%s risk=%s conf=%.1f dep=%.0f anx=%.0f str=%.0f wd=%.0f inst=%.0f cog=%.0f "
            "blink=%.1f contact=%.2f gaze=%.2f smile=%.1f head=%.2f energy=%.2f",
            self._tick_count, result.used_cache, a.overall_risk.value, a.confidence,
            ind.depression_score, ind.anxiety_score, ind.stress_level, ind.social_withdrawal,
            ind.emotional_instability, ind.cognitive_load,
            result.eye_tracking.blink_rate, result.eye_tracking.eye_contact_duration,
            result.eye_tracking.gaze_stability, result.behavioral.smile_frequency,
            result.behavioral.head_movement, result.behavioral.energy_level,
        )
