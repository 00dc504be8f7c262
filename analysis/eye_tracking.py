"""
Eye-Tracking Analyzer Module

Derives eye metrics from the 68 facial landmarks of one frame plus the running
session state. Every call both reads and advances the session (blink counter,
eye-contact timer, gaze buffer).

Metrics:
- Blink rate (blinks per minute, debounced)
- Eye contact (fraction of the session spent looking at the camera)
- Gaze stability and eye movement speed (from the recent gaze buffer)
- Fixation (approximated from gaze stability; keeps the per-tick cost constant)
- Pupil dilation (cheap proxy from eye openness, not real pupillometry)
"""

import time
from dataclasses import dataclass
from typing import Optional
import numpy as np

import config
from analysis.landmark_frame import (
    FACE_REGIONS,
    BoundingBox,
    average_eye_aspect_ratio,
    centroid,
    distance,
)
from analysis.session_state import SessionState


@dataclass(frozen=True)
class EyeTrackingSample:
    """
    Eye metrics for one tick.

    Ranges: blink_rate >= 0 (per minute), eye_contact_duration 0-1,
    gaze_stability 0-1 (1 = stable), pupil_dilation 0-1,
    eye_movement_speed >= 0 (px/s), fixation_duration 0-1.
    """
    blink_rate: float = 0.0
    eye_contact_duration: float = 0.0
    gaze_stability: float = 1.0
    pupil_dilation: float = 0.0
    eye_movement_speed: float = 0.0
    fixation_duration: float = 1.0


class EyeTrackingAnalyzer:
    """
    Computes EyeTrackingSample values from landmarks.

    Usage:
        analyzer = EyeTrackingAnalyzer()
        sample = analyzer.analyze(landmarks, bounding_box, session, now)
    """

    def __init__(
        self,
        blink_threshold: float = config.BLINK_EAR_THRESHOLD,
        blink_debounce_sec: float = config.BLINK_DEBOUNCE_SEC,
        eye_contact_ratio: float = config.EYE_CONTACT_THRESHOLD_RATIO,
        gaze_normalization_px: float = config.GAZE_NORMALIZATION_PX,
    ):
        self.blink_threshold = blink_threshold
        self.blink_debounce_sec = blink_debounce_sec
        self.eye_contact_ratio = eye_contact_ratio
        self.gaze_normalization_px = max(1e-6, gaze_normalization_px)

    def analyze(
        self,
        landmarks: np.ndarray,
        bounding_box: BoundingBox,
        session: SessionState,
        now: Optional[float] = None,
    ) -> EyeTrackingSample:
        """
        Analyze one frame.

        Args:
            landmarks: (68, 2) landmark array in pixels
            bounding_box: face detection box for the same frame
            session: session state to read and advance
            now: tick timestamp in seconds (defaults to time.time())
        """
        if now is None:
            now = time.time()
        lm = np.asarray(landmarks, dtype=np.float64)
        left_eye = lm[slice(*FACE_REGIONS["left_eye"]), :2]
        right_eye = lm[slice(*FACE_REGIONS["right_eye"]), :2]
        eye_center = (centroid(left_eye) + centroid(right_eye)) / 2.0
        minutes = session.elapsed_minutes(now)

        ear = average_eye_aspect_ratio(left_eye, right_eye)
        self._update_blinks(ear, session, now)
        blink_rate = session.blink_count / minutes

        degenerate_box = bounding_box is None or bounding_box.is_degenerate()
        looking = False if degenerate_box else self._is_looking_at_camera(eye_center, bounding_box)
        eye_contact = self._update_eye_contact(looking, session, now, minutes)

        session.gaze_positions.append((float(eye_center[0]), float(eye_center[1]), float(now)))
        if degenerate_box:
            # No usable face scale this tick: assume stable
            gaze_stability, fixation = 1.0, 1.0
        else:
            gaze_stability = self._gaze_stability(session)
            fixation = self._fixation_duration(session, gaze_stability)
        speed = self._eye_movement_speed(session)

        return EyeTrackingSample(
            blink_rate=max(0.0, float(blink_rate)),
            eye_contact_duration=float(np.clip(eye_contact, 0.0, 1.0)),
            gaze_stability=float(np.clip(gaze_stability, 0.0, 1.0)),
            pupil_dilation=float(np.clip(ear * 2.0, 0.0, 1.0)),
            eye_movement_speed=max(0.0, float(speed)),
            fixation_duration=float(np.clip(fixation, 0.0, 1.0)),
        )

    def _update_blinks(self, ear: float, session: SessionState, now: float) -> None:
        if ear >= self.blink_threshold:
            return
        last = session.last_blink_time
        if last is None or (now - last) >= self.blink_debounce_sec:
            session.blink_count += 1
            session.last_blink_time = now

    def _is_looking_at_camera(self, eye_center: np.ndarray, box: BoundingBox) -> bool:
        return distance(eye_center, box.center) < box.width * self.eye_contact_ratio

    def _update_eye_contact(self, looking: bool, session: SessionState, now: float, minutes: float) -> float:
        """Advance the looking timer; return the looking fraction of the session."""
        if looking:
            if session.eye_contact_start is None:
                session.eye_contact_start = now
        elif session.eye_contact_start is not None:
            session.total_eye_contact_sec += max(0.0, now - session.eye_contact_start)
            session.eye_contact_start = None

        looking_sec = session.total_eye_contact_sec
        if session.eye_contact_start is not None:
            looking_sec += max(0.0, now - session.eye_contact_start)
        return (looking_sec / 60.0) / minutes

    def _gaze_stability(self, session: SessionState) -> float:
        buf = session.gaze_positions
        if len(buf) < 2:
            return 1.0
        first, last = buf[0], buf[-1]
        drift = distance(first[:2], last[:2])
        return max(0.0, 1.0 - drift / self.gaze_normalization_px)

    def _eye_movement_speed(self, session: SessionState) -> float:
        buf = session.gaze_positions
        if len(buf) < 2:
            return 0.0
        first, last = buf[0], buf[-1]
        dt = last[2] - first[2]
        if dt <= 0:
            return 0.0
        return distance(first[:2], last[:2]) / dt

    def _fixation_duration(self, session: SessionState, gaze_stability: float) -> float:
        buf = session.gaze_positions
        if len(buf) < 2 or buf[-1][2] - buf[0][2] <= 0:
            return 1.0
        return max(0.1, gaze_stability)
