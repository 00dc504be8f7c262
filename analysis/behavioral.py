"""
Behavioral Analyzer Module

Derives behavioral metrics from the landmarks, the face box and the dominant
expression of one frame, plus the running session state (smile counter and
head-position buffer).

Metrics:
- Smile frequency (debounced "happy" expressions per minute)
- Head movement (average step between buffered nose positions)
- Posture stability (how upright the eye-to-nose axis is)
- Response time (normalized average of the session's response-time log)
- Energy level (mouth openness, eye openness, face size)
- Social engagement (mouth openness, eye openness, expression weight)
"""

import math
import time
from dataclasses import dataclass
from typing import Dict, Optional
import numpy as np

import config
from analysis.landmark_frame import (
    FACE_REGIONS,
    BoundingBox,
    average_eye_aspect_ratio,
    centroid,
    distance,
    mouth_openness,
    normalize_emotion_label,
)
from analysis.session_state import SessionState


# How socially engaged each expression reads (unknown labels -> 0.7)
EMOTION_ENGAGEMENT: Dict[str, float] = {
    "happy": 1.0,
    "sad": 0.3,
    "neutral": 0.5,
}
DEFAULT_EMOTION_ENGAGEMENT = 0.7

# Face-box area (px^2) that counts as full size for the energy metric
FULL_FACE_AREA_PX = 100000.0


@dataclass(frozen=True)
class BehavioralSample:
    """
    Behavioral metrics for one tick.

    Ranges: smile_frequency >= 0 (per minute), head_movement >= 0 (px per step),
    posture_stability 0-1, response_time >= 0 (normalized), energy_level 0-1,
    social_engagement 0-1.
    """
    smile_frequency: float = 0.0
    head_movement: float = 0.0
    posture_stability: float = 1.0
    response_time: float = 1.0
    energy_level: float = 0.5
    social_engagement: float = 0.5


class BehavioralAnalyzer:
    """
    Computes BehavioralSample values from landmarks and the current expression.

    Usage:
        analyzer = BehavioralAnalyzer()
        sample = analyzer.analyze(landmarks, bounding_box, "happy", session, now)
    """

    def __init__(self, smile_debounce_sec: float = config.SMILE_DEBOUNCE_SEC):
        self.smile_debounce_sec = smile_debounce_sec

    def analyze(
        self,
        landmarks: np.ndarray,
        bounding_box: BoundingBox,
        emotion_label: str,
        session: SessionState,
        now: Optional[float] = None,
    ) -> BehavioralSample:
        if now is None:
            now = time.time()
        lm = np.asarray(landmarks, dtype=np.float64)
        emotion = normalize_emotion_label(emotion_label)
        minutes = session.elapsed_minutes(now)

        self._update_smiles(emotion, session, now)
        smile_frequency = session.smile_count / minutes

        nose = lm[slice(*FACE_REGIONS["nose"]), :2]
        left_eye = lm[slice(*FACE_REGIONS["left_eye"]), :2]
        right_eye = lm[slice(*FACE_REGIONS["right_eye"]), :2]
        mouth = lm[slice(*FACE_REGIONS["mouth"]), :2]

        head_center = centroid(nose)
        session.head_positions.append((float(head_center[0]), float(head_center[1]), float(now)))
        head_movement = self._head_movement(session)

        eye_center = (centroid(left_eye) + centroid(right_eye)) / 2.0
        posture = self._posture_stability(eye_center, head_center)

        mouth_open = mouth_openness(mouth)
        eye_open = float(np.clip(average_eye_aspect_ratio(left_eye, right_eye), 0.0, 1.0))
        face_size = 0.0
        if bounding_box is not None and not bounding_box.is_degenerate():
            face_size = float(np.clip(bounding_box.area / FULL_FACE_AREA_PX, 0.0, 1.0))

        energy = (mouth_open + eye_open + face_size) / 3.0
        emotion_weight = EMOTION_ENGAGEMENT.get(emotion, DEFAULT_EMOTION_ENGAGEMENT)
        social = (mouth_open + eye_open + emotion_weight) / 3.0

        return BehavioralSample(
            smile_frequency=max(0.0, float(smile_frequency)),
            head_movement=max(0.0, float(head_movement)),
            posture_stability=float(np.clip(posture, 0.0, 1.0)),
            response_time=max(0.0, self._response_time(session)),
            energy_level=float(np.clip(energy, 0.0, 1.0)),
            social_engagement=float(np.clip(social, 0.0, 1.0)),
        )

    def _update_smiles(self, emotion: str, session: SessionState, now: float) -> None:
        if emotion != "happy":
            return
        last = session.last_smile_time
        if last is None or (now - last) >= self.smile_debounce_sec:
            session.smile_count += 1
            session.last_smile_time = now

    def _head_movement(self, session: SessionState) -> float:
        buf = session.head_positions
        if len(buf) < 2:
            return 0.0
        return distance(buf[0][:2], buf[-1][:2]) / (len(buf) - 1)

    def _posture_stability(self, eye_center: np.ndarray, nose_center: np.ndarray) -> float:
        """
        |cos| of the tilt of the eye-center -> nose axis away from vertical.
        Upright face = 1.0, face rolled 90 degrees = 0.0.
        """
        dx = float(nose_center[0] - eye_center[0])
        dy = float(nose_center[1] - eye_center[1])
        if abs(dx) < 1e-9 and abs(dy) < 1e-9:
            return 1.0
        tilt = math.atan2(dx, dy)
        return abs(math.cos(tilt))

    def _response_time(self, session: SessionState) -> float:
        if not session.response_times:
            return 1.0
        avg = sum(session.response_times) / len(session.response_times)
        return min(1.0, avg / 2.0)
