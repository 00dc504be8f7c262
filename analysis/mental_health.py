"""
Mental-Health Aggregator Module

Turns one tick's eye-tracking and behavioral samples (plus the dominant emotion)
into six indicator scores (0-100), a risk tier, recommendations, a
professional-help flag and a confidence value.

Indicators react to the *current* samples through the threshold tables in
analysis.indicator_weights. Only emotional instability (distinct emotions
in the recent history) and confidence (history size) look at the rolling history.
"""

import logging
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Deque, Dict, List, Optional, Sequence, Tuple

import config
from analysis import indicator_weights
from analysis.behavioral import BehavioralSample
from analysis.eye_tracking import EyeTrackingSample
from analysis.landmark_frame import normalize_emotion_label

logger = logging.getLogger(__name__)


class RiskLevel(Enum):
    """Coarse risk tier from the highest indicator score."""
    LOW = "low"            # 0-40
    MODERATE = "moderate"  # 40-60
    HIGH = "high"          # 60-80
    CRITICAL = "critical"  # 80-100

    @classmethod
    def from_score(cls, score: float) -> "RiskLevel":
        if score >= 80:
            return cls.CRITICAL
        elif score >= 60:
            return cls.HIGH
        elif score >= 40:
            return cls.MODERATE
        else:
            return cls.LOW


@dataclass(frozen=True)
class EmotionSample:
    """Dominant expression of one tick."""
    emotion: str
    confidence: float

    def __post_init__(self):
        object.__setattr__(self, "emotion", normalize_emotion_label(self.emotion))
        object.__setattr__(self, "confidence", min(1.0, max(0.0, float(self.confidence))))


@dataclass(frozen=True)
class MentalHealthIndicators:
    """Six scores, each 0-100 (higher = stronger signal)."""
    depression_score: float = 0.0
    anxiety_score: float = 0.0
    stress_level: float = 0.0
    social_withdrawal: float = 0.0
    emotional_instability: float = 0.0
    cognitive_load: float = 0.0

    def values(self) -> List[float]:
        return [
            self.depression_score, self.anxiety_score, self.stress_level,
            self.social_withdrawal, self.emotional_instability, self.cognitive_load,
        ]

    def max_score(self) -> float:
        return max(self.values())


@dataclass(frozen=True)
class MentalHealthAssessment:
    overall_risk: RiskLevel
    indicators: MentalHealthIndicators
    eye_tracking: EyeTrackingSample
    behavioral: BehavioralSample
    recommendations: List[str]
    professional_help_needed: bool
    confidence: float
    depression_flags: Dict[str, bool] = field(default_factory=dict)


# Recommendation texts by category, in output order
RECOMMENDATIONS: Dict[str, List[str]] = {
    "depression": [
        "Consider doing activities you enjoy",
        "Try light exercise such as walking",
        "Keep a regular sleep routine",
        "Spend time with the people closest to you",
    ],
    "anxiety": [
        "Practice deep breathing (4-7-8 breathing)",
        "Try 10-15 minutes of meditation or mindfulness",
        "Avoid caffeine and other stimulants",
        "Keep a structured schedule to reduce anxiety",
    ],
    "stress": [
        "Try progressive muscle relaxation",
        "Use the 5-4-3-2-1 grounding technique",
        "Limit exposure to social media and news",
        "Prioritize self-care and enough rest",
    ],
    "social_withdrawal": [
        "Try reaching out to friends or family",
        "Join a community or hobby group",
        "Start with small, gradual interactions",
        "Consider group therapy",
    ],
    "general": [
        "Keep a healthy, nutritious diet",
        "Make sure you sleep 7-9 hours every night",
        "Limit alcohol and addictive substances",
        "Seek support from a mental health professional",
    ],
    "wellness": [
        "Keep up your healthy routine",
        "Maintain positive social connections",
        "Do activities that feel meaningful",
        "Practice mindfulness and gratitude",
    ],
}
MAX_RECOMMENDATIONS = 6


def _metric_snapshot(
    emotion: Optional[EmotionSample],
    eye: EyeTrackingSample,
    behavioral: BehavioralSample,
) -> Dict[str, Optional[float]]:
    snap: Dict[str, Optional[float]] = {
        "blink_rate": eye.blink_rate,
        "eye_contact_duration": eye.eye_contact_duration,
        "gaze_stability": eye.gaze_stability,
        "pupil_dilation": eye.pupil_dilation,
        "eye_movement_speed": eye.eye_movement_speed,
        "fixation_duration": eye.fixation_duration,
        "smile_frequency": behavioral.smile_frequency,
        "head_movement": behavioral.head_movement,
        "posture_stability": behavioral.posture_stability,
        "response_time": behavioral.response_time,
        "energy_level": behavioral.energy_level,
        "social_engagement": behavioral.social_engagement,
        "neutral_confidence": None,
        "happy_confidence": None,
    }
    if emotion is not None:
        if emotion.emotion == "neutral":
            snap["neutral_confidence"] = emotion.confidence
        elif emotion.emotion == "happy":
            snap["happy_confidence"] = emotion.confidence
    return snap


def _clamp_score(value: float) -> float:
    return float(min(100.0, max(0.0, value)))


def depression_flags(
    emotion: Optional[EmotionSample],
    eye: EyeTrackingSample,
    behavioral: BehavioralSample,
    rules: Optional[Dict[str, List[indicator_weights.IndicatorRule]]] = None,
) -> Dict[str, bool]:
    """The twelve named depression flags for the current samples."""
    rules = rules if rules is not None else indicator_weights.get_rules()
    snap = _metric_snapshot(emotion, eye, behavioral)
    return {r.name: r.fires(snap.get(r.metric)) for r in rules["depression"]}


def score_indicators(
    emotion: Optional[EmotionSample],
    eye: EyeTrackingSample,
    behavioral: BehavioralSample,
    emotion_history: Sequence[str] = (),
    weights: Optional[Dict[str, Dict[str, float]]] = None,
) -> MentalHealthIndicators:
    """
    Pure scoring step: same inputs, same scores (no clock, no hidden state).

    Args:
        emotion: dominant expression of this tick (None when unknown)
        eye, behavioral: this tick's samples
        emotion_history: recent emotion labels, oldest first (current tick included)
        weights: weight tables (defaults to the current in-memory weights)
    """
    if weights is None:
        weights = indicator_weights.get_weights()
    rules = indicator_weights.get_rules(weights)
    snap = _metric_snapshot(emotion, eye, behavioral)

    def total(key: str) -> float:
        return _clamp_score(sum(r.weight for r in rules[key] if r.fires(snap.get(r.metric))))

    instability = 0.0
    recent = list(emotion_history)[-10:]
    if len(recent) > 3:
        per_label = weights.get("emotional_instability", {}).get(
            "distinct_emotion", indicator_weights.DEFAULT_INSTABILITY_WEIGHT
        )
        instability = _clamp_score(len(set(recent)) * per_label)

    return MentalHealthIndicators(
        depression_score=total("depression"),
        anxiety_score=total("anxiety"),
        stress_level=total("stress"),
        social_withdrawal=total("social_withdrawal"),
        emotional_instability=instability,
        cognitive_load=total("cognitive_load"),
    )


def determine_risk_level(indicators: MentalHealthIndicators) -> RiskLevel:
    return RiskLevel.from_score(indicators.max_score())


def needs_professional_help(indicators: MentalHealthIndicators, risk: RiskLevel) -> bool:
    """High/critical risk, or three or more indicators above 60, or depression above 70."""
    if risk in (RiskLevel.HIGH, RiskLevel.CRITICAL):
        return True
    if sum(1 for v in indicators.values() if v > 60) >= 3:
        return True
    return indicators.depression_score > 70


def generate_recommendations(indicators: MentalHealthIndicators) -> List[str]:
    out: List[str] = []
    if indicators.depression_score > 50:
        out.extend(RECOMMENDATIONS["depression"])
    if indicators.anxiety_score > 50:
        out.extend(RECOMMENDATIONS["anxiety"])
    if indicators.stress_level > 50:
        out.extend(RECOMMENDATIONS["stress"])
    if indicators.social_withdrawal > 50:
        out.extend(RECOMMENDATIONS["social_withdrawal"])
    if indicators.depression_score > 30 or indicators.anxiety_score > 30:
        out.extend(RECOMMENDATIONS["general"])
    if not out:
        out.extend(RECOMMENDATIONS["wellness"])
    return out[:MAX_RECOMMENDATIONS]


class MentalHealthAggregator:
    """
    Keeps the rolling histories and produces one assessment per call.

    Usage:
        aggregator = MentalHealthAggregator()
        assessment = aggregator.assess(EmotionSample("neutral", 0.9), eye_sample, behavioral_sample)
    """

    _mismatch_warned = False

    def __init__(
        self,
        max_history: int = config.HISTORY_MAX_LENGTH,
        confidence_low_samples: int = config.CONFIDENCE_LOW_SAMPLES,
        confidence_high_samples: int = config.CONFIDENCE_HIGH_SAMPLES,
        weights_provider: Optional[Callable[[], Dict[str, Dict[str, float]]]] = None,
    ):
        self.max_history = max(1, int(max_history))
        self.confidence_low_samples = confidence_low_samples
        self.confidence_high_samples = confidence_high_samples
        self._weights_provider = weights_provider or indicator_weights.get_weights
        self.eye_tracking_history: Deque[EyeTrackingSample] = deque(maxlen=self.max_history)
        self.behavioral_history: Deque[BehavioralSample] = deque(maxlen=self.max_history)
        self.emotion_history: Deque[EmotionSample] = deque(maxlen=self.max_history)

        if confidence_high_samples > self.max_history and not MentalHealthAggregator._mismatch_warned:
            # Warn once per process
            MentalHealthAggregator._mismatch_warned = True
            logger.warning(
                "Confidence tier needs %d samples but history keeps only %d; confidence tops out at 0.6",
                confidence_high_samples, self.max_history,
            )

    def assess(
        self,
        emotion: Optional[EmotionSample],
        eye_tracking: EyeTrackingSample,
        behavioral: BehavioralSample,
    ) -> MentalHealthAssessment:
        self.eye_tracking_history.append(eye_tracking)
        self.behavioral_history.append(behavioral)
        if emotion is not None:
            self.emotion_history.append(emotion)

        weights = self._weights_provider()
        labels = [e.emotion for e in self.emotion_history]
        indicators = score_indicators(emotion, eye_tracking, behavioral, labels, weights)
        risk = determine_risk_level(indicators)

        return MentalHealthAssessment(
            overall_risk=risk,
            indicators=indicators,
            eye_tracking=eye_tracking,
            behavioral=behavioral,
            recommendations=generate_recommendations(indicators),
            professional_help_needed=needs_professional_help(indicators, risk),
            confidence=self.calculate_confidence(),
            depression_flags=depression_flags(
                emotion, eye_tracking, behavioral, indicator_weights.get_rules(weights)
            ),
        )

    def calculate_confidence(self) -> float:
        """Confidence from the smallest of the three history sizes."""
        samples = min(len(self.emotion_history), len(self.eye_tracking_history), len(self.behavioral_history))
        if samples < self.confidence_low_samples:
            return 0.3
        if samples < self.confidence_high_samples:
            return 0.6
        return 0.8

    def get_history(self) -> Tuple[List[EyeTrackingSample], List[BehavioralSample], List[EmotionSample]]:
        """Copies of the eye-tracking, behavioral and emotion histories (oldest first)."""
        return list(self.eye_tracking_history), list(self.behavioral_history), list(self.emotion_history)

    def clear_history(self) -> None:
        self.eye_tracking_history.clear()
        self.behavioral_history.clear()
        self.emotion_history.clear()
